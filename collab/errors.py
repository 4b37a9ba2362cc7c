"""Error taxonomy for planning, execution, and discussion state."""


class CollabError(Exception):
    """Base class for every error raised by the collaboration core."""


class PlanningError(CollabError):
    """Coordinator unreachable or its response failed validation.

    No round is appended and the discussion is left untouched.
    """


class CredentialMissingError(CollabError):
    """No API key configured for a provider.

    ``scope`` is ``"coordinator"`` when the planning provider is affected
    (fatal to the operation) or ``"participant"`` for an agent (degrades to a
    failed ExecutionResult).
    """

    def __init__(self, scope: str, provider: str, env_var: str | None = None) -> None:
        self.scope = scope
        self.provider = provider
        self.env_var = env_var
        hint = f" (set {env_var})" if env_var else ""
        super().__init__(f"API key for {provider} is missing{hint}")


class ExecutionError(CollabError):
    """A participant call failed: network, timeout, bad status or bad payload."""

    def __init__(self, provider: str, model: str, message: str) -> None:
        self.provider = provider
        self.model = model
        self.message = message
        super().__init__(message)


class StateError(CollabError):
    """Command rejected because it would break a discussion invariant."""
