"""Click CLI: role clarification, round loop, follow-ups, snapshots and export."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from collab.clarifier import clarify_roles
from collab.engine import ExecutionEngine
from collab.errors import CollabError
from collab.healthcheck import run_health_checks
from collab.ingest import build_code_task, load_task_file, read_sources, source_names
from collab.models import Agent
from collab.output import EXPORT_FORMATS, print_final_report, print_round, save_export
from collab.planner import Coordinator
from collab.providers.registry import ProviderFactory, build_coordinator_provider
from collab.session import DiscussionSession
from collab.store import DiscussionStore
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _parse_agent_spec(spec: str, config: AppConfig) -> Agent:
    """Parse ``Provider/model=Role`` into an Agent."""
    target, sep, role = spec.partition("=")
    provider, slash, model = target.partition("/")
    if not sep or not slash or not provider.strip() or not model.strip() or not role.strip():
        raise click.BadParameter(f"Expected PROVIDER/MODEL=ROLE, got '{spec}'", param_hint="--agent")
    provider, model = provider.strip(), model.strip()
    if provider not in config.providers:
        raise click.BadParameter(
            f"Unknown provider '{provider}'. Known: {', '.join(config.providers)}",
            param_hint="--agent",
        )
    if config.providers[provider].models and model not in config.providers[provider].models:
        logger.warning("Model %s is not listed for %s in settings.yaml", model, provider)
    return Agent(provider=provider, model=model, role=role.strip())


def _agents_from_template(config: AppConfig, template_name: str, language: str) -> tuple[str, list[Agent], bool]:
    """Returns (topic, agents, code_mode) for a collaboration template."""
    templates = config.templates.get(language, {})
    template = templates.get(template_name)
    if template is None:
        raise click.BadParameter(
            f"Unknown template '{template_name}'. Known: {', '.join(templates)}",
            param_hint="--template",
        )
    agents = [
        Agent(provider=provider, model=config.providers[provider].models[0], role=role)
        for provider, role in template.roles.items()
        if provider in config.providers and config.providers[provider].models
    ]
    return template.topic, agents, template.code_mode


def _check_and_filter_agents(agents: list[Agent], factory: ProviderFactory) -> list[Agent]:
    """Run health checks, print results, and ask what to do on failures.

    Returns the agents that passed. Exits if the user declines to continue
    or no agent passes.
    """
    console.print("\n[bold]Checking agents...[/bold]")
    results = asyncio.run(run_health_checks(agents, factory))

    failed: list[str] = []
    for key in sorted(results):
        ok, err = results[key]
        if ok:
            console.print(f"  [green]OK  [/green] {key}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {key}: {short_err}")
            failed.append(key)

    if not failed:
        console.print()
        return agents

    working = [a for a in agents if a.key not in failed]
    if not working:
        console.print("\n[bold red]Error:[/bold red] No agents passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed)} agent(s) failed:[/yellow] {', '.join(failed)}")
    if not click.confirm("Continue with working agents only?", default=True):
        sys.exit(0)
    console.print()
    return working


def _print_clarified(agents: list[Agent]) -> None:
    for agent in agents:
        console.print(f"[bold]{agent.key}[/bold] ({agent.role})")
        if agent.clarified_tasks:
            console.print(f"  [dim]Tasks:[/dim] {agent.clarified_tasks}")
        if agent.thinking_style:
            console.print(f"  [dim]Thinking style:[/dim] {agent.thinking_style}")


async def _drive(
    session: DiscussionSession,
    coordinator: Coordinator,
    engine: ExecutionEngine,
    store: DiscussionStore,
    max_rounds: int,
    auto: bool,
    follow_up: str | None = None,
) -> None:
    """Plan, execute and evaluate rounds until the discussion finishes.

    After ``max_rounds`` rounds planned in this run, or when the user
    declines to continue, the discussion is force-stopped.
    """
    discussion = session.discussion
    planned = 0

    if follow_up:
        rnd = await session.submit_follow_up(coordinator, follow_up)
        planned += 1
        print_round(rnd, discussion.language)
        store.save(session)
    elif not discussion.rounds:
        rnd = await session.plan_next_round(coordinator)
        planned += 1
        print_round(rnd, discussion.language)
        store.save(session)

    while not discussion.finished:
        latest = discussion.latest_round
        if latest.execution_results is None:
            with console.status(f"Executing round {latest.number}..."):
                await session.execute_latest(engine)
            print_round(latest, discussion.language)
            store.save(session)

        next_number = len(discussion.rounds) + 1
        if planned >= max_rounds or (
            not auto and not click.confirm(f"Proceed to Round {next_number}?", default=True)
        ):
            with console.status("Summarizing..."):
                await session.stop(coordinator)
            store.save(session)
            break

        with console.status(f"Planning round {next_number}..."):
            rnd = await session.plan_next_round(coordinator)
        planned += 1
        print_round(rnd, discussion.language)
        store.save(session)

    print_final_report(discussion)


def _services(config: AppConfig) -> tuple[Coordinator, ExecutionEngine, DiscussionStore]:
    coordinator = Coordinator(build_coordinator_provider(config), config.prompts)
    engine = ExecutionEngine(ProviderFactory(config), config.prompts.participant, config.prompts.languages)
    store = DiscussionStore(config.defaults.sessions_dir, config.defaults.max_saved)
    return coordinator, engine, store


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--settings", "settings_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Path to settings.yaml (default: bundled config)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, settings_path: str | None) -> None:
    """Multi-LLM Collaboration -- round-based discussions across providers.

    \b
    Examples:
      collab start "Should we adopt event sourcing?" \\
          --agent Google/gemini-2.5-pro=Architect --agent OpenAI/gpt-4o=Skeptic
      collab start --template "Technical Architecture" --yes
      collab start --code app.py --error-description "crashes on empty input"
      collab resume 3f2a9c1d0b7e --follow-up "What about cost?"
      collab export 3f2a9c1d0b7e --format doc
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(settings_path)) if settings_path else load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)
    ctx.obj = config


@main.command()
@click.argument("topic", required=False)
@click.option("--agent", "agent_specs", multiple=True, help="PROVIDER/MODEL=ROLE, repeatable")
@click.option("--template", "template_name", default=None, help="Collaboration template name")
@click.option("--task-file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Markdown task file with optional frontmatter")
@click.option("--code", "code_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Source file to review (code-review mode)")
@click.option("--error-description", default="", help="Issue description for code-review mode")
@click.option("--file", "files", multiple=True, type=click.Path(exists=True, dir_okay=False),
              help="File whose contents are shared with every agent, repeatable")
@click.option("--url", "urls", multiple=True, help="URL to list for analysis, repeatable")
@click.option("--language", type=click.Choice(["en", "zh"]), default=None, help="Response language")
@click.option("--style", default=None, help="Discussion style (see `collab templates`)")
@click.option("--max-rounds", type=int, default=None, help="Rounds before a forced stop (default: from config)")
@click.option("--yes", "auto", is_flag=True, help="Proceed through rounds without asking")
@click.option("--skip-health-check", is_flag=True, default=False, help="Skip the API connectivity check")
@click.pass_obj
def start(
    config: AppConfig,
    topic: str | None,
    agent_specs: tuple[str, ...],
    template_name: str | None,
    task_file: str | None,
    code_file: str | None,
    error_description: str,
    files: tuple[str, ...],
    urls: tuple[str, ...],
    language: str | None,
    style: str | None,
    max_rounds: int | None,
    auto: bool,
    skip_health_check: bool,
) -> None:
    """Clarify roles, then run a discussion on TOPIC."""
    meta: dict = {}
    if task_file:
        body, meta = load_task_file(Path(task_file))
        topic = topic or body

    language = language or str(meta.get("language", config.defaults.language))
    code_mode = bool(meta.get("code_mode", False))
    agents = [_parse_agent_spec(s, config) for s in (agent_specs or meta.get("agents", []))]

    template_name = template_name or meta.get("template")
    if template_name:
        template_topic, template_agents, template_code = _agents_from_template(config, template_name, language)
        topic = topic or template_topic
        agents = agents or template_agents
        code_mode = code_mode or template_code

    if code_file:
        code_mode = True
        error_description = error_description or str(meta.get("error_description", ""))
        topic = build_code_task(Path(code_file).read_text(encoding="utf-8"), error_description)

    if not topic or not topic.strip():
        console.print("[bold red]Error:[/bold red] Provide a TOPIC, --task-file, --template or --code.")
        sys.exit(1)
    if not agents:
        console.print("[bold red]Error:[/bold red] Assign at least one --agent PROVIDER/MODEL=ROLE.")
        sys.exit(1)

    style_name = style or str(meta.get("style", config.defaults.style))
    style_text = config.styles.get(language, {}).get(style_name, style_name)

    try:
        coordinator, engine, store = _services(config)
        ingested = read_sources([Path(f) for f in files], list(urls))

        if not skip_health_check:
            # Separate clients: each asyncio.run gets its own event loop.
            agents = _check_and_filter_agents(agents, ProviderFactory(config))

        with console.status("Clarifying roles..."):
            clarified = asyncio.run(
                clarify_roles(
                    build_coordinator_provider(config),
                    config.prompts,
                    topic,
                    agents,
                    ingested=ingested,
                    language=language,
                    code_mode=code_mode,
                )
            )
        _print_clarified(clarified)

        session = DiscussionSession.create(
            topic,
            clarified,
            language=language,
            code_mode=code_mode,
            ingested=ingested,
            sources=source_names([Path(f) for f in files], list(urls)),
            style=style_text,
        )
        store.save(session)
        console.print(f"\n[bold cyan]Discussion {session.discussion.id}[/bold cyan] with {len(clarified)} agents\n")

        asyncio.run(
            _drive(
                session,
                coordinator,
                engine,
                store,
                max_rounds or config.defaults.max_rounds,
                auto,
            )
        )
    except CollabError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    console.print(f"\n[dim]Saved as {session.discussion.id}[/dim]")


def _load(store: DiscussionStore, discussion_id: str) -> DiscussionSession:
    try:
        return store.load(discussion_id)
    except (FileNotFoundError, CollabError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@click.argument("discussion_id")
@click.option("--follow-up", default=None, help="Follow-up question for a finished discussion")
@click.option("--max-rounds", type=int, default=None, help="Rounds before a forced stop (default: from config)")
@click.option("--yes", "auto", is_flag=True, help="Proceed through rounds without asking")
@click.pass_obj
def resume(config: AppConfig, discussion_id: str, follow_up: str | None, max_rounds: int | None, auto: bool) -> None:
    """Continue a saved discussion, optionally with a follow-up question."""
    try:
        coordinator, engine, store = _services(config)
        session = _load(store, discussion_id)
        if session.discussion.finished and not follow_up:
            print_final_report(session.discussion)
            console.print("[yellow]Discussion is finished.[/yellow] Use --follow-up to continue it.")
            return
        asyncio.run(
            _drive(
                session,
                coordinator,
                engine,
                store,
                max_rounds or config.defaults.max_rounds,
                auto,
                follow_up=follow_up,
            )
        )
    except CollabError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@click.argument("discussion_id")
@click.pass_obj
def stop(config: AppConfig, discussion_id: str) -> None:
    """Stop a discussion and summarize it into a final report."""
    try:
        coordinator, _engine, store = _services(config)
        session = _load(store, discussion_id)
        with console.status("Summarizing..."):
            asyncio.run(session.stop(coordinator))
        store.save(session)
    except CollabError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)
    print_final_report(session.discussion)


@main.command(name="list")
@click.option("--search", default=None, help="Only discussions whose title or task contains this keyword")
@click.pass_obj
def list_discussions(config: AppConfig, search: str | None) -> None:
    """List saved discussions, newest first."""
    store = DiscussionStore(config.defaults.sessions_dir, config.defaults.max_saved)
    entries = store.search(search) if search else store.list_saved()
    if not entries:
        click.echo("There is no discussion history related to this keyword" if search else "No saved discussions yet")
        return
    table = Table("ID", "Title", "Rounds", "Status")
    for entry in entries:
        status = "[green]Completed[/green]" if entry.finished else "[yellow]In Progress[/yellow]"
        table.add_row(entry.id, entry.title, str(entry.rounds), status)
    console.print(table)


@main.command()
@click.argument("discussion_id")
@click.confirmation_option(prompt="Are you sure you want to delete this discussion?")
@click.pass_obj
def delete(config: AppConfig, discussion_id: str) -> None:
    """Delete a saved discussion."""
    store = DiscussionStore(config.defaults.sessions_dir, config.defaults.max_saved)
    if not store.delete(discussion_id):
        console.print(f"[bold red]Error:[/bold red] No saved discussion with id {discussion_id}")
        sys.exit(1)
    click.echo(f"Deleted {discussion_id}")


@main.command()
@click.argument("discussion_id")
@click.option("--format", "fmt", type=click.Choice(sorted(EXPORT_FORMATS)), default="txt", help="Export format")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.pass_obj
def export(config: AppConfig, discussion_id: str, fmt: str, output_path: str | None) -> None:
    """Export a saved discussion as a transcript, document or code view."""
    store = DiscussionStore(config.defaults.sessions_dir, config.defaults.max_saved)
    session = _load(store, discussion_id)
    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    saved = save_export(session.discussion, output_dir, fmt)
    console.print(f"[dim]Saved to: {saved}[/dim]")


@main.command()
@click.option("--language", type=click.Choice(["en", "zh"]), default="en")
@click.pass_obj
def templates(config: AppConfig, language: str) -> None:
    """Show collaboration templates and discussion styles."""
    table = Table("Template", "Topic", "Roles")
    for template in config.templates.get(language, {}).values():
        roles = ", ".join(f"{p}: {r}" for p, r in template.roles.items())
        name = template.name + (" [dim](code)[/dim]" if template.code_mode else "")
        table.add_row(name, template.topic, roles)
    console.print(table)
    for name, description in config.styles.get(language, {}).items():
        console.print(f"[bold]{name}[/bold]: {description}")


if __name__ == "__main__":
    main()
