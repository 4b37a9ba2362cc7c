"""Save and resume discussion snapshots as JSON files keyed by discussion id."""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path

from collab.errors import StateError
from collab.session import DiscussionSession

logger = logging.getLogger(__name__)

_TITLE_LEN = 50


@dataclass
class SavedDiscussion:
    id: str
    title: str
    timestamp: float
    finished: bool
    rounds: int
    task: str


def _title(task: str) -> str:
    first_line = task.strip().splitlines()[0] if task.strip() else ""
    return first_line[:_TITLE_LEN] + "..." if len(first_line) > _TITLE_LEN else first_line


class DiscussionStore:
    """Directory of ``{id}.json`` snapshots, newest ``max_saved`` kept."""

    def __init__(self, directory: Path, max_saved: int = 20) -> None:
        self._dir = directory
        self._max_saved = max_saved

    def _path(self, discussion_id: str) -> Path:
        return self._dir / f"{discussion_id}.json"

    def save(self, session: DiscussionSession) -> Path:
        self._dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "title": _title(session.discussion.task),
            "timestamp": time.time(),
            "discussion": session.to_dict(),
        }
        path = self._path(session.discussion.id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)
        logger.info("Discussion saved to: %s", path)
        self._prune()
        return path

    def load(self, discussion_id: str) -> DiscussionSession:
        """Rebuild the session saved under ``discussion_id``.

        Raises:
            FileNotFoundError: Unknown id.
            StateError: The snapshot is corrupt or breaks a round invariant.
        """
        path = self._path(discussion_id)
        if not path.exists():
            raise FileNotFoundError(f"No saved discussion with id {discussion_id}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return DiscussionSession.from_dict(payload["discussion"])
        except (KeyError, TypeError, ValueError) as exc:
            raise StateError(f"Saved discussion {discussion_id} is unreadable: {exc!r}") from exc

    def list_saved(self) -> list[SavedDiscussion]:
        """All snapshots, newest first."""
        if not self._dir.exists():
            return []
        entries: list[SavedDiscussion] = []
        for path in self._dir.glob("*.json"):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("Skipping unreadable snapshot %s: %s", path.name, exc)
                continue
            discussion = payload["discussion"]
            entries.append(
                SavedDiscussion(
                    id=discussion["id"],
                    title=payload.get("title", ""),
                    timestamp=float(payload.get("timestamp", 0.0)),
                    finished=bool(discussion.get("finished", False)),
                    rounds=len(discussion.get("rounds", [])),
                    task=discussion.get("task", ""),
                )
            )
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    def search(self, keyword: str) -> list[SavedDiscussion]:
        needle = keyword.strip().lower()
        if not needle:
            return self.list_saved()
        return [e for e in self.list_saved() if needle in e.title.lower() or needle in e.task.lower()]

    def delete(self, discussion_id: str) -> bool:
        path = self._path(discussion_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted discussion %s", discussion_id)
        return True

    def _prune(self) -> None:
        for entry in self.list_saved()[self._max_saved:]:
            self.delete(entry.id)
