"""Task files with frontmatter, uploaded file bodies, and URL lists."""

from pathlib import Path

import frontmatter

from collab.errors import PlanningError


def load_task_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown task file with optional YAML frontmatter.

    Returns:
        (content, metadata) where content is the body text and metadata may
        carry: agents (list of "Provider/model=Role"), language (str),
        code_mode (bool), style (str), template (str),
        error_description (str). If no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    content = post.content.strip()
    metadata = dict(post.metadata)
    return content, metadata


def _read_body(file_path: Path) -> str:
    if file_path.suffix.lower() == ".md":
        return frontmatter.load(str(file_path)).content
    return file_path.read_text(encoding="utf-8")


def read_sources(files: list[Path], urls: list[str]) -> str:
    """Render uploaded files and URLs as the block inserted into every prompt.

    Raises:
        PlanningError: A file cannot be read.
    """
    text = ""
    if files:
        text += "Uploaded Files:\n"
        for file_path in files:
            try:
                body = _read_body(file_path)
            except (OSError, UnicodeDecodeError) as exc:
                raise PlanningError(f"Error reading uploaded file {file_path}: {exc}") from exc
            text += f"\n--- File: {file_path.name} ---\n{body}\n"
        text += "\n"

    if urls:
        text += "URLs to analyze:\n"
        for url in urls:
            text += f"- {url}\n"
        text += "\n"
    return text


def source_names(files: list[Path], urls: list[str]) -> list[str]:
    return [f.name for f in files] + list(urls)


def build_code_task(code: str, error_description: str = "") -> str:
    """Code-review payload used as the discussion task."""
    task = f"Code to analyze:\n```\n{code}\n```\n"
    if error_description.strip():
        task += f"\nIssue description: {error_description.strip()}\n"
    return task
