"""Rich console output and file export for discussions."""

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from collab.formatting import slug
from collab.history import labels_for, render_code_view, render_document, render_transcript, result_text
from collab.models import Discussion, ExecutionResult, Round

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

EXPORT_FORMATS: dict[str, str] = {
    "txt": "txt",
    "doc": "doc",
    "code": "js",
}


def _response_preview(result: ExecutionResult, words: int = 50) -> str:
    """Return first N words of a result."""
    all_words = result_text(result).split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def print_round(rnd: Round, language: str = "en") -> None:
    """Print a round's summary, plan and any results to the console."""
    labels = labels_for(language)
    console.print(Rule(f"[bold cyan]{labels['round']} {rnd.number}[/bold cyan]"))
    console.print(Text(f"{labels['discussion_summary']}: ", style="bold"), Text(rnd.summary))
    console.print(Text(f"{labels['round_plan']}:", style="bold"))
    for call in rnd.calls:
        console.print(f"  - {call.key} ({call.role}) [dim]{call.timeout_sec}s[/dim]")
    if rnd.execution_results is not None:
        for result in rnd.execution_results:
            subtitle = f"{result.latency_sec:.1f}s" if result.latency_sec is not None else None
            console.print(
                Panel(
                    _response_preview(result),
                    title=f"[bold]{result.key}[/bold]",
                    subtitle=subtitle,
                    border_style="dim" if result.ok else "red",
                )
            )


def print_final_report(discussion: Discussion) -> None:
    latest = discussion.latest_round
    if latest is None or latest.final_report is None:
        return
    labels = labels_for(discussion.language)
    report = latest.final_report
    console.print(Rule(f"[bold green]{labels['final_report']}[/bold green]"))
    console.print(Text(f"{labels['stop_reason']}: {labels[latest.stop_condition.value]}", style="dim"))
    console.print(Panel(report.consensus, title=labels["consensus"], border_style="green"))
    if report.bullet_summary:
        console.print(Text(labels["key_points"], style="bold"))
        for point in report.bullet_summary:
            console.print(f"  - {point}")
    for block in report.doc_body_blocks:
        console.print(Text(block.heading, style="bold underline"))
        console.print(block.content)


def render_export(discussion: Discussion, fmt: str, sources: list[str] | None = None) -> str:
    if fmt == "txt":
        return render_transcript(discussion, sources)
    if fmt == "doc":
        return render_document(discussion, sources)
    if fmt == "code":
        return render_code_view(discussion)
    raise ValueError(f"Unknown export format: {fmt}")


def save_export(
    discussion: Discussion,
    output_dir: Path,
    fmt: str = "txt",
    sources: list[str] | None = None,
) -> Path:
    """Write the discussion in ``fmt`` to ``output_dir``.

    Returns:
        Path to the saved file, named ``{timestamp}_{slug}.{ext}``.
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format: {fmt}")
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    stem = slug(discussion.task) or discussion.id
    filepath = output_dir / f"{timestamp}_{stem}.{EXPORT_FORMATS[fmt]}"

    filepath.write_text(render_export(discussion, fmt, sources), encoding="utf-8")
    logger.info("Discussion exported to: %s", filepath)
    return filepath
