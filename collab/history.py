"""Render a Discussion's round history into prompt context and export documents.

Every function here is a pure projection of the Discussion: no I/O, no
mutation, and the same state always renders to the same text.
"""

import html

from collab.models import Discussion, ExecutionResult, FinalReport, Round, StopCondition

LABELS: dict[str, dict[str, str]] = {
    "en": {
        "title": "Multi-LLM Collaboration",
        "topic": "Topic",
        "code": "Code Under Review",
        "round": "ROUND",
        "discussion_summary": "Discussion Summary",
        "round_plan": "Round Plan",
        "execution_results": "Execution Results",
        "final_report": "FINAL REPORT",
        "consensus": "Consensus",
        "key_points": "Key Points",
        "document_outline": "Document Outline",
        "stop_reason": "Reason for Stopping",
        StopCondition.CONTINUE.value: "In Progress",
        StopCondition.CONSENSUS_FORMED.value: "Consensus Formed",
        StopCondition.ROUND_LIMIT_REACHED.value: "Round Limit Reached",
        StopCondition.INSUFFICIENT_INFORMATION.value: "Insufficient Information to Proceed",
    },
    "zh": {
        "title": "Multi-LLM Collaboration",
        "topic": "主題",
        "code": "待審查程式碼",
        "round": "回合",
        "discussion_summary": "討論摘要",
        "round_plan": "回合計畫",
        "execution_results": "執行結果",
        "final_report": "最終報告",
        "consensus": "共識結論",
        "key_points": "重點摘要",
        "document_outline": "文件大綱",
        "stop_reason": "討論停止原因",
        StopCondition.CONTINUE.value: "進行中",
        StopCondition.CONSENSUS_FORMED.value: "已達成共識",
        StopCondition.ROUND_LIMIT_REACHED.value: "已達回合上限",
        StopCondition.INSUFFICIENT_INFORMATION.value: "資訊不足無法繼續",
    },
}

_CODE_HEADINGS = ("code", "solution", "程式", "解決")


def labels_for(language: str) -> dict[str, str]:
    return LABELS.get(language, LABELS["en"])


def result_text(result: ExecutionResult) -> str:
    """Response body, or the failure rendered as ``Error: ...``."""
    if result.ok:
        return result.response or ""
    return f"Error: {result.error}"


def render_roster(discussion: Discussion) -> str:
    """Participants with role, clarified tasks and thinking style."""
    lines: list[str] = []
    for agent in discussion.agents:
        lines.append(f"- {agent.key} (Role: {agent.role})")
        if agent.clarified_tasks or agent.thinking_style:
            lines.append(f"  Tasks: {agent.clarified_tasks}")
            lines.append(f"  Thinking Style: {agent.thinking_style}")
    return "\n".join(lines)


def _render_round_context(rnd: Round) -> str:
    text = f"--- Round {rnd.number} Summary ---\n{rnd.summary}\n"
    if rnd.execution_results is not None:
        text += f"\n--- Round {rnd.number} Execution Results ---\n"
        for res in rnd.execution_results:
            text += f"[{res.key} RESPONSE]:\n{result_text(res)}\n\n"
    return text


def render_context(discussion: Discussion) -> str:
    """Linear history consumed by the Coordinator, in round order.

    Returns an empty string for a discussion with no rounds.
    """
    if not discussion.rounds:
        return ""
    return "Discussion History:\n" + "".join(_render_round_context(r) for r in discussion.rounds)


def _render_final_report(report: FinalReport, condition: StopCondition, labels: dict[str, str]) -> str:
    content = f"--- {labels['final_report']} ---\n\n"
    content += f"[{labels['stop_reason']}]\n{labels[condition.value]}\n\n"
    content += f"[{labels['consensus']}]\n{report.consensus}\n\n"
    content += f"[{labels['key_points']}]\n"
    for point in report.bullet_summary:
        content += f"- {point}\n"
    content += f"\n[{labels['document_outline']}]\n"
    for item in report.doc_outline:
        content += f"- {item}\n"
    for block in report.doc_body_blocks:
        content += f"\n## {block.heading}\n{block.content}\n"
    return content


def render_transcript(discussion: Discussion, sources: list[str] | None = None) -> str:
    """Plain-text transcript of the whole discussion.

    Args:
        discussion: The discussion to render.
        sources: Names of ingested files and URLs listed in the header.
            Defaults to the discussion's own sources.
    """
    labels = labels_for(discussion.language)
    sources = sources if sources is not None else discussion.sources
    content = f"{labels['title']}\n====================\n\n"
    heading = labels["code"] if discussion.code_mode else labels["topic"]
    content += f"{heading}: {discussion.task}\n\n"

    if sources:
        content += "--- SOURCES ---\n"
        for source in sources:
            content += f"- {source}\n"
        content += "\n"

    content += "--- PARTICIPANTS ---\n"
    for agent in discussion.agents:
        content += f"\nModel: {agent.key}\nRole: {agent.role or 'N/A'}\n"
        if agent.clarified_tasks:
            content += f"Clarified Tasks:\n{agent.clarified_tasks}\n"
        if agent.thinking_style:
            content += f"Thinking Style: {agent.thinking_style}\n"
    content += "\n====================\n\n"

    for rnd in discussion.rounds:
        content += f"--- {labels['round']} {rnd.number} ---\n\n"
        content += f"[{labels['discussion_summary']}]\n{rnd.summary}\n\n"
        content += f"[{labels['round_plan']}]\n"
        for call in rnd.calls:
            content += f"- Model: {call.key} ({call.role})\n"
            content += f"  Prompt: {call.directive}\n"
        if rnd.execution_results is not None:
            content += f"\n[{labels['execution_results']}]\n"
            for res in rnd.execution_results:
                agent = discussion.find_agent(res.provider, res.model)
                role = agent.role if agent else ""
                content += f"\n>> Response from {role} ({res.key}):\n"
                content += f"{result_text(res)}\n"
        content += "\n---------------------\n\n"

    latest = discussion.latest_round
    if latest is not None and latest.final_report is not None:
        content += _render_final_report(latest.final_report, latest.stop_condition, labels)
    return content


def render_document(discussion: Discussion, sources: list[str] | None = None) -> str:
    """Transcript wrapped in minimal HTML, readable by word processors as .doc."""
    body = html.escape(render_transcript(discussion, sources)).replace("\n", "<br>")
    return (
        '<html><head><meta charset="utf-8"><title>Discussion Report</title>'
        "<style>* { font-family: 'Arial', 'Noto Sans TC', 'Noto Sans SC', sans-serif !important; }</style>"
        f"</head><body><pre>{body}</pre></body></html>"
    )


def render_code_view(discussion: Discussion) -> str:
    """Code-review extraction: original code plus consensus and solution blocks."""
    content = f"// Generated from Multi-LLM Code Review\n// Original Code:\n{discussion.task}\n\n"
    latest = discussion.latest_round
    report = latest.final_report if latest is not None else None
    if report is not None:
        consensus = report.consensus.replace("\n", "\n// ")
        content += f"// Consensus Solution:\n// {consensus}\n\n"
        for block in report.doc_body_blocks:
            if any(word in block.heading.lower() for word in _CODE_HEADINGS):
                body = block.content.replace("\n", "\n// ")
                content += f"// {block.heading}:\n// {body}\n\n"
    return content
