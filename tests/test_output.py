"""Tests for collab/output.py."""

from pathlib import Path

import pytest

from collab.models import ExecutionResult, StopCondition
from collab.output import print_final_report, print_round, render_export, save_export
from tests.conftest import make_round


def test_save_export_txt(tmp_path: Path, session):
    session.append_round(make_round(1, StopCondition.CONSENSUS_FORMED))
    path = save_export(session.discussion, tmp_path / "out", "txt", sources=["notes.txt"])
    assert path.parent == tmp_path / "out"
    assert path.name.endswith("_should-we-launch-the-product.txt")
    text = path.read_text(encoding="utf-8")
    assert "--- FINAL REPORT ---" in text
    assert "- notes.txt" in text


def test_save_export_doc_and_code_extensions(tmp_path: Path, session):
    session.append_round(make_round(1, StopCondition.CONSENSUS_FORMED))
    assert save_export(session.discussion, tmp_path, "doc").suffix == ".doc"
    assert save_export(session.discussion, tmp_path, "code").suffix == ".js"


def test_save_export_unknown_format(tmp_path: Path, session):
    with pytest.raises(ValueError, match="pdf"):
        save_export(session.discussion, tmp_path, "pdf")


def test_save_export_falls_back_to_id_for_unsluggable_task(tmp_path: Path, session):
    session.discussion.task = "???"
    path = save_export(session.discussion, tmp_path)
    assert path.name.endswith("_disc-1.txt")


def test_render_export_unknown_format(session):
    with pytest.raises(ValueError):
        render_export(session.discussion, "xml")


def test_print_round_and_report_do_not_raise(session, capsys):
    rnd = make_round(1, StopCondition.CONSENSUS_FORMED)
    rnd.execution_results[1] = ExecutionResult("ProviderB", "modelY", error="Request timed out after 30s")
    session.append_round(rnd)

    print_round(rnd, "en")
    print_final_report(session.discussion)

    out = capsys.readouterr().out
    assert "ROUND 1" in out
    assert "Error: Request timed out after 30s" in out
    assert "Ship the MVP in Q3." in out


def test_print_final_report_without_report(session, capsys):
    session.append_round(make_round(1))
    print_final_report(session.discussion)
    assert capsys.readouterr().out == ""
