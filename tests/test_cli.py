"""Tests for the command line interface."""

import json
import tempfile
from pathlib import Path

from click.testing import CliRunner

from filterwave.cli import main

_ENV = {"GEMINI_API_KEY": "", "GEMINI_API_URL": "", "FILTERWAVE_RULES_FILE": ""}


def _run(*args):
    return CliRunner().invoke(main, list(args), env=_ENV)


def test_moderate_json_output():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _run("moderate", "you idiot", "--data-dir", tmpdir, "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["flagged"] is True
        assert data["method"] == "rule_based"
        assert data["decision_id"]


def test_moderate_then_feedback_and_show():
    with tempfile.TemporaryDirectory() as tmpdir:
        out = _run("moderate", "lovely weather", "--data-dir", tmpdir, "--json", "--user", "u1")
        decision_id = json.loads(out.output)["decision_id"]

        fb = _run("feedback", decision_id, "agree", "--comment", "correct", "--data-dir", tmpdir)
        assert fb.exit_code == 0, fb.output

        shown = _run("show", decision_id, "--data-dir", tmpdir)
        data = json.loads(shown.output)
        assert data["caller_id"] == "u1"
        assert data["feedback"][0]["comment"] == "correct"


def test_feedback_unknown_decision_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _run("feedback", "missing", "agree", "--data-dir", tmpdir)
        assert result.exit_code != 0
        assert "Unknown decision" in result.output


def test_moderate_empty_text_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _run("moderate", "", "--data-dir", tmpdir)
        assert result.exit_code != 0


def test_stats_and_history():
    with tempfile.TemporaryDirectory() as tmpdir:
        empty = _run("stats", "--data-dir", tmpdir)
        assert "No decisions recorded yet" in empty.output

        _run("moderate", "kys", "--data-dir", tmpdir)
        stats = _run("stats", "--data-dir", tmpdir)
        assert stats.exit_code == 0
        assert "Moderation statistics" in stats.output

        history = _run("history", "--data-dir", tmpdir)
        assert history.exit_code == 0
        assert "Recent decisions (1)" in history.output


def test_show_and_history_report_unreadable_store():
    with tempfile.TemporaryDirectory() as tmpdir:
        # A directory where the log file should be cannot be read as text.
        (Path(tmpdir) / "decisions.jsonl").mkdir()

        for args in (("show", "abc123"), ("history",)):
            result = _run(*args, "--data-dir", tmpdir)
            assert result.exit_code == 1
            assert isinstance(result.exception, SystemExit)
            assert "Failed to read decisions.jsonl" in result.output


def test_show_reports_unusable_data_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        not_a_dir = Path(tmpdir) / "file"
        not_a_dir.write_text("x")
        result = _run("show", "abc123", "--data-dir", str(not_a_dir))
        assert result.exit_code == 1
        assert "Cannot create decision store" in result.output
