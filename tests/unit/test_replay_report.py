"""
test_replay_report.py - Unit tests for replay modes, output rendering and the CLI

Tests:
- all-or-nothing replay stops at the first error
- validate-only replay collects every error with line numbers
- ledger and presence rendering
- command line entry point
"""

import pytest

from flatshare import (
    ReplayEngine, MalformedOperation, UnknownParticipant, NoCoverage,
    settle, render_ledger, render_presence, format_cents, replay, parse_log,
)
from flatshare.__main__ import main


LOG = [
    "# two flatmates\n",
    "START 2024-01-01 alice\n",
    "START 2024-01-01 bob\n",
    "TRANSFER 2024-01-02 alice bob 20.00\n",
    "TRANSFER 2024-01-03 bob alice 5.00\n",
]


class TestReplay:

    def test_run_lines(self, replay_lines):
        state = replay_lines(LOG)
        assert state.debts.debt(1, 0) == 1500

    def test_replay_function(self):
        state = replay(parse_log(LOG))
        assert state.debts.debt(1, 0) == 1500

    def test_run_stops_at_first_error(self):
        engine = ReplayEngine()
        with pytest.raises(UnknownParticipant):
            engine.run_lines(LOG + ["TRANSFER 2024-01-04 carol bob 1.00\n", "TRANSFER 2024-01-05 alice bob 1.00\n"])
        assert engine.state.debts.debt(1, 0) == 1500

    def test_malformed_line_is_fatal(self):
        with pytest.raises(MalformedOperation) as excinfo:
            ReplayEngine().run_lines(LOG + ["JUMP 2024-01-04 alice\n"])
        assert excinfo.value.line_number == 6

    def test_validate_collects_every_error(self):
        lines = LOG + [
            "TRANSFER 2024-01-04 carol bob 1.00\n",
            "JUMP 2024-01-04 alice\n",
            "PAY 2024-01-05 alice 10.00 2023-01-01 2023-02-01\n",
            "TRANSFER 2024-01-06 alice bob 1.00\n",
        ]
        report = ReplayEngine().validate_lines(lines)
        assert not report.ok
        assert report.applied == 5
        assert [issue.line_number for issue in report.issues] == [6, 7, 8]
        assert [type(issue.error) for issue in report.issues] == [
            UnknownParticipant, MalformedOperation, NoCoverage,
        ]

    def test_validate_clean_log(self):
        report = ReplayEngine().validate(parse_log(LOG))
        assert report.ok
        assert report.applied == 4

    def test_issue_message_not_doubled(self):
        report = ReplayEngine().validate_lines(["JUMP 2024-01-04 alice\n"])
        assert report.issues[0].message == "MalformedOperation: line 1: Unknown opcode 'JUMP'"

    def test_issue_message_prefixed(self):
        report = ReplayEngine().validate_lines(["PAUSE 2024-01-04 ghost\n"])
        assert report.issues[0].message == "line 1: UnknownParticipant: Unknown participant 'ghost'"

    def test_verbose_reports_rejections(self, capsys):
        ReplayEngine(verbose=True).validate_lines(["PAUSE 2024-01-04 ghost\n"])
        assert "REJECTED" in capsys.readouterr().out


class TestReport:

    def test_format_cents(self):
        assert format_cents(1234) == "12.34"
        assert format_cents(5) == "0.05"
        assert format_cents(100000) == "1000.00"

    def test_settle_orients_debts(self, replay_lines):
        state = replay_lines(LOG + ["START 2024-01-01 carol\n", "TRANSFER 2024-01-04 carol alice 3.00\n"])
        assert settle(state) == [("bob", "alice", 1500), ("alice", "carol", 300)]

    def test_settle_low_debtor(self, replay_lines):
        state = replay_lines(LOG + ["TRANSFER 2024-01-04 bob alice 20.00\n"])
        assert settle(state) == [("alice", "bob", 500)]

    def test_zero_edges_omitted(self, replay_lines):
        state = replay_lines(LOG + ["TRANSFER 2024-01-04 bob alice 15.00\n"])
        assert render_ledger(state) == []

    def test_render_ledger(self, replay_lines):
        state = replay_lines(LOG)
        assert render_ledger(state) == ["bob owes alice 15.00€"]
        assert render_ledger(state, currency=" EUR") == ["bob owes alice 15.00 EUR"]

    def test_render_presence(self, replay_lines):
        state = replay_lines([
            "START 2024-01-01 alice\n",
            "START 2024-01-01 bob\n",
            "START 2024-01-01 carol\n",
            "PAUSE 2024-01-02 bob\n",
            "STOP 2024-01-03 carol\n",
        ])
        assert render_presence(state) == ["P alice", "A bob"]


class TestCli:

    @pytest.fixture
    def log_file(self, tmp_path):
        path = tmp_path / "data.txt"
        path.write_text("".join(LOG), encoding="utf-8")
        return path

    def test_prints_ledger(self, log_file, capsys):
        assert main([str(log_file)]) == 0
        assert capsys.readouterr().out == "bob owes alice 15.00€\n"

    def test_presence(self, log_file, capsys):
        assert main([str(log_file), "--presence"]) == 0
        assert capsys.readouterr().out == "P alice\nP bob\n"

    def test_insert(self, log_file, capsys):
        assert main([str(log_file), "--insert", "PAUSE 2024-01-02 bob"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert out[3] == "PAUSE 2024-01-02 bob"
        assert out[4] == "TRANSFER 2024-01-02 alice bob 20.00"

    def test_validate_failure_exit_code(self, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_text("PAUSE 2024-01-01 ghost\nSTART 2024-01-01 alice\n", encoding="utf-8")
        assert main([str(path), "--validate"]) == 1
        captured = capsys.readouterr()
        assert "UnknownParticipant" in captured.err
        assert "1 operations applied, 1 rejected" in captured.out

    def test_error_exit_code(self, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_text("START 2024-01-01 alice\nPAUSE 2024-01-01 ghost\n", encoding="utf-8")
        assert main([str(path)]) == 1
        assert "UnknownParticipant" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.txt")]) == 1
        assert "Unable to open" in capsys.readouterr().err
