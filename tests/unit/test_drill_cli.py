"""
Unit tests for the drill CLI.

Input parsing, command dispatch and the non-interactive commands.
The service is backed by a MemoryStore through a patched get_service().
"""

import json

import pytest
from typer.testing import CliRunner

from conftest import make_question
from src.cli import drill_cli
from src.cli.drill_cli import Command, app, parse_command
from src.quizdrill.models import TypedSelection
from src.quizdrill.service import SessionService

runner = CliRunner()


@pytest.fixture
def service(store, settings, clock, rng, bank, monkeypatch):
    service = SessionService(store, settings=settings, clock=clock, rng=rng)
    service.banks.add(bank)
    monkeypatch.setattr(drill_cli, "get_service", lambda: service)
    return service


class TestParseCommand:
    """Test parse_command()."""

    @pytest.fixture
    def single(self):
        return make_question("s", "single", "A")

    @pytest.fixture
    def multiple(self):
        return make_question("m", "multiple", "A,C")

    @pytest.fixture
    def judge(self):
        return make_question("j", "judge", "B")

    def test_single_letter(self, single):
        assert parse_command(" b ", single) == Command("answer", "B")

    def test_option_letter_wins_over_command(self, single):
        """'c' is option C here, not a command."""
        assert parse_command("c", single) == Command("answer", "C")

    def test_multi_select_with_separators(self, multiple):
        assert parse_command("c, a", multiple) == Command("answer", "A,C")

    def test_multi_select_run_together(self, multiple):
        assert parse_command("ca", multiple) == Command("answer", "A,C")

    def test_several_letters_on_single_question(self, single):
        assert parse_command("ab", single).action == "unknown"

    def test_judge(self, judge):
        assert parse_command("a", judge) == Command("answer", "A")

    def test_letter_outside_options(self, judge):
        assert parse_command("d", judge).action == "unknown"

    @pytest.mark.parametrize(
        "text,action",
        [("n", "next"), ("p", "prev"), ("m", "mark"), ("v", "view"), ("r", "random"), ("x", "clear"), ("s", "submit"), ("Q", "quit")],
    )
    def test_commands(self, single, text, action):
        assert parse_command(text, single).action == action

    @pytest.mark.parametrize("text", ["g 3", "g3", "G 3"])
    def test_goto(self, single, text):
        assert parse_command(text, single) == Command("goto", "3")

    def test_empty(self, single):
        assert parse_command("   ", single).action == "unknown"


class TestDispatch:
    """Test _dispatch() against a live session."""

    def test_answer_advances(self, service):
        session = service.start_learning("bank1")
        assert drill_cli._dispatch(service, session, Command("answer", "A")) is False
        assert session.answers == {0: "A"}
        assert session.current_index == 1
        assert session.results[0].correct is True

    def test_answer_on_last_question_stays(self, service):
        session = service.start_learning("bank1")
        service.jump(session, session.total - 1)
        drill_cli._dispatch(service, session, Command("answer", "B"))
        assert session.current_index == session.total - 1

    def test_goto_is_one_based(self, service):
        session = service.start_exam("bank1", TypedSelection(single_count=3))
        drill_cli._dispatch(service, session, Command("goto", "3"))
        assert session.current_index == 2

    def test_clear(self, service):
        session = service.start_exam("bank1", TypedSelection(single_count=3))
        service.answer(session, 0, "A")
        drill_cli._dispatch(service, session, Command("clear"))
        assert session.answers == {}

    def test_view_in_exam_does_not_reveal(self, service):
        session = service.start_exam("bank1", TypedSelection(single_count=3))
        assert drill_cli._dispatch(service, session, Command("view")) is False
        assert session.viewed_answers == set()

    def test_submit_needs_confirmation(self, service, monkeypatch):
        """Submitting with unanswered questions asks first."""
        session = service.start_exam("bank1", TypedSelection(single_count=3))
        monkeypatch.setattr(drill_cli.Confirm, "ask", lambda *args, **kwargs: False)
        assert drill_cli._dispatch(service, session, Command("submit")) is False
        assert session.submitted is False

    def test_submit_confirmed(self, service, monkeypatch):
        session = service.start_exam("bank1", TypedSelection(single_count=3))
        monkeypatch.setattr(drill_cli.Confirm, "ask", lambda *args, **kwargs: True)
        assert drill_cli._dispatch(service, session, Command("submit")) is True
        assert session.submitted is True
        assert len(service.history.list()) == 1

    def test_quit_saves(self, service):
        session = service.start_exam("bank1", TypedSelection(single_count=3))
        service.answer(session, 0, "A")
        assert drill_cli._dispatch(service, session, Command("quit")) is True
        assert service.resume("exam").session.answers == {0: "A"}


class TestCommands:
    """Non-interactive commands through CliRunner."""

    def test_banks(self, service):
        result = runner.invoke(app, ["banks"])
        assert result.exit_code == 0
        assert "bank1" in result.output

    def test_banks_empty(self, service):
        service.remove_bank("bank1")
        result = runner.invoke(app, ["banks"])
        assert result.exit_code == 0
        assert "No question banks" in result.output

    def test_import(self, service, tmp_path):
        path = tmp_path / "subnetting.json"
        path.write_text(
            json.dumps({"name": "Subnetting", "questions": [{"id": 1, "content": "/24?", "type": "single", "options": {"A": "254 hosts", "B": "510 hosts"}, "answer": "A"}]}),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["import", str(path)])
        assert result.exit_code == 0
        assert [bank.name for bank in service.banks.list_banks()] == ["Networking Basics", "Subnetting"]

    def test_import_missing_file(self, service, tmp_path):
        result = runner.invoke(app, ["import", str(tmp_path / "nope.json")])
        assert result.exit_code == 1

    def test_import_invalid_file(self, service, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"questions": [{"id": 1}]}', encoding="utf-8")
        result = runner.invoke(app, ["import", str(path)])
        assert result.exit_code == 1

    def test_import_question_list(self, service, tmp_path):
        path = tmp_path / "ports.json"
        path.write_text(
            json.dumps([{"content": "SSH port?", "type": "单选题", "options": ["22", "23"], "answer": "A"}]),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["import", str(path)])
        assert result.exit_code == 0
        assert "ports" in [bank.name for bank in service.banks.list_banks()]

    def test_import_answer_outside_options(self, service, tmp_path):
        path = tmp_path / "ports.json"
        path.write_text(
            json.dumps([{"content": "SSH port?", "type": "single", "options": ["22", "23"], "answer": "C"}]),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["import", str(path)])
        assert result.exit_code == 1
        assert len(service.banks.list_banks()) == 1

    def test_remove(self, service):
        assert runner.invoke(app, ["remove", "bank1"]).exit_code == 0
        assert runner.invoke(app, ["remove", "bank1"]).exit_code == 1

    def test_history(self, service):
        session = service.start_exam("bank1", TypedSelection(single_count=2), candidate_name="Ada")
        service.finish(session)
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "Ada" in result.output

    def test_history_empty(self, service):
        result = runner.invoke(app, ["history"])
        assert "No exams taken yet" in result.output

    def test_stats_unknown_bank(self, service):
        assert runner.invoke(app, ["stats", "missing"]).exit_code == 1

    def test_resume_nothing_saved(self, service):
        result = runner.invoke(app, ["resume", "learning"])
        assert result.exit_code == 1
        assert "No saved learning session" in result.output

    def test_exam_unknown_bank(self, service):
        result = runner.invoke(app, ["exam", "missing", "-s", "2"])
        assert result.exit_code == 1
