import importlib
import json

import pytest
from click.testing import CliRunner

from mynotes.cli.main import cli


@pytest.mark.unit
def test_help_does_not_require_config(monkeypatch, tmp_path):
    home = tmp_path / "home"
    xdg = tmp_path / "xdg"

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.delenv("MYNOTES_HOME", raising=False)

    import mynotes.cli.main as cli_main

    importlib.reload(cli_main)

    runner = CliRunner()
    result = runner.invoke(cli_main.cli, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert not (xdg / "mynotes" / "config.toml").exists()


@pytest.mark.unit
def test_template_prints_blank_record(frozen_time):
    result = CliRunner().invoke(cli, ["template", "tasks"])
    assert result.exit_code == 0
    assert result.stdout.startswith("Title: \n")
    assert "Created: 2025-01-01\n" in result.stdout


@pytest.mark.integration
def test_first_run_template_feeds_add(frozen_time, isolated_home, tmp_path):
    runner = CliRunner()
    first = runner.invoke(cli, ["template", "kanban"])
    assert first.exit_code == 0
    assert "Config with comments written" in first.stderr
    assert "Config" not in first.stdout

    entry = tmp_path / "card.txt"
    entry.write_text(first.stdout.replace("Title: \n", "Title: Ship it\n"), encoding="utf-8")
    added = runner.invoke(cli, ["add", "kanban", "--file", str(entry)])
    assert added.exit_code == 0, added.output
    assert "Ship it" in added.stdout


@pytest.mark.unit
def test_unknown_kind_is_a_usage_error():
    result = CliRunner().invoke(cli, ["template", "recipes"])
    assert result.exit_code == 2
    assert "Expected one of" in result.output


@pytest.mark.unit
def test_check_valid_and_invalid():
    runner = CliRunner()
    ok = runner.invoke(cli, ["check", "kanban"], input="Title: Ship it\nStage: done\n")
    assert ok.exit_code == 0
    assert "Kanban is valid." in ok.output

    bad = runner.invoke(cli, ["check", "calorie"], input="Meal: Feast\nCalories: 999999\n")
    assert bad.exit_code == 1
    assert "Invalid calories" in bad.output


@pytest.mark.integration
def test_add_then_list(frozen_time, tmp_path):
    runner = CliRunner()
    entry = tmp_path / "rent.txt"
    entry.write_text(
        "Title: Pay rent\nPriority: High\nDue: 2025-01-05\n\nDescription:\nMonthly\n",
        encoding="utf-8",
    )
    added = runner.invoke(cli, ["add", "task", "--file", str(entry)])
    assert added.exit_code == 0, added.output
    assert "Added task" in added.output

    listed = runner.invoke(cli, ["list", "planner"])
    assert listed.exit_code == 0
    assert "Pay rent" in listed.output


@pytest.mark.unit
def test_add_rejects_invalid_record():
    result = CliRunner().invoke(cli, ["add", "finance", "Category: Rent\nAmount: -5"])
    assert result.exit_code == 1
    assert "Finance Error" in result.output


@pytest.mark.unit
def test_add_without_entry():
    result = CliRunner().invoke(cli, ["add", "habit"], input="")
    assert result.exit_code == 1
    assert "No entry provided" in result.output


@pytest.mark.integration
def test_import_command(tmp_path):
    cards = tmp_path / "cards.json"
    cards.write_text(json.dumps([{"front": "uno", "back": "one"}]), encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(cli, ["import", str(cards)])
    assert result.exit_code == 0
    assert "Imported 1 card" in result.output

    bad = tmp_path / "cards.json.bak"
    bad.write_text("[]", encoding="utf-8")
    result = runner.invoke(cli, ["import", str(bad)])
    assert result.exit_code == 1
    assert "Unsupported file format" in result.output


@pytest.mark.unit
def test_info_shows_paths(isolated_home):
    result = CliRunner().invoke(cli, ["info"])
    assert result.exit_code == 0
    assert "config" in result.output
    assert "Flashcard" in result.output


@pytest.mark.integration
def test_totals_per_category(frozen_time):
    runner = CliRunner()
    for text in (
        "Category: Rent\nAmount: 900\nDate: 2025-01-02",
        "Category: Food\nAmount: 1,250.5\nDate: 2025-01-03",
        "Category: Food\nAmount: 10\nDate: 2024-12-30",
    ):
        assert runner.invoke(cli, ["add", "finance", text]).exit_code == 0

    result = runner.invoke(cli, ["totals"])
    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    assert any("All" in line and "2,150.50" in line for line in lines)
    assert any("Food" in line and "1,250.50" in line for line in lines)
    assert "01/2025" in result.stdout

    december = runner.invoke(cli, ["totals", "-c", "Food", "-y", "2024", "-m", "12"])
    assert "10.00" in december.stdout
    assert "Rent" not in december.stdout

    missing = runner.invoke(cli, ["totals", "--category", "Travel"])
    assert missing.exit_code == 1
    assert "No finance entries in Travel" in missing.stdout


@pytest.mark.integration
def test_list_flashcards_by_collection_and_filter(frozen_time, tmp_path):
    cards = tmp_path / "cards.json"
    cards.write_text(
        json.dumps(
            [
                {"front": "uno", "back": "one", "collection": "Spanish"},
                {"front": "un", "back": "one", "collection": "French"},
            ]
        ),
        encoding="utf-8",
    )
    runner = CliRunner()
    assert runner.invoke(cli, ["import", str(cards)]).exit_code == 0

    spanish = runner.invoke(cli, ["list", "cards", "--collection", "Spanish"])
    assert spanish.exit_code == 0
    assert "uno" in spanish.stdout
    assert "un " not in spanish.stdout
    assert "Flashcard - Spanish (1)" in spanish.stdout

    new = runner.invoke(cli, ["list", "cards", "--filter", "new"])
    assert "Flashcard - New (2)" in new.stdout

    mastered = runner.invoke(cli, ["list", "cards", "--filter", "Mastered"])
    assert "No flashcard records." in mastered.stdout
