"""Fixtures for F5 tests - CLI."""

import pytest
import yaml
from typer.testing import CliRunner

from academy.cli.commands import app


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def wordbook_file(tmp_path, words):
    path = tmp_path / "wordbook.yaml"
    path.write_text(
        yaml.safe_dump({"id": "wb-1", "title": "Starter", "words": words(25)}, allow_unicode=True),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def enrollment_doc():
    return {
        "id": "enr-minji",
        "student": {"id": "stu-1", "name": "Minji", "class_name": "A1"},
        "curriculum": {
            "id": "cur-1",
            "name": "Starter Words",
            "items": [
                {
                    "id": "item-1",
                    "sequence": 1,
                    "item_type": "wordbook",
                    "item_id": "wb-1",
                    "daily_amount_type": "count",
                    "daily_word_count": 10,
                }
            ],
        },
        "start_date": "2025-01-06",
        "study_days": ["mon", "wed", "fri"],
    }


@pytest.fixture
def enrollment_file(tmp_path, enrollment_doc):
    path = tmp_path / "enrollment.yaml"
    path.write_text(yaml.safe_dump(enrollment_doc, allow_unicode=True), encoding="utf-8")
    return path


@pytest.fixture
def imported(runner, wordbook_file, enrollment_file):
    """Wordbook and enrollment loaded through the CLI."""
    result = runner.invoke(app, ["import-wordbook", str(wordbook_file)])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["import-enrollment", str(enrollment_file)])
    assert result.exit_code == 0, result.output
    return "enr-minji"
