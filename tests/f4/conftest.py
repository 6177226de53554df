"""Fixtures for F4 tests - Persistence and study sessions."""

import pytest

from academy.db import enrollment_repository
from academy.db.content_store import ContentStore
from academy.db.database import init_db


@pytest.fixture
def db_path(tmp_path):
    """Fresh database in a temp directory."""
    return init_db(tmp_path / "academy.db")


@pytest.fixture
def store(db_path):
    return ContentStore(db_path)


@pytest.fixture
def stored_enrollment(db_path, store, make_enrollment, make_item, words):
    """Persist the default enrollment (student, curriculum, wordbook) and reload it."""

    def build(**fields):
        enrollment = make_enrollment(**fields)
        for item in enrollment.items:
            store.save_wordbook(item.item_id, item.content.title, item.content.units)
        enrollment_repository.upsert_student(enrollment.student_id, "Minji Kim", "A1", db_path=db_path)
        enrollment_repository.save_curriculum(
            enrollment.curriculum_id, "Starter Words", enrollment.items, db_path=db_path
        )
        enrollment_repository.save_enrollment(enrollment, db_path=db_path)
        return enrollment_repository.get_enrollment(enrollment.id, store, db_path=db_path)

    return build
