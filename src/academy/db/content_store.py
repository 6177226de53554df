"""Wordbook and listening-test storage.

ContentStore is passed explicitly to whatever needs content; nothing
reads wordbooks from ambient state.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from academy.core.content import build_content
from academy.core.models import Content
from academy.db.database import get_db

logger = structlog.get_logger(__name__)


class ContentNotFoundError(Exception):
    """Raised when a wordbook or listening test does not exist."""

    def __init__(self, kind: str, content_id: str):
        self.kind = kind
        self.content_id = content_id
        super().__init__(f"{kind} '{content_id}' not found")


class ContentStore:
    """CRUD for wordbooks and listening tests."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path

    def save_wordbook(
        self,
        wordbook_id: str,
        title: str,
        words: list[dict[str, Any]],
    ) -> Content:
        """Insert or replace a wordbook.

        Words are stored in order; "no" is filled in when missing.
        """
        numbered = []
        for index, word in enumerate(words, start=1):
            numbered.append({"no": index, **word} if "no" not in word else dict(word))

        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO wordbooks (wordbook_id, title, words) VALUES (?, ?, ?)
                ON CONFLICT(wordbook_id) DO UPDATE SET title = excluded.title, words = excluded.words
                """,
                (wordbook_id, title, json.dumps(numbered, ensure_ascii=False)),
            )

        logger.debug("content.wordbook_saved", wordbook_id=wordbook_id, words=len(numbered))
        return build_content(wordbook_id, title, numbered, kind="wordbook")

    def save_listening(
        self,
        listening_id: str,
        title: str,
        questions: list[dict[str, Any]],
    ) -> Content:
        """Insert or replace a listening test."""
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO listening_tests (listening_id, title, questions) VALUES (?, ?, ?)
                ON CONFLICT(listening_id) DO UPDATE SET title = excluded.title, questions = excluded.questions
                """,
                (listening_id, title, json.dumps(questions, ensure_ascii=False)),
            )

        logger.debug("content.listening_saved", listening_id=listening_id, questions=len(questions))
        return build_content(listening_id, title, questions, kind="listening")

    def get_wordbook(self, wordbook_id: str) -> Content:
        """Load a wordbook.

        Raises:
            ContentNotFoundError: If the wordbook does not exist.
        """
        with get_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM wordbooks WHERE wordbook_id = ?", (wordbook_id,)
            ).fetchone()

        if row is None:
            raise ContentNotFoundError("wordbook", wordbook_id)
        return build_content(row["wordbook_id"], row["title"], json.loads(row["words"]), "wordbook")

    def get_listening(self, listening_id: str) -> Content:
        """Load a listening test.

        Raises:
            ContentNotFoundError: If the listening test does not exist.
        """
        with get_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM listening_tests WHERE listening_id = ?", (listening_id,)
            ).fetchone()

        if row is None:
            raise ContentNotFoundError("listening test", listening_id)
        return build_content(
            row["listening_id"], row["title"], json.loads(row["questions"]), "listening"
        )

    def get_content(self, item_type: str, content_id: str) -> Content:
        """Load the content a curriculum item points to."""
        if item_type == "listening":
            return self.get_listening(content_id)
        return self.get_wordbook(content_id)

    def list_wordbooks(self) -> list[dict[str, Any]]:
        """Summary rows (id, title, word count) of all wordbooks."""
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT wordbook_id, title, words FROM wordbooks ORDER BY title"
            ).fetchall()

        return [
            {
                "wordbook_id": row["wordbook_id"],
                "title": row["title"],
                "word_count": len(json.loads(row["words"])),
            }
            for row in rows
        ]
