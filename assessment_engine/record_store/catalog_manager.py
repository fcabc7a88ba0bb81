# -*- coding: utf-8 -*-
"""
试卷目录管理器 (CatalogManager) 负责试卷与题目的持久化。
"""
from typing import Any, Dict, List, Optional, Sequence

from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.records.records import Question, Test, validate_test_definition

from .db_utils import DBUtil


class CatalogManager:
    """管理试卷 (tests) 与题目 (questions) 表。"""

    def __init__(self, db_util: DBUtil, monitoring_manager: MonitoringManager):
        self.db_util = db_util
        self.monitoring_manager = monitoring_manager

    def save_test(self, test: Test, questions: Sequence[Question]) -> Test:
        """
        Inserts (or replaces) a test together with its questions in one transaction.
        Existing questions of the test are replaced.

        Raises:
            ValidationError: if the title is blank or a question is incomplete.
        """
        validate_test_definition(test, questions)
        created_at = test.created_at or self.db_util.now()

        with self.db_util.transaction() as cursor:
            cursor.execute(
                """
                INSERT OR REPLACE INTO tests
                (id, owner_id, title, description, duration_minutes, is_published, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    test.id,
                    test.owner_id,
                    test.title,
                    test.description,
                    test.duration_minutes,
                    int(test.is_published),
                    self.db_util.to_iso(created_at),
                ),
            )
            cursor.execute("DELETE FROM questions WHERE test_id = ?", (test.id,))
            cursor.executemany(
                """
                INSERT INTO questions
                (id, test_id, text, type, options, correct_answer, points, sort_order)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        q.id,
                        test.id,
                        q.text,
                        q.type,
                        self.db_util.serialize(q.options),
                        q.correct_answer,
                        q.points,
                        q.sort_order,
                    )
                    for q in questions
                ],
            )

        self.monitoring_manager.log_info(
            f"Test {test.id} saved with {len(questions)} questions.",
            {"owner_id": test.owner_id, "is_published": test.is_published},
        )
        return test.model_copy(update={"created_at": created_at})

    def get_test(self, test_id: str) -> Optional[Test]:
        row = self.db_util.execute_query("SELECT * FROM tests WHERE id = ?", (test_id,), fetch_one=True)
        return Test(**row) if row else None

    def list_tests(self, owner_id: Optional[str] = None, published_only: bool = False) -> List[Test]:
        conditions = []
        params: List[Any] = []
        if owner_id is not None:
            conditions.append("owner_id = ?")
            params.append(owner_id)
        if published_only:
            conditions.append("is_published = 1")
        query = "SELECT * FROM tests"
        if conditions:
            query += f" WHERE {' AND '.join(conditions)}"
        query += " ORDER BY created_at DESC"
        rows = self.db_util.execute_query(query, tuple(params)) or []
        return [Test(**row) for row in rows]

    def get_questions(self, test_id: str) -> List[Question]:
        return self.list_questions([test_id])

    def list_questions(self, test_ids: Optional[Sequence[str]] = None) -> List[Question]:
        """Questions of the given tests (all tests when None), ordered by test then sort_order."""
        if test_ids is not None and not test_ids:
            return []
        query = "SELECT * FROM questions"
        params: tuple = ()
        if test_ids is not None:
            query += f" WHERE test_id IN ({self.db_util.placeholders(test_ids)})"
            params = tuple(test_ids)
        query += " ORDER BY test_id, sort_order"
        rows = self.db_util.execute_query(query, params) or []
        return [self._row_to_question(row) for row in rows]

    def _row_to_question(self, row: Dict[str, Any]) -> Question:
        row["options"] = self.db_util.deserialize(row.get("options")) or []
        return Question(**row)
