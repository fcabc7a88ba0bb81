# -*- coding: utf-8 -*-
"""
作答数据管理器 (AttemptDataManager) 负责作答记录与逐题答题结果的持久化。

complete_attempt() 是评分唯一依赖的条件写：只有当 completed_at 仍为空时，
才会在同一事务中写入成绩字段与全部答题结果。
"""
import uuid
from datetime import datetime
from typing import Any, List, Optional, Sequence

from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.records.records import Attempt, GradingResult, Response

from .db_utils import DBUtil


class AttemptDataManager:
    """管理 test_attempts 与 student_responses 表。"""

    def __init__(self, db_util: DBUtil, monitoring_manager: MonitoringManager):
        self.db_util = db_util
        self.monitoring_manager = monitoring_manager

    def create_attempt(self, student_id: str, test_id: str, started_at: Optional[datetime] = None) -> Attempt:
        """Creates a fresh open attempt row. Every retake gets its own row."""
        attempt = Attempt(
            id=str(uuid.uuid4()),
            student_id=student_id,
            test_id=test_id,
            started_at=started_at or self.db_util.now(),
        )
        success = self.db_util.execute_query(
            "INSERT INTO test_attempts (id, student_id, test_id, started_at) VALUES (?, ?, ?, ?)",
            (attempt.id, student_id, test_id, self.db_util.to_iso(attempt.started_at)),
            is_write=True,
        )
        if not success:
            raise RuntimeError(f"Failed to create attempt for student {student_id} on test {test_id}.")
        self.monitoring_manager.log_info(
            f"Attempt {attempt.id} started.", {"student_id": student_id, "test_id": test_id}
        )
        return attempt

    def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        row = self.db_util.execute_query(
            "SELECT * FROM test_attempts WHERE id = ?", (attempt_id,), fetch_one=True
        )
        return Attempt(**row) if row else None

    def complete_attempt(self, attempt_id: str, result: GradingResult, completed_at: datetime) -> bool:
        """
        Writes the grading result, all responses and completed_at as one unit,
        only if the attempt is still open.

        Returns:
            True if this call graded the attempt, False if it was already graded
            (or does not exist). Nothing is written in the False case.
        """
        with self.db_util.transaction() as cursor:
            cursor.execute(
                """
                UPDATE test_attempts
                SET completed_at = ?, score = ?, earned_points = ?, total_points = ?
                WHERE id = ? AND completed_at IS NULL
                """,
                (
                    self.db_util.to_iso(completed_at),
                    result.score,
                    result.earned_points,
                    result.total_points,
                    attempt_id,
                ),
            )
            if cursor.rowcount != 1:
                self.monitoring_manager.log_warning(
                    f"Conditional completion skipped: attempt {attempt_id} is not open.",
                    {"attempt_id": attempt_id},
                )
                return False
            cursor.executemany(
                """
                INSERT INTO student_responses
                (id, attempt_id, question_id, selected_answer, is_correct)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.id or str(uuid.uuid4()),
                        attempt_id,
                        r.question_id,
                        r.selected_answer,
                        int(r.is_correct),
                    )
                    for r in result.responses
                ],
            )
        self.monitoring_manager.log_info(
            f"Attempt {attempt_id} completed with {len(result.responses)} responses.",
            {"attempt_id": attempt_id, "score": result.score},
        )
        return True

    def list_attempts(
        self,
        student_id: Optional[str] = None,
        test_ids: Optional[Sequence[str]] = None,
        completed_only: bool = True,
    ) -> List[Attempt]:
        """Attempts filtered by student and/or tests, ordered by completion then start time."""
        if test_ids is not None and not test_ids:
            return []
        conditions = []
        params: List[Any] = []
        if student_id is not None:
            conditions.append("student_id = ?")
            params.append(student_id)
        if test_ids is not None:
            conditions.append(f"test_id IN ({self.db_util.placeholders(test_ids)})")
            params.extend(test_ids)
        if completed_only:
            conditions.append("completed_at IS NOT NULL")
        query = "SELECT * FROM test_attempts"
        if conditions:
            query += f" WHERE {' AND '.join(conditions)}"
        query += " ORDER BY completed_at, started_at"
        rows = self.db_util.execute_query(query, tuple(params)) or []
        return [Attempt(**row) for row in rows]

    def list_responses(self, attempt_ids: Sequence[str]) -> List[Response]:
        if not attempt_ids:
            return []
        rows = self.db_util.execute_query(
            f"SELECT * FROM student_responses WHERE attempt_id IN ({self.db_util.placeholders(attempt_ids)})",
            tuple(attempt_ids),
        ) or []
        return [Response(**row) for row in rows]
