# -*- coding: utf-8 -*-
"""
反馈管理器 (FeedbackManager) 负责教师对已评分作答的反馈留言。
反馈不参与评分。
"""
import uuid
from typing import List, Sequence

from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.records.records import Feedback

from .db_utils import DBUtil


class FeedbackManager:
    """管理 feedback 表。"""

    def __init__(self, db_util: DBUtil, monitoring_manager: MonitoringManager):
        self.db_util = db_util
        self.monitoring_manager = monitoring_manager

    def save_feedback(self, feedback: Feedback) -> Feedback:
        stored = feedback.model_copy(
            update={
                "id": feedback.id or str(uuid.uuid4()),
                "created_at": feedback.created_at or self.db_util.now(),
            }
        )
        success = self.db_util.execute_query(
            """
            INSERT INTO feedback (id, attempt_id, author_id, message, is_preset, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                stored.id,
                stored.attempt_id,
                stored.author_id,
                stored.message,
                int(stored.is_preset),
                self.db_util.to_iso(stored.created_at),
            ),
            is_write=True,
        )
        if not success:
            raise RuntimeError(f"Failed to save feedback for attempt {feedback.attempt_id}.")
        self.monitoring_manager.log_info(
            f"Feedback {stored.id} saved for attempt {stored.attempt_id}.",
            {"author_id": stored.author_id, "is_preset": stored.is_preset},
        )
        return stored

    def list_feedback(self, attempt_ids: Sequence[str]) -> List[Feedback]:
        """Feedback for the given attempts, newest first."""
        if not attempt_ids:
            return []
        rows = self.db_util.execute_query(
            f"SELECT * FROM feedback WHERE attempt_id IN ({self.db_util.placeholders(attempt_ids)}) "
            "ORDER BY created_at DESC",
            tuple(attempt_ids),
        ) or []
        return [Feedback(**row) for row in rows]
