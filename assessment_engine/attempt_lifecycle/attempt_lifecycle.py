# -*- coding: utf-8 -*-
"""作答生命周期 (AttemptLifecycle) 的主实现文件。

作答只有两种状态：OPEN（已创建，completed_at 为空）与 GRADED（终态）。
提交时先判分，再通过记录存储的条件写一次性落库，保证同一作答至多评分一次。
试卷的 duration_minutes 仅被保存，不在此处强制时限，也不存在“过期/放弃”状态。
"""
import enum
from datetime import datetime, timezone
from typing import Mapping, Sequence

from assessment_engine.common.exceptions import InvalidStateError, ValidationError
from assessment_engine.config_manager.config_manager import ConfigManager
from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.record_store.record_store import RecordStore
from assessment_engine.records.records import Attempt, Feedback, GradingResult, Question
from assessment_engine.scoring_engine.scoring_engine import ScoringEngine

DEFAULT_PRESET_MESSAGES = [
    "Excellent work!",
    "Good job!",
    "Keep improving!",
    "Needs more practice",
    "Well done!",
]


class AttemptState(enum.Enum):
    OPEN = "open"
    GRADED = "graded"


def state_of(attempt: Attempt) -> AttemptState:
    return AttemptState.GRADED if attempt.completed_at is not None else AttemptState.OPEN


class AttemptLifecycle:
    """
    作答生命周期 (AttemptLifecycle)
    Creates attempts, grades them exactly once and appends feedback to graded attempts.
    """

    def __init__(
        self,
        record_store: RecordStore,
        scoring_engine: ScoringEngine,
        config_manager: ConfigManager,
        monitoring_manager: MonitoringManager,
    ):
        self.record_store = record_store
        self.scoring_engine = scoring_engine
        self.config_manager = config_manager
        self.monitoring_manager = monitoring_manager
        self.preset_messages = self.config_manager.get_config(
            "feedback.preset_messages", DEFAULT_PRESET_MESSAGES
        )

    def start_attempt(self, student_id: str, test_id: str) -> Attempt:
        """Opens a new attempt. Retakes always get a fresh attempt id."""
        return self.record_store.create_attempt(student_id, test_id)

    def submit(
        self, attempt: Attempt, questions: Sequence[Question], answers: Mapping[str, str]
    ) -> GradingResult:
        """
        Grades an open attempt and persists the result atomically.

        Raises:
            InvalidStateError: the attempt is already graded, or a concurrent
                submit graded it first. The stored score is left untouched.
            ValidationError: some question is unanswered, or a question belongs
                to another test. Nothing is written.
        """
        if state_of(attempt) is AttemptState.GRADED:
            self.monitoring_manager.log_warning(
                f"Rejected re-submission of graded attempt {attempt.id}.",
                {"attempt_id": attempt.id, "student_id": attempt.student_id},
            )
            raise InvalidStateError(f"Attempt {attempt.id} has already been graded.", attempt.id)

        foreign = [q.id for q in questions if q.test_id != attempt.test_id]
        if foreign:
            raise ValidationError(
                f"Questions {foreign} do not belong to test {attempt.test_id}."
            )

        result = self.scoring_engine.grade(questions, answers, attempt_id=attempt.id)

        completed_at = datetime.now(timezone.utc)
        if not self.record_store.complete_attempt(attempt.id, result, completed_at):
            self.monitoring_manager.log_warning(
                f"Attempt {attempt.id} was graded by a concurrent submission.",
                {"attempt_id": attempt.id},
            )
            raise InvalidStateError(f"Attempt {attempt.id} has already been graded.", attempt.id)

        self.monitoring_manager.log_audit_event(
            "attempt_graded",
            attempt.student_id,
            {"attempt_id": attempt.id, "test_id": attempt.test_id, "score": result.score},
        )
        return result

    def add_feedback(self, attempt: Attempt, author_id: str, message: str) -> Feedback:
        """
        Appends feedback to a graded attempt. Feedback never changes the score.

        Raises:
            InvalidStateError: the attempt has not been graded yet.
            ValidationError: the message is blank.
        """
        if state_of(attempt) is not AttemptState.GRADED:
            raise InvalidStateError(
                f"Feedback requires a graded attempt; {attempt.id} is still open.", attempt.id
            )
        if not message or not message.strip():
            raise ValidationError("Enter a message")

        feedback = self.record_store.save_feedback(
            Feedback(
                attempt_id=attempt.id,
                author_id=author_id,
                message=message,
                is_preset=message in self.preset_messages,
            )
        )
        self.monitoring_manager.log_audit_event(
            "feedback_added", author_id, {"attempt_id": attempt.id, "is_preset": feedback.is_preset}
        )
        return feedback
