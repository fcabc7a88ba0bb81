"""Unit tests for the AttemptLifecycle class."""

import unittest
from datetime import datetime, timezone
from unittest.mock import ANY, MagicMock

from assessment_engine.attempt_lifecycle.attempt_lifecycle import (
    DEFAULT_PRESET_MESSAGES,
    AttemptLifecycle,
    AttemptState,
    state_of,
)
from assessment_engine.common.exceptions import InvalidStateError, ValidationError
from assessment_engine.config_manager.config_manager import ConfigManager
from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.record_store.record_store import RecordStore
from assessment_engine.records.records import Attempt, Feedback, Question
from assessment_engine.scoring_engine.scoring_engine import ScoringEngine

STARTED = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestAttemptLifecycle(unittest.TestCase):
    """Tests for AttemptLifecycle."""

    def setUp(self):
        self.mock_record_store = MagicMock(spec=RecordStore)
        self.mock_config_manager = MagicMock(spec=ConfigManager)
        self.mock_config_manager.get_config.side_effect = lambda key, default=None: default
        self.mock_monitoring_manager = MagicMock(spec=MonitoringManager)
        self.scoring_engine = ScoringEngine(monitoring_manager=self.mock_monitoring_manager)

        self.lifecycle = AttemptLifecycle(
            record_store=self.mock_record_store,
            scoring_engine=self.scoring_engine,
            config_manager=self.mock_config_manager,
            monitoring_manager=self.mock_monitoring_manager,
        )

        self.questions = [
            Question(id="q1", test_id="t1", text="2 + 2?", options=["3", "4"], correct_answer="4"),
            Question(id="q2", test_id="t1", text="Sky is blue", type="true_false", correct_answer="True"),
        ]
        self.open_attempt = Attempt(id="a1", student_id="s1", test_id="t1", started_at=STARTED)
        self.graded_attempt = self.open_attempt.model_copy(
            update={"completed_at": STARTED.replace(hour=10), "score": 50, "earned_points": 1, "total_points": 2}
        )

    def test_state_of(self):
        self.assertIs(state_of(self.open_attempt), AttemptState.OPEN)
        self.assertIs(state_of(self.graded_attempt), AttemptState.GRADED)

    def test_start_attempt_delegates_to_store(self):
        self.mock_record_store.create_attempt.return_value = self.open_attempt

        attempt = self.lifecycle.start_attempt("s1", "t1")

        self.assertEqual(attempt, self.open_attempt)
        self.mock_record_store.create_attempt.assert_called_once_with("s1", "t1")

    def test_submit_grades_and_persists_once(self):
        self.mock_record_store.complete_attempt.return_value = True

        result = self.lifecycle.submit(self.open_attempt, self.questions, {"q1": "4", "q2": "False"})

        self.assertEqual(result.score, 50)
        self.mock_record_store.complete_attempt.assert_called_once_with("a1", result, ANY)
        self.mock_monitoring_manager.log_audit_event.assert_called_once_with(
            "attempt_graded", "s1", {"attempt_id": "a1", "test_id": "t1", "score": 50}
        )

    def test_submit_graded_attempt_is_rejected_without_write(self):
        with self.assertRaises(InvalidStateError) as ctx:
            self.lifecycle.submit(self.graded_attempt, self.questions, {"q1": "4", "q2": "True"})

        self.assertEqual(ctx.exception.attempt_id, "a1")
        self.mock_record_store.complete_attempt.assert_not_called()

    def test_submit_losing_the_race_raises_invalid_state(self):
        # Another submission completed the attempt between read and write.
        self.mock_record_store.complete_attempt.return_value = False

        with self.assertRaises(InvalidStateError):
            self.lifecycle.submit(self.open_attempt, self.questions, {"q1": "4", "q2": "True"})

        self.mock_monitoring_manager.log_audit_event.assert_not_called()

    def test_submit_with_missing_answers_writes_nothing(self):
        with self.assertRaises(ValidationError) as ctx:
            self.lifecycle.submit(self.open_attempt, self.questions, {"q1": "4"})

        self.assertEqual(ctx.exception.missing_count, 1)
        self.mock_record_store.complete_attempt.assert_not_called()

    def test_submit_rejects_questions_from_other_tests(self):
        foreign = Question(id="q9", test_id="t2", text="Other", correct_answer="A")

        with self.assertRaises(ValidationError):
            self.lifecycle.submit(self.open_attempt, self.questions + [foreign], {"q1": "4", "q2": "True", "q9": "A"})

        self.mock_record_store.complete_attempt.assert_not_called()

    def test_add_feedback_marks_preset_messages(self):
        self.mock_record_store.save_feedback.side_effect = lambda fb: fb.model_copy(update={"id": "f1"})

        preset = self.lifecycle.add_feedback(self.graded_attempt, "teacher1", DEFAULT_PRESET_MESSAGES[0])
        custom = self.lifecycle.add_feedback(self.graded_attempt, "teacher1", "See me after class")

        self.assertTrue(preset.is_preset)
        self.assertFalse(custom.is_preset)
        saved = self.mock_record_store.save_feedback.call_args_list[0].args[0]
        self.assertIsInstance(saved, Feedback)
        self.assertEqual(saved.attempt_id, "a1")

    def test_add_feedback_uses_configured_presets(self):
        self.mock_config_manager.get_config.side_effect = lambda key, default=None: (
            ["Nice!"] if key == "feedback.preset_messages" else default
        )
        lifecycle = AttemptLifecycle(
            self.mock_record_store, self.scoring_engine, self.mock_config_manager, self.mock_monitoring_manager
        )
        self.mock_record_store.save_feedback.side_effect = lambda fb: fb

        self.assertTrue(lifecycle.add_feedback(self.graded_attempt, "teacher1", "Nice!").is_preset)
        self.assertFalse(lifecycle.add_feedback(self.graded_attempt, "teacher1", "Good job!").is_preset)

    def test_add_feedback_requires_graded_attempt(self):
        with self.assertRaises(InvalidStateError):
            self.lifecycle.add_feedback(self.open_attempt, "teacher1", "Well done!")
        self.mock_record_store.save_feedback.assert_not_called()

    def test_add_feedback_rejects_blank_message(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.add_feedback(self.graded_attempt, "teacher1", "   ")
        self.mock_record_store.save_feedback.assert_not_called()


if __name__ == "__main__":
    unittest.main()
