"""Unit tests for the ScoringEngine class and the pure grade() function."""

import unittest
from unittest.mock import MagicMock

from assessment_engine.common.exceptions import ValidationError
from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.records.records import Question
from assessment_engine.scoring_engine.scoring_engine import ScoringEngine, grade


def _question(qid, correct, points=1, qtype="mcq", options=None):
    return Question(
        id=qid,
        test_id="t1",
        text=f"Question {qid}",
        type=qtype,
        options=options or ["A", "B", "C", "D"],
        correct_answer=correct,
        points=points,
    )


class TestGrade(unittest.TestCase):
    """Tests for grade()."""

    def test_half_correct_scores_fifty(self):
        questions = [_question("q1", "B"), _question("q2", "True", qtype="true_false")]

        result = grade(questions, {"q1": "B", "q2": "False"}, attempt_id="a1")

        self.assertEqual(result.earned_points, 1)
        self.assertEqual(result.total_points, 2)
        self.assertEqual(result.score, 50)
        self.assertEqual([r.is_correct for r in result.responses], [True, False])
        self.assertTrue(all(r.attempt_id == "a1" for r in result.responses))

    def test_zero_questions_scores_zero(self):
        result = grade([], {})
        self.assertEqual(result.score, 0)
        self.assertEqual(result.total_points, 0)
        self.assertEqual(result.responses, [])

    def test_weighted_points_and_half_up_rounding(self):
        # 1 of 3 points -> 33.33 -> 33; 2 of 3 -> 66.67 -> 67; 1 of 8 -> 12.5 -> 13
        questions = [_question("q1", "A"), _question("q2", "A", points=2)]
        self.assertEqual(grade(questions, {"q1": "A", "q2": "B"}).score, 33)
        self.assertEqual(grade(questions, {"q1": "B", "q2": "A"}).score, 67)

        eighth = [_question("q1", "A"), _question("q2", "A", points=7)]
        self.assertEqual(grade(eighth, {"q1": "A", "q2": "B"}).score, 13)

    def test_comparison_is_exact(self):
        questions = [_question("q1", "Paris")]
        self.assertFalse(grade(questions, {"q1": "paris"}).responses[0].is_correct)
        self.assertFalse(grade(questions, {"q1": "Paris "}).responses[0].is_correct)
        self.assertTrue(grade(questions, {"q1": "Paris"}).responses[0].is_correct)

    def test_missing_answers_raise_validation_error(self):
        questions = [_question("q1", "A"), _question("q2", "B"), _question("q3", "C")]

        with self.assertRaises(ValidationError) as ctx:
            grade(questions, {"q1": "A", "q2": ""})

        self.assertEqual(ctx.exception.missing_count, 2)
        self.assertIn("2 remaining", str(ctx.exception))

    def test_answers_for_unknown_questions_are_ignored(self):
        questions = [_question("q1", "A")]
        result = grade(questions, {"q1": "A", "other": "B"})
        self.assertEqual(len(result.responses), 1)
        self.assertEqual(result.score, 100)

    def test_grading_is_deterministic_and_bounded(self):
        questions = [_question(f"q{i}", "A", points=i + 1) for i in range(6)]
        answers = {f"q{i}": ("A" if i % 2 else "C") for i in range(6)}

        first = grade(questions, answers, attempt_id="x")
        second = grade(questions, answers, attempt_id="x")

        self.assertEqual(first, second)
        self.assertTrue(0 <= first.earned_points <= first.total_points)
        self.assertTrue(0 <= first.score <= 100)


class TestScoringEngine(unittest.TestCase):
    """Tests for the ScoringEngine wrapper."""

    def setUp(self):
        self.mock_monitoring_manager = MagicMock(spec=MonitoringManager)
        self.scoring_engine = ScoringEngine(monitoring_manager=self.mock_monitoring_manager)

    def test_grade_records_metrics(self):
        result = self.scoring_engine.grade([_question("q1", "A")], {"q1": "A"}, attempt_id="a1")

        self.assertEqual(result.score, 100)
        self.mock_monitoring_manager.record_metric.assert_any_call(
            "scoring.graded_attempts", 1, metric_type="counter"
        )
        self.mock_monitoring_manager.record_metric.assert_any_call(
            "scoring.score", 100, metric_type="histogram"
        )

    def test_grade_logs_and_reraises_validation_error(self):
        with self.assertRaises(ValidationError):
            self.scoring_engine.grade([_question("q1", "A")], {}, attempt_id="a1")

        self.mock_monitoring_manager.log_warning.assert_called_once()
        self.mock_monitoring_manager.record_metric.assert_not_called()


if __name__ == "__main__":
    unittest.main()
