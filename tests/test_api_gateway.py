"""Unit tests for the APIGateway class and its FastAPI app."""

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from assessment_engine.api_gateway.gateway import APIGateway
from assessment_engine.app import AssessmentApp
from assessment_engine.common.exceptions import (
    InvalidStateError,
    RecordNotFoundError,
    ValidationError,
)
from assessment_engine.records.metrics import (
    PassFail,
    PerTestBreakdown,
    Prediction,
    RankingEntry,
    StudentAnalytics,
    SummaryStats,
    TeacherAnalytics,
    TeacherOverview,
)
from assessment_engine.records.records import (
    Attempt,
    Feedback,
    GradingResult,
    Response,
    Test,
    validate_test_definition,
)

STARTED = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestAPIGateway(unittest.TestCase):
    """Tests for the APIGateway."""

    def setUp(self):
        """Set up an APIGateway instance with a mocked AssessmentApp."""
        self.mock_assessment_app = MagicMock(spec=AssessmentApp)
        self.mock_assessment_app.monitoring_manager = MagicMock()
        self.api_gateway = APIGateway(assessment_app=self.mock_assessment_app)
        self.client = TestClient(self.api_gateway.get_fastapi_app())

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_start_attempt(self):
        self.mock_assessment_app.start_attempt.return_value = Attempt(
            id="a1", student_id="s1", test_id="t1", started_at=STARTED
        )

        response = self.client.post("/api/v1/attempts", json={"student_id": "s1", "test_id": "t1"})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["id"], "a1")
        self.assertIsNone(response.json()["completed_at"])
        self.mock_assessment_app.start_attempt.assert_called_once_with("s1", "t1")

    def test_start_attempt_unknown_test_is_404(self):
        self.mock_assessment_app.start_attempt.side_effect = RecordNotFoundError("test", "nope")
        response = self.client.post("/api/v1/attempts", json={"student_id": "s1", "test_id": "nope"})
        self.assertEqual(response.status_code, 404)

    def test_submit_success(self):
        self.mock_assessment_app.submit_attempt.return_value = GradingResult(
            responses=[Response(attempt_id="a1", question_id="q1", selected_answer="B", is_correct=True)],
            earned_points=1,
            total_points=1,
            score=100,
        )

        response = self.client.post("/api/v1/attempts/a1/submit", json={"answers": {"q1": "B"}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["score"], 100)
        self.mock_assessment_app.submit_attempt.assert_called_once_with("a1", {"q1": "B"})

    def test_submit_error_mapping(self):
        cases = [
            (ValidationError("Please answer all questions (2 remaining)", missing_count=2), 400),
            (InvalidStateError("Attempt a1 has already been graded.", "a1"), 409),
            (RecordNotFoundError("attempt", "a1"), 404),
        ]
        for error, status_code in cases:
            with self.subTest(error=type(error).__name__):
                self.mock_assessment_app.submit_attempt.side_effect = error
                response = self.client.post("/api/v1/attempts/a1/submit", json={"answers": {}})
                self.assertEqual(response.status_code, status_code)
                self.assertEqual(response.json()["detail"]["error"], type(error).__name__)

        self.mock_assessment_app.submit_attempt.side_effect = ValidationError("missing", missing_count=2)
        response = self.client.post("/api/v1/attempts/a1/submit", json={"answers": {}})
        self.assertEqual(response.json()["detail"]["missing_count"], 2)

    def test_submit_unexpected_error_is_500_and_logged(self):
        self.mock_assessment_app.submit_attempt.side_effect = RuntimeError("db down")

        response = self.client.post("/api/v1/attempts/a1/submit", json={"answers": {"q1": "A"}})

        self.assertEqual(response.status_code, 500)
        self.mock_assessment_app.monitoring_manager.log_error.assert_called_once()

    def test_add_and_list_feedback(self):
        feedback = Feedback(id="f1", attempt_id="a1", author_id="teacher1", message="Good job!", is_preset=True)
        self.mock_assessment_app.add_feedback.return_value = feedback
        self.mock_assessment_app.list_feedback.return_value = [feedback]

        created = self.client.post(
            "/api/v1/attempts/a1/feedback", json={"author_id": "teacher1", "message": "Good job!"}
        )
        listed = self.client.get("/api/v1/attempts/a1/feedback")

        self.assertEqual(created.status_code, 201)
        self.assertTrue(created.json()["is_preset"])
        self.mock_assessment_app.add_feedback.assert_called_once_with("a1", "teacher1", "Good job!")
        self.assertEqual(listed.json()["data"][0]["id"], "f1")

    def test_feedback_on_open_attempt_is_409(self):
        self.mock_assessment_app.add_feedback.side_effect = InvalidStateError("open", "a1")
        response = self.client.post("/api/v1/attempts/a1/feedback", json={"author_id": "t", "message": "Hi"})
        self.assertEqual(response.status_code, 409)

    def test_create_test_validation_error_is_400(self):
        self.mock_assessment_app.create_test.side_effect = ValidationError("Title is required")
        response = self.client.post(
            "/api/v1/tests",
            json={"test": {"id": "t1", "owner_id": "o", "title": " "}, "questions": []},
        )
        self.assertEqual(response.status_code, 400)

    def test_create_test_with_zero_points_is_400(self):
        self.mock_assessment_app.create_test.side_effect = validate_test_definition
        response = self.client.post(
            "/api/v1/tests",
            json={
                "test": {"id": "t1", "owner_id": "o", "title": "Quiz"},
                "questions": [{"id": "q1", "test_id": "t1", "text": "Pick", "correct_answer": "A", "points": 0}],
            },
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["error"], "ValidationError")
        self.assertEqual(response.json()["detail"]["missing_count"], 1)

    def test_create_test(self):
        self.mock_assessment_app.create_test.return_value = Test(id="t1", owner_id="o", title="Quiz", created_at=STARTED)
        response = self.client.post(
            "/api/v1/tests",
            json={
                "test": {"id": "t1", "owner_id": "o", "title": "Quiz"},
                "questions": [{"id": "q1", "test_id": "t1", "text": "Pick", "options": ["A", "B"], "correct_answer": "A"}],
            },
        )
        self.assertEqual(response.status_code, 201)
        test_arg, questions_arg = self.mock_assessment_app.create_test.call_args.args
        self.assertEqual(test_arg.title, "Quiz")
        self.assertEqual(questions_arg[0].correct_answer, "A")

    def test_student_analytics(self):
        self.mock_assessment_app.get_student_analytics.return_value = StudentAnalytics(
            trend=[],
            topic_accuracy=[],
            strengths=[],
            weaknesses=[],
            time_per_question=[],
            class_comparison=[],
            prediction=Prediction(available=False, reason="At least 3 completed attempts are needed, found 0."),
            summary=SummaryStats(tests_completed=0, avg_score=0, best_score=0, band="needs_improvement"),
            first_vs_latest=[],
            feedback_count=1,
            recent_feedback=[
                Feedback(id="f1", attempt_id="a1", author_id="teacher1", message="Good job!", created_at=STARTED)
            ],
        )

        response = self.client.get("/api/v1/students/s1/analytics")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["prediction"]["available"])
        self.assertEqual(response.json()["summary"]["band"], "needs_improvement")
        self.assertEqual(response.json()["feedback_count"], 1)
        self.assertEqual(response.json()["recent_feedback"][0]["message"], "Good job!")
        self.mock_assessment_app.get_student_analytics.assert_called_once_with("s1")

    def test_teacher_analytics_and_leaderboard(self):
        self.mock_assessment_app.get_teacher_analytics.return_value = TeacherAnalytics(
            difficulty_index=[],
            failure_rate=[],
            score_distribution=[],
            completion_time=[],
            pass_fail=PassFail(passed=0, failed=0, pass_rate=0),
            ranking=[],
            overview=TeacherOverview(
                tests_created=2,
                published=1,
                drafts=1,
                students=1,
                total_attempts=2,
                avg_score=90,
                pass_rate=100,
                feedback_count=0,
                per_test=[PerTestBreakdown(test_id="t1", title="Quiz", attempts=2, avg=90)],
            ),
        )
        self.mock_assessment_app.get_leaderboard.return_value = [
            RankingEntry(student_id="s1", full_name="Ada", avg_score=90, tests_taken=2, total_points=18)
        ]

        teacher = self.client.get("/api/v1/teachers/teacher1/analytics")
        leaderboard = self.client.get("/api/v1/leaderboard")

        self.assertEqual(teacher.status_code, 200)
        self.assertEqual(teacher.json()["pass_fail"]["pass_rate"], 0)
        self.assertEqual(teacher.json()["overview"]["drafts"], 1)
        self.assertEqual(teacher.json()["overview"]["per_test"][0]["title"], "Quiz")
        self.assertEqual(leaderboard.json()["data"][0]["full_name"], "Ada")


if __name__ == "__main__":
    unittest.main()
