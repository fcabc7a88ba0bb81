"""评测评分与学情分析引擎主应用程序。

负责初始化和协调各个核心模块：从记录存储取出快照交给纯计算核心
（判分、分析、预测），并作为 API 网关的后端逻辑处理单元。
"""

import os
from typing import Dict, List, Mapping, Optional, Sequence

import uvicorn

from assessment_engine.analytics_aggregator.analytics_aggregator import AnalyticsAggregator
from assessment_engine.api_gateway.gateway import APIGateway
from assessment_engine.attempt_lifecycle.attempt_lifecycle import AttemptLifecycle
from assessment_engine.common.exceptions import RecordNotFoundError
from assessment_engine.config_manager.config_manager import ConfigManager
from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.record_store.record_store import RecordStore
from assessment_engine.records.metrics import RankingEntry, StudentAnalytics, TeacherAnalytics
from assessment_engine.records.records import (
    Attempt,
    Feedback,
    GradingResult,
    Profile,
    Question,
    Test,
)
from assessment_engine.scoring_engine.scoring_engine import ScoringEngine


class AssessmentApp:
    """
    Main application class to initialize and wire up all backend modules.
    """

    def __init__(self, config_dir: Optional[str] = None, db_path: Optional[str] = None):
        """
        Initializes the application and its modules.

        Args:
            config_dir: Optional path to the configuration directory.
                        If None, ConfigManager uses its default (project root).
            db_path: Optional SQLite path overriding "database.db_path".
        """
        print("Initializing ConfigManager...")
        self.config_manager = ConfigManager(config_dir=config_dir)

        print("Initializing MonitoringManager...")
        self.monitoring_manager = MonitoringManager(self.config_manager)

        self.record_store = RecordStore(
            config_manager=self.config_manager,
            monitoring_manager=self.monitoring_manager,
            db_path=db_path,
        )
        self.scoring_engine = ScoringEngine(monitoring_manager=self.monitoring_manager)
        self.attempt_lifecycle = AttemptLifecycle(
            record_store=self.record_store,
            scoring_engine=self.scoring_engine,
            config_manager=self.config_manager,
            monitoring_manager=self.monitoring_manager,
        )
        self.analytics_aggregator = AnalyticsAggregator(
            config_manager=self.config_manager,
            monitoring_manager=self.monitoring_manager,
        )

        self.api_gateway_instance = APIGateway(assessment_app=self)
        self.monitoring_manager.log_info("Application initialization complete.")

    def _require_attempt(self, attempt_id: str) -> Attempt:
        attempt = self.record_store.get_attempt(attempt_id)
        if attempt is None:
            raise RecordNotFoundError("attempt", attempt_id)
        return attempt

    # --- authoring ---
    def create_test(self, test: Test, questions: Sequence[Question]) -> Test:
        """Validates and stores a test together with its questions."""
        saved = self.record_store.save_test(test, questions)
        self.monitoring_manager.log_audit_event(
            "test_saved", test.owner_id, {"test_id": test.id, "questions": len(questions)}
        )
        return saved

    def register_profile(self, profile: Profile) -> Profile:
        return self.record_store.save_profile(profile)

    # --- attempt lifecycle ---
    def start_attempt(self, student_id: str, test_id: str) -> Attempt:
        if self.record_store.get_test(test_id) is None:
            raise RecordNotFoundError("test", test_id)
        return self.attempt_lifecycle.start_attempt(student_id, test_id)

    def submit_attempt(self, attempt_id: str, answers: Mapping[str, str]) -> GradingResult:
        """
        Grades an open attempt against its test's questions.

        Raises:
            RecordNotFoundError: unknown attempt id.
            ValidationError / InvalidStateError: propagated from AttemptLifecycle.submit.
        """
        span = self.monitoring_manager.start_span("submit_attempt", {"attempt_id": attempt_id})
        try:
            attempt = self._require_attempt(attempt_id)
            questions = self.record_store.get_questions(attempt.test_id)
            result = self.attempt_lifecycle.submit(attempt, questions, answers)
        except Exception as e:
            self.monitoring_manager.end_span(span, exc=e)
            raise
        self.monitoring_manager.end_span(span)
        return result

    def add_feedback(self, attempt_id: str, author_id: str, message: str) -> Feedback:
        attempt = self._require_attempt(attempt_id)
        return self.attempt_lifecycle.add_feedback(attempt, author_id, message)

    def list_feedback(self, attempt_id: str) -> List[Feedback]:
        self._require_attempt(attempt_id)
        return self.record_store.list_feedback([attempt_id])

    # --- analytics ---
    def get_student_analytics(self, student_id: str) -> StudentAnalytics:
        my_attempts = self.record_store.list_attempts(student_id=student_id)
        attempt_ids = [a.id for a in my_attempts]
        my_responses = self.record_store.list_responses(attempt_ids)
        feedback = self.record_store.list_feedback(attempt_ids)
        test_ids = sorted({a.test_id for a in my_attempts})
        class_attempts = self.record_store.list_attempts(test_ids=test_ids) if test_ids else []
        tests = self._tests_by_id(test_ids)
        return self.analytics_aggregator.compute_student_analytics(
            my_attempts, my_responses, class_attempts, tests, feedback
        )

    def get_teacher_analytics(self, teacher_id: str) -> TeacherAnalytics:
        my_tests = self.record_store.list_tests(owner_id=teacher_id)
        test_ids = [t.id for t in my_tests]
        their_attempts = self.record_store.list_attempts(test_ids=test_ids) if test_ids else []
        attempt_ids = [a.id for a in their_attempts]
        their_responses = self.record_store.list_responses(attempt_ids)
        feedback = self.record_store.list_feedback(attempt_ids)
        questions = self.record_store.list_questions(test_ids) if test_ids else []
        profiles = self.record_store.get_profiles(sorted({a.student_id for a in their_attempts}))
        return self.analytics_aggregator.compute_teacher_analytics(
            my_tests, their_attempts, their_responses, questions, profiles, feedback
        )

    def get_leaderboard(self) -> List[RankingEntry]:
        attempts = self.record_store.list_attempts()
        profiles = self.record_store.get_profiles(sorted({a.student_id for a in attempts}))
        return self.analytics_aggregator.compute_leaderboard(attempts, profiles)

    def _tests_by_id(self, test_ids: Sequence[str]) -> Dict[str, Test]:
        tests = {}
        for test_id in test_ids:
            test = self.record_store.get_test(test_id)
            if test is not None:
                tests[test_id] = test
        return tests

    def start(self):
        """
        Starts the application services (the API Gateway). Blocks until uvicorn stops.
        """
        gateway_app = self.api_gateway_instance.get_fastapi_app()

        host = self.config_manager.get_config("api_gateway.host", "127.0.0.1")
        port = int(self.config_manager.get_config("api_gateway.port", 8000))

        self.monitoring_manager.log_info(f"Starting API Gateway on {host}:{port}...")
        # The store closes its connection once uvicorn returns or fails.
        with self.record_store:
            try:
                uvicorn.run(gateway_app, host=host, port=port, log_level="info")
            except Exception as e:
                self.monitoring_manager.log_error(
                    "Failed to start API Gateway", {"error": str(e), "module": "AssessmentApp"}
                )
                raise


def main():
    project_root_dir = os.environ.get(
        "ASSESSMENT_CONFIG_DIR", os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    )
    print(f"Setting configuration directory to: {project_root_dir}")
    app = AssessmentApp(config_dir=project_root_dir)
    app.start()


if __name__ == "__main__":
    main()
