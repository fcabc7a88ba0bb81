# -*- coding: utf-8 -*-
"""
RecordStore Facade 类，统一提供评测记录（试卷、题目、作答、答题结果、反馈、档案）的存取。
"""
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from assessment_engine.config_manager.config_manager import ConfigManager
from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.records.records import (
    Attempt,
    Feedback,
    GradingResult,
    Profile,
    Question,
    Response,
    Test,
)

from .attempt_data_manager import AttemptDataManager
from .catalog_manager import CatalogManager
from .db_utils import DBUtil
from .feedback_manager import FeedbackManager
from .profile_manager import ProfileManager


class RecordStore:
    """
    RecordStore Facade 类。
    组合各子管理器，对上层（作答生命周期、应用服务）提供统一接口。
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        monitoring_manager: MonitoringManager,
        db_path: Optional[str] = None,
    ):
        """
        初始化 RecordStore。

        Args:
            config_manager: 配置管理器实例。
            monitoring_manager: 监控管理器实例。
            db_path: SQLite 数据库路径。为 None 时读取配置 "database.db_path"。
        """
        self.config_manager = config_manager
        self.monitoring_manager = monitoring_manager

        if db_path is None:
            db_path = self.config_manager.get_config("database.db_path")
            if not db_path:
                self.monitoring_manager.log_error("Database path not found in configuration.")
                raise ValueError("Database path must be provided or configured as 'database.db_path'.")
        self.db_path = db_path

        self.monitoring_manager.log_info(f"RecordStore initializing with DB path: {self.db_path}")
        self.db_util = DBUtil(db_path=self.db_path, monitoring_manager=self.monitoring_manager)

        self.catalog_manager = CatalogManager(self.db_util, self.monitoring_manager)
        self.attempt_data_manager = AttemptDataManager(self.db_util, self.monitoring_manager)
        self.feedback_manager = FeedbackManager(self.db_util, self.monitoring_manager)
        self.profile_manager = ProfileManager(self.db_util, self.monitoring_manager)
        self.monitoring_manager.log_info("RecordStore initialized successfully with all sub-managers.")

    # --- tests & questions ---
    def save_test(self, test: Test, questions: Sequence[Question]) -> Test:
        return self.catalog_manager.save_test(test, questions)

    def get_test(self, test_id: str) -> Optional[Test]:
        return self.catalog_manager.get_test(test_id)

    def list_tests(self, owner_id: Optional[str] = None, published_only: bool = False) -> List[Test]:
        return self.catalog_manager.list_tests(owner_id=owner_id, published_only=published_only)

    def get_questions(self, test_id: str) -> List[Question]:
        return self.catalog_manager.get_questions(test_id)

    def list_questions(self, test_ids: Optional[Sequence[str]] = None) -> List[Question]:
        return self.catalog_manager.list_questions(test_ids)

    # --- attempts & responses ---
    def create_attempt(self, student_id: str, test_id: str) -> Attempt:
        return self.attempt_data_manager.create_attempt(student_id, test_id)

    def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        return self.attempt_data_manager.get_attempt(attempt_id)

    def complete_attempt(self, attempt_id: str, result: GradingResult, completed_at: datetime) -> bool:
        return self.attempt_data_manager.complete_attempt(attempt_id, result, completed_at)

    def list_attempts(
        self,
        student_id: Optional[str] = None,
        test_ids: Optional[Sequence[str]] = None,
        completed_only: bool = True,
    ) -> List[Attempt]:
        return self.attempt_data_manager.list_attempts(
            student_id=student_id, test_ids=test_ids, completed_only=completed_only
        )

    def list_responses(self, attempt_ids: Sequence[str]) -> List[Response]:
        return self.attempt_data_manager.list_responses(attempt_ids)

    # --- feedback & profiles ---
    def save_feedback(self, feedback: Feedback) -> Feedback:
        return self.feedback_manager.save_feedback(feedback)

    def list_feedback(self, attempt_ids: Sequence[str]) -> List[Feedback]:
        return self.feedback_manager.list_feedback(attempt_ids)

    def save_profile(self, profile: Profile) -> Profile:
        return self.profile_manager.save_profile(profile)

    def get_profiles(self, profile_ids: Optional[Sequence[str]] = None) -> Dict[str, Profile]:
        return self.profile_manager.get_profiles(profile_ids)

    def close_db_connection(self):
        """关闭数据库连接。"""
        self.db_util.close_connection()
        self.monitoring_manager.log_info("RecordStore: Database connection closed.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_db_connection()
