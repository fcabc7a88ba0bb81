# -*- coding: utf-8 -*-
"""仪表盘指标的数据结构（学生端、教师端、排行榜与成绩预测）。"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from assessment_engine.records.records import Feedback


class _Metric(BaseModel):
    model_config = ConfigDict(frozen=True)


class TrendPoint(_Metric):
    index: int
    attempt_id: str
    test_id: str
    score: float
    running_avg: float


class TopicAccuracy(_Metric):
    test_id: str
    title: str
    correct: int
    total: int
    accuracy: int


class TimePerQuestion(_Metric):
    attempt_id: str
    test_id: str
    avg_minutes_per_question: float
    score: float


class ClassComparison(_Metric):
    test_id: str
    title: str
    my_score: float
    class_avg: float
    class_max: float
    class_attempts: int


class DifficultyEntry(_Metric):
    question_id: str
    text: str
    type: str
    success_rate: int
    difficulty: int
    attempts: int


class FailureRate(_Metric):
    test_id: str
    title: str
    passed: int
    failed: int
    fail_rate: int
    pass_rate: int


class RankingEntry(_Metric):
    student_id: str
    full_name: str
    avg_score: int
    tests_taken: int
    total_points: int


class ScoreBucket(_Metric):
    range: str
    count: int


class CompletionTime(_Metric):
    test_id: str
    title: str
    avg_minutes: float
    min_minutes: float
    max_minutes: float


class PassFail(_Metric):
    passed: int
    failed: int
    pass_rate: int


class FirstVsLatest(_Metric):
    test_id: str
    title: str
    first: float
    latest: float


class SummaryStats(_Metric):
    tests_completed: int
    avg_score: int
    best_score: int
    band: Literal["excellent", "good", "needs_improvement"]


class PerTestBreakdown(_Metric):
    test_id: str
    title: str
    attempts: int
    avg: int


class TeacherOverview(_Metric):
    tests_created: int
    published: int
    drafts: int
    students: int
    total_attempts: int
    avg_score: int
    pass_rate: int
    feedback_count: int
    per_test: List[PerTestBreakdown]


class Prediction(_Metric):
    available: bool
    reason: Optional[str] = None
    predicted: Optional[float] = None
    slope: Optional[float] = None
    trend_label: Optional[Literal["improving", "declining", "stable"]] = None
    consistency: Optional[int] = None
    window_size: Optional[int] = None


class StudentAnalytics(_Metric):
    trend: List[TrendPoint]
    topic_accuracy: List[TopicAccuracy]
    strengths: List[TopicAccuracy]
    weaknesses: List[TopicAccuracy]
    time_per_question: List[TimePerQuestion]
    class_comparison: List[ClassComparison]
    prediction: Prediction
    summary: SummaryStats
    first_vs_latest: List[FirstVsLatest]
    feedback_count: int = 0
    recent_feedback: List[Feedback] = Field(default_factory=list)


class TeacherAnalytics(_Metric):
    difficulty_index: List[DifficultyEntry]
    failure_rate: List[FailureRate]
    score_distribution: List[ScoreBucket]
    completion_time: List[CompletionTime]
    pass_fail: PassFail
    ranking: List[RankingEntry]
    overview: TeacherOverview
