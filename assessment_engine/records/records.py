# -*- coding: utf-8 -*-
"""评测记录类型 (Records)。

定义试卷 (Test)、题目 (Question)、作答记录 (Attempt)、答题结果 (Response)、
反馈 (Feedback)、用户档案 (Profile) 以及评分结果 (GradingResult) 的显式类型，
可选字段与数据模型中的可空性保持一致。所有记录均为不可变对象。
"""
from datetime import datetime
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from assessment_engine.common.exceptions import ValidationError

TRUE_FALSE_OPTIONS = ["True", "False"]

QuestionType = Literal["mcq", "true_false"]
Role = Literal["student", "teacher"]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Test(_Record):
    __test__ = False  # not a pytest test class

    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    duration_minutes: Optional[int] = None  # stored only, never enforced
    is_published: bool = False
    created_at: Optional[datetime] = None


class Question(_Record):
    id: str
    test_id: str
    text: str
    type: QuestionType = "mcq"
    options: List[str] = Field(default_factory=list)
    correct_answer: str
    points: int = 1  # must be positive, checked by validate_test_definition
    sort_order: int = 0

    @model_validator(mode="before")
    @classmethod
    def _fix_true_false_options(cls, data):
        if isinstance(data, dict) and data.get("type") == "true_false":
            data = dict(data)
            data["options"] = list(TRUE_FALSE_OPTIONS)
        return data


class Attempt(_Record):
    id: str
    student_id: str
    test_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    score: Optional[float] = None
    earned_points: Optional[int] = None
    total_points: Optional[int] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class Response(_Record):
    id: Optional[str] = None  # assigned by the record store
    attempt_id: str
    question_id: str
    selected_answer: str
    is_correct: bool


class Feedback(_Record):
    id: Optional[str] = None
    attempt_id: str
    author_id: str
    message: str
    is_preset: bool = False
    created_at: Optional[datetime] = None


class Profile(_Record):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: Role = "student"

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@")[0]
        return "Student"


class GradingResult(_Record):
    responses: List[Response]
    earned_points: int
    total_points: int
    score: int


def validate_test_definition(test: Test, questions: Sequence[Question]) -> None:
    """
    Checks a test before it is saved: the title must not be blank, every
    question needs text and a correct answer, and points must be positive.

    Raises:
        ValidationError: listing how many questions are incomplete or mis-weighted.
    """
    if not test.title.strip():
        raise ValidationError("Title is required")
    incomplete = [q for q in questions if not q.text.strip() or not q.correct_answer]
    if incomplete:
        raise ValidationError(
            "All questions must have text and a correct answer",
            missing_count=len(incomplete),
        )
    unweighted = [q for q in questions if q.points <= 0]
    if unweighted:
        raise ValidationError(
            "Question points must be a positive integer",
            missing_count=len(unweighted),
        )
