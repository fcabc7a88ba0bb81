# -*- coding: utf-8 -*-
"""评分引擎 (ScoringEngine) 的主实现文件。

grade() 是纯函数：根据答案键对一次作答逐题判分，汇总得分、总分与百分制成绩。
判分采用严格的字符串相等（区分大小写、不去除空白），这一规则定义了评分语义，不做“改进”。
ScoringEngine 类在 grade() 之外补充日志与指标记录。
"""
from typing import List, Mapping, Sequence

from assessment_engine.common.exceptions import ValidationError
from assessment_engine.common.numeric_utils import clamp, round_half_up
from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.records.records import GradingResult, Question, Response


def grade(
    questions: Sequence[Question], answers: Mapping[str, str], attempt_id: str = ""
) -> GradingResult:
    """
    Grades one attempt's answers against the questions' answer key.

    Args:
        questions: every question of the test, in display order.
        answers: question id -> selected answer.
        attempt_id: copied onto the produced responses.

    Returns:
        GradingResult with one Response per question.

    Raises:
        ValidationError: if any question has no (or an empty) answer. Nothing is graded.
    """
    missing = [q for q in questions if not answers.get(q.id)]
    if missing:
        raise ValidationError(
            f"Please answer all questions ({len(missing)} remaining)",
            missing_count=len(missing),
        )

    responses: List[Response] = []
    earned_points = 0
    total_points = 0
    for question in questions:
        selected = answers[question.id]
        is_correct = selected == question.correct_answer
        if is_correct:
            earned_points += question.points
        total_points += question.points
        responses.append(
            Response(
                attempt_id=attempt_id,
                question_id=question.id,
                selected_answer=selected,
                is_correct=is_correct,
            )
        )

    score = 0
    if total_points > 0:
        score = int(clamp(round_half_up(earned_points / total_points * 100), 0, 100))

    return GradingResult(
        responses=responses,
        earned_points=earned_points,
        total_points=total_points,
        score=score,
    )


class ScoringEngine:
    """
    评分引擎 (ScoringEngine)
    Wraps the pure grade() function with logging and metrics.
    """

    def __init__(self, monitoring_manager: MonitoringManager):
        self.monitoring_manager = monitoring_manager

    def grade(
        self, questions: Sequence[Question], answers: Mapping[str, str], attempt_id: str = ""
    ) -> GradingResult:
        try:
            result = grade(questions, answers, attempt_id=attempt_id)
        except ValidationError as e:
            self.monitoring_manager.log_warning(
                "Grading rejected: incomplete answer set.",
                {"attempt_id": attempt_id, "missing_count": e.missing_count},
            )
            raise

        self.monitoring_manager.log_info(
            f"Graded attempt {attempt_id}",
            {
                "attempt_id": attempt_id,
                "earned_points": result.earned_points,
                "total_points": result.total_points,
                "score": result.score,
            },
        )
        self.monitoring_manager.record_metric("scoring.graded_attempts", 1, metric_type="counter")
        self.monitoring_manager.record_metric("scoring.score", result.score, metric_type="histogram")
        return result
