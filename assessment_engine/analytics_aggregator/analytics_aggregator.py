# -*- coding: utf-8 -*-
"""分析聚合器 (AnalyticsAggregator) 的主实现文件。

模块级函数都是纯函数：输入为只读的历史快照（作答、答题结果、试卷、题目），
每次调用内部建立所需索引、用完即弃，不做缓存。“知识点/主题”以整张试卷代替。
百分比统一使用四舍五入（.5 向上），除零情形返回 0 或“不可用”，不会出现 NaN。

AnalyticsAggregator 类把这些函数组合成学生端、教师端与排行榜三类结果，
并通过 MonitoringManager 记录日志与指标。
"""
from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from assessment_engine.common.numeric_utils import mean, round_half_up
from assessment_engine.config_manager.config_manager import ConfigManager
from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.prediction_model.prediction_model import predict
from assessment_engine.records.metrics import (
    ClassComparison,
    CompletionTime,
    DifficultyEntry,
    FailureRate,
    FirstVsLatest,
    PassFail,
    PerTestBreakdown,
    RankingEntry,
    ScoreBucket,
    StudentAnalytics,
    SummaryStats,
    TeacherAnalytics,
    TeacherOverview,
    TimePerQuestion,
    TopicAccuracy,
    TrendPoint,
)
from assessment_engine.records.records import (
    Attempt,
    Feedback,
    Profile,
    Question,
    Response,
    Test,
)

DEFAULT_PASS_MARK = 50
DEFAULT_STRENGTH_THRESHOLD = 70
TOP_TOPICS = 3
RECENT_FEEDBACK_LIMIT = 5
SCORE_BUCKETS = [("0-20", 20), ("21-40", 40), ("41-60", 60), ("61-80", 80), ("81-100", 100)]


def _score(attempt: Attempt) -> float:
    return attempt.score or 0


def _percent(part: int, whole: int) -> int:
    return round_half_up(100 * part / whole) if whole else 0


def _title(tests: Optional[Mapping[str, Test]], test_id: str, default: str = "Unknown") -> str:
    if tests and test_id in tests:
        return tests[test_id].title
    return default


def _completed(attempts: Iterable[Attempt]) -> List[Attempt]:
    """Completed attempts ordered by completion time (stable for ties)."""
    return sorted((a for a in attempts if a.completed_at is not None), key=lambda a: a.completed_at)


def _group_by_test(attempts: Iterable[Attempt]) -> "OrderedDict[str, List[Attempt]]":
    groups: "OrderedDict[str, List[Attempt]]" = OrderedDict()
    for attempt in attempts:
        groups.setdefault(attempt.test_id, []).append(attempt)
    return groups


def score_band(score: float) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    return "needs_improvement"


# --- student-side metrics ---

def trend(attempts: Sequence[Attempt]) -> List[TrendPoint]:
    """Scores in completion order with the running average up to each point."""
    points = []
    running_total = 0.0
    for i, attempt in enumerate(_completed(attempts)):
        running_total += _score(attempt)
        points.append(
            TrendPoint(
                index=i,
                attempt_id=attempt.id,
                test_id=attempt.test_id,
                score=_score(attempt),
                running_avg=running_total / (i + 1),
            )
        )
    return points


def topic_accuracy(
    responses: Sequence[Response],
    test_of_question: Mapping[str, str],
    tests: Optional[Mapping[str, Test]] = None,
) -> List[TopicAccuracy]:
    """
    Share of correct responses per test, ascending by accuracy.
    Responses whose question has no known test are ignored.
    """
    counts: "OrderedDict[str, Tuple[int, int]]" = OrderedDict()
    for response in responses:
        test_id = test_of_question.get(response.question_id)
        if test_id is None:
            continue
        correct, total = counts.get(test_id, (0, 0))
        counts[test_id] = (correct + int(response.is_correct), total + 1)

    topics = [
        TopicAccuracy(
            test_id=test_id,
            title=_title(tests, test_id),
            correct=correct,
            total=total,
            accuracy=_percent(correct, total),
        )
        for test_id, (correct, total) in counts.items()
    ]
    return sorted(topics, key=lambda t: t.accuracy)


def strength_weakness(
    topics: Sequence[TopicAccuracy],
    threshold: int = DEFAULT_STRENGTH_THRESHOLD,
    limit: int = TOP_TOPICS,
) -> Tuple[List[TopicAccuracy], List[TopicAccuracy]]:
    """Returns (strengths, weaknesses): best topics at/above threshold, worst below it."""
    strengths = sorted((t for t in topics if t.accuracy >= threshold), key=lambda t: -t.accuracy)
    weaknesses = sorted((t for t in topics if t.accuracy < threshold), key=lambda t: t.accuracy)
    return strengths[:limit], weaknesses[:limit]


def time_per_question(
    attempts: Sequence[Attempt], question_count_by_test: Mapping[str, int]
) -> List[TimePerQuestion]:
    entries = []
    for attempt in _completed(attempts):
        if attempt.started_at is None:
            continue
        minutes = (attempt.completed_at - attempt.started_at).total_seconds() / 60
        question_count = max(1, question_count_by_test.get(attempt.test_id, 0))
        entries.append(
            TimePerQuestion(
                attempt_id=attempt.id,
                test_id=attempt.test_id,
                avg_minutes_per_question=minutes / question_count,
                score=_score(attempt),
            )
        )
    return entries


def class_comparison(
    test_id: str,
    class_attempts: Sequence[Attempt],
    my_attempt: Optional[Attempt],
    tests: Optional[Mapping[str, Test]] = None,
) -> Optional[ClassComparison]:
    """My score against the class average and maximum; None without my attempt."""
    if my_attempt is None:
        return None
    scores = [_score(a) for a in class_attempts if a.test_id == test_id and a.completed_at is not None]
    return ClassComparison(
        test_id=test_id,
        title=_title(tests, test_id),
        my_score=_score(my_attempt),
        class_avg=mean(scores),
        class_max=max(scores) if scores else 0,
        class_attempts=len(scores),
    )


def first_vs_latest(
    attempts: Sequence[Attempt], tests: Optional[Mapping[str, Test]] = None
) -> List[FirstVsLatest]:
    """First against latest score, for tests taken more than once."""
    return [
        FirstVsLatest(
            test_id=test_id,
            title=_title(tests, test_id),
            first=_score(group[0]),
            latest=_score(group[-1]),
        )
        for test_id, group in _group_by_test(_completed(attempts)).items()
        if len(group) > 1
    ]


def summary_stats(attempts: Sequence[Attempt]) -> SummaryStats:
    scores = [_score(a) for a in attempts if a.completed_at is not None]
    avg_score = round_half_up(mean(scores))
    return SummaryStats(
        tests_completed=len(scores),
        avg_score=avg_score,
        best_score=round_half_up(max(scores)) if scores else 0,
        band=score_band(avg_score),
    )


def recent_feedback(
    feedback: Sequence[Feedback], limit: int = RECENT_FEEDBACK_LIMIT
) -> List[Feedback]:
    """Newest feedback first; entries without a timestamp sort last."""
    ordered = sorted(
        feedback, key=lambda f: (f.created_at is not None, f.created_at), reverse=True
    )
    return ordered[:limit]


# --- teacher-side metrics ---

def difficulty_index(
    responses: Sequence[Response], questions: Optional[Mapping[str, Question]] = None
) -> List[DifficultyEntry]:
    """Per-question difficulty (100 - success rate), hardest first."""
    counts: "OrderedDict[str, Tuple[int, int]]" = OrderedDict()
    for response in responses:
        correct, total = counts.get(response.question_id, (0, 0))
        counts[response.question_id] = (correct + int(response.is_correct), total + 1)

    entries = []
    for question_id, (correct, total) in counts.items():
        question = questions.get(question_id) if questions else None
        success_rate = _percent(correct, total)
        entries.append(
            DifficultyEntry(
                question_id=question_id,
                text=question.text if question else "Q",
                type=question.type if question else "mcq",
                success_rate=success_rate,
                difficulty=100 - success_rate,
                attempts=total,
            )
        )
    return sorted(entries, key=lambda e: -e.difficulty)


def failure_rate(
    attempts: Sequence[Attempt],
    tests: Optional[Mapping[str, Test]] = None,
    pass_mark: float = DEFAULT_PASS_MARK,
) -> List[FailureRate]:
    """Pass/fail counts and rates per test."""
    entries = []
    for test_id, group in _group_by_test(a for a in attempts if a.completed_at is not None).items():
        passed = sum(1 for a in group if _score(a) >= pass_mark)
        failed = len(group) - passed
        entries.append(
            FailureRate(
                test_id=test_id,
                title=_title(tests, test_id),
                passed=passed,
                failed=failed,
                fail_rate=_percent(failed, passed + failed),
                pass_rate=_percent(passed, passed + failed),
            )
        )
    return entries


def pass_fail(attempts: Sequence[Attempt], pass_mark: float = DEFAULT_PASS_MARK) -> PassFail:
    scores = [_score(a) for a in attempts if a.completed_at is not None]
    passed = sum(1 for s in scores if s >= pass_mark)
    return PassFail(passed=passed, failed=len(scores) - passed, pass_rate=_percent(passed, len(scores)))


def score_distribution(attempts: Sequence[Attempt]) -> List[ScoreBucket]:
    counts = [0] * len(SCORE_BUCKETS)
    for attempt in attempts:
        if attempt.completed_at is None:
            continue
        score = _score(attempt)
        for i, (_, upper) in enumerate(SCORE_BUCKETS):
            if score <= upper or i == len(SCORE_BUCKETS) - 1:
                counts[i] += 1
                break
    return [ScoreBucket(range=label, count=count) for (label, _), count in zip(SCORE_BUCKETS, counts)]


def completion_time(
    attempts: Sequence[Attempt], tests: Optional[Mapping[str, Test]] = None
) -> List[CompletionTime]:
    """Average, fastest and slowest completion in minutes per test, one decimal."""
    def one_decimal(value: float) -> float:
        return round_half_up(value * 10) / 10

    durations: "OrderedDict[str, List[float]]" = OrderedDict()
    for attempt in attempts:
        if attempt.started_at is None or attempt.completed_at is None:
            continue
        minutes = (attempt.completed_at - attempt.started_at).total_seconds() / 60
        durations.setdefault(attempt.test_id, []).append(minutes)

    return [
        CompletionTime(
            test_id=test_id,
            title=_title(tests, test_id, default="Test"),
            avg_minutes=one_decimal(mean(times)),
            min_minutes=one_decimal(min(times)),
            max_minutes=one_decimal(max(times)),
        )
        for test_id, times in durations.items()
    ]


def ranking(
    attempts: Sequence[Attempt], profiles: Optional[Mapping[str, Profile]] = None
) -> List[RankingEntry]:
    """Students by rounded average score, ties broken by total earned points."""
    per_student: "OrderedDict[str, List[Attempt]]" = OrderedDict()
    for attempt in attempts:
        if attempt.completed_at is None:
            continue
        per_student.setdefault(attempt.student_id, []).append(attempt)

    entries = []
    for student_id, group in per_student.items():
        profile = profiles.get(student_id) if profiles else None
        entries.append(
            RankingEntry(
                student_id=student_id,
                full_name=profile.display_name if profile else "Unknown",
                avg_score=round_half_up(mean(_score(a) for a in group)),
                tests_taken=len(group),
                total_points=sum(a.earned_points or 0 for a in group),
            )
        )
    return sorted(entries, key=lambda e: (-e.avg_score, -e.total_points))


def teacher_overview(
    my_tests: Sequence[Test],
    attempts: Sequence[Attempt],
    feedback: Sequence[Feedback] = (),
    pass_mark: float = DEFAULT_PASS_MARK,
) -> TeacherOverview:
    """
    Headline numbers for a teacher's dashboard.

    `attempts` are the completed attempts on `my_tests`; the per-test breakdown
    lists the most recently completed test first. `feedback` is everything left
    on those attempts.
    """
    tests_by_id = {t.id: t for t in my_tests}
    published = sum(1 for t in my_tests if t.is_published)
    newest_first = list(reversed(_completed(attempts)))
    scores = [_score(a) for a in newest_first]

    per_test = [
        PerTestBreakdown(
            test_id=test_id,
            title=_title(tests_by_id, test_id, default="Test"),
            attempts=len(group),
            avg=round_half_up(mean(_score(a) for a in group)),
        )
        for test_id, group in _group_by_test(newest_first).items()
    ]

    return TeacherOverview(
        tests_created=len(my_tests),
        published=published,
        drafts=len(my_tests) - published,
        students=len({a.student_id for a in newest_first}),
        total_attempts=len(scores),
        avg_score=round_half_up(mean(scores)),
        pass_rate=_percent(sum(1 for s in scores if s >= pass_mark), len(scores)),
        feedback_count=len(feedback),
        per_test=per_test,
    )


class AnalyticsAggregator:
    """
    分析聚合器 (AnalyticsAggregator)
    Builds the student dashboard, teacher dashboard and leaderboard metric sets.
    """

    def __init__(self, config_manager: ConfigManager, monitoring_manager: MonitoringManager):
        self.config_manager = config_manager
        self.monitoring_manager = monitoring_manager
        self.pass_mark = self.config_manager.get_config("analytics.pass_mark", DEFAULT_PASS_MARK)
        self.strength_threshold = self.config_manager.get_config(
            "analytics.strength_threshold", DEFAULT_STRENGTH_THRESHOLD
        )

    def compute_student_analytics(
        self,
        my_attempts: Sequence[Attempt],
        my_responses: Sequence[Response],
        class_attempts: Sequence[Attempt],
        tests: Optional[Mapping[str, Test]] = None,
        feedback: Sequence[Feedback] = (),
    ) -> StudentAnalytics:
        """
        Student dashboard metrics. Incomplete history degrades to empty lists and
        an unavailable prediction rather than an error. Only feedback left on the
        student's completed attempts is counted.
        """
        completed = _completed(my_attempts)
        test_of_attempt = {a.id: a.test_id for a in completed}
        my_feedback = [f for f in feedback if f.attempt_id in test_of_attempt]

        # Responses are one per question, so the attempt's test is the question's test.
        test_of_question: Dict[str, str] = {}
        questions_per_test: Dict[str, set] = {}
        for response in my_responses:
            test_id = test_of_attempt.get(response.attempt_id)
            if test_id is None:
                continue
            test_of_question[response.question_id] = test_id
            questions_per_test.setdefault(test_id, set()).add(response.question_id)
        question_count_by_test = {t: len(q) for t, q in questions_per_test.items()}

        points = trend(completed)
        topics = topic_accuracy(
            [r for r in my_responses if r.attempt_id in test_of_attempt], test_of_question, tests
        )
        strengths, weaknesses = strength_weakness(topics, threshold=self.strength_threshold)

        latest_by_test = {a.test_id: a for a in completed}
        comparisons = [
            comparison
            for comparison in (
                class_comparison(test_id, class_attempts, my_attempt, tests)
                for test_id, my_attempt in latest_by_test.items()
            )
            if comparison is not None
        ]

        analytics = StudentAnalytics(
            trend=points,
            topic_accuracy=topics,
            strengths=strengths,
            weaknesses=weaknesses,
            time_per_question=time_per_question(completed, question_count_by_test),
            class_comparison=comparisons,
            prediction=predict(points),
            summary=summary_stats(completed),
            first_vs_latest=first_vs_latest(completed, tests),
            feedback_count=len(my_feedback),
            recent_feedback=recent_feedback(my_feedback),
        )
        self.monitoring_manager.log_info(
            "Student analytics computed.",
            {"attempts": len(completed), "prediction_available": analytics.prediction.available},
        )
        self.monitoring_manager.record_metric("analytics.student_requests", 1, metric_type="counter")
        return analytics

    def compute_teacher_analytics(
        self,
        my_tests: Sequence[Test],
        their_attempts: Sequence[Attempt],
        their_responses: Sequence[Response],
        questions: Optional[Sequence[Question]] = None,
        profiles: Optional[Mapping[str, Profile]] = None,
        feedback: Sequence[Feedback] = (),
    ) -> TeacherAnalytics:
        """Teacher dashboard metrics over completed attempts on the teacher's own tests."""
        tests_by_id = {t.id: t for t in my_tests}
        attempts = [a for a in _completed(their_attempts) if a.test_id in tests_by_id]
        attempt_ids = {a.id for a in attempts}
        responses = [r for r in their_responses if r.attempt_id in attempt_ids]
        feedback_on_mine = [f for f in feedback if f.attempt_id in attempt_ids]
        questions_by_id = {q.id: q for q in questions or [] if q.test_id in tests_by_id}

        analytics = TeacherAnalytics(
            difficulty_index=difficulty_index(responses, questions_by_id),
            failure_rate=failure_rate(attempts, tests_by_id, pass_mark=self.pass_mark),
            score_distribution=score_distribution(attempts),
            completion_time=completion_time(attempts, tests_by_id),
            pass_fail=pass_fail(attempts, pass_mark=self.pass_mark),
            ranking=ranking(attempts, profiles),
            overview=teacher_overview(my_tests, attempts, feedback_on_mine, pass_mark=self.pass_mark),
        )
        self.monitoring_manager.log_info(
            "Teacher analytics computed.",
            {"tests": len(tests_by_id), "attempts": len(attempts), "responses": len(responses)},
        )
        self.monitoring_manager.record_metric("analytics.teacher_requests", 1, metric_type="counter")
        return analytics

    def compute_leaderboard(
        self,
        all_completed_attempts: Sequence[Attempt],
        profiles: Optional[Mapping[str, Profile]] = None,
    ) -> List[RankingEntry]:
        entries = ranking(all_completed_attempts, profiles)
        self.monitoring_manager.log_info("Leaderboard computed.", {"students": len(entries)})
        return entries
