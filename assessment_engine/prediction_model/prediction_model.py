# -*- coding: utf-8 -*-
"""成绩预测模型 (PredictionModel)。

基于成绩趋势的端点斜率预测下一次成绩。斜率取最近窗口首尾两点之差除以间隔数
（不是最小二乘回归），稳定度为 100 减去全部成绩的平均绝对偏差，
成绩波动很大时稳定度可能落在 [0, 100] 之外。两个公式均按原样保留以保证输出兼容。
"""
from typing import Sequence

from assessment_engine.common.numeric_utils import clamp, mean, round_half_up
from assessment_engine.records.metrics import Prediction, TrendPoint

MIN_POINTS = 3
WINDOW_SIZE = 5
HORIZON = 2  # attempts ahead
TREND_THRESHOLD = 1.0  # points per attempt


def mean_absolute_deviation(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    center = mean(values)
    return mean(abs(v - center) for v in values)


def predict(trend: Sequence[TrendPoint]) -> Prediction:
    """
    Forecasts the next score from a score trend.

    Fewer than three points yields Prediction(available=False); this never raises.
    """
    if len(trend) < MIN_POINTS:
        return Prediction(
            available=False,
            reason=f"At least {MIN_POINTS} completed attempts are needed, found {len(trend)}.",
        )

    scores = [point.score for point in trend]
    window = scores[-min(WINDOW_SIZE, len(scores)):]
    slope = (window[-1] - window[0]) / (len(window) - 1)
    predicted = clamp(window[-1] + slope * HORIZON, 0, 100)

    if slope > TREND_THRESHOLD:
        trend_label = "improving"
    elif slope < -TREND_THRESHOLD:
        trend_label = "declining"
    else:
        trend_label = "stable"

    consistency = round_half_up(100 - mean_absolute_deviation(scores))

    return Prediction(
        available=True,
        predicted=predicted,
        slope=slope,
        trend_label=trend_label,
        consistency=consistency,
        window_size=len(window),
    )
