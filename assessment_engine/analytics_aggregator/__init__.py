# -*- coding: utf-8 -*-
"""分析聚合器模块 (AnalyticsAggregator)。

负责把历史作答与答题结果转换为仪表盘指标：成绩趋势、主题正确率、
强弱项、答题用时、班级对比、题目难度、不及格率与排名。
"""
from .analytics_aggregator import AnalyticsAggregator

__all__ = ["AnalyticsAggregator"]
