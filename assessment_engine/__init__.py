# -*- coding: utf-8 -*-
"""评测评分与学情分析引擎 (Assessment Scoring & Analytics Engine)。

核心由三部分组成：判分 (ScoringEngine)、作答生命周期 (AttemptLifecycle)
与分析聚合 (AnalyticsAggregator，含成绩预测)。AssessmentApp 负责装配各模块，
APIGateway 提供 HTTP 接口。
"""
__version__ = "0.1.0"
