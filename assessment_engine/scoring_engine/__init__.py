# -*- coding: utf-8 -*-
"""评分引擎模块 (ScoringEngine)。

负责按答案键对一次作答进行确定性的判分与成绩计算。
"""
from .scoring_engine import ScoringEngine, grade

__all__ = ["ScoringEngine", "grade"]
