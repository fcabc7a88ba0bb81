# -*- coding: utf-8 -*-
"""成绩预测模块 (PredictionModel)。"""
from .prediction_model import mean_absolute_deviation, predict

__all__ = ["mean_absolute_deviation", "predict"]
