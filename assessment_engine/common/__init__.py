# -*- coding: utf-8 -*-
"""公共工具模块。

包含评测引擎共享的异常类型与数值工具（四舍五入、均值、截断）。
"""
from .exceptions import (
    AssessmentError,
    InvalidStateError,
    RecordNotFoundError,
    ValidationError,
)
from .numeric_utils import clamp, mean, round_half_up

__all__ = [
    "AssessmentError",
    "InvalidStateError",
    "RecordNotFoundError",
    "ValidationError",
    "clamp",
    "mean",
    "round_half_up",
]
