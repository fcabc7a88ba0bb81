# -*- coding: utf-8 -*-
"""评测记录类型模块 (Records)。"""
from .records import (
    TRUE_FALSE_OPTIONS,
    Attempt,
    Feedback,
    GradingResult,
    Profile,
    Question,
    Response,
    Test,
    validate_test_definition,
)

__all__ = [
    "TRUE_FALSE_OPTIONS",
    "Attempt",
    "Feedback",
    "GradingResult",
    "Profile",
    "Question",
    "Response",
    "Test",
    "validate_test_definition",
]
