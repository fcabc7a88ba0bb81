# -*- coding: utf-8 -*-
"""评测引擎的异常类型。

评分与状态错误对提交操作是致命的，原样向调用方传播；
分析数据不足不抛异常，而是返回显式的占位值。
"""
from typing import Optional


class AssessmentError(Exception):
    """Base class for all errors raised by the assessment engine."""


class ValidationError(AssessmentError):
    """Input rejected before any write (unanswered questions, blank authoring fields)."""

    def __init__(self, message: str, missing_count: int = 0):
        super().__init__(message)
        self.missing_count = missing_count


class InvalidStateError(AssessmentError):
    """The attempt is not in a state that allows the requested transition."""

    def __init__(self, message: str, attempt_id: Optional[str] = None):
        super().__init__(message)
        self.attempt_id = attempt_id


class RecordNotFoundError(AssessmentError):
    """A referenced test, attempt or profile does not exist in the record store."""

    def __init__(self, record_type: str, record_id: str):
        super().__init__(f"{record_type} {record_id} not found.")
        self.record_type = record_type
        self.record_id = record_id
