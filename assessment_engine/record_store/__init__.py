# -*- coding: utf-8 -*-
"""评测记录存储模块 (RecordStore)。

基于 SQLite 保存试卷、题目、作答、答题结果、反馈与用户档案，
并提供“仅当作答未完成时”才写入成绩的条件写。
"""
from .record_store import RecordStore

__all__ = ["RecordStore"]
