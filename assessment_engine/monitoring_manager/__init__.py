# -*- coding: utf-8 -*-
"""监控管理器模块 (MonitoringManager)。

负责评测引擎的结构化日志、性能指标、分布式追踪与审计事件。
"""
from .monitoring_manager import MonitoringManager, StructuredJsonFormatter

__all__ = ["MonitoringManager", "StructuredJsonFormatter"]
