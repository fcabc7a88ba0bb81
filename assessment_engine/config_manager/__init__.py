# -*- coding: utf-8 -*-
"""配置管理器模块 (ConfigManager)。

负责加载、管理和提供评测引擎的配置信息，
包括数据库路径、网关地址、分析阈值和监控设置等。
"""
from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
