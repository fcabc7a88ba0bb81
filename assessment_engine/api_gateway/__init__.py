# -*- coding: utf-8 -*-
"""API 网关模块。

作为评测引擎的统一 HTTP 入口，负责请求路由与错误码映射。
"""
from .gateway import APIGateway

__all__ = ["APIGateway"]
