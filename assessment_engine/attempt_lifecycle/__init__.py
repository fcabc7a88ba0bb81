# -*- coding: utf-8 -*-
"""作答生命周期模块 (AttemptLifecycle)。

负责创建作答、保证每次作答至多评分一次，以及为已评分作答追加反馈。
"""
from .attempt_lifecycle import AttemptLifecycle, AttemptState, state_of

__all__ = ["AttemptLifecycle", "AttemptState", "state_of"]
