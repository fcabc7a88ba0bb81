# -*- coding: utf-8 -*-
"""
用户档案管理器 (ProfileManager)。档案由身份系统提供，此处只做存取。
"""
from typing import Dict, Optional, Sequence

from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager
from assessment_engine.records.records import Profile

from .db_utils import DBUtil


class ProfileManager:
    """管理 profiles 表。"""

    def __init__(self, db_util: DBUtil, monitoring_manager: MonitoringManager):
        self.db_util = db_util
        self.monitoring_manager = monitoring_manager

    def save_profile(self, profile: Profile) -> Profile:
        success = self.db_util.execute_query(
            "INSERT OR REPLACE INTO profiles (id, full_name, email, role) VALUES (?, ?, ?, ?)",
            (profile.id, profile.full_name, profile.email, profile.role),
            is_write=True,
        )
        if not success:
            raise RuntimeError(f"Failed to save profile {profile.id}.")
        return profile

    def get_profiles(self, profile_ids: Optional[Sequence[str]] = None) -> Dict[str, Profile]:
        """Profiles keyed by id; all profiles when profile_ids is None."""
        if profile_ids is not None and not profile_ids:
            return {}
        query = "SELECT * FROM profiles"
        params: tuple = ()
        if profile_ids is not None:
            query += f" WHERE id IN ({self.db_util.placeholders(profile_ids)})"
            params = tuple(profile_ids)
        rows = self.db_util.execute_query(query, params) or []
        return {row["id"]: Profile(**row) for row in rows}
