# -*- coding: utf-8 -*-
"""
数据库工具模块 (DBUtils)

提供与 SQLite 数据库交互的底层实用函数，包括连接管理、建表、
查询执行、事务封装以及 JSON 序列化/反序列化。
"""
import json
import os
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from assessment_engine.monitoring_manager.monitoring_manager import MonitoringManager

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        full_name TEXT,
        email TEXT,
        role TEXT NOT NULL DEFAULT 'student' CHECK(role IN ('student', 'teacher'))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tests (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        duration_minutes INTEGER,
        is_published INTEGER NOT NULL DEFAULT 0,
        created_at TEXT -- ISO 8601 format
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS questions (
        id TEXT PRIMARY KEY,
        test_id TEXT NOT NULL,
        text TEXT NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('mcq', 'true_false')),
        options TEXT, -- JSON string list
        correct_answer TEXT NOT NULL,
        points INTEGER NOT NULL CHECK(points > 0),
        sort_order INTEGER NOT NULL DEFAULT 0,
        FOREIGN KEY (test_id) REFERENCES tests(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS test_attempts (
        id TEXT PRIMARY KEY,
        student_id TEXT NOT NULL,
        test_id TEXT NOT NULL,
        started_at TEXT NOT NULL,
        completed_at TEXT, -- NULL while the attempt is open
        score REAL,
        earned_points INTEGER,
        total_points INTEGER
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS student_responses (
        id TEXT PRIMARY KEY,
        attempt_id TEXT NOT NULL,
        question_id TEXT NOT NULL,
        selected_answer TEXT NOT NULL,
        is_correct INTEGER NOT NULL,
        UNIQUE (attempt_id, question_id),
        FOREIGN KEY (attempt_id) REFERENCES test_attempts(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS feedback (
        id TEXT PRIMARY KEY,
        attempt_id TEXT NOT NULL,
        author_id TEXT NOT NULL,
        message TEXT NOT NULL,
        is_preset INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (attempt_id) REFERENCES test_attempts(id) ON DELETE CASCADE
    );
    """,
]


class DBUtil:
    """封装数据库操作的工具类。"""

    def __init__(self, db_path: str, monitoring_manager: MonitoringManager):
        """
        初始化 DBUtil。

        Args:
            db_path (str): 数据库文件的路径，":memory:" 表示内存数据库。
            monitoring_manager (MonitoringManager): 监控管理器实例。
        """
        self.db_path = db_path
        self.monitoring_manager = monitoring_manager
        self._db_connection: Optional[sqlite3.Connection] = None
        # One connection is shared across threads; all access goes through this lock.
        self._lock = threading.RLock()
        self._ensure_db_directory()
        self._connect_db()
        self._initialize_database()

    def _ensure_db_directory(self):
        """确保数据库文件所在的目录存在。"""
        if self.db_path == ":memory:":
            return
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            try:
                os.makedirs(db_dir)
                self.monitoring_manager.log_info(f"Created database directory: {db_dir}")
            except OSError as e:
                self.monitoring_manager.log_error(
                    f"Failed to create database directory {db_dir}: {e}", exc_info=True
                )
                raise OSError(f"Failed to create database directory {db_dir}") from e

    def _connect_db(self):
        """建立数据库连接。失败时抛出 ConnectionError。"""
        if self._db_connection:
            self.close_connection()

        try:
            self._db_connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._db_connection.row_factory = sqlite3.Row
            self._db_connection.execute("PRAGMA foreign_keys = ON")
            self.monitoring_manager.log_info(f"Successfully connected to database: {self.db_path}")
        except sqlite3.Error as e:
            self.monitoring_manager.log_error(
                f"Error connecting to database {self.db_path}: {e}", exc_info=True
            )
            self._db_connection = None
            raise ConnectionError(f"Failed to connect to database: {e}") from e

    def _initialize_database(self):
        """检查并创建所需的数据库表（如果不存在）。失败时抛出 RuntimeError。"""
        with self.transaction() as cursor:
            for table_sql in SCHEMA_STATEMENTS:
                cursor.execute(table_sql)
        self.monitoring_manager.log_info("Database tables checked/created successfully.")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Runs the enclosed statements as one unit: commit on success, rollback on
        any exception. sqlite3 errors are re-raised as RuntimeError, others as is.
        """
        if not self._db_connection:
            raise ConnectionError("Database connection is not available.")
        with self._lock:
            cursor = self._db_connection.cursor()
            try:
                yield cursor
                self._db_connection.commit()
            except sqlite3.Error as e:
                self._db_connection.rollback()
                self.monitoring_manager.log_error(f"Database transaction failed: {e}", exc_info=True)
                raise RuntimeError(f"Database transaction failed: {e}") from e
            except Exception:
                self._db_connection.rollback()
                self.monitoring_manager.log_warning("Database transaction rolled back.")
                raise
            finally:
                cursor.close()

    def execute_query(
        self,
        query: str,
        params: Optional[Tuple[Any, ...]] = None,
        fetch_one: bool = False,
        is_write: bool = False,
    ) -> Union[Optional[Dict[str, Any]], Optional[List[Dict[str, Any]]], bool]:
        """
        执行数据库查询或命令。

        Returns:
            写入操作成功返回 True，失败返回 False。
            读取操作成功返回字典或字典列表，失败返回 None。
        """
        if not self._db_connection:
            self.monitoring_manager.log_error(
                "Cannot execute query: Database connection is not available."
            )
            return False if is_write else None

        with self._lock:
            cursor = self._db_connection.cursor()
            try:
                cursor.execute(query, params or ())
                if is_write:
                    self._db_connection.commit()
                    return True
                if fetch_one:
                    result = cursor.fetchone()
                    return dict(result) if result else None
                return [dict(row) for row in cursor.fetchall()]
            except sqlite3.Error as e:
                self.monitoring_manager.log_error(
                    f"Database error executing query '{query}' with params {params}: {e}",
                    exc_info=True,
                )
                if is_write:
                    self._db_connection.rollback()
                return False if is_write else None
            finally:
                cursor.close()

    def serialize(self, data: Any) -> Optional[str]:
        """将 Python 对象（列表、字典）序列化为 JSON 字符串。"""
        if data is None:
            return None
        return json.dumps(data, ensure_ascii=False)

    def deserialize(self, text: Optional[str]) -> Any:
        """将 JSON 字符串反序列化为 Python 对象。错误时返回 None。"""
        if text is None:
            return None
        try:
            return json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            self.monitoring_manager.log_warning(
                f"Could not deserialize JSON string: {text}, Error: {e}"
            )
            return None

    @staticmethod
    def to_iso(value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value is not None else None

    @staticmethod
    def now() -> datetime:
        """当前 UTC 时间（带时区）。"""
        return datetime.now(timezone.utc)

    @staticmethod
    def placeholders(values) -> str:
        """'?, ?, ?' for an IN (...) clause."""
        return ", ".join("?" for _ in values)

    def close_connection(self):
        """关闭数据库连接。"""
        if self._db_connection:
            try:
                self._db_connection.close()
                self.monitoring_manager.log_info(f"Database connection to {self.db_path} closed.")
            except sqlite3.Error as e:
                self.monitoring_manager.log_error(
                    f"Error closing database connection: {e}", exc_info=True
                )
            finally:
                self._db_connection = None
