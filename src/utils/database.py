"""
键值存储模块
日记集合保存在单个键下，写入时整体替换
提供内存实现（测试用）和SQLite实现（生产用）
"""

import copy
import json
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional
from .config import settings
from .errors import StorageError
from .logger import logger


class KeyValueStorage(ABC):
    """键值存储基类，只支持按键整体读取和整体写入"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        读取键对应的值

        Args:
            key: 存储键

        Returns:
            存储的值，键不存在时返回None
        """

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """
        整体写入键对应的值

        Args:
            key: 存储键
            value: 可JSON序列化的值
        """


class MemoryStorage(KeyValueStorage):
    """内存键值存储"""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        # 返回副本，调用方修改不影响已存储的数据
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class SqliteStorage(KeyValueStorage):
    """SQLite键值存储"""

    def __init__(self, db_url: str = None):
        """
        初始化数据库连接

        Args:
            db_url: 数据库连接URL，默认使用配置中的URL
        """
        self.db_url = db_url or settings.database_url
        self.db_path = self._parse_db_path()
        self._init_db()

    def _parse_db_path(self) -> str:
        """解析数据库文件路径"""
        if self.db_url.startswith("sqlite:///"):
            return self.db_url.replace("sqlite:///", "")
        return self.db_url

    def _init_db(self):
        """初始化数据库，创建键值表"""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        try:
            with self.connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
                logger.info(f"数据库初始化完成: {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"数据库初始化失败: {e}")
            raise StorageError(f"数据库初始化失败: {e}") from e

    def get_connection(self):
        """获取数据库连接"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self):
        """获取数据库连接，退出时提交或回滚并关闭连接"""
        conn = self.get_connection()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    async def get(self, key: str) -> Optional[Any]:
        try:
            with self.connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"读取存储失败: {key}, {e}")
            raise StorageError(f"读取存储失败: {e}") from e

        if row is None:
            return None

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.error(f"存储数据已损坏: {key}, {e}")
            raise StorageError(f"存储数据已损坏: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        try:
            with self.connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                """, (key, payload))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"写入存储失败: {key}, {e}")
            raise StorageError(f"写入存储失败: {e}") from e
