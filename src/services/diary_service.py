"""
日记服务
管理日记的保存、查询、替换、删除等操作

全部日记作为一个列表保存在同一个存储键下，每次修改都读取整个集合、在内存中修改后整体写回。
没有加锁，多个调用方并发修改时后写入的一方会覆盖先写入的一方，需要强一致的调用方自行串行化写入。
"""

from functools import lru_cache
from typing import Iterable, List, Optional
from pydantic import ValidationError
from src.models.diary import DiaryEntry
from src.services.media_process_service import MediaProcessService, media_process_service
from src.utils.config import settings
from src.utils.database import KeyValueStorage, SqliteStorage
from src.utils.errors import StorageError
from src.utils.logger import logger


class DiaryService:
    """日记服务"""

    def __init__(self, storage: KeyValueStorage, collection_key: str = None,
                 media_service: MediaProcessService = None):
        """
        初始化日记服务

        Args:
            storage: 键值存储
            collection_key: 日记集合的存储键，默认使用配置
            media_service: 媒体处理服务，默认使用全局实例
        """
        self.storage = storage
        self.collection_key = collection_key or settings.collection_key
        self.media_service = media_service or media_process_service

    async def _read_records(self) -> List[dict]:
        records = await self.storage.get(self.collection_key)
        return records or []

    async def _write_records(self, records: List[dict]) -> None:
        await self.storage.set(self.collection_key, records)

    async def create(self, entry: DiaryEntry) -> None:
        """
        保存新日记，追加到集合末尾
        不检查ID是否重复

        Args:
            entry: 完整的日记条目（媒体字段已编码）
        """
        records = await self._read_records()
        records.append(entry.to_record())
        await self._write_records(records)
        logger.info(f"日记保存成功: {entry.id}")

    async def list_entries(self) -> List[DiaryEntry]:
        """
        获取全部日记，按写入顺序排列

        Returns:
            日记列表，没有数据时返回空列表
        """
        records = await self._read_records()
        try:
            return [DiaryEntry.model_validate(record) for record in records]
        except ValidationError as e:
            logger.error(f"日记数据格式错误: {e}")
            raise StorageError(f"日记数据格式错误: {e}") from e

    async def get_by_id(self, entry_id: str) -> Optional[DiaryEntry]:
        """
        根据ID获取日记

        Args:
            entry_id: 日记ID

        Returns:
            第一条ID匹配的日记，不存在时返回None
        """
        for entry in await self.list_entries():
            if entry.id == entry_id:
                return entry
        return None

    async def update(self, entry: DiaryEntry) -> None:
        """
        用完整记录替换ID相同的日记，不合并旧字段
        没有匹配的日记时原样写回集合，不报错

        Args:
            entry: 替换后的完整日记
        """
        records = await self._read_records()
        replaced = 0
        updated_records = []
        for record in records:
            if record.get("id") == entry.id:
                updated_records.append(entry.to_record())
                replaced += 1
            else:
                updated_records.append(record)

        await self._write_records(updated_records)

        if replaced:
            logger.info(f"日记更新成功: {entry.id}")
        else:
            logger.warning(f"日记不存在，未更新: {entry.id}")

    async def delete_by_id(self, entry_id: str) -> None:
        """
        删除ID匹配的日记，不存在时不报错

        Args:
            entry_id: 日记ID
        """
        records = await self._read_records()
        remaining = [record for record in records if record.get("id") != entry_id]
        await self._write_records(remaining)

        if len(remaining) < len(records):
            logger.info(f"日记删除成功: {entry_id}")
        else:
            logger.warning(f"日记不存在，未删除: {entry_id}")

    async def save_with_media(self, entry: DiaryEntry, images: Iterable = ()) -> DiaryEntry:
        """
        编码图片后保存日记
        图片按顺序追加到 imageUrls 末尾，任意图片读取失败时不写入任何数据

        Args:
            entry: 日记条目
            images: 待编码的图片文件

        Returns:
            实际保存的日记
        """
        encoded_images = await self.media_service.encode_many(images)
        saved = entry.model_copy(update={"image_urls": [*entry.image_urls, *encoded_images]})
        await self.create(saved)
        return saved

    async def replace_with_media(self, entry: DiaryEntry, images: Iterable = ()) -> DiaryEntry:
        """
        编码新图片后替换日记
        entry.imageUrls 是保留下来的旧图片，新图片按顺序追加在后面；任意图片读取失败时不修改存储

        Args:
            entry: 替换后的日记
            images: 新上传的图片文件

        Returns:
            实际写入的日记
        """
        encoded_images = await self.media_service.encode_many(images)
        replacement = entry.model_copy(update={"image_urls": [*entry.image_urls, *encoded_images]})
        await self.update(replacement)
        return replacement


@lru_cache()
def get_diary_service() -> DiaryService:
    """
    获取日记服务实例（单例模式）
    首次调用时才打开数据库
    """
    return DiaryService(SqliteStorage(settings.database_url))
