"""测试共用的fixture"""

import pytest
from fastapi.testclient import TestClient

from main import app
from src.services.diary_service import DiaryService, get_diary_service
from src.services.media_process_service import MediaProcessService
from src.utils.database import KeyValueStorage, MemoryStorage
from src.utils.errors import StorageError

JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00"


class FailingStorage(KeyValueStorage):
    """读写都会失败的存储，用于验证异常向上传递"""

    async def get(self, key):
        raise StorageError("disk unavailable")

    async def set(self, key, value):
        raise StorageError("disk unavailable")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def service(storage):
    return DiaryService(storage, collection_key="diary_entries", media_service=MediaProcessService())


@pytest.fixture
def jpeg_bytes():
    """10KB 的JPEG数据"""
    body = bytes(range(256)) * 40
    return (JPEG_HEADER + body)[:10 * 1024]


@pytest.fixture
def client(service):
    app.dependency_overrides[get_diary_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def failing_client():
    app.dependency_overrides[get_diary_service] = lambda: DiaryService(FailingStorage())
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
