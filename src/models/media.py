"""
媒体文件数据模型
定义待编码的媒体文件和解码后的媒体数据
"""

from typing import Optional
from pydantic import BaseModel


class MediaFile(BaseModel):
    """
    内存中的媒体文件
    与 FastAPI 的 UploadFile 一样提供 filename、content_type 和异步 read()
    """

    filename: str
    content_type: Optional[str] = None
    data: bytes

    async def read(self) -> bytes:
        return self.data


class DecodedMedia(BaseModel):
    """从 data URI 解码出的媒体数据"""

    mime_type: str
    data: bytes
