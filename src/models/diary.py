"""
日记数据模型
定义日记条目、分享视图以及接口请求的数据结构
存储和传输时字段名使用 imageUrls / audioUrl
"""

from datetime import datetime, timezone
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from uuid import uuid4


def now_iso() -> str:
    """当前UTC时间的ISO 8601字符串，精确到毫秒，例如 2024-05-01T08:30:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DiaryEntry(BaseModel):
    """日记条目模型"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    content: str
    date: str = Field(default_factory=now_iso)
    image_urls: List[str] = Field(default_factory=list, alias="imageUrls")
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")

    class Config:
        populate_by_name = True

    def to_record(self) -> dict:
        """转换为存储使用的字典"""
        return self.model_dump(by_alias=True)

    def to_share_view(self) -> "ShareView":
        """提取可分享的字段"""
        return ShareView(
            title=self.title,
            content=self.content,
            date=self.date,
            image_urls=list(self.image_urls),
            audio_url=self.audio_url,
        )


class ShareView(BaseModel):
    """分享视图模型，不包含日记ID"""

    title: str
    content: str
    date: str
    image_urls: List[str] = Field(alias="imageUrls")
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")

    class Config:
        populate_by_name = True
        extra = "forbid"


class SharePayload(BaseModel):
    """
    分享令牌中的JSON结构
    只接受 imageUrls / audioUrl 这样的字段名，audioUrl 必须出现（可以为null），不允许多余字段
    """

    title: str
    content: str
    date: str
    image_urls: List[str] = Field(alias="imageUrls")
    audio_url: Optional[str] = Field(alias="audioUrl")

    class Config:
        extra = "forbid"

    def to_share_view(self) -> ShareView:
        return ShareView(
            title=self.title,
            content=self.content,
            date=self.date,
            image_urls=self.image_urls,
            audio_url=self.audio_url,
        )


class EntryDraft(BaseModel):
    """创建或替换日记的请求模型"""

    title: str
    content: str
    image_urls: List[str] = Field(default_factory=list, alias="imageUrls")
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")

    class Config:
        populate_by_name = True

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("请输入日记标题")
        return value

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("请输入日记内容")
        return value

    def to_entry(self, entry_id: Optional[str] = None) -> DiaryEntry:
        """
        生成完整的日记条目，日期设置为当前时间

        Args:
            entry_id: 指定ID（替换已有日记时使用），为空时生成新ID

        Returns:
            日记条目
        """
        fields = {
            "title": self.title,
            "content": self.content,
            "image_urls": list(self.image_urls),
            "audio_url": self.audio_url,
        }
        if entry_id is not None:
            fields["id"] = entry_id
        return DiaryEntry(**fields)


class ShareLinks(BaseModel):
    """分享链接响应模型"""

    by_data: str = Field(alias="byData")
    by_id: str = Field(alias="byId")

    class Config:
        populate_by_name = True
