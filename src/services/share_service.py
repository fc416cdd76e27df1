"""
分享服务
把日记的可分享字段编码为可放入URL的令牌，接收方无需查询存储即可还原日记

令牌格式: percent-encode(base64(JSON))
JSON 包含 title、content、date、imageUrls、audioUrl 以及 checksum（其余字段的SHA-256），
用于发现被截断或篡改的链接
"""

import base64
import hashlib
import hmac
import json
from typing import Any, Dict
from urllib.parse import quote, unquote
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from src.models.diary import SharePayload, ShareView
from src.utils.config import settings
from src.utils.errors import ShareTokenError
from src.utils.logger import logger

CHECKSUM_FIELD = "checksum"


def _canonical_json(data: Dict[str, Any]) -> str:
    """键排序、无空白的JSON，保证同样的输入得到同样的输出"""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _checksum(fields: Dict[str, Any]) -> str:
    return hashlib.sha256(_canonical_json(fields).encode("utf-8")).hexdigest()


class ShareService:
    """分享服务"""

    def __init__(self, base_url: str = None):
        """
        初始化分享服务

        Args:
            base_url: 分享链接的站点地址，默认使用配置
        """
        self.base_url = (base_url or settings.share_base_url).rstrip("/")

    def encode(self, view: ShareView) -> str:
        """
        把分享视图编码为令牌

        Args:
            view: 分享视图

        Returns:
            可直接作为URL查询参数值的令牌
        """
        try:
            fields = view.model_dump(by_alias=True)
            fields[CHECKSUM_FIELD] = _checksum(fields)
            raw = _canonical_json(fields).encode("utf-8")
        except (UnicodeError, PydanticSerializationError) as e:
            raise ShareTokenError(f"日记内容包含无法编码的字符: {e}") from e
        return quote(base64.b64encode(raw).decode("ascii"), safe="")

    def decode(self, token: str) -> ShareView:
        """
        解码令牌

        Args:
            token: 分享令牌（百分号编码与否均可）

        Returns:
            分享视图

        Raises:
            ShareTokenError: 令牌为空、base64损坏、不是合法JSON、结构不符或校验失败
        """
        if not token:
            raise ShareTokenError("链接中没有日记数据")

        try:
            raw = base64.b64decode(unquote(token), validate=True)
        except ValueError as e:
            raise ShareTokenError(f"base64 数据损坏: {e}") from e

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ShareTokenError(f"数据不是合法的JSON: {e}") from e

        if not isinstance(data, dict):
            raise ShareTokenError("数据结构不正确")

        checksum = data.pop(CHECKSUM_FIELD, None)
        if not isinstance(checksum, str):
            raise ShareTokenError("缺少校验值")

        try:
            view = SharePayload.model_validate(data).to_share_view()
        except ValidationError as e:
            raise ShareTokenError(f"数据结构不正确: {e.error_count()} 处错误") from e

        try:
            expected = _checksum(view.model_dump(by_alias=True))
        except (UnicodeError, PydanticSerializationError) as e:
            raise ShareTokenError(f"数据包含无法编码的字符: {e}") from e

        if not hmac.compare_digest(checksum.encode("utf-8", "surrogatepass"), expected.encode("ascii")):
            raise ShareTokenError("校验失败，链接可能被截断或修改")

        return view

    def link_by_data(self, view: ShareView) -> str:
        """
        生成包含完整日记数据的分享链接，任何设备都能打开

        Args:
            view: 分享视图

        Returns:
            分享链接
        """
        token = self.encode(view)
        logger.info(f"生成数据分享链接，令牌长度: {len(token)}")
        return f"{self.base_url}/share/view?data={token}"

    def link_by_id(self, entry_id: str) -> str:
        """
        生成只包含日记ID的分享链接
        打开时需要读取本地存储，只能在创建日记的设备上使用

        Args:
            entry_id: 日记ID

        Returns:
            分享链接
        """
        return f"{self.base_url}/share/view/{quote(entry_id, safe='')}"


# 创建全局分享服务实例
share_service = ShareService()
