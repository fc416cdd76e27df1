"""
媒体处理服务
把图片、录音等二进制文件转换为 data URI 字符串，可以直接存入日记并作为 img/audio 的 src
格式: data:<mime-type>;base64,<payload>
"""

import base64
import binascii
import mimetypes
from pathlib import Path
from typing import Iterable, List, Optional
import httpx
from src.models.media import DecodedMedia
from src.utils.config import settings
from src.utils.errors import MediaDecodeError, MediaReadError
from src.utils.logger import logger

DEFAULT_MIME_TYPE = "application/octet-stream"
BASE64_MARKER = ";base64,"


def build_data_uri(mime_type: str, data: bytes) -> str:
    """
    拼接 data URI

    Args:
        mime_type: MIME类型，为空时使用 application/octet-stream
        data: 文件内容

    Returns:
        data URI 字符串
    """
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME_TYPE}{BASE64_MARKER}{payload}"


def is_data_uri(value: str) -> bool:
    """判断字符串是否为内联编码的媒体"""
    return value.startswith("data:") and BASE64_MARKER in value


class MediaProcessService:
    """媒体处理服务"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = None):
        """
        初始化媒体处理服务

        Args:
            transport: httpx传输层，测试时可替换为 MockTransport
            timeout: 远程图片下载超时（秒），默认使用配置
        """
        self.transport = transport
        self.timeout = timeout or settings.remote_fetch_timeout

    async def encode(self, file) -> str:
        """
        读取文件全部内容并编码为 data URI

        Args:
            file: 带有 filename、content_type 属性和异步 read() 方法的文件对象
                  （MediaFile 或 FastAPI UploadFile）

        Returns:
            data URI 字符串

        Raises:
            MediaReadError: 文件无法读取
        """
        file_name = getattr(file, "filename", None) or "unnamed"
        mime_type = getattr(file, "content_type", None) or DEFAULT_MIME_TYPE

        try:
            data = await file.read()
        except (OSError, ValueError) as e:
            logger.error(f"读取媒体文件失败: {file_name}, {e}")
            raise MediaReadError(f"无法读取文件 {file_name}: {e}") from e

        logger.info(f"媒体文件编码完成: {file_name}, {mime_type}, {len(data)} bytes")
        return build_data_uri(mime_type, data)

    async def encode_many(self, files: Iterable) -> List[str]:
        """
        按顺序逐个编码文件，结果顺序与输入一致
        任意文件失败时整批失败，不会跳过失败的位置

        Args:
            files: 文件对象列表

        Returns:
            data URI 列表
        """
        encoded = []
        for file in files:
            encoded.append(await self.encode(file))
        return encoded

    async def encode_path(self, path) -> str:
        """
        编码本地文件，MIME类型根据文件名推断

        Args:
            path: 文件路径

        Returns:
            data URI 字符串
        """
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)

        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error(f"读取本地文件失败: {path}, {e}")
            raise MediaReadError(f"无法读取文件 {path}: {e}") from e

        logger.info(f"本地文件编码完成: {path.name}, {len(data)} bytes")
        return build_data_uri(mime_type, data)

    async def encode_remote(self, url: str) -> str:
        """
        下载外部图片并编码为 data URI，使分享链接不依赖外部地址

        Args:
            url: 图片地址

        Returns:
            data URI 字符串
        """
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.error(f"下载图片异常: {url}, {e}")
            raise MediaReadError(f"无法下载 {url}: {e}") from e

        logger.info(f"下载图片API响应: {response.status_code}")

        if response.status_code != 200:
            logger.error(f"图片下载失败: {response.status_code}, 响应: {response.text[:200]}")
            raise MediaReadError(f"无法下载 {url}: HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "")
        mime_type = content_type.split(";")[0].strip() or mimetypes.guess_type(url)[0]

        logger.info(f"图片下载成功: {len(response.content)} bytes")
        return build_data_uri(mime_type, response.content)

    async def inline_images(self, image_urls: List[str]) -> List[str]:
        """
        把列表中的外部图片地址替换为 data URI，已内联的图片保持不变，顺序不变

        Args:
            image_urls: 图片列表

        Returns:
            全部内联后的图片列表
        """
        inlined = []
        for url in image_urls:
            if is_data_uri(url):
                inlined.append(url)
            else:
                inlined.append(await self.encode_remote(url))
        return inlined

    def decode(self, data_uri: str) -> DecodedMedia:
        """
        解码 data URI

        Args:
            data_uri: data URI 字符串

        Returns:
            MIME类型和原始字节

        Raises:
            MediaDecodeError: 格式错误
        """
        if not data_uri.startswith("data:"):
            raise MediaDecodeError("缺少 data: 前缀")

        header, separator, payload = data_uri.partition(",")
        if not separator or not header.endswith(";base64"):
            raise MediaDecodeError("不是 base64 编码的 data URI")

        mime_type = header[len("data:"):-len(";base64")]
        if not mime_type:
            raise MediaDecodeError("缺少 MIME 类型")

        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise MediaDecodeError(f"base64 数据损坏: {e}") from e

        return DecodedMedia(mime_type=mime_type, data=data)


# 创建全局媒体处理服务实例
media_process_service = MediaProcessService()
