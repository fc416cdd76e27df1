"""
异常定义模块
日记服务各组件抛出的异常类型
"""


class DiaryError(Exception):
    """日记服务异常基类"""


class StorageError(DiaryError):
    """存储读写失败"""


class MediaError(DiaryError):
    """媒体文件处理异常基类"""


class MediaReadError(MediaError):
    """媒体文件无法读取"""


class MediaDecodeError(MediaError):
    """data URI 格式错误，无法解码"""


class ShareTokenError(DiaryError):
    """分享令牌无效或已损坏"""

    def __init__(self, reason: str):
        super().__init__(f"分享链接无效或已损坏: {reason}")
        self.reason = reason
