"""
日记接口
提供日记的增删改查、分享链接生成和分享链接解析
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import ValidationError

from src.models.diary import DiaryEntry, EntryDraft, ShareLinks
from src.services.diary_service import DiaryService, get_diary_service
from src.services.share_service import ShareService, share_service
from src.utils.errors import ShareTokenError
from src.utils.logger import logger

router = APIRouter(prefix="/api", tags=["entries"])

# 分享链接指向的页面路径，不带 /api 前缀
share_router = APIRouter(prefix="/share", tags=["share"])


def get_share_service() -> ShareService:
    """获取分享服务实例"""
    return share_service


async def _require_entry(service: DiaryService, entry_id: str) -> DiaryEntry:
    entry = await service.get_by_id(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry


@router.get("/entries")
async def list_entries(service: DiaryService = Depends(get_diary_service)) -> List[Dict[str, Any]]:
    """获取全部日记"""
    entries = await service.list_entries()
    return [entry.to_record() for entry in entries]


@router.post("/entries", status_code=201)
async def create_entry(
    title: str = Form(""),
    content: str = Form(""),
    images: Optional[List[UploadFile]] = File(None),
    audio: Optional[UploadFile] = File(None),
    service: DiaryService = Depends(get_diary_service),
) -> Dict[str, Any]:
    """
    创建日记
    图片按上传顺序编码后写入 imageUrls，录音编码后写入 audioUrl

    Args:
        title: 标题
        content: 内容
        images: 图片文件
        audio: 录音文件
        service: 日记服务

    Returns:
        保存后的日记
    """
    try:
        draft = EntryDraft(title=title, content=content)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])

    audio_url = None
    if audio is not None:
        audio_url = await service.media_service.encode(audio)

    entry = draft.to_entry().model_copy(update={"audio_url": audio_url})
    saved = await service.save_with_media(entry, images or [])
    return saved.to_record()


@router.get("/entries/{entry_id}")
async def get_entry(entry_id: str, service: DiaryService = Depends(get_diary_service)) -> Dict[str, Any]:
    """获取单篇日记"""
    entry = await _require_entry(service, entry_id)
    return entry.to_record()


@router.put("/entries/{entry_id}")
async def replace_entry(
    entry_id: str,
    draft: EntryDraft,
    service: DiaryService = Depends(get_diary_service),
) -> Dict[str, Any]:
    """
    用完整内容替换日记，日期重置为当前时间
    日记不存在时不做任何修改，返回 updated=false

    Args:
        entry_id: 日记ID
        draft: 替换后的完整内容
        service: 日记服务

    Returns:
        是否有日记被替换，以及提交的日记
    """
    existed = await service.get_by_id(entry_id) is not None
    entry = draft.to_entry(entry_id)
    await service.update(entry)
    return {"updated": existed, "entry": entry.to_record()}


@router.post("/entries/{entry_id}/edit")
async def edit_entry(
    entry_id: str,
    title: str = Form(""),
    content: str = Form(""),
    image_urls: Optional[List[str]] = Form(None, alias="imageUrls"),
    audio_url: Optional[str] = Form(None, alias="audioUrl"),
    images: Optional[List[UploadFile]] = File(None),
    audio: Optional[UploadFile] = File(None),
    service: DiaryService = Depends(get_diary_service),
) -> Dict[str, Any]:
    """
    以表单方式编辑日记，可以同时上传新图片和新录音
    整条记录被替换，没有提交的旧字段不会保留

    Args:
        entry_id: 日记ID
        title: 标题
        content: 内容
        image_urls: 保留的旧图片，顺序不变
        audio_url: 保留的旧录音
        images: 新图片，追加在保留的图片之后
        audio: 新录音，提交时替换 audio_url
        service: 日记服务

    Returns:
        是否有日记被替换，以及提交的日记
    """
    try:
        draft = EntryDraft(title=title, content=content, image_urls=image_urls or [], audio_url=audio_url)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])

    existed = await service.get_by_id(entry_id) is not None

    entry = draft.to_entry(entry_id)
    if audio is not None:
        entry = entry.model_copy(update={"audio_url": await service.media_service.encode(audio)})

    replacement = await service.replace_with_media(entry, images or [])
    return {"updated": existed, "entry": replacement.to_record()}


@router.delete("/entries/{entry_id}")
async def delete_entry(entry_id: str, service: DiaryService = Depends(get_diary_service)) -> Dict[str, Any]:
    """删除日记，重复删除不会报错"""
    await service.delete_by_id(entry_id)
    return {"code": 0, "msg": "success"}


@router.get("/entries/{entry_id}/share")
async def share_entry(
    entry_id: str,
    inline: bool = False,
    service: DiaryService = Depends(get_diary_service),
    sharer: ShareService = Depends(get_share_service),
) -> Dict[str, str]:
    """
    生成分享链接

    Args:
        entry_id: 日记ID
        inline: 是否先把外部图片下载并内联，使链接完全自包含
        service: 日记服务
        sharer: 分享服务

    Returns:
        byData（包含完整数据）和 byId（仅在本设备可用）两种链接
    """
    entry = await _require_entry(service, entry_id)
    view = entry.to_share_view()
    if inline:
        view = view.model_copy(update={"image_urls": await service.media_service.inline_images(view.image_urls)})

    links = ShareLinks(by_data=sharer.link_by_data(view), by_id=sharer.link_by_id(entry.id))
    return links.model_dump(by_alias=True)


@router.get("/getEntry")
async def get_shared_entry(
    entry_id: Optional[str] = Query(None, alias="id"),
    service: DiaryService = Depends(get_diary_service),
) -> Dict[str, Any]:
    """按ID读取本地存储中的日记，返回可分享的字段"""
    if not entry_id:
        raise HTTPException(status_code=400, detail="No entry ID provided")

    entry = await service.get_by_id(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")

    return entry.to_share_view().model_dump(by_alias=True)


def _decode_shared_entry(sharer: ShareService, data: Optional[str]) -> Dict[str, Any]:
    if not data:
        raise HTTPException(status_code=400, detail="No entry data found in URL")

    try:
        view = sharer.decode(data)
    except ShareTokenError as e:
        logger.warning(f"分享链接解析失败: {e.reason}")
        raise HTTPException(
            status_code=400,
            detail="Could not load the shared entry. The link may be invalid or corrupted."
        )

    return view.model_dump(by_alias=True)


@router.get("/share/view")
async def view_shared_entry(
    data: Optional[str] = Query(None),
    sharer: ShareService = Depends(get_share_service),
) -> Dict[str, Any]:
    """解析分享链接中的日记数据"""
    return _decode_shared_entry(sharer, data)


@share_router.get("/view")
async def open_data_link(
    data: Optional[str] = Query(None),
    sharer: ShareService = Depends(get_share_service),
) -> Dict[str, Any]:
    """打开包含完整日记数据的分享链接"""
    return _decode_shared_entry(sharer, data)


@share_router.get("/view/{entry_id}")
async def open_id_link(entry_id: str, service: DiaryService = Depends(get_diary_service)) -> Dict[str, Any]:
    """
    打开只包含ID的分享链接
    需要从本地存储读取日记，其他设备上打开会返回404
    """
    entry = await _require_entry(service, entry_id)
    return entry.to_share_view().model_dump(by_alias=True)
