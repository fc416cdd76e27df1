"""
日记应用主入口
启动FastAPI应用，提供日记的存储、媒体编码和分享接口
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from src.api.entries import router as entries_router, share_router
from src.utils.config import settings
from src.utils.errors import MediaError, StorageError
from src.utils.logger import logger

# 创建FastAPI应用
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug
)

app.include_router(entries_router)
app.include_router(share_router)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """存储读写失败，调用方保留未保存的内容并提示重试"""
    logger.error(f"存储异常: {request.method} {request.url.path}, {exc}")
    return JSONResponse(status_code=500, content={"detail": "Storage failure, please try again."})


@app.exception_handler(MediaError)
async def media_error_handler(request: Request, exc: MediaError):
    """媒体文件处理失败，整条日记不保存"""
    logger.error(f"媒体处理异常: {request.method} {request.url.path}, {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.on_event("startup")
async def startup_event():
    """应用启动时执行"""
    logger.info(f"{settings.app_name} v{settings.app_version} 启动成功")
    logger.info(f"数据库: {settings.database_url}")


@app.on_event("shutdown")
async def shutdown_event():
    """应用关闭时执行"""
    logger.info(f"{settings.app_name} 已关闭")


@app.get("/")
async def root():
    """根路径，返回应用信息"""
    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """健康检查接口"""
    return {"status": "healthy", "code": 0}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"启动服务器: {settings.host}:{settings.port}")
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
