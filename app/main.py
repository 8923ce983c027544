from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from app.config import Settings, settings as default_settings
from app.credentials import CredentialStore
from app.dev_proxy import create_proxy_router
from app.routes import images_router, settings_router
from services.image_providers import VolcEngineConfig, VolcEngineImageClient

# 统一日志配置
from utils.logging_config import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理器"""
    logger.info(f"{app.title} 启动中...")
    yield
    logger.info(f"{app.title} 已关闭")


def create_app(settings: Optional[Settings] = None, configure_logging: bool = True) -> FastAPI:
    settings = settings or default_settings

    if configure_logging:
        setup_logging(
            level=settings.LOG_LEVEL,
            log_file=settings.LOG_FILE,
            console_output=True,
        )

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.credentials = CredentialStore.from_settings(settings)
    app.state.image_client = VolcEngineImageClient(VolcEngineConfig.from_settings(settings))
    app.state.proxy_transport = None

    app.include_router(settings_router)
    app.include_router(images_router)

    if settings.DEV_PROXY_ENABLED:
        app.include_router(create_proxy_router(settings.DEV_PROXY_PREFIX, settings.DEV_PROXY_TARGET))
        logger.info(f"🔧 开发代理已启用: {settings.DEV_PROXY_PREFIX}/* -> {settings.DEV_PROXY_TARGET}")

    @app.get("/health")
    async def health(request: Request):
        configured = request.app.state.credentials.configured()
        return {
            "status": "ok",
            "image_provider": request.app.state.image_client.get_provider_name(),
            "configured": [p.value for p in configured],
        }

    return app


app = create_app()
