from utils.logging_config import get_logger

logger = get_logger(__name__)

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", extra="allow")

    APP_NAME: str = "VolcImageStudio"

    # 设置对话框中的两个密钥槽位
    GEMINI_API_KEY: str = ""
    VOLCENGINE_API_KEY: str = ""

    # 火山引擎豆包图片生成
    VOLCENGINE_API_URL: str = "https://ark.cn-beijing.volces.com/api/v3/images/generations"
    VOLCENGINE_MODEL: str = "doubao-seedream-4-0-250828"
    VOLCENGINE_TIMEOUT: Optional[float] = 60.0
    # 图解卡片默认不设置超时
    VOLCENGINE_CARD_TIMEOUT: Optional[float] = None
    VOLCENGINE_MAX_CONCURRENCY: int = 4

    # 本地开发代理，绕过浏览器跨域限制
    DEV_PROXY_ENABLED: bool = True
    DEV_PROXY_PREFIX: str = "/ark"
    DEV_PROXY_TARGET: str = "https://ark.cn-beijing.volces.com"

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


try:
    settings = Settings()
    logger.info(f"配置加载成功 - APP: {settings.APP_NAME}")
    logger.debug(f"火山引擎接口: {settings.VOLCENGINE_API_URL} 模型: {settings.VOLCENGINE_MODEL}")

    # 记录API密钥状态（不记录密钥本身）
    api_status = []
    if settings.GEMINI_API_KEY:
        api_status.append("Gemini")
    if settings.VOLCENGINE_API_KEY:
        api_status.append("VolcEngine")

    if api_status:
        logger.info(f"已配置的API服务: {', '.join(api_status)}")
    else:
        logger.warning("未配置任何API密钥，请在设置对话框中填写")

except Exception as e:
    logger.error(f"配置加载失败: {e}")
    raise
