from typing import List, Optional

from utils.logging_config import get_logger
from services.image_providers import ApiProvider

logger = get_logger(__name__)


class CredentialStore:
    """进程内的密钥存储，设置对话框保存后写入这里"""

    def __init__(self, gemini_key: Optional[str] = None, volcengine_key: Optional[str] = None):
        self.gemini_key = gemini_key or None
        self.volcengine_key = volcengine_key or None

    @classmethod
    def from_settings(cls, settings) -> "CredentialStore":
        return cls(settings.GEMINI_API_KEY, settings.VOLCENGINE_API_KEY)

    def save(self, gemini_key: str, volcengine_key: str):
        # 空字符串视为未配置
        self.gemini_key = gemini_key or None
        self.volcengine_key = volcengine_key or None
        logger.info(f"🔧 密钥已更新，已配置: {', '.join(p.value for p in self.configured()) or '无'}")

    def configured(self) -> List[ApiProvider]:
        providers = []
        if self.gemini_key:
            providers.append(ApiProvider.GEMINI)
        if self.volcengine_key:
            providers.append(ApiProvider.VOLCENGINE)
        return providers
