"""
图片生成 Provider 基础类型

定义提供商、风格、宽高比枚举，以及每次调用新建的请求对象
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ApiProvider(str, Enum):
    """设置对话框中的密钥提供商"""
    GEMINI = "gemini"
    VOLCENGINE = "volcengine"


class ImageStyle(str, Enum):
    ILLUSTRATION = "illustration"
    CLAY = "clay"
    DOODLE = "doodle"
    CARTOON = "cartoon"
    INK_WASH = "ink_wash"
    AMERICAN_COMIC = "american_comic"
    WATERCOLOR = "watercolor"
    PHOTOREALISTIC = "photorealistic"
    JAPANESE_MANGA = "japanese_manga"
    THREE_D_ANIMATION = "3d_animation"


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    WIDESCREEN = "16:9"
    PORTRAIT = "9:16"
    LANDSCAPE = "4:3"
    TALL = "3:4"


@dataclass
class ImageGenerationRequest:
    """图片生成请求"""
    prompt: str
    size: Optional[str] = None
    image: Optional[Union[str, List[str]]] = None  # 单张参考图或参考图列表
    mask: Optional[str] = None  # 局部重绘蒙版
    max_images: Optional[int] = None  # 组图数量上限，设置后启用组图
    watermark: bool = True

    def to_payload(self, model: str) -> Dict[str, Any]:
        """构建请求体，始终要求 base64 格式返回"""
        payload: Dict[str, Any] = {
            "model": model,
            "prompt": self.prompt,
        }
        if self.size:
            payload["size"] = self.size
        if self.image is not None:
            payload["image"] = self.image
        if self.mask is not None:
            payload["mask"] = self.mask
        if self.max_images is not None:
            payload["sequential_image_generation"] = "auto"
            payload["sequential_image_generation_options"] = {"max_images": self.max_images}
        payload["stream"] = False
        payload["response_format"] = "b64_json"
        payload["watermark"] = self.watermark
        return payload


@dataclass
class ComicStripResult:
    """连环画结果，图片与面板提示词顺序一致"""
    image_urls: List[str] = field(default_factory=list)
    panel_prompts: List[str] = field(default_factory=list)


class BaseImageProvider(ABC):
    """图片生成 Provider 基类"""

    @abstractmethod
    async def generate_image(
        self,
        request: ImageGenerationRequest,
        api_key: Optional[str],
        empty_message: str,
        timeout: Optional[float] = None,
    ) -> List[str]:
        """
        发起一次生成请求

        Args:
            request: 图片生成请求
            api_key: 调用方提供的密钥
            empty_message: 未返回任何图片时的错误信息
            timeout: 请求截止时间（秒），None 表示使用默认超时

        Returns:
            List[str]: 图片引用列表（data URI 或 URL）
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """获取 Provider 名称"""
        pass
