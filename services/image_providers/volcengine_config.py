"""
火山引擎豆包图片生成的查找表与部署配置

风格描述、宽高比尺寸和提示词模板都是只读数据，随配置对象传入客户端。
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .base import AspectRatio, ImageStyle

VOLCENGINE_API_ENDPOINT = "https://ark.cn-beijing.volces.com/api/v3/images/generations"
VOLCENGINE_MODEL = "doubao-seedream-4-0-250828"
VOLC_TIMEOUT_SECONDS = 60.0  # 多图/大图场景需要较长超时

DEFAULT_SIZE = "1024x1024"
WIDESCREEN_SIZE = "1280x720"  # 16:9（921,600 px）

# 豆包风格映射
DOUBAO_STYLE_PROMPTS: Mapping[ImageStyle, str] = MappingProxyType({
    ImageStyle.ILLUSTRATION: "现代扁平插画风格，使用简单形状、大胆色彩和清晰线条，避免渐变和复杂纹理，角色和对象应该风格化和极简主义",
    ImageStyle.CLAY: "粘土动画风格，所有对象和角色应该看起来像用粘土雕刻的，有可见的纹理和工具痕迹，使用鲜艳饱和的调色板和柔和的立体照明",
    ImageStyle.DOODLE: "有趣的涂鸦风格，使用粗大的彩色铅笔笔触，异想天开的角色，剪贴簿感觉，整体氛围友好平易近人",
    ImageStyle.CARTOON: "超级可爱的卡通风格，角色有大而有表现力的眼睛，圆滑的身体和简单的特征，使用柔和的粉彩调色板，干净大胆的轮廓",
    ImageStyle.INK_WASH: "中国水墨画风格，使用多变的笔触，从精细的线条到宽阔的色块，强调氛围、留白和气韵，调色板主要是单色，偶尔有微妙的色彩点缀",
    ImageStyle.AMERICAN_COMIC: "美国漫画风格，使用大胆的动态轮廓，戏剧性的阴影技术如交叉影线和墨点，色彩鲜艳但有印刷纹理，重点是英雄姿势和表现力强的面孔",
    ImageStyle.WATERCOLOR: "精致的水彩画风格，使用柔软的混合色块，可见的纸张纹理，边缘柔软有时会相互渗透，整体氛围轻盈、空灵和艺术性",
    ImageStyle.PHOTOREALISTIC: "写实照片风格，强调现实的光照、纹理和细节，使图像看起来像高分辨率照片，使用自然的色彩分级和景深",
    ImageStyle.JAPANESE_MANGA: "经典黑白日本漫画风格，使用清晰干净的线条，网点纸阴影，表情丰富的角色和大眼睛，侧重动态动作线条和面板美学",
    ImageStyle.THREE_D_ANIMATION: "精致的3D动画风格，角色和对象有光滑圆滑的表面，场景有动态照明、阴影和深度感，整体氛围迷人且视觉丰富",
})

# 尺寸映射，豆包4.0支持的标准分辨率
ASPECT_RATIO_SIZES: Mapping[AspectRatio, str] = MappingProxyType({
    AspectRatio.SQUARE: "1024x1024",     # 1,048,576 px
    AspectRatio.WIDESCREEN: "1280x720",  # 921,600 px
    AspectRatio.PORTRAIT: "720x1280",    # 921,600 px
    AspectRatio.LANDSCAPE: "1152x864",   # 995,328 px
    AspectRatio.TALL: "864x1152",        # 995,328 px
})

ILLUSTRATED_CARD_TEMPLATE = (
    "16:9宽屏比例的教育信息图，视觉解释概念：{prompt}。艺术风格：{style}。"
    "图片必须包含清晰简洁的英文文本来标记关键元素并提供简要说明。不包含中文字符。"
)

COMIC_PANEL_TEMPLATE = "{story} - 第{index}个场景，{style}"

MAX_COMIC_PANELS = 4
MAX_REFERENCE_IMAGES = 15
MAX_SEQUENTIAL_IMAGES = 15


@dataclass(frozen=True)
class VolcEngineConfig:
    """客户端使用的只读配置，可按部署或测试替换"""
    endpoint: str = VOLCENGINE_API_ENDPOINT
    model: str = VOLCENGINE_MODEL
    timeout: Optional[float] = VOLC_TIMEOUT_SECONDS
    card_timeout: Optional[float] = None
    max_concurrency: int = MAX_COMIC_PANELS
    style_prompts: Mapping[ImageStyle, str] = field(default_factory=lambda: DOUBAO_STYLE_PROMPTS)
    aspect_ratio_sizes: Mapping[AspectRatio, str] = field(default_factory=lambda: ASPECT_RATIO_SIZES)
    card_template: str = ILLUSTRATED_CARD_TEMPLATE
    panel_template: str = COMIC_PANEL_TEMPLATE

    @classmethod
    def from_settings(cls, settings) -> "VolcEngineConfig":
        return cls(
            endpoint=settings.VOLCENGINE_API_URL,
            model=settings.VOLCENGINE_MODEL,
            timeout=settings.VOLCENGINE_TIMEOUT,
            card_timeout=settings.VOLCENGINE_CARD_TIMEOUT,
            max_concurrency=max(1, settings.VOLCENGINE_MAX_CONCURRENCY),
        )

    def size_for(self, ratio: AspectRatio) -> str:
        try:
            return self.aspect_ratio_sizes.get(AspectRatio(ratio), DEFAULT_SIZE)
        except ValueError:
            return DEFAULT_SIZE

    def style_prompt(self, style: ImageStyle) -> str:
        return self.style_prompts[ImageStyle(style)]
