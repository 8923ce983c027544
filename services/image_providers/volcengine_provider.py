"""
火山引擎豆包图片生成 Provider

支持的模式：
1. 文生图
2. 图生图（单张参考图）
3. 多图融合（1-15张参考图）
4. 组图生成（一次请求生成1-15张关联图片）
5. 图解卡片（教育信息图模板）
6. 连环画（每个面板一次请求，并发执行）
7. 局部重绘（原图 + 蒙版）

所有模式共用 generate_image：构建请求体、POST、检查状态码、映射图片条目。
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import httpx

from utils.logging_config import get_logger
from .base import (
    AspectRatio,
    BaseImageProvider,
    ComicStripResult,
    ImageGenerationRequest,
    ImageStyle,
)
from .errors import (
    ApiError,
    EmptyResultError,
    InvalidInputError,
    MalformedResultError,
    MissingApiKeyError,
    RequestTimeoutError,
    TransportError,
    classify_volcengine_error,
)
from .volcengine_config import (
    MAX_COMIC_PANELS,
    MAX_REFERENCE_IMAGES,
    MAX_SEQUENTIAL_IMAGES,
    WIDESCREEN_SIZE,
    VolcEngineConfig,
)

logger = get_logger(__name__)

DATA_URI_PREFIX = "data:image/jpeg;base64,"


def _to_image_ref(item: Any) -> Optional[str]:
    """b64_json 优先于 url，两者都为空时返回 None"""
    if not isinstance(item, dict):
        return None
    if item.get("b64_json"):
        return f"{DATA_URI_PREFIX}{item['b64_json']}"
    if item.get("url"):
        return item["url"]
    return None


def _raise_classified(error: Exception):
    classified = classify_volcengine_error(error)
    if classified is error:
        raise error
    raise classified from error


class VolcEngineImageClient(BaseImageProvider):
    """火山引擎豆包 (doubao-seedream-4-0) 图片生成客户端"""

    def __init__(
        self,
        config: Optional[VolcEngineConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or VolcEngineConfig()
        self._transport = transport

    def get_provider_name(self) -> str:
        return "VolcEngine"

    def _client(self) -> httpx.AsyncClient:
        # 截止时间由 asyncio.wait_for 控制
        return httpx.AsyncClient(transport=self._transport, timeout=None)

    @staticmethod
    def _require_api_key(api_key: Optional[str]):
        if not api_key:
            raise MissingApiKeyError("火山引擎API密钥是必需的。")

    async def _post(
        self,
        client: httpx.AsyncClient,
        request: ImageGenerationRequest,
        api_key: str,
        timeout: Optional[float],
        error_prefix: str = "火山引擎API错误",
    ) -> Dict[str, Any]:
        """发起一次 POST，返回解析后的 JSON"""
        payload = request.to_payload(self.config.model)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

        logger.debug(
            f"[VolcEngine] 请求: size={payload.get('size')}, "
            f"prompt长度={len(request.prompt)}, 参考图={'有' if request.image else '无'}, "
            f"蒙版={'有' if request.mask else '无'}, 密钥长度={len(api_key)}"
        )

        call = client.post(self.config.endpoint, headers=headers, json=payload)
        try:
            if timeout is None:
                response = await call
            else:
                response = await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"[VolcEngine] 请求超时: {timeout:g}秒")
            raise RequestTimeoutError(
                f"火山引擎API请求超时（{timeout:g}秒）。请稍后重试。"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"[VolcEngine] 网络请求失败: {e!r}")
            raise TransportError(
                f"火山引擎API调用失败。请稍后重试或检查您的网络连接。（{e}）"
            ) from e

        if not response.is_success:
            error_text = response.text
            logger.error(
                f"[VolcEngine] API错误详情: status={response.status_code}, "
                f"reason={response.reason_phrase}, body={error_text[:500]}"
            )
            raise ApiError(
                f"{error_prefix}: {response.status_code} - {error_text}",
                status_code=response.status_code,
                detail=error_text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResultError(f"火山引擎返回了无法解析的响应: {response.text[:200]}") from e

        if not isinstance(data, dict):
            raise MalformedResultError("火山引擎返回了无法解析的响应")

        items = data.get("data")
        logger.info(
            f"[VolcEngine] 响应: created={data.get('created')}, "
            f"图片数量={len(items) if isinstance(items, list) else 0}"
        )
        return data

    async def generate_image(
        self,
        request: ImageGenerationRequest,
        api_key: Optional[str],
        empty_message: str = "火山引擎未能生成任何图片。请尝试更换您的提示词。",
        timeout: Optional[float] = None,
    ) -> List[str]:
        return await self._generate(
            request,
            api_key,
            empty_message,
            self.config.timeout if timeout is None else timeout,
        )

    async def _generate(
        self,
        request: ImageGenerationRequest,
        api_key: Optional[str],
        empty_message: str,
        timeout: Optional[float],
    ) -> List[str]:
        self._require_api_key(api_key)

        try:
            async with self._client() as client:
                data = await self._post(client, request, api_key, timeout)

            items = data.get("data")
            if not isinstance(items, list) or not items:
                raise EmptyResultError(empty_message)

            images = []
            for index, item in enumerate(items):
                image_ref = _to_image_ref(item)
                if image_ref is None:
                    raise MalformedResultError(f"图片{index + 1}没有有效的数据")
                images.append(image_ref)

            logger.info(f"[VolcEngine] ✅ 图片生成成功，数量: {len(images)}")
            return images
        except Exception as e:
            _raise_classified(e)

    async def text_to_image(
        self,
        prompt: str,
        negative_prompt: str,
        api_key: Optional[str],
        aspect_ratio: AspectRatio,
        style: ImageStyle,
    ) -> List[str]:
        self._require_api_key(api_key)

        # 限制长度，避免提示词过长导致请求失败
        style_prompt = self.config.style_prompt(style)[:100]
        final_prompt = f"{prompt}，{style_prompt}"[:300]
        if negative_prompt and negative_prompt.strip():
            final_prompt += f"，避免：{negative_prompt.strip()[:50]}"

        request = ImageGenerationRequest(
            prompt=final_prompt,
            size=self.config.size_for(aspect_ratio),
        )
        logger.info(f"[VolcEngine] 文生图: size={request.size}, 风格={ImageStyle(style).value}")
        return await self.generate_image(
            request, api_key, "火山引擎未能生成任何图片。请尝试更换您的提示词。"
        )

    async def image_to_image(
        self,
        prompt: str,
        reference_image: Optional[str],
        api_key: Optional[str],
        size: str = "2K",
        guidance_scale: float = 7.5,
    ) -> List[str]:
        self._require_api_key(api_key)
        if not reference_image:
            raise InvalidInputError("参考图是必需的。")

        # 当前模型的请求体没有 guidance_scale 字段
        logger.info(f"[VolcEngine] 图生图: size={size}, guidance_scale={guidance_scale}（未发送）")
        request = ImageGenerationRequest(prompt=prompt, image=reference_image, size=size)
        return await self.generate_image(
            request, api_key, "火山引擎未能生成任何图片。请尝试更换您的提示词或参考图。"
        )

    async def image_fusion(
        self,
        prompt: str,
        reference_images: Optional[Sequence[str]],
        api_key: Optional[str],
        size: str = "2K",
        guidance_scale: float = 7.5,
    ) -> List[str]:
        self._require_api_key(api_key)
        if not reference_images:
            raise InvalidInputError("参考图列表是必需的。")
        if len(reference_images) > MAX_REFERENCE_IMAGES:
            raise InvalidInputError(f"参考图数量不能超过{MAX_REFERENCE_IMAGES}张。")

        logger.info(
            f"[VolcEngine] 多图融合: 参考图数量={len(reference_images)}, size={size}, "
            f"guidance_scale={guidance_scale}（未发送）"
        )
        request = ImageGenerationRequest(prompt=prompt, image=list(reference_images), size=size)
        return await self.generate_image(
            request, api_key, "火山引擎未能生成任何融合图片。请尝试更换您的提示词或参考图。"
        )

    async def sequential_images(
        self,
        prompt: str,
        api_key: Optional[str],
        max_images: int = 5,
        size: str = "2K",
        guidance_scale: float = 7.5,
    ) -> List[str]:
        self._require_api_key(api_key)
        if max_images < 1 or max_images > MAX_SEQUENTIAL_IMAGES:
            raise InvalidInputError(f"生成图片数量必须在1-{MAX_SEQUENTIAL_IMAGES}之间。")

        logger.info(f"[VolcEngine] 组图生成: max_images={max_images}, size={size}, guidance_scale={guidance_scale}（未发送）")
        request = ImageGenerationRequest(prompt=prompt, size=size, max_images=max_images)
        return await self.generate_image(
            request, api_key, "火山引擎未能生成任何组图。请尝试更换您的提示词。"
        )

    async def illustrated_cards(
        self,
        prompt: str,
        style: ImageStyle,
        api_key: Optional[str],
    ) -> List[str]:
        self._require_api_key(api_key)

        request = ImageGenerationRequest(
            prompt=self.config.card_template.format(prompt=prompt, style=self.config.style_prompt(style)),
            size=WIDESCREEN_SIZE,
        )
        logger.info(f"[VolcEngine] 图解卡片: 风格={ImageStyle(style).value}, 超时={self.config.card_timeout}")
        return await self._generate(
            request,
            api_key,
            "火山引擎未能生成任何图解卡片。请尝试更换您的问题或风格。",
            self.config.card_timeout,
        )

    def build_panel_prompts(self, story: str, style: ImageStyle, number_of_images: int) -> List[str]:
        """生成每个面板的提示词，最多 MAX_COMIC_PANELS 个"""
        style_prompt = self.config.style_prompt(style)
        count = max(0, min(MAX_COMIC_PANELS, number_of_images))
        return [
            self.config.panel_template.format(story=story, index=index, style=style_prompt)
            for index in range(1, count + 1)
        ]

    async def comic_strip(
        self,
        story: str,
        style: ImageStyle,
        api_key: Optional[str],
        number_of_images: int,
    ) -> ComicStripResult:
        self._require_api_key(api_key)

        panel_prompts = self.build_panel_prompts(story, style, number_of_images)
        logger.info(f"[VolcEngine] 连环画: 面板数量={len(panel_prompts)}, 并发上限={self.config.max_concurrency}")

        try:
            if not panel_prompts:
                raise EmptyResultError("火山引擎未能生成任何连环画面板。请检查您的故事或尝试其他风格。")

            semaphore = asyncio.Semaphore(self.config.max_concurrency)

            async with self._client() as client:
                async def render_panel(panel_number: int, panel_prompt: str) -> str:
                    async with semaphore:
                        request = ImageGenerationRequest(prompt=panel_prompt, size=WIDESCREEN_SIZE)
                        data = await self._post(
                            client, request, api_key, self.config.timeout,
                            error_prefix=f"面板{panel_number}生成失败",
                        )

                    items = data.get("data")
                    if not isinstance(items, list) or not items:
                        raise EmptyResultError(f"面板{panel_number}生成失败")
                    image_ref = _to_image_ref(items[0])
                    if image_ref is None:
                        raise MalformedResultError(f"面板{panel_number}没有有效的图片数据")
                    return image_ref

                # 等待全部面板结束，再按面板顺序抛出第一个错误
                results = await asyncio.gather(
                    *(render_panel(number, panel_prompt)
                      for number, panel_prompt in enumerate(panel_prompts, start=1)),
                    return_exceptions=True,
                )

            images = []
            for result in results:
                if isinstance(result, BaseException):
                    raise result
                images.append(result)

            logger.info(f"[VolcEngine] ✅ 连环画生成成功，面板数量: {len(images)}")
            return ComicStripResult(image_urls=images, panel_prompts=panel_prompts)
        except Exception as e:
            _raise_classified(e)

    async def inpainting(
        self,
        prompt: str,
        original_image: Optional[str],
        mask: Optional[str],
        api_key: Optional[str],
        size: str = "1024x1024",
    ) -> List[str]:
        self._require_api_key(api_key)
        if not original_image:
            raise InvalidInputError("原始图片是必需的。")
        if not mask:
            raise InvalidInputError("蒙版图片是必需的。")

        logger.info(f"[VolcEngine] 局部重绘: size={size}")
        request = ImageGenerationRequest(prompt=prompt, image=original_image, mask=mask, size=size)
        return await self.generate_image(
            request, api_key, "火山引擎未能生成任何图片。请尝试调整您的蒙版或提示词。"
        )
