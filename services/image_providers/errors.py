"""
火山引擎图片生成错误类型与分类

远端服务返回的错误体没有稳定的错误码，只能按文本匹配分类。
匹配规则集中在 CLASSIFICATION_RULES，错误格式变化时只需修改这里。
"""

import asyncio
from typing import Optional, Tuple, Type

from utils.logging_config import get_logger

logger = get_logger(__name__)


class VolcEngineError(Exception):
    """火山引擎图片生成错误基类"""
    http_status = 502

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.message)


class MissingApiKeyError(VolcEngineError):
    http_status = 400


class InvalidInputError(VolcEngineError):
    http_status = 400


class AuthenticationError(VolcEngineError):
    http_status = 401


class QuotaExceededError(VolcEngineError):
    http_status = 429


class InvalidRequestError(VolcEngineError):
    http_status = 400


class ContentPolicyError(VolcEngineError):
    http_status = 422


class ApiError(VolcEngineError):
    """非 2xx 响应，尚未归类"""


class TransportError(VolcEngineError):
    """网络层失败"""


class RequestTimeoutError(TransportError):
    http_status = 504


class EmptyResultError(VolcEngineError):
    """请求成功但没有返回任何图片"""


class MalformedResultError(VolcEngineError):
    """返回的图片条目既没有 b64_json 也没有 url"""


# (匹配关键字, 错误类型, 提示信息)，按顺序匹配
CLASSIFICATION_RULES: Tuple[Tuple[Tuple[str, ...], Type[VolcEngineError], str], ...] = (
    (("invalid api key", "unauthorized"), AuthenticationError,
     "您提供的火山引擎API密钥无效或不正确。请检查后重试。"),
    (("quota", "rate limit", "resource_exhausted"), QuotaExceededError,
     "您的火山引擎API配额已用尽或已达到速率限制。请检查您的配额或稍后再试。"),
    (("invalid_request", "invalid parameter"), InvalidRequestError,
     "请求参数无效。请检查您的提示词或设置后重试。"),
    (("content_filter", "safety"), ContentPolicyError,
     "生成的内容可能违反了安全政策而被阻止。请尝试调整您的提示词。"),
)

# 以下类型已经是最终分类，不再做文本匹配
_FINAL_ERRORS = (
    MissingApiKeyError,
    InvalidInputError,
    AuthenticationError,
    QuotaExceededError,
    InvalidRequestError,
    ContentPolicyError,
    RequestTimeoutError,
    EmptyResultError,
    MalformedResultError,
)


def classify_volcengine_error(error: BaseException) -> VolcEngineError:
    """
    将任意异常归类为 VolcEngineError

    匹配成功时提示信息后附上原始错误文本，保留状态码和响应体
    """
    # 客户端自己抛出的错误在抛出处已记录
    if isinstance(error, VolcEngineError):
        logger.debug(f"归类火山引擎错误: {error!r}")
    else:
        logger.error(f"调用火山引擎API出错: {error!r}")

    if isinstance(error, _FINAL_ERRORS):
        return error

    if isinstance(error, asyncio.TimeoutError):
        return RequestTimeoutError("火山引擎API请求超时。请稍后重试。")

    original = str(error)
    message = original.lower()
    status_code = getattr(error, "status_code", None)
    detail = getattr(error, "detail", None)

    for keywords, error_type, friendly in CLASSIFICATION_RULES:
        if any(keyword in message for keyword in keywords):
            return error_type(f"{friendly}（{original}）", status_code=status_code, detail=detail)

    if isinstance(error, VolcEngineError):
        return error

    if original:
        return VolcEngineError(f"火山引擎API错误: {original}")
    return TransportError("火山引擎API调用失败。请稍后重试或检查您的网络连接。")
