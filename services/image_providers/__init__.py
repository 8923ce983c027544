"""
图片生成 Provider 模块

火山引擎豆包图片生成客户端及其类型、配置和错误
"""

from .base import (
    ApiProvider,
    AspectRatio,
    BaseImageProvider,
    ComicStripResult,
    ImageGenerationRequest,
    ImageStyle,
)
from .errors import (
    ApiError,
    AuthenticationError,
    ContentPolicyError,
    EmptyResultError,
    InvalidInputError,
    InvalidRequestError,
    MalformedResultError,
    MissingApiKeyError,
    QuotaExceededError,
    RequestTimeoutError,
    TransportError,
    VolcEngineError,
    classify_volcengine_error,
)
from .volcengine_config import VolcEngineConfig
from .volcengine_provider import VolcEngineImageClient

__all__ = [
    'ApiProvider',
    'AspectRatio',
    'BaseImageProvider',
    'ComicStripResult',
    'ImageGenerationRequest',
    'ImageStyle',
    'ApiError',
    'AuthenticationError',
    'ContentPolicyError',
    'EmptyResultError',
    'InvalidInputError',
    'InvalidRequestError',
    'MalformedResultError',
    'MissingApiKeyError',
    'QuotaExceededError',
    'RequestTimeoutError',
    'TransportError',
    'VolcEngineError',
    'classify_volcengine_error',
    'VolcEngineConfig',
    'VolcEngineImageClient',
]
