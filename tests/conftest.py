import json

import httpx
import pytest

from services.image_providers import VolcEngineConfig, VolcEngineImageClient

ENDPOINT = "https://ark.test/api/v3/images/generations"


def json_response(payload, status_code=200):
    return httpx.Response(status_code, json=payload)


def b64_items(*payloads):
    return {"created": 1700000000, "data": [{"b64_json": p} for p in payloads]}


def request_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def make_client():
    """构建使用 MockTransport 的客户端，返回 (client, 已发出的请求列表)"""

    def _make(handler=None, **config_overrides):
        calls = []

        def _handler(request: httpx.Request):
            calls.append(request)
            if handler is None:
                return json_response(b64_items("AAAA"))
            return handler(request)

        config = VolcEngineConfig(endpoint=ENDPOINT, **config_overrides)
        client = VolcEngineImageClient(config, transport=httpx.MockTransport(_handler))
        return client, calls

    return _make
