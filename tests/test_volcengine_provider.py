import asyncio
import logging

import httpx
import pytest

from conftest import ENDPOINT, b64_items, json_response, request_body
from services.image_providers import (
    ApiError,
    AspectRatio,
    AuthenticationError,
    EmptyResultError,
    ImageStyle,
    InvalidInputError,
    MalformedResultError,
    MissingApiKeyError,
    QuotaExceededError,
    RequestTimeoutError,
    VolcEngineError,
)
from services.image_providers.volcengine_config import DOUBAO_STYLE_PROMPTS

KEY = "ark-test-key"

# 每个操作的最小合法调用，api_key 由参数注入
OPERATIONS = {
    "text_to_image": lambda c, key: c.text_to_image("一只猫", "", key, AspectRatio.SQUARE, ImageStyle.CARTOON),
    "image_to_image": lambda c, key: c.image_to_image("换成夜景", "data:image/png;base64,REF", key),
    "image_fusion": lambda c, key: c.image_fusion("融合", ["img-a", "img-b"], key),
    "sequential_images": lambda c, key: c.sequential_images("四季", key, 4),
    "illustrated_cards": lambda c, key: c.illustrated_cards("光合作用", ImageStyle.WATERCOLOR, key),
    "comic_strip": lambda c, key: c.comic_strip("小兔子找胡萝卜", ImageStyle.DOODLE, key, 2),
    "inpainting": lambda c, key: c.inpainting("补全天空", "img", "mask", key),
}


def _images(result):
    return result.image_urls if hasattr(result, "image_urls") else result


@pytest.mark.parametrize("name", sorted(OPERATIONS))
@pytest.mark.parametrize("key", ["", None])
def test_missing_api_key_rejected_before_network(make_client, name, key):
    client, calls = make_client()

    with pytest.raises(MissingApiKeyError) as exc_info:
        asyncio.run(OPERATIONS[name](client, key))

    assert "API密钥是必需的" in str(exc_info.value)
    assert calls == []


@pytest.mark.parametrize("name", sorted(OPERATIONS))
def test_b64_item_becomes_data_uri(make_client, name):
    client, calls = make_client(lambda request: json_response(b64_items("QUJD")))

    result = asyncio.run(OPERATIONS[name](client, KEY))

    assert _images(result)[0] == "data:image/jpeg;base64,QUJD"
    assert calls[0].url == ENDPOINT
    assert calls[0].headers["authorization"] == f"Bearer {KEY}"
    assert calls[0].headers["content-type"] == "application/json"


@pytest.mark.parametrize("name", sorted(OPERATIONS))
def test_url_item_returned_unchanged(make_client, name):
    url = "https://ark-cdn.test/generated/1.jpeg?sig=abc"
    client, _ = make_client(lambda request: json_response({"created": 1, "data": [{"url": url}]}))

    result = asyncio.run(OPERATIONS[name](client, KEY))

    assert _images(result)[0] == url


@pytest.mark.parametrize("name", sorted(OPERATIONS))
def test_empty_data_raises_no_images_error(make_client, name):
    client, _ = make_client(lambda request: json_response({"created": 1, "data": []}))

    with pytest.raises(EmptyResultError) as exc_info:
        asyncio.run(OPERATIONS[name](client, KEY))

    assert "生成" in str(exc_info.value)


def test_empty_messages_are_specific_to_each_operation(make_client):
    client, _ = make_client(lambda request: json_response({"created": 1, "data": []}))
    messages = {}
    for name, call in OPERATIONS.items():
        with pytest.raises(EmptyResultError) as exc_info:
            asyncio.run(call(client, KEY))
        messages[name] = str(exc_info.value)

    assert "融合图片" in messages["image_fusion"]
    assert "组图" in messages["sequential_images"]
    assert "图解卡片" in messages["illustrated_cards"]
    assert "面板1生成失败" in messages["comic_strip"]
    assert "蒙版" in messages["inpainting"]
    assert "参考图" in messages["image_to_image"]


@pytest.mark.parametrize("name", sorted(OPERATIONS))
def test_non_success_status_message_has_status_and_body(make_client, name):
    body = '{"error":{"code":"InternalServiceError","message":"upstream exploded"}}'
    client, _ = make_client(lambda request: httpx.Response(500, text=body))

    with pytest.raises(VolcEngineError) as exc_info:
        asyncio.run(OPERATIONS[name](client, KEY))

    assert "500" in str(exc_info.value)
    assert body in str(exc_info.value)
    assert exc_info.value.status_code == 500


def test_unauthorized_response_is_classified_and_keeps_detail(make_client):
    body = '{"error":{"code":"AuthenticationError","message":"Unauthorized: invalid api key"}}'
    client, _ = make_client(lambda request: httpx.Response(401, text=body))

    with pytest.raises(AuthenticationError) as exc_info:
        asyncio.run(OPERATIONS["text_to_image"](client, KEY))

    assert "密钥无效" in str(exc_info.value)
    assert "401" in str(exc_info.value)
    assert body in str(exc_info.value)


def test_quota_response_is_classified(make_client):
    client, _ = make_client(lambda request: httpx.Response(429, text="Rate limit exceeded"))

    with pytest.raises(QuotaExceededError):
        asyncio.run(OPERATIONS["sequential_images"](client, KEY))


def test_item_without_any_image_data_names_its_position(make_client):
    payload = {"created": 1, "data": [{"b64_json": "QQ=="}, {"url": ""}]}
    client, _ = make_client(lambda request: json_response(payload))

    with pytest.raises(MalformedResultError) as exc_info:
        asyncio.run(OPERATIONS["inpainting"](client, KEY))

    assert "图片2" in str(exc_info.value)


def test_b64_checked_before_url(make_client):
    payload = {"created": 1, "data": [{"b64_json": "QkI=", "url": "https://ark-cdn.test/x.jpeg"}]}
    client, _ = make_client(lambda request: json_response(payload))

    images = asyncio.run(OPERATIONS["image_to_image"](client, KEY))

    assert images == ["data:image/jpeg;base64,QkI="]


def test_multiple_items_keep_order(make_client):
    client, _ = make_client(lambda request: json_response(b64_items("MQ==", "Mg==", "Mw==")))

    images = asyncio.run(OPERATIONS["sequential_images"](client, KEY))

    assert images == [
        "data:image/jpeg;base64,MQ==",
        "data:image/jpeg;base64,Mg==",
        "data:image/jpeg;base64,Mw==",
    ]


# ---------- 请求体 ----------

def test_text_to_image_payload(make_client):
    client, calls = make_client()

    asyncio.run(client.text_to_image("一只猫", "  模糊  ", KEY, AspectRatio.WIDESCREEN, ImageStyle.CLAY))

    body = request_body(calls[0])
    style = DOUBAO_STYLE_PROMPTS[ImageStyle.CLAY][:100]
    assert body["prompt"] == f"一只猫，{style}，避免：模糊"
    assert body["model"] == "doubao-seedream-4-0-250828"
    assert body["size"] == "1280x720"
    assert body["stream"] is False
    assert body["response_format"] == "b64_json"
    assert body["watermark"] is True
    assert "image" not in body
    assert "sequential_image_generation" not in body


def test_text_to_image_prompt_is_capped(make_client):
    client, calls = make_client()
    long_prompt = "山" * 400

    asyncio.run(client.text_to_image(long_prompt, "", KEY, AspectRatio.SQUARE, ImageStyle.INK_WASH))

    body = request_body(calls[0])
    assert body["prompt"] == "山" * 300
    assert body["size"] == "1024x1024"


def test_text_to_image_negative_prompt_appended_after_cap(make_client):
    client, calls = make_client()

    asyncio.run(client.text_to_image("山" * 400, "雾" * 80, KEY, AspectRatio.TALL, ImageStyle.INK_WASH))

    body = request_body(calls[0])
    assert body["prompt"] == "山" * 300 + "，避免：" + "雾" * 50
    assert body["size"] == "864x1152"


def test_image_to_image_requires_reference(make_client):
    client, calls = make_client()

    with pytest.raises(InvalidInputError) as exc_info:
        asyncio.run(client.image_to_image("换成夜景", "", KEY))

    assert "参考图是必需的" in str(exc_info.value)
    assert calls == []


def test_image_to_image_payload(make_client):
    client, calls = make_client()

    asyncio.run(client.image_to_image("换成夜景", "data:image/png;base64,REF", KEY, size="1K", guidance_scale=3))

    body = request_body(calls[0])
    assert body["image"] == "data:image/png;base64,REF"
    assert body["size"] == "1K"
    assert "guidance_scale" not in body


@pytest.mark.parametrize("count", [0, 16, 20])
def test_fusion_rejects_out_of_range_lists(make_client, count):
    client, calls = make_client()

    with pytest.raises(InvalidInputError):
        asyncio.run(client.image_fusion("融合", [f"img-{i}" for i in range(count)], KEY))

    assert calls == []


@pytest.mark.parametrize("count", [1, 2, 15])
def test_fusion_accepts_one_to_fifteen_images(make_client, count):
    client, calls = make_client()
    references = [f"img-{i}" for i in range(count)]

    asyncio.run(client.image_fusion("融合", references, KEY))

    assert request_body(calls[0])["image"] == references


@pytest.mark.parametrize("max_images", [0, -1, 16])
def test_sequential_rejects_out_of_range_counts(make_client, max_images):
    client, calls = make_client()

    with pytest.raises(InvalidInputError) as exc_info:
        asyncio.run(client.sequential_images("四季", KEY, max_images))

    assert "1-15" in str(exc_info.value)
    assert calls == []


@pytest.mark.parametrize("max_images", [1, 15])
def test_sequential_payload(make_client, max_images):
    client, calls = make_client()

    asyncio.run(client.sequential_images("四季", KEY, max_images))

    body = request_body(calls[0])
    assert body["sequential_image_generation"] == "auto"
    assert body["sequential_image_generation_options"] == {"max_images": max_images}
    assert body["size"] == "2K"


def test_illustrated_card_prompt_template(make_client):
    client, calls = make_client()

    asyncio.run(client.illustrated_cards("光合作用", ImageStyle.WATERCOLOR, KEY))

    body = request_body(calls[0])
    assert body["size"] == "1280x720"
    assert body["prompt"].startswith("16:9宽屏比例的教育信息图，视觉解释概念：光合作用。")
    assert DOUBAO_STYLE_PROMPTS[ImageStyle.WATERCOLOR] in body["prompt"]
    assert "英文文本" in body["prompt"]
    assert body["prompt"].endswith("不包含中文字符。")


@pytest.mark.parametrize("field, value", [("original_image", ""), ("mask", "")])
def test_inpainting_requires_image_and_mask(make_client, field, value):
    client, calls = make_client()
    args = {"original_image": "img", "mask": "mask"}
    args[field] = value

    with pytest.raises(InvalidInputError):
        asyncio.run(client.inpainting("补全天空", args["original_image"], args["mask"], KEY))

    assert calls == []


def test_inpainting_payload(make_client):
    client, calls = make_client()

    asyncio.run(client.inpainting("补全天空", "img-b64", "mask-b64", KEY))

    body = request_body(calls[0])
    assert body["image"] == "img-b64"
    assert body["mask"] == "mask-b64"
    assert body["size"] == "1024x1024"


# ---------- 连环画 ----------

@pytest.mark.parametrize("requested, expected", [(1, 1), (3, 3), (4, 4), (6, 4)])
def test_comic_strip_panel_prompts(make_client, requested, expected):
    client, calls = make_client()
    story = "小兔子找胡萝卜"

    result = asyncio.run(client.comic_strip(story, ImageStyle.DOODLE, KEY, requested))

    assert len(result.panel_prompts) == expected
    assert len(result.image_urls) == expected
    assert len(calls) == expected
    for index, prompt in enumerate(result.panel_prompts, start=1):
        assert story in prompt
        assert f"第{index}个场景" in prompt
    assert len(set(result.panel_prompts)) == expected


def test_comic_strip_images_follow_panel_order(make_client):
    async def handler(request):
        prompt = request_body(request)["prompt"]
        panel = prompt.split("第")[1].split("个场景")[0]
        # 越靠前的面板返回越慢
        await asyncio.sleep(0.01 * (5 - int(panel)))
        return json_response({"created": 1, "data": [{"url": f"https://ark-cdn.test/panel-{panel}.jpeg"}]})

    client, _ = make_client(handler)

    result = asyncio.run(client.comic_strip("故事", ImageStyle.AMERICAN_COMIC, KEY, 4))

    assert result.image_urls == [f"https://ark-cdn.test/panel-{n}.jpeg" for n in range(1, 5)]
    assert result.panel_prompts == client.build_panel_prompts("故事", ImageStyle.AMERICAN_COMIC, 4)


def test_comic_strip_uses_only_first_item_per_panel(make_client):
    client, _ = make_client(lambda request: json_response(b64_items("Rmlyc3Q=", "U2Vjb25k")))

    result = asyncio.run(client.comic_strip("故事", ImageStyle.CARTOON, KEY, 2))

    assert result.image_urls == ["data:image/jpeg;base64,Rmlyc3Q="] * 2


def test_comic_strip_failed_panel_aborts_and_names_panel(make_client):
    def handler(request):
        if "第3个场景" in request_body(request)["prompt"]:
            return httpx.Response(500, text="panel exploded")
        return json_response(b64_items("T0s="))

    client, calls = make_client(handler)

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(client.comic_strip("故事", ImageStyle.CARTOON, KEY, 4))

    assert "面板3生成失败: 500 - panel exploded" in str(exc_info.value)
    assert len(calls) == 4


def test_comic_strip_panel_without_data_names_panel(make_client):
    def handler(request):
        if "第2个场景" in request_body(request)["prompt"]:
            return json_response({"created": 1, "data": [{}]})
        return json_response(b64_items("T0s="))

    client, _ = make_client(handler)

    with pytest.raises(MalformedResultError) as exc_info:
        asyncio.run(client.comic_strip("故事", ImageStyle.CARTOON, KEY, 3))

    assert "面板2没有有效的图片数据" in str(exc_info.value)


def test_comic_strip_with_no_panels_makes_no_request(make_client):
    client, calls = make_client()

    with pytest.raises(EmptyResultError) as exc_info:
        asyncio.run(client.comic_strip("故事", ImageStyle.CARTOON, KEY, 0))

    assert "连环画面板" in str(exc_info.value)
    assert calls == []


def test_comic_strip_respects_concurrency_bound(make_client):
    state = {"active": 0, "peak": 0}

    async def handler(request):
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        await asyncio.sleep(0.01)
        state["active"] -= 1
        return json_response(b64_items("T0s="))

    client, calls = make_client(handler, max_concurrency=2)

    asyncio.run(client.comic_strip("故事", ImageStyle.CARTOON, KEY, 4))

    assert len(calls) == 4
    assert state["peak"] == 2


# ---------- 超时与网络错误 ----------

def test_deadline_cancels_slow_request(make_client):
    async def handler(request):
        await asyncio.sleep(1)
        return json_response(b64_items("T0s="))

    client, _ = make_client(handler, timeout=0.05)

    with pytest.raises(RequestTimeoutError) as exc_info:
        asyncio.run(client.sequential_images("四季", KEY, 2))

    assert "超时" in str(exc_info.value)


def test_illustrated_card_uses_its_own_timeout(make_client):
    async def handler(request):
        await asyncio.sleep(0.1)
        return json_response(b64_items("T0s="))

    client, _ = make_client(handler, timeout=0.01, card_timeout=None)

    images = asyncio.run(client.illustrated_cards("光合作用", ImageStyle.CLAY, KEY))

    assert images == ["data:image/jpeg;base64,T0s="]


def test_illustrated_card_timeout_is_enforced_when_configured(make_client):
    async def handler(request):
        await asyncio.sleep(0.2)
        return json_response(b64_items("T0s="))

    client, _ = make_client(handler, timeout=60.0, card_timeout=0.02)

    with pytest.raises(RequestTimeoutError) as exc_info:
        asyncio.run(client.illustrated_cards("光合作用", ImageStyle.CLAY, KEY))

    assert "0.02秒" in str(exc_info.value)


def test_non_success_status_logged_once_at_error(make_client, caplog):
    client, _ = make_client(lambda request: httpx.Response(500, text="upstream exploded"))

    with caplog.at_level(logging.DEBUG):
        with pytest.raises(ApiError):
            asyncio.run(client.sequential_images("四季", KEY, 2))

    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "upstream exploded" in errors[0].getMessage()


def test_transport_failure_is_wrapped(make_client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = make_client(handler)

    with pytest.raises(VolcEngineError) as exc_info:
        asyncio.run(client.text_to_image("猫", "", KEY, AspectRatio.SQUARE, ImageStyle.CARTOON))

    assert "网络连接" in str(exc_info.value)


def test_unparseable_body_is_malformed_result(make_client):
    client, _ = make_client(lambda request: httpx.Response(200, text="<html>gateway</html>"))

    with pytest.raises(MalformedResultError):
        asyncio.run(client.image_fusion("融合", ["a"], KEY))
