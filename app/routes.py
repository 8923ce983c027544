from typing import List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from app.settings_dialog import SettingsDialog
from services.image_providers import (
    ApiProvider,
    AspectRatio,
    ImageStyle,
    VolcEngineError,
    VolcEngineImageClient,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)

settings_router = APIRouter(tags=["settings"])
images_router = APIRouter(prefix="/api/volcengine", tags=["images"])


# ---------- 设置对话框 ----------

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="zh-CN">
<head>
<meta charset="utf-8">
<title>API 密钥设置</title>
<style>
.modal-backdrop {{ position: fixed; inset: 0; background: rgba(0,0,0,.5); display: flex; align-items: center; justify-content: center; }}
.modal {{ background: #fff; border-radius: 8px; max-width: 28rem; width: 100%; padding: 1.5rem; display: flex; flex-direction: column; gap: .5rem; }}
.tabs {{ display: flex; border-bottom: 1px solid #e5e7eb; }}
.tab {{ flex: 1; text-align: center; padding: .5rem 1rem; color: #6b7280; background: none; border: none; cursor: pointer; }}
.panel {{ display: flex; flex-direction: column; gap: .5rem; }}
.panel[hidden] {{ display: none; }}
.tab.active {{ color: #2563eb; border-bottom: 2px solid #2563eb; }}
.notice {{ background: #eff6ff; border: 1px solid #bfdbfe; border-radius: 6px; padding: .75rem; color: #1e40af; }}
.actions {{ display: flex; justify-content: flex-end; gap: .75rem; }}
.save:disabled {{ background: #9ca3af; cursor: not-allowed; }}
</style>
</head>
<body>
{dialog}
<script>
const form = document.getElementById("settings-dialog");
const value = (name) => (form.elements[name] ? form.elements[name].value : "");
const refresh = () => {{
  const gemini = value("gemini_key"), volc = value("volcengine_key");
  form.querySelector(".save").disabled = (!gemini && !volc) || !value(form.dataset.activeTab + "_key");
}};
form.querySelectorAll(".tab").forEach((tab) => tab.addEventListener("click", () => {{
  form.dataset.activeTab = tab.dataset.tab;
  form.querySelectorAll(".tab").forEach((t) => t.classList.toggle("active", t === tab));
  form.querySelectorAll(".panel").forEach((p) => {{ p.hidden = p.dataset.panel !== tab.dataset.tab; }});
  refresh();
}}));
form.addEventListener("input", refresh);
form.addEventListener("submit", async (event) => {{
  event.preventDefault();
  const response = await fetch("/settings/keys", {{
    method: "POST",
    headers: {{"Content-Type": "application/json"}},
    body: JSON.stringify({{gemini_key: value("gemini_key"), volcengine_key: value("volcengine_key"), active_tab: form.dataset.activeTab}}),
  }});
  if (response.ok) {{ window.history.back(); }}
}});
</script>
</body>
</html>"""


class SaveKeysRequest(BaseModel):
    gemini_key: str = ""
    volcengine_key: str = ""
    active_tab: ApiProvider = ApiProvider.GEMINI


def _dialog_for(request: Request) -> SettingsDialog:
    store = request.app.state.credentials
    dialog = SettingsDialog(on_save=store.save, on_close=lambda: dialog.close())
    dialog.open(store.gemini_key, store.volcengine_key)
    return dialog


@settings_router.get("/settings", response_class=HTMLResponse)
async def settings_page(request: Request, tab: Optional[ApiProvider] = None):
    dialog = _dialog_for(request)
    if tab is not None:
        dialog.select_tab(tab)
    return HTMLResponse(PAGE_TEMPLATE.format(dialog=dialog.render()))


@settings_router.post("/settings/keys")
async def save_keys(request: Request, body: SaveKeysRequest):
    dialog = _dialog_for(request)
    dialog.select_tab(body.active_tab)
    dialog.set_key(ApiProvider.GEMINI, body.gemini_key)
    dialog.set_key(ApiProvider.VOLCENGINE, body.volcengine_key)

    if not dialog.save():
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": f"{body.active_tab.value} 的API密钥不能为空"},
        )

    configured = request.app.state.credentials.configured()
    return {"ok": True, "configured": [p.value for p in configured]}


# ---------- 图片生成 ----------

class TextToImageRequest(BaseModel):
    prompt: str
    negative_prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    style: ImageStyle = ImageStyle.ILLUSTRATION
    api_key: Optional[str] = None


class ImageToImageRequest(BaseModel):
    prompt: str
    reference_image: str = ""
    size: str = "2K"
    guidance_scale: float = 7.5
    api_key: Optional[str] = None


class FusionRequest(BaseModel):
    prompt: str
    reference_images: List[str] = Field(default_factory=list)
    size: str = "2K"
    guidance_scale: float = 7.5
    api_key: Optional[str] = None


class SequentialRequest(BaseModel):
    prompt: str
    max_images: int = 5
    size: str = "2K"
    guidance_scale: float = 7.5
    api_key: Optional[str] = None


class IllustratedCardRequest(BaseModel):
    prompt: str
    style: ImageStyle = ImageStyle.ILLUSTRATION
    api_key: Optional[str] = None


class ComicStripRequest(BaseModel):
    story: str
    style: ImageStyle = ImageStyle.AMERICAN_COMIC
    number_of_images: int = 4
    api_key: Optional[str] = None


class InpaintingRequest(BaseModel):
    prompt: str
    original_image: str = ""
    mask: str = ""
    size: str = "1024x1024"
    api_key: Optional[str] = None


def _client(request: Request) -> VolcEngineImageClient:
    return request.app.state.image_client


def _api_key(request: Request, body_key: Optional[str]) -> Optional[str]:
    return body_key or request.app.state.credentials.volcengine_key


def _error_response(error: VolcEngineError) -> JSONResponse:
    return JSONResponse(
        status_code=error.http_status,
        content={
            "ok": False,
            "error": error.message,
            "error_type": type(error).__name__,
            "upstream_status": error.status_code,
        },
    )


@images_router.post("/text-to-image")
async def text_to_image(request: Request, body: TextToImageRequest):
    try:
        images = await _client(request).text_to_image(
            body.prompt, body.negative_prompt, _api_key(request, body.api_key),
            body.aspect_ratio, body.style,
        )
    except VolcEngineError as e:
        return _error_response(e)
    return {"ok": True, "images": images}


@images_router.post("/image-to-image")
async def image_to_image(request: Request, body: ImageToImageRequest):
    try:
        images = await _client(request).image_to_image(
            body.prompt, body.reference_image, _api_key(request, body.api_key),
            body.size, body.guidance_scale,
        )
    except VolcEngineError as e:
        return _error_response(e)
    return {"ok": True, "images": images}


@images_router.post("/fusion")
async def image_fusion(request: Request, body: FusionRequest):
    try:
        images = await _client(request).image_fusion(
            body.prompt, body.reference_images, _api_key(request, body.api_key),
            body.size, body.guidance_scale,
        )
    except VolcEngineError as e:
        return _error_response(e)
    return {"ok": True, "images": images}


@images_router.post("/sequential")
async def sequential_images(request: Request, body: SequentialRequest):
    try:
        images = await _client(request).sequential_images(
            body.prompt, _api_key(request, body.api_key),
            body.max_images, body.size, body.guidance_scale,
        )
    except VolcEngineError as e:
        return _error_response(e)
    return {"ok": True, "images": images}


@images_router.post("/illustrated-cards")
async def illustrated_cards(request: Request, body: IllustratedCardRequest):
    try:
        images = await _client(request).illustrated_cards(
            body.prompt, body.style, _api_key(request, body.api_key),
        )
    except VolcEngineError as e:
        return _error_response(e)
    return {"ok": True, "images": images}


@images_router.post("/comic-strip")
async def comic_strip(request: Request, body: ComicStripRequest):
    try:
        result = await _client(request).comic_strip(
            body.story, body.style, _api_key(request, body.api_key), body.number_of_images,
        )
    except VolcEngineError as e:
        return _error_response(e)
    return {"ok": True, "images": result.image_urls, "panel_prompts": result.panel_prompts}


@images_router.post("/inpainting")
async def inpainting(request: Request, body: InpaintingRequest):
    try:
        images = await _client(request).inpainting(
            body.prompt, body.original_image, body.mask, _api_key(request, body.api_key), body.size,
        )
    except VolcEngineError as e:
        return _error_response(e)
    return {"ok": True, "images": images}
