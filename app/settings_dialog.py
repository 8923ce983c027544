"""
API 密钥设置对话框

只持有打开期间的输入状态；密钥的读取和保存由调用方通过 on_save 处理。
"""

from html import escape
from typing import Callable, Optional

from utils.logging_config import get_logger
from services.image_providers import ApiProvider

logger = get_logger(__name__)

TAB_LABELS = {
    ApiProvider.GEMINI: "Google Gemini",
    ApiProvider.VOLCENGINE: "火山引擎",
}

TAB_FIELDS = {
    ApiProvider.GEMINI: {
        "label": "Google Gemini API Key",
        "placeholder": "请输入您的 Gemini API Key",
        "link_text": "Google AI Studio",
        "link": "https://aistudio.google.com/app/apikey",
    },
    ApiProvider.VOLCENGINE: {
        "label": "火山引擎 API Key",
        "placeholder": "请输入您的火山引擎豆包 API Key",
        "link_text": "火山引擎控制台",
        "link": "https://console.volcengine.com/ark/region:ark+cn-beijing/apiKey",
    },
}

VOLCENGINE_NOTICE = "火山引擎豆包模型目前支持图解百科、文生图和连环画功能。"


class SettingsDialog:
    """带两个提供商标签页的密钥设置对话框"""

    def __init__(self, on_save: Callable[[str, str], None], on_close: Callable[[], None]):
        self.on_save = on_save
        self.on_close = on_close
        self.is_open = False
        self.gemini_key = ""
        self.volcengine_key = ""
        self.active_tab = ApiProvider.GEMINI

    def open(self, current_gemini_key: Optional[str], current_volcengine_key: Optional[str]):
        """打开时用当前密钥重置输入框，并回到第一个标签页"""
        self.is_open = True
        self.gemini_key = current_gemini_key or ""
        self.volcengine_key = current_volcengine_key or ""
        self.active_tab = ApiProvider.GEMINI

    def close(self):
        self.is_open = False

    def select_tab(self, provider: ApiProvider):
        self.active_tab = ApiProvider(provider)

    def set_key(self, provider: ApiProvider, value: str):
        if ApiProvider(provider) == ApiProvider.GEMINI:
            self.gemini_key = value
        else:
            self.volcengine_key = value

    def key_for(self, provider: ApiProvider) -> str:
        if ApiProvider(provider) == ApiProvider.GEMINI:
            return self.gemini_key
        return self.volcengine_key

    @property
    def can_save(self) -> bool:
        """至少填写一个密钥，且当前标签页的密钥不能为空"""
        if not self.gemini_key and not self.volcengine_key:
            return False
        return bool(self.key_for(self.active_tab))

    def save(self) -> bool:
        if not self.can_save:
            logger.warning(f"保存按钮不可用，当前标签页: {self.active_tab.value}")
            return False
        self.on_save(self.gemini_key, self.volcengine_key)
        self.on_close()
        return True

    def cancel(self):
        self.on_close()

    def _render_panel(self, provider: ApiProvider) -> str:
        fields = TAB_FIELDS[provider]
        notice = ""
        if provider == ApiProvider.VOLCENGINE:
            notice = f'\n      <div class="notice"><strong>注意：</strong>{escape(VOLCENGINE_NOTICE)}</div>'
        hidden = "" if provider == self.active_tab else " hidden"
        return f"""<section class="panel" data-panel="{provider.value}"{hidden}>
      <label for="{provider.value}_key">{escape(fields["label"])}</label>
      <textarea id="{provider.value}_key" name="{provider.value}_key" rows="3" placeholder="{escape(fields["placeholder"])}">{escape(self.key_for(provider))}</textarea>
      <p class="hint">获取地址： <a href="{escape(fields["link"])}" target="_blank" rel="noopener noreferrer">{escape(fields["link_text"])}</a></p>{notice}
    </section>"""

    def render(self) -> str:
        """
        渲染对话框 HTML 片段，关闭时返回空字符串

        两个标签页的输入框都会输出，非当前标签页的面板带 hidden 属性，
        切换标签页只改变显示，不丢弃未保存的输入。
        """
        if not self.is_open:
            return ""

        tabs = "".join(
            f'<button type="button" class="tab{" active" if provider == self.active_tab else ""}" '
            f'data-tab="{provider.value}">{escape(label)}</button>'
            for provider, label in TAB_LABELS.items()
        )
        panels = "\n    ".join(self._render_panel(provider) for provider in ApiProvider)
        disabled = "" if self.can_save else " disabled"

        return f"""<div class="modal-backdrop">
  <form class="modal" id="settings-dialog" data-active-tab="{self.active_tab.value}">
    <h2>API 密钥设置</h2>
    <nav class="tabs">{tabs}</nav>
    {panels}
    <div class="actions">
      <button type="button" class="cancel" onclick="window.history.back()">取消</button>
      <button type="submit" class="save"{disabled}>保存</button>
    </div>
  </form>
</div>"""
