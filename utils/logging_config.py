"""
图片工作室统一日志配置模块

根据日志内容选择符号，输出带颜色级别和模块简称的日志行。
"""

import logging
import logging.handlers
import os
import re
import sys
from typing import Optional


class StudioLogFormatter(logging.Formatter):
    """图片工作室日志格式化器 - 支持智能符号选择"""

    # 基础级别符号（作为备选）
    LEVEL_SYMBOLS = {
        logging.DEBUG: "🔍",
        logging.INFO: "ℹ️",
        logging.WARNING: "⚠️",
        logging.ERROR: "❌",
        logging.CRITICAL: "🚨"
    }

    # 智能内容符号匹配（按顺序，先匹配先生效）
    CONTENT_SYMBOLS = [
        (r'(失败|错误|error|fail|超时|timeout)', "❌"),
        (r'(火山引擎|volcengine|gemini|生成|generate)', "✨"),
        (r'(启动|初始化|开始|start|init)', "🚀"),
        (r'(配置|config|setting|密钥)', "🔧"),
        (r'(成功|完成|success|done|ok)', "✅"),
        (r'(图片|图像|image|面板|panel)', "🖼️"),
        (r'(代理|proxy|转发|http|api)', "🌐"),
        (r'(警告|warning|注意)', "⚠️"),
    ]

    # ANSI 颜色代码
    COLORS = {
        logging.DEBUG: '\033[36m',     # 青色
        logging.INFO: '\033[32m',      # 绿色
        logging.WARNING: '\033[33m',   # 黄色
        logging.ERROR: '\033[31m',     # 红色
        logging.CRITICAL: '\033[35m',  # 紫色
        'RESET': '\033[0m'
    }

    # 模块名简化
    MODULE_NAMES = {
        "app.main": "MAIN",
        "app.config": "CONFIG",
        "app.routes": "ROUTES",
        "app.dev_proxy": "PROXY",
        "app.settings_dialog": "DIALOG",
        "app.credentials": "CREDS",
        "services.image_providers.volcengine_provider": "VOLC",
        "services.image_providers.errors": "VOLC_ERR",
    }

    def __init__(self, use_colors: bool = True, use_smart_symbols: bool = True):
        super().__init__()
        self.use_colors = use_colors and hasattr(sys.stderr, 'isatty') and sys.stderr.isatty()
        self.use_smart_symbols = use_smart_symbols

    def _get_smart_symbol(self, record: logging.LogRecord) -> str:
        """根据日志内容智能选择符号"""
        if not self.use_smart_symbols:
            return self.LEVEL_SYMBOLS.get(record.levelno, "📝")

        message = record.getMessage()
        for pattern, symbol in self.CONTENT_SYMBOLS:
            if re.search(pattern, message, re.IGNORECASE):
                return symbol

        return self.LEVEL_SYMBOLS.get(record.levelno, "📝")

    def format(self, record: logging.LogRecord) -> str:
        record.asctime = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        symbol = self._get_smart_symbol(record)
        module_name = self.MODULE_NAMES.get(record.name, record.name.split('.')[-1].upper())

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            reset = self.COLORS['RESET']
            level_str = f"{color}{record.levelname:<8}{reset}"
            module_str = f"{color}{module_name:<10}{reset}"
        else:
            level_str = f"{record.levelname:<8}"
            module_str = f"{module_name:<10}"

        location = f"{record.funcName}:{record.lineno}"
        formatted = f"{symbol} {record.asctime} - {level_str} - {module_str} - {location:<20} - {record.getMessage()}"

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = True,
    use_smart_symbols: bool = True
):
    """
    设置统一日志配置

    Args:
        level: 日志级别
        log_file: 日志文件路径
        max_file_size: 单个日志文件最大大小
        backup_count: 保留的备份文件数量
        console_output: 是否输出到控制台
        use_smart_symbols: 是否使用智能符号选择
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(StudioLogFormatter(
            use_colors=True,
            use_smart_symbols=use_smart_symbols
        ))
        root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StudioLogFormatter(
            use_colors=False,
            use_smart_symbols=use_smart_symbols
        ))
        root_logger.addHandler(file_handler)

    _configure_third_party_loggers()

    logger = logging.getLogger(__name__)
    logger.info(f"🚀 日志系统已配置 - 级别: {level}, 智能符号: {'开启' if use_smart_symbols else '关闭'}")


def _configure_third_party_loggers():
    """配置第三方库日志级别"""
    third_party_configs = {
        'httpx': logging.WARNING,
        'httpcore': logging.WARNING,
        'asyncio': logging.WARNING,
        'uvicorn.access': logging.WARNING,
    }

    for logger_name, level in third_party_configs.items():
        logging.getLogger(logger_name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """获取标准配置的logger"""
    return logging.getLogger(name)


# 默认初始化（如果直接导入）
if not logging.getLogger().handlers:
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        console_output=True,
        use_smart_symbols=True
    )
