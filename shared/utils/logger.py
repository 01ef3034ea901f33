"""
日志工具模块
提供统一的日志配置和管理功能
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from shared.config.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """彩色日志格式化器"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # 复制一份记录，避免颜色码污染文件处理器
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """JSON格式化器"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # 通过 extra={"extra_fields": {...}} 传入的结构化字段
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_entry.update(extra_fields)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class LoggerManager:
    """日志管理器"""

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def configure(cls,
                  log_level: str = "INFO",
                  log_dir: str = "logs",
                  max_file_size: int = 10 * 1024 * 1024,
                  backup_count: int = 5,
                  enable_console: bool = True,
                  enable_file: bool = False,
                  enable_json: bool = False,
                  enable_colors: bool = True):
        """配置日志系统"""
        if cls._configured:
            return

        level = getattr(logging, log_level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            if enable_colors and sys.stdout.isatty():
                console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            else:
                console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            root_logger.addHandler(console_handler)

        if enable_file:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            if enable_json:
                file_format = JSONFormatter()
            else:
                file_format = logging.Formatter(FILE_LOG_FORMAT, datefmt=DATE_FORMAT)

            file_handler = logging.handlers.RotatingFileHandler(
                log_path / "app.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(file_format)
            root_logger.addHandler(file_handler)

            # 错误日志单独保存
            error_handler = logging.handlers.RotatingFileHandler(
                log_path / "error.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(file_format)
            root_logger.addHandler(error_handler)

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """获取日志器"""
        if name not in cls._loggers:
            if not cls._configured:
                configure_logging()
            cls._loggers[name] = logging.getLogger(name)
        return cls._loggers[name]


def configure_logging(config: Optional[Dict[str, Any]] = None):
    """
    根据配置设置初始化日志系统

    Args:
        config: 覆盖默认值的日志配置字典
    """
    settings = get_settings()
    default_config = {
        "log_level": settings.LOG_LEVEL,
        "log_dir": settings.LOG_DIR,
        "enable_file": settings.LOG_ENABLE_FILE,
        "enable_json": settings.LOG_ENABLE_JSON,
    }
    LoggerManager.configure(**{**default_config, **(config or {})})


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取日志器实例

    Args:
        name: 日志器名称，通常使用 __name__

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("投票已记录")
    """
    return LoggerManager.get_logger(name or __name__)

