import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from loguru import logger

from app.core.config import settings

# 当前请求ID，由请求日志中间件写入
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

# 输出过于冗长的第三方日志器
_NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "aiohttp.access": logging.WARNING,
    "passlib": logging.ERROR,
}


class InterceptHandler(logging.Handler):
    """把标准 logging 的记录转交给 loguru"""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _attach_request_id(record: dict) -> None:
    record["extra"].setdefault("request_id", request_id_ctx.get())


def _format_record(record: dict) -> str:
    record["extra"].setdefault("request_id", "-")
    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "{extra[request_id]: <36} | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "{message}\n"
    )
    if record["exception"]:
        fmt += "{exception}\n"
    return fmt


def setup_logging(
    log_level: str | None = None,
    json_logs: bool | None = None,
    log_file: str | None = None
):
    """
    初始化日志系统

    标准库 logging 的所有输出都经由 InterceptHandler 进入 loguru，
    每条日志都带上当前请求的 request_id。

    Args:
        log_level: 日志级别，默认读取 LOG_LEVEL
        json_logs: 是否输出 JSON，默认读取 LOG_JSON
        log_file: 日志文件路径，默认读取 LOG_FILE，为空则只输出到 stdout
    """
    if log_level is None:
        log_level = settings.logging.LEVEL

    if json_logs is None:
        json_logs = settings.logging.JSON

    if log_file is None:
        log_file = settings.logging.FILE

    logging.root.handlers = []
    logging.root.setLevel(log_level)
    logging.root.addHandler(InterceptHandler())

    for name in list(logging.root.manager.loggerDict.keys()):
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = []
        logging_logger.propagate = True

    for name, level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    if not settings.DB_ECHO_LOG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    handlers = [
        {
            "sink": sys.stdout,
            "serialize": json_logs,
            "level": log_level,
            "format": _format_record,
        }
    ]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = {
            "sink": str(log_path),
            "serialize": json_logs,
            "level": log_level,
            "rotation": "00:00",
            "retention": "30 days",
            "compression": "zip",
        }
        if not json_logs:
            file_handler["format"] = _format_record

        handlers.append(file_handler)

    logger.configure(handlers=handlers, patcher=_attach_request_id)

    logger.info(f"Logging system initialized: level={log_level}, json={json_logs}, file={log_file or 'None'}")
