from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import Processor

SERVICE_NAME = "calldata-interpreter"

# 敏感字段（精确匹配或以 _api_key 结尾）
SENSITIVE_KEYS = {"apikey", "api_key", "authorization", "password", "secret", "token"}

# 超过该长度的 0x 十六进制串（calldata、ABI 负载等）在日志中截断
MAX_HEX_CHARS = 138


def _is_sensitive(key: Any) -> bool:
    name = str(key).lower()
    return name in SENSITIVE_KEYS or name.endswith("_api_key")


def _scrub(data: Any, depth: int = 0) -> Any:
    """递归脱敏并截断过长的十六进制串"""
    if depth > 10:
        return data

    if isinstance(data, dict):
        return {k: "***MASKED***" if _is_sensitive(k) else _scrub(v, depth + 1) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_scrub(item, depth + 1) for item in data]
    if isinstance(data, str) and data.startswith("0x") and len(data) > MAX_HEX_CHARS:
        return f"{data[:MAX_HEX_CHARS]}...({len(data)} chars)"
    return data


def _scrub_processor(logger: logging.Logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    return _scrub(event_dict)


def _add_service_info(logger: logging.Logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict["service"] = SERVICE_NAME
    return event_dict


def configure_logging(log_level: str = "INFO", log_format: str = "json", stream: TextIO | None = None) -> None:
    """配置日志系统

    stream 默认为 stdout；CLI 传入 stderr，使 stdout 只输出结果 JSON。
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    output = stream or sys.stdout

    logging.basicConfig(format="%(message)s", stream=output, level=level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_service_info,
        _scrub_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format.lower() == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """绑定请求上下文（trace_id、contract_address）"""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
