"""OpenTelemetry 与结构化日志初始化。"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
import structlog

from zoomline.infra.config.settings import get_settings


def configure_tracing(service_name: str | None = None) -> None:
    settings = get_settings()
    resource = Resource.create({"service.name": service_name or settings.otel_service_name})
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=settings.otel_endpoint, insecure=True)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def get_tracer(name: str) -> trace.Tracer:
    """获取 tracer；未调用 configure_tracing 时为 no-op 实现。"""

    return trace.get_tracer(name)


LOG_FILE_NAME = "zoomline.log"
_LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
_LOG_FILE_BACKUPS = 3


def _formatter(renderer: Any, foreign_pre_chain: list[Any]) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=foreign_pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def configure_logging(log_dir: str | Path | None = None, level: int = logging.INFO) -> None:
    """配置结构化日志。

    - 控制台写 stderr，stdout 留给开发脚本的报告；TTY 上彩色，否则 JSON
    - log_dir/zoomline.log 写 JSON，按大小轮转

    可重复调用，每次替换 root logger 上的 handler。
    """
    log_path = Path(log_dir) if log_dir is not None else Path(get_settings().log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
    ]
    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_renderer: Any
    if sys.stderr.isatty():
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        console_renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_formatter(console_renderer, shared_processors))

    file_handler = RotatingFileHandler(
        log_path / LOG_FILE_NAME,
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        _formatter(structlog.processors.JSONRenderer(ensure_ascii=False), shared_processors)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in (console_handler, file_handler):
        handler.setLevel(level)
        root_logger.addHandler(handler)

    structlog.get_logger(__name__).debug("logging.configured", log_file=str(log_path / LOG_FILE_NAME))
