from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from zoomline.infra.observability.otel import LOG_FILE_NAME, configure_logging


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    structlog.reset_defaults()


def test_configure_logging_writes_json_file(tmp_path: Path, restore_logging: None) -> None:
    log_dir = tmp_path / "logs"
    configure_logging(log_dir)

    structlog.get_logger("zoomline.tests").info("timeline.sample_event", segment_count=3)

    lines = (log_dir / LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    event = next(r for r in records if r["event"] == "timeline.sample_event")
    assert event["segment_count"] == 3
    assert event["level"] == "info"
    assert "timestamp" in event


def test_configure_logging_replaces_handlers(tmp_path: Path, restore_logging: None) -> None:
    configure_logging(tmp_path)
    configure_logging(tmp_path)

    handlers = logging.getLogger().handlers
    assert len(handlers) == 2
    assert sorted(type(h).__name__ for h in handlers) == ["RotatingFileHandler", "StreamHandler"]
