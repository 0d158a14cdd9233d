#!/usr/bin/env python
"""Pytest fixtures for zoomline timeline engine."""
# ruff: noqa: E402

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zoomline.domain.models.cursor import (
    CodablePoint,
    CodableSize,
    CursorEvent,
    CursorMetadataFile,
)
from zoomline.domain.models.segment import Segment
from zoomline.domain.models.zoom import ZoomRegion
from zoomline.infra.config.settings import AppSettings


@pytest.fixture
def app_settings() -> AppSettings:
    """不读取 .env 的默认配置。"""
    return AppSettings(_env_file=None)


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def segment_factory() -> Callable[..., list[Segment]]:
    """按 (start, end, speed[, enabled]) 元组创建片段列表。"""

    def _create(*specs: tuple[Any, ...]) -> list[Segment]:
        segments: list[Segment] = []
        for spec in specs:
            start, end, speed, *rest = spec
            enabled = rest[0] if rest else True
            segments.append(
                Segment(start_time=start, end_time=end, speed=speed, is_enabled=enabled)
            )
        return segments

    return _create


@pytest.fixture
def zoom_region_factory() -> Callable[..., ZoomRegion]:
    """创建 ZoomRegion 的工厂函数。"""

    def _create(
        start_time: float = 2.0,
        end_time: float = 5.0,
        zoom_level: float = 2.0,
        focus_x: float = 960.0,
        focus_y: float = 540.0,
        is_enabled: bool = True,
        **kwargs: Any,
    ) -> ZoomRegion:
        return ZoomRegion(
            start_time=start_time,
            end_time=end_time,
            zoom_level=zoom_level,
            focus_x=focus_x,
            focus_y=focus_y,
            is_enabled=is_enabled,
            **kwargs,
        )

    return _create


@pytest.fixture
def cursor_metadata_factory() -> Callable[..., CursorMetadataFile]:
    """创建侧车元数据；events 为 (timestamp, x, y, type[, button]) 元组（屏幕坐标）。"""

    def _create(
        events: list[tuple[Any, ...]] | None = None,
        width: float = 1920.0,
        height: float = 1080.0,
        origin: tuple[float, float] | None = None,
        frame_rate: float = 60.0,
    ) -> CursorMetadataFile:
        parsed: list[CursorEvent] = []
        for item in events or []:
            timestamp, x, y, event_type, *rest = item
            button = rest[0] if rest else None
            parsed.append(
                CursorEvent(timestamp=timestamp, x=x, y=y, type=event_type, button=button)
            )
        return CursorMetadataFile(
            frame_rate=frame_rate,
            source_size=CodableSize(width=width, height=height),
            capture_origin=CodablePoint(x=origin[0], y=origin[1]) if origin else None,
            events=parsed,
        )

    return _create
