"""光标叠加层导出管线

负责为合成器准备逐帧所需的光标轨迹、点击效果与缩放裁剪数据：

1. prepare_overlay: 加载项目时（或设置变化时）一次性预计算，结果不可变
2. remap_for_export: 导出前把源时间上的数据重定位到合成时间
3. evaluate_frame: 每个输出帧调用一次，不做日志，不分配大对象

图像渲染（光标图形、点击圆环、画面裁剪）由合成器完成，不在本模块范围内。
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

import numpy as np
import structlog
from pydantic import BaseModel, Field

from zoomline.cursor.events import extract_clicks, extract_positions
from zoomline.cursor.smoothing import CursorTrajectory, smooth_positions
from zoomline.domain.models.cursor import CursorClick, CursorMetadataFile
from zoomline.domain.models.zoom import AutoZoomSensitivity, ZoomKeyframe, ZoomRegion
from zoomline.infra.config.settings import get_settings
from zoomline.infra.observability.engine_metrics import add_dropped_events, observe_plan_build
from zoomline.infra.observability.otel import get_tracer
from zoomline.timeline.compiler import smoothstep
from zoomline.timeline.remap import TimeRemapTable
from zoomline.zoom.interpolator import CropRect, zoom_crop_rect, zoom_keyframes

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)


class OverlaySettings(BaseModel):
    """叠加层设置（随项目保存）。"""

    is_enabled: bool = True
    click_effect_enabled: bool = True
    click_effect_duration: float = Field(default_factory=lambda: get_settings().click_effect_duration_s)
    auto_zoom_enabled: bool = Field(default_factory=lambda: get_settings().auto_zoom_enabled)
    auto_zoom_level: float = Field(default_factory=lambda: get_settings().auto_zoom_level)
    auto_zoom_sensitivity: AutoZoomSensitivity = Field(
        default_factory=lambda: get_settings().auto_zoom_sensitivity
    )


@dataclass(frozen=True)
class OverlayState:
    """预计算好的不可变叠加层状态，可在任意线程上逐帧读取。"""

    trajectory: CursorTrajectory
    clicks: tuple[CursorClick, ...]
    source_width: float
    source_height: float
    capture_origin: tuple[float, float]
    settings: OverlaySettings
    keyframes: tuple[ZoomKeyframe, ...] = ()
    keyframe_times: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keyframe_times", tuple(kf.timestamp for kf in self.keyframes))


@dataclass(frozen=True)
class ActiveClick:
    click: CursorClick
    progress: float  # 经 smoothstep 缓动后的进度 [0, 1)


@dataclass(frozen=True)
class FrameOverlay:
    cursor: tuple[float, float] | None
    clicks: tuple[ActiveClick, ...]
    crop_rect: CropRect | None


def prepare_overlay(
    metadata: CursorMetadataFile,
    settings: OverlaySettings | None = None,
    output_frame_rate: float | None = None,
    zoom_regions: Sequence[ZoomRegion] = (),
) -> OverlayState:
    """由侧车元数据预计算叠加层状态。

    Args:
        metadata: 已校验的侧车元数据
        settings: 叠加层设置，None 时使用默认设置
        output_frame_rate: 轨迹重采样帧率，None 时读取配置
        zoom_regions: 项目中保存的缩放区域

    Returns:
        OverlayState；仅在开启自动缩放且存在区域时生成关键帧
    """
    overlay_settings = settings if settings is not None else OverlaySettings()
    frame_rate = (
        output_frame_rate if output_frame_rate is not None else get_settings().cursor_output_frame_rate
    )

    start = time.perf_counter()
    with tracer.start_as_current_span("overlay.prepare") as span:
        source_width = metadata.source_size.width
        source_height = metadata.source_size.height
        origin = metadata.capture_origin
        capture_origin = (origin.x, origin.y) if origin else (0.0, 0.0)

        trajectory = smooth_positions(extract_positions(metadata), frame_rate)
        clicks = tuple(extract_clicks(metadata))

        keyframes: tuple[ZoomKeyframe, ...] = ()
        if overlay_settings.auto_zoom_enabled and zoom_regions:
            keyframes = tuple(
                zoom_keyframes(
                    zoom_regions,
                    overlay_settings.auto_zoom_sensitivity,
                    source_width,
                    source_height,
                )
            )

        span.set_attribute("overlay.event_count", len(metadata.events))
        span.set_attribute("overlay.trajectory_points", len(trajectory))
        span.set_attribute("overlay.keyframe_count", len(keyframes))

    duration_ms = (time.perf_counter() - start) * 1000
    observe_plan_build(duration_ms, kind="overlay")
    logger.info(
        "overlay.prepared",
        event_count=len(metadata.events),
        trajectory_points=len(trajectory),
        click_count=len(clicks),
        keyframe_count=len(keyframes),
        duration_ms=round(duration_ms, 2),
    )
    return OverlayState(
        trajectory=trajectory,
        clicks=clicks,
        source_width=source_width,
        source_height=source_height,
        capture_origin=capture_origin,
        settings=overlay_settings,
        keyframes=keyframes,
    )


def remap_for_export(
    state: OverlayState,
    table: TimeRemapTable,
    max_distance: float | None = None,
) -> OverlayState:
    """把叠加层从源时间重定位到合成时间。

    轨迹在映射表每个条目处重新采样（时间戳换成合成时间）；点击与关键帧经反向查找
    重定时，落在禁用/裁剪区间的直接丢弃。空映射表视为恒等映射，状态原样返回。
    """
    tolerance = max_distance if max_distance is not None else get_settings().remap_max_reverse_distance_s
    if len(table) == 0:
        return state

    with tracer.start_as_current_span("overlay.remap_for_export") as span:
        composition_times = np.array([entry.composition_time for entry in table.entries], dtype=float)
        source_times = np.array([entry.source_time for entry in table.entries], dtype=float)

        if len(state.trajectory) == 0:
            trajectory = CursorTrajectory.empty()
        else:
            # np.interp 在两端夹紧，与 lookup_position 一致
            trajectory = CursorTrajectory(
                timestamps=composition_times,
                xs=np.interp(source_times, state.trajectory.timestamps, state.trajectory.xs),
                ys=np.interp(source_times, state.trajectory.timestamps, state.trajectory.ys),
            )

        clicks: list[CursorClick] = []
        for click in state.clicks:
            mapped = table.composition_time(click.timestamp, tolerance)
            if mapped is None:
                continue
            clicks.append(replace(click, timestamp=mapped))

        keyframes: list[ZoomKeyframe] = []
        for keyframe in state.keyframes:
            mapped = table.composition_time(keyframe.timestamp, tolerance)
            if mapped is None:
                continue
            keyframes.append(replace(keyframe, timestamp=mapped))

        dropped_clicks = len(state.clicks) - len(clicks)
        dropped_keyframes = len(state.keyframes) - len(keyframes)
        span.set_attribute("overlay.dropped_clicks", dropped_clicks)
        span.set_attribute("overlay.dropped_keyframes", dropped_keyframes)

    add_dropped_events(dropped_clicks, kind="click")
    add_dropped_events(dropped_keyframes, kind="keyframe")
    if dropped_clicks or dropped_keyframes:
        logger.info(
            "overlay.remap_dropped_events",
            dropped_clicks=dropped_clicks,
            dropped_keyframes=dropped_keyframes,
        )

    return replace(
        state,
        trajectory=trajectory,
        clicks=tuple(clicks),
        keyframes=tuple(keyframes),
    )


def evaluate_frame(state: OverlayState, timestamp: float) -> FrameOverlay:
    """求单个输出帧的光标位置、活跃点击与缩放裁剪框。"""
    settings = state.settings

    cursor = state.trajectory.lookup_position(timestamp) if settings.is_enabled else None

    active: list[ActiveClick] = []
    duration = settings.click_effect_duration
    if settings.is_enabled and settings.click_effect_enabled and duration > 0:
        for click in state.clicks:
            if click.timestamp <= timestamp < click.timestamp + duration:
                progress = (timestamp - click.timestamp) / duration
                active.append(ActiveClick(click=click, progress=smoothstep(progress)))

    crop_rect = None
    if settings.auto_zoom_enabled and state.keyframes:
        crop_rect = zoom_crop_rect(
            state.keyframes,
            timestamp,
            state.source_width,
            state.source_height,
            state.keyframe_times,
        )

    return FrameOverlay(cursor=cursor, clicks=tuple(active), crop_rect=crop_rect)
