"""时间线编辑服务

持有项目的可编辑状态（分割点、变速片段、缩放区域与选中项），提供撤销/重做，
并按需从当前状态重新计算导出所需的派生结构。派生结构从不跨编辑缓存。
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace

import structlog

from zoomline.cursor.events import extract_interactions
from zoomline.domain.models.cursor import CursorMetadataFile
from zoomline.domain.models.segment import ExportSegment, Segment
from zoomline.domain.models.zoom import MAX_ZOOM_LEVEL, MIN_ZOOM_LEVEL, ZoomKeyframe, ZoomRegion
from zoomline.infra.config.settings import AppSettings, get_settings
from zoomline.infra.observability.engine_metrics import observe_plan_build, set_zoom_regions_generated
from zoomline.pipelines.export.overlay import (
    OverlaySettings,
    OverlayState,
    prepare_overlay,
    remap_for_export,
)
from zoomline.timeline.compiler import compile_segments
from zoomline.timeline.mapping import (
    output_fraction_to_source_fraction,
    source_fraction_to_output_fraction,
    total_output_duration,
)
from zoomline.timeline.remap import TimeRemapTable, build_time_remap_table
from zoomline.zoom.interpolator import zoom_keyframes
from zoomline.zoom.synthesizer import clamp_focus_point, generate_zoom_regions

logger = structlog.get_logger(__name__)

MIN_SPEED = 0.25
MAX_SPEED = 32.0
SPLIT_EDGE_MARGIN = 0.05  # 分割点距视频首尾及其他分割点的最小间隔
SEGMENT_MATCH_TOLERANCE = 0.02  # 重建片段时匹配旧片段的容差
MIN_ZOOM_REGION_DURATION = 0.3
NEW_ZOOM_REGION_LEAD = 1.0
NEW_ZOOM_REGION_DURATION = 2.0
DUPLICATE_GAP = 0.5


@dataclass(frozen=True)
class _Snapshot:
    split_points: tuple[float, ...]
    segments: tuple[Segment, ...]
    zoom_regions: tuple[ZoomRegion, ...]


class TimelineEditor:
    """单个录制项目的时间线编辑器。

    所有编辑操作对未知 id、越界索引或非法分割位置静默忽略（不产生撤销快照）。
    """

    def __init__(
        self,
        source_duration: float,
        source_width: float,
        source_height: float,
        *,
        overlay_settings: OverlaySettings | None = None,
        settings: AppSettings | None = None,
    ) -> None:
        if source_duration <= 0:
            raise ValueError(f"source_duration must be positive, got {source_duration}")
        if source_width <= 0 or source_height <= 0:
            raise ValueError(f"source size must be positive, got {source_width}x{source_height}")

        self.settings = settings if settings is not None else get_settings()
        self.overlay_settings = overlay_settings if overlay_settings is not None else OverlaySettings()
        self.source_duration = source_duration
        self.source_width = source_width
        self.source_height = source_height

        self.split_points: list[float] = []
        self.segments: list[Segment] = [Segment(start_time=0.0, end_time=source_duration)]
        self.zoom_regions: list[ZoomRegion] = []
        self.selected_segment_id: str | None = None
        self.selected_zoom_region_id: str | None = None

        self._undo_stack: list[_Snapshot] = []
        self._redo_stack: list[_Snapshot] = []

    # ------------------------------------------------------------------
    # 撤销 / 重做
    # ------------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def _capture(self) -> _Snapshot:
        return _Snapshot(
            split_points=tuple(self.split_points),
            segments=tuple(self.segments),
            zoom_regions=tuple(region.model_copy() for region in self.zoom_regions),
        )

    def _push_undo(self) -> None:
        self._undo_stack.append(self._capture())
        if len(self._undo_stack) > self.settings.undo_history_limit:
            self._undo_stack.pop(0)
        self._redo_stack.clear()

    def _restore(self, snapshot: _Snapshot) -> None:
        self.split_points = list(snapshot.split_points)
        self.segments = list(snapshot.segments)
        self.zoom_regions = [region.model_copy() for region in snapshot.zoom_regions]
        self.selected_segment_id = None
        self.selected_zoom_region_id = None

    def undo(self) -> None:
        if not self._undo_stack:
            return
        snapshot = self._undo_stack.pop()
        self._redo_stack.append(self._capture())
        self._restore(snapshot)

    def redo(self) -> None:
        if not self._redo_stack:
            return
        snapshot = self._redo_stack.pop()
        self._undo_stack.append(self._capture())
        self._restore(snapshot)

    # ------------------------------------------------------------------
    # 分割与变速片段
    # ------------------------------------------------------------------

    def add_split(self, at: float) -> None:
        """在源时间 at 处添加分割点。

        分割点四舍五入到 10ms，必须距视频首尾超过 0.05s，且与已有分割点相距不小于 0.05s。
        """
        # 0.005 一律向上进位
        t = math.floor(at * 100 + 0.5) / 100
        if not (SPLIT_EDGE_MARGIN < t < self.source_duration - SPLIT_EDGE_MARGIN):
            return
        if any(abs(existing - t) < SPLIT_EDGE_MARGIN for existing in self.split_points):
            return
        self._push_undo()
        self.split_points.append(t)
        self.split_points.sort()
        self._rebuild_segments()
        logger.debug("timeline_editor.split_added", at=t, split_count=len(self.split_points))

    def remove_split(self, index: int) -> None:
        if not 0 <= index < len(self.split_points):
            return
        self._push_undo()
        del self.split_points[index]
        self._rebuild_segments()

    def _rebuild_segments(self) -> None:
        # 新区间继承包含它的旧片段的速度与启用状态
        times = [0.0, *self.split_points, self.source_duration]
        rebuilt: list[Segment] = []
        for start, end in zip(times, times[1:]):
            existing = next(
                (
                    seg
                    for seg in self.segments
                    if seg.start_time <= start + SEGMENT_MATCH_TOLERANCE
                    and seg.end_time >= end - SEGMENT_MATCH_TOLERANCE
                ),
                None,
            )
            rebuilt.append(
                Segment(
                    start_time=start,
                    end_time=end,
                    speed=existing.speed if existing else 1.0,
                    is_enabled=existing.is_enabled if existing else True,
                )
            )
        self.segments = rebuilt

    def _segment_index(self, segment_id: str) -> int | None:
        for index, seg in enumerate(self.segments):
            if seg.id == segment_id:
                return index
        return None

    def toggle_segment(self, segment_id: str) -> None:
        index = self._segment_index(segment_id)
        if index is None:
            return
        self._push_undo()
        seg = self.segments[index]
        self.segments[index] = replace(seg, is_enabled=not seg.is_enabled)

    def set_speed(self, speed: float, segment_id: str) -> None:
        index = self._segment_index(segment_id)
        if index is None:
            return
        self._push_undo()
        clamped = max(MIN_SPEED, min(MAX_SPEED, speed))
        self.segments[index] = replace(self.segments[index], speed=clamped)

    # ------------------------------------------------------------------
    # 缩放区域
    # ------------------------------------------------------------------

    def _zoom_region_index(self, region_id: str) -> int | None:
        for index, region in enumerate(self.zoom_regions):
            if region.id == region_id:
                return index
        return None

    def _clamp_focus(self, x: float, y: float, zoom: float) -> tuple[float, float]:
        return clamp_focus_point(x, y, zoom, self.source_width, self.source_height)

    def _auto_zoom_level(self) -> float:
        return max(MIN_ZOOM_LEVEL, min(MAX_ZOOM_LEVEL, self.overlay_settings.auto_zoom_level))

    def add_zoom_region(self, at: float) -> ZoomRegion:
        """在源时间 at 附近添加一个 2 秒的缩放区域并选中，同时开启自动缩放。

        起点夹紧到 [0, 时长 − 0.3]，播放头位于末尾或之后时区域贴着结尾。
        """
        self._push_undo()
        start = max(0.0, min(at - NEW_ZOOM_REGION_LEAD, self.source_duration - MIN_ZOOM_REGION_DURATION))
        end = min(self.source_duration, start + NEW_ZOOM_REGION_DURATION)
        level = self._auto_zoom_level()
        focus_x, focus_y = self._clamp_focus(self.source_width / 2, self.source_height / 2, level)
        region = ZoomRegion(
            start_time=start,
            end_time=end,
            zoom_level=level,
            focus_x=focus_x,
            focus_y=focus_y,
        )
        self.zoom_regions.append(region)
        self.selected_zoom_region_id = region.id
        self.selected_segment_id = None
        self.overlay_settings = self.overlay_settings.model_copy(update={"auto_zoom_enabled": True})
        return region

    def set_zoom_region_level(self, level: float, region_id: str) -> None:
        index = self._zoom_region_index(region_id)
        if index is None:
            return
        self._push_undo()
        region = self.zoom_regions[index]
        clamped = max(MIN_ZOOM_LEVEL, min(MAX_ZOOM_LEVEL, level))
        focus_x, focus_y = self._clamp_focus(region.focus_x, region.focus_y, clamped)
        self.zoom_regions[index] = region.model_copy(
            update={"zoom_level": clamped, "focus_x": focus_x, "focus_y": focus_y}
        )

    def set_zoom_region_focus(self, x: float, y: float, region_id: str) -> None:
        index = self._zoom_region_index(region_id)
        if index is None:
            return
        self._push_undo()
        region = self.zoom_regions[index]
        focus_x, focus_y = self._clamp_focus(x, y, region.zoom_level)
        self.zoom_regions[index] = region.model_copy(update={"focus_x": focus_x, "focus_y": focus_y})

    def set_zoom_region_times(self, start: float, end: float, region_id: str) -> None:
        """设置区域起止时间，夹紧到 [0, 时长] 且保证最短 0.3s。"""
        index = self._zoom_region_index(region_id)
        if index is None:
            return
        self._push_undo()
        duration = self.source_duration
        new_start = max(0.0, min(duration - MIN_ZOOM_REGION_DURATION, start))
        new_end = min(duration, max(new_start + MIN_ZOOM_REGION_DURATION, end))
        new_start = max(0.0, min(new_start, new_end - MIN_ZOOM_REGION_DURATION))
        self.zoom_regions[index] = self.zoom_regions[index].model_copy(
            update={"start_time": new_start, "end_time": new_end}
        )

    def duplicate_zoom_region(self, region_id: str) -> ZoomRegion | None:
        index = self._zoom_region_index(region_id)
        if index is None:
            return None
        self._push_undo()
        original = self.zoom_regions[index]
        length = original.duration
        start = max(0.0, min(original.end_time + DUPLICATE_GAP, self.source_duration - length))
        copy = ZoomRegion(
            start_time=start,
            end_time=start + length,
            zoom_level=original.zoom_level,
            focus_x=original.focus_x,
            focus_y=original.focus_y,
            is_enabled=original.is_enabled,
        )
        self.zoom_regions.append(copy)
        self.selected_zoom_region_id = copy.id
        return copy

    def toggle_zoom_region(self, region_id: str) -> None:
        index = self._zoom_region_index(region_id)
        if index is None:
            return
        self._push_undo()
        region = self.zoom_regions[index]
        self.zoom_regions[index] = region.model_copy(update={"is_enabled": not region.is_enabled})

    def delete_zoom_region(self, region_id: str) -> None:
        index = self._zoom_region_index(region_id)
        if index is None:
            return
        self._push_undo()
        del self.zoom_regions[index]
        if self.selected_zoom_region_id == region_id:
            self.selected_zoom_region_id = None

    def generate_auto_zoom_regions(self, metadata: CursorMetadataFile) -> list[ZoomRegion]:
        """用交互聚类结果替换全部缩放区域。"""
        clicks, key_interactions, (width, height) = extract_interactions(metadata)
        sensitivity = self.overlay_settings.auto_zoom_sensitivity
        regions = generate_zoom_regions(
            clicks,
            key_interactions,
            sensitivity,
            self._auto_zoom_level(),
            width,
            height,
        )
        self._push_undo()
        self.zoom_regions = regions
        self.selected_zoom_region_id = None
        self.selected_segment_id = None
        set_zoom_regions_generated(len(regions), sensitivity=sensitivity)
        logger.info(
            "timeline_editor.auto_zoom_regenerated",
            region_count=len(regions),
            sensitivity=sensitivity,
        )
        return list(regions)

    # ------------------------------------------------------------------
    # 播放头比例换算
    # ------------------------------------------------------------------

    @property
    def total_output_duration(self) -> float:
        return total_output_duration(self.segments)

    def output_fraction_to_source_fraction(self, fraction: float) -> float:
        return output_fraction_to_source_fraction(fraction, self.segments, self.source_duration)

    def source_fraction_to_output_fraction(self, fraction: float) -> float:
        return source_fraction_to_output_fraction(fraction, self.segments, self.source_duration)

    # ------------------------------------------------------------------
    # 派生结构
    # ------------------------------------------------------------------

    def export_segments(self) -> list[ExportSegment]:
        start = time.perf_counter()
        result = compile_segments(self.segments, self.settings.half_ramp_duration_s)
        observe_plan_build((time.perf_counter() - start) * 1000, kind="export_segments")
        return result

    def remap_table(self) -> TimeRemapTable:
        start = time.perf_counter()
        table = build_time_remap_table(
            self.segments,
            half_ramp_duration=self.settings.half_ramp_duration_s,
            samples_per_second=self.settings.remap_samples_per_second,
        )
        observe_plan_build((time.perf_counter() - start) * 1000, kind="remap_table")
        return table

    def keyframes(self) -> list[ZoomKeyframe]:
        return zoom_keyframes(
            self.zoom_regions,
            self.overlay_settings.auto_zoom_sensitivity,
            self.source_width,
            self.source_height,
        )

    def export_overlay(
        self,
        metadata: CursorMetadataFile,
        output_frame_rate: float | None = None,
    ) -> OverlayState:
        """准备导出用叠加层：源时间预计算后重定位到合成时间。"""
        state = prepare_overlay(
            metadata,
            self.overlay_settings,
            output_frame_rate,
            zoom_regions=self.zoom_regions,
        )
        return remap_for_export(state, self.remap_table())
