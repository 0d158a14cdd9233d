"""时间线引擎指标的 OpenTelemetry 封装。

提供统一的 OTEL Gauge/Counter/Histogram helper，用于记录重算耗时、
导出重映射丢弃的事件数和自动生成的缩放区域数量。
"""

from __future__ import annotations

from typing import Any

from opentelemetry import metrics
from opentelemetry.metrics import Meter

# 获取全局 meter
meter: Meter = metrics.get_meter("zoomline.engine")

plan_build_duration_histogram = meter.create_histogram(
    name="zoomline_plan_build_duration_ms",
    description="派生结构（微片段、映射表、关键帧）单次重算耗时",
    unit="ms",
)

remap_dropped_events_total = meter.create_counter(
    name="zoomline_remap_dropped_events_total",
    description="导出重映射时因落在禁用/裁剪片段而丢弃的事件数",
    unit="events",
)

zoom_regions_generated_gauge = meter.create_gauge(
    name="zoomline_zoom_regions_generated",
    description="最近一次自动生成的缩放区域数量",
    unit="regions",
)


def observe_plan_build(duration_ms: float, *, kind: str) -> None:
    """记录派生结构重算耗时。

    Args:
        duration_ms: 耗时（毫秒）
        kind: 派生结构类型，如 "export_segments" / "remap_table" / "overlay"
    """
    plan_build_duration_histogram.record(duration_ms, attributes={"kind": kind})


def add_dropped_events(count: int, *, kind: str) -> None:
    if count <= 0:
        return
    remap_dropped_events_total.add(count, attributes={"kind": kind})


def set_zoom_regions_generated(count: int, *, sensitivity: str | None = None) -> None:
    labels: dict[str, Any] = {}
    if sensitivity:
        labels["sensitivity"] = sensitivity
    zoom_regions_generated_gauge.set(count, attributes=labels)
