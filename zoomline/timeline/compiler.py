"""变速片段编译器

将用户编辑的变速片段展开为带平滑变速过渡的微片段序列。
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import structlog

from zoomline.domain.models.segment import ExportSegment, RampZone, Segment

logger = structlog.get_logger(__name__)

DEFAULT_HALF_RAMP_DURATION = 0.15
SPEED_DELTA_THRESHOLD = 0.01
RAMP_STEPS = 5
MIN_MAIN_DURATION = 0.001


def smoothstep(u: float) -> float:
    """三次缓动 u²(3−2u)。"""
    return u * u * (3.0 - 2.0 * u)


def find_ramp_zones(
    segments: Sequence[Segment],
    half_ramp_duration: float = DEFAULT_HALF_RAMP_DURATION,
) -> list[RampZone]:
    """计算相邻片段间的变速过渡区。

    过渡区单侧长度不超过所在片段时长的一半，保证不会覆盖片段另一端的边界。

    Args:
        segments: 有序片段（调用方负责过滤禁用片段）
        half_ramp_duration: 单侧过渡时长（秒）

    Returns:
        按边界序号排列的过渡区列表
    """
    zones: list[RampZone] = []
    for i in range(len(segments) - 1):
        a = segments[i]
        b = segments[i + 1]
        if abs(a.speed - b.speed) <= SPEED_DELTA_THRESHOLD:
            continue
        pre_duration = min(half_ramp_duration, a.duration / 2)
        post_duration = min(half_ramp_duration, b.duration / 2)
        zones.append(
            RampZone(
                boundary_index=i,
                pre_ramp_start=a.end_time - pre_duration,
                post_ramp_end=b.start_time + post_duration,
                from_speed=a.speed,
                to_speed=b.speed,
            )
        )
    return zones


def _ramp_steps(ramp: RampZone, local_start: float, local_end: float) -> list[ExportSegment]:
    """把过渡区的一半切成等长微步，速度按整个过渡窗口内的中点位置缓动。"""
    total = ramp.duration
    step = (local_end - local_start) / RAMP_STEPS
    steps: list[ExportSegment] = []
    for s in range(RAMP_STEPS):
        # 最后一步的终点取精确边界，保证与相邻片段首尾相接
        end = local_end if s == RAMP_STEPS - 1 else local_start + (s + 1) * step
        mid = local_start + (s + 0.5) * step
        u = (mid - ramp.pre_ramp_start) / total if total > 0 else 1.0
        speed = ramp.from_speed + (ramp.to_speed - ramp.from_speed) * smoothstep(u)
        steps.append(
            ExportSegment(
                source_start=local_start + s * step,
                source_end=end,
                speed=speed,
            )
        )
    return steps


def compile_segments(
    segments: Sequence[Segment],
    half_ramp_duration: float = DEFAULT_HALF_RAMP_DURATION,
) -> list[ExportSegment]:
    """将变速片段展开为带平滑过渡的微片段。

    每个速度变化边界两侧各展开 RAMP_STEPS 个微步，速度按 smoothstep 插值；
    片段主体保持原速。禁用片段先被剔除，过渡只发生在相邻的启用片段之间。

    Args:
        segments: 按源时间排序的片段
        half_ramp_duration: 单侧过渡时长（秒）

    Returns:
        有序微片段列表
    """
    enabled = [seg for seg in segments if seg.is_enabled]
    if not enabled:
        return []
    if len(enabled) == 1:
        seg = enabled[0]
        return [ExportSegment(source_start=seg.start_time, source_end=seg.end_time, speed=seg.speed)]

    zones = {zone.boundary_index: zone for zone in find_ramp_zones(enabled, half_ramp_duration)}
    result: list[ExportSegment] = []

    for i, seg in enumerate(enabled):
        ramp_at_start = zones.get(i - 1)
        ramp_at_end = zones.get(i)

        main_start = ramp_at_start.post_ramp_end if ramp_at_start else seg.start_time
        main_end = ramp_at_end.pre_ramp_start if ramp_at_end else seg.end_time

        # 前一边界过渡的后半段
        if ramp_at_start:
            result.extend(_ramp_steps(ramp_at_start, seg.start_time, ramp_at_start.post_ramp_end))

        if main_end > main_start + MIN_MAIN_DURATION:
            result.append(ExportSegment(source_start=main_start, source_end=main_end, speed=seg.speed))

        # 下一边界过渡的前半段
        if ramp_at_end:
            result.extend(_ramp_steps(ramp_at_end, ramp_at_end.pre_ramp_start, seg.end_time))

    logger.debug(
        "timeline.ramps_expanded",
        segment_count=len(enabled),
        ramp_count=len(zones),
        micro_segment_count=len(result),
    )
    return result


@dataclass(frozen=True)
class InsertionPoint:
    """微片段按源时长顺序排布后的位置（合成时间）。"""

    composition_start: float
    duration: float
    speed: float


@dataclass(frozen=True)
class InsertionPlan:
    """微片段在合成轨道上的排布方案。

    先按源时长首尾相接放置，再逆序对每段施加 1/speed 的时间缩放，
    这样后面的缩放不会扰动前面片段的起点。
    """

    points: tuple[InsertionPoint, ...]

    def scaled_points(self) -> list[tuple[float, float]]:
        """返回逆序缩放后每段的 (起点, 时长)。"""
        starts = [point.composition_start for point in self.points]
        durations = [point.duration for point in self.points]
        for index in reversed(range(len(self.points))):
            point = self.points[index]
            if abs(point.speed - 1.0) <= SPEED_DELTA_THRESHOLD:
                continue
            target = point.duration / point.speed
            delta = target - durations[index]
            durations[index] = target
            # 缩放区间之后的内容整体平移
            for later in range(index + 1, len(starts)):
                starts[later] += delta
        return list(zip(starts, durations))

    @property
    def total_duration(self) -> float:
        scaled = self.scaled_points()
        if not scaled:
            return 0.0
        start, duration = scaled[-1]
        return start + duration

    def __iter__(self) -> Iterator[InsertionPoint]:
        return iter(self.points)


def build_insertion_plan(export_segments: Sequence[ExportSegment]) -> InsertionPlan:
    """按顺序排布微片段，生成供合成轨道使用的插入方案。"""
    cursor = 0.0
    points: list[InsertionPoint] = []
    for seg in export_segments:
        points.append(
            InsertionPoint(
                composition_start=cursor,
                duration=seg.source_duration,
                speed=seg.speed,
            )
        )
        cursor += seg.source_duration
    return InsertionPlan(points=tuple(points))
