"""时间线片段数据模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4


@dataclass(frozen=True)
class Segment:
    """用户编辑的变速片段（源时间）。

    片段按源时间有序、首尾相接且互不重叠，由时间线编辑产生，
    编译器只读消费。
    """

    start_time: float
    end_time: float
    speed: float = 1.0
    is_enabled: bool = True
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def output_duration(self) -> float:
        """按当前速度播放后的输出时长。"""
        return self.duration / self.speed


@dataclass(frozen=True)
class RampZone:
    """相邻片段速度差异超过阈值时的变速过渡区。"""

    boundary_index: int  # 位于 segments[i] 与 segments[i+1] 之间
    pre_ramp_start: float  # 过渡区在前一片段内的起点（源时间）
    post_ramp_end: float  # 过渡区在后一片段内的终点（源时间）
    from_speed: float
    to_speed: float

    @property
    def duration(self) -> float:
        return self.post_ramp_end - self.pre_ramp_start


@dataclass(frozen=True)
class ExportSegment:
    """编译器输出的微片段：源时间范围 + 播放速度。"""

    source_start: float
    source_end: float
    speed: float

    @property
    def source_duration(self) -> float:
        return self.source_end - self.source_start

    @property
    def composition_duration(self) -> float:
        return self.source_duration / self.speed
