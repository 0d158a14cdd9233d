"""合成时间与源时间的双向映射表。"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from zoomline.domain.models.segment import Segment
from zoomline.timeline.compiler import DEFAULT_HALF_RAMP_DURATION, compile_segments

logger = structlog.get_logger(__name__)

DEFAULT_SAMPLES_PER_SECOND = 60.0
DEFAULT_MAX_REVERSE_DISTANCE = 1.0
_MIN_INTERPOLATION_RANGE = 0.0001


@dataclass(frozen=True)
class TimeRemapEntry:
    composition_time: float
    source_time: float


@dataclass(frozen=True)
class TimeRemapTable:
    """按合成时间升序排列的映射表。

    正向查找（合成→源）每个输出帧调用一次，走二分；反向查找（源→合成）
    只用于点击、关键帧等离散事件的重定位。空表表示恒等映射。
    """

    entries: tuple[TimeRemapEntry, ...] = ()
    _composition_times: list[float] = field(init=False, repr=False, compare=False)
    _source_times: list[float] = field(init=False, repr=False, compare=False)
    _source_sorted: bool = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        composition_times = [entry.composition_time for entry in self.entries]
        source_times = [entry.source_time for entry in self.entries]
        source_sorted = all(a <= b for a, b in zip(source_times, source_times[1:]))
        object.__setattr__(self, "_composition_times", composition_times)
        object.__setattr__(self, "_source_times", source_times)
        object.__setattr__(self, "_source_sorted", source_sorted)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def duration(self) -> float:
        """合成总时长（最后一个条目的合成时间）。"""
        if not self.entries:
            return 0.0
        return self.entries[-1].composition_time

    def source_time(self, composition_time: float) -> float:
        """合成时间 → 源时间：二分定位 + 线性插值，越界夹紧到首尾条目。"""
        if not self.entries:
            return composition_time
        first = self.entries[0]
        last = self.entries[-1]
        if composition_time <= first.composition_time:
            return first.source_time
        if composition_time >= last.composition_time:
            return last.source_time

        hi = bisect_right(self._composition_times, composition_time)
        a = self.entries[hi - 1]
        b = self.entries[hi]
        span = b.composition_time - a.composition_time
        if span <= _MIN_INTERPOLATION_RANGE:
            return a.source_time
        frac = (composition_time - a.composition_time) / span
        return a.source_time + frac * (b.source_time - a.source_time)

    def composition_time(
        self,
        source_time: float,
        max_distance: float = DEFAULT_MAX_REVERSE_DISTANCE,
    ) -> float | None:
        """源时间 → 合成时间：取源时间最近的条目。

        Args:
            source_time: 源时间（秒）
            max_distance: 最近条目的容差，达到或超过即视为落在禁用/裁剪区间

        Returns:
            合成时间；无法映射时返回 None
        """
        if not self.entries:
            return source_time

        if self._source_sorted:
            best_index = self._nearest_sorted(source_time)
        else:
            best_index = self._nearest_linear(source_time)

        best_distance = abs(self._source_times[best_index] - source_time)
        if best_distance >= max_distance:
            return None
        return self.entries[best_index].composition_time

    def _nearest_linear(self, source_time: float) -> int:
        best_index = 0
        best_distance = float("inf")
        for index, value in enumerate(self._source_times):
            distance = abs(value - source_time)
            if distance < best_distance:
                best_distance = distance
                best_index = index
        return best_index

    def _nearest_sorted(self, source_time: float) -> int:
        # 距离相同时取最早的条目，与线性扫描结果一致
        times = self._source_times
        pos = bisect_left(times, source_time)
        if pos == 0:
            return 0
        if pos == len(times):
            return bisect_left(times, times[-1])
        before = times[pos - 1]
        after = times[pos]
        if source_time - before <= after - source_time:
            return bisect_left(times, before)
        return pos


def build_time_remap_table(
    segments: Sequence[Segment],
    half_ramp_duration: float = DEFAULT_HALF_RAMP_DURATION,
    samples_per_second: float = DEFAULT_SAMPLES_PER_SECOND,
) -> TimeRemapTable:
    """由片段构建映射表。

    与编译器使用同一份微片段；每段按合成时长均匀采样（至少 1 步），
    段首尾条目都会写入，因此相邻段的边界条目会重复。
    """
    if samples_per_second <= 0:
        raise ValueError(f"samples_per_second must be positive, got {samples_per_second}")
    if not segments:
        return TimeRemapTable()

    entries: list[TimeRemapEntry] = []
    composition_cursor = 0.0
    for seg in compile_segments(segments, half_ramp_duration):
        source_duration = seg.source_duration
        composition_duration = seg.composition_duration
        steps = max(1, int(composition_duration * samples_per_second))
        composition_step = composition_duration / steps
        source_step = source_duration / steps
        for i in range(steps):
            entries.append(
                TimeRemapEntry(
                    composition_time=composition_cursor + i * composition_step,
                    source_time=seg.source_start + i * source_step,
                )
            )
        entries.append(TimeRemapEntry(composition_cursor + composition_duration, seg.source_end))
        composition_cursor += composition_duration

    table = TimeRemapTable(entries=tuple(entries))
    logger.debug(
        "timeline.remap_table_built",
        entry_count=len(table),
        composition_duration=table.duration,
        source_sorted=table._source_sorted,
    )
    return table
