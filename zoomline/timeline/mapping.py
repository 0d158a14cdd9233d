"""播放头在输出时间与源时间之间的比例换算。

时间线 UI 以输出时长为刻度显示播放头，播放器以源时长为刻度定位，
两者通过启用片段的速度互相换算。这里不考虑变速过渡区。
"""

from __future__ import annotations

from collections.abc import Sequence

from zoomline.domain.models.segment import Segment

_OUTPUT_TOLERANCE = 0.001


def total_output_duration(segments: Sequence[Segment]) -> float:
    """启用片段按各自速度播放后的总时长。"""
    return sum(seg.output_duration for seg in segments if seg.is_enabled)


def output_fraction_to_source_fraction(
    fraction: float,
    segments: Sequence[Segment],
    source_duration: float,
) -> float:
    if source_duration <= 0:
        return 0.0
    output_time = fraction * total_output_duration(segments)
    acc = 0.0
    for seg in segments:
        if not seg.is_enabled:
            continue
        if output_time <= acc + seg.output_duration + _OUTPUT_TOLERANCE:
            within = (output_time - acc) * seg.speed
            return (seg.start_time + within) / source_duration
        acc += seg.output_duration
    return 1.0


def source_fraction_to_output_fraction(
    fraction: float,
    segments: Sequence[Segment],
    source_duration: float,
) -> float:
    """源时间比例 → 输出时间比例。

    落在禁用片段内时吸附到最近的启用片段边界（距离相同取先出现者）。
    """
    total = total_output_duration(segments)
    if total <= 0:
        return 0.0
    source_time = fraction * source_duration
    enabled = [seg for seg in segments if seg.is_enabled]

    acc = 0.0
    for seg in enabled:
        if seg.start_time <= source_time <= seg.end_time:
            within = (source_time - seg.start_time) / seg.speed
            return (acc + within) / total
        acc += seg.output_duration

    best_fraction = 0.0
    best_distance = float("inf")
    acc = 0.0
    for seg in enabled:
        start_distance = abs(source_time - seg.start_time)
        end_distance = abs(source_time - seg.end_time)
        if start_distance < best_distance:
            best_distance = start_distance
            best_fraction = acc / total
        if end_distance < best_distance:
            best_distance = end_distance
            best_fraction = (acc + seg.output_duration) / total
        acc += seg.output_duration
    return max(0.0, min(1.0, best_fraction))
