"""缩放关键帧生成与逐帧插值

关键帧采用“先定点、后缓动”的语义：从 prev 过渡到 next 的缓动从 prev.timestamp
开始，持续 next.easing_duration。因此每个区域需要显式的保持关键帧来锚定缓动时机：

    [1.0 保持] → [放大到峰值] → [峰值保持] → [缩回 1.0]
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass

from zoomline.domain.models.zoom import (
    AutoZoomSensitivity,
    SensitivityProfile,
    ZoomKeyframe,
    ZoomRegion,
    get_sensitivity_profile,
)
from zoomline.timeline.compiler import smoothstep

_MIN_EASING = 0.001
_NO_CROP_ZOOM = 1.001
_MIN_HOLD_OFFSET = 0.01


@dataclass(frozen=True)
class ZoomState:
    zoom: float
    focus_x: float
    focus_y: float


@dataclass(frozen=True)
class CropRect:
    """裁剪矩形。

    zoom_crop_rect 返回的坐标以左上角为原点（与光标轨迹一致）；
    交给合成器前需调用 flipped() 转为左下角原点。
    """

    x: float
    y: float
    width: float
    height: float

    def flipped(self, source_height: float) -> CropRect:
        return CropRect(
            x=self.x,
            y=source_height - self.y - self.height,
            width=self.width,
            height=self.height,
        )


def zoom_keyframes(
    regions: Sequence[ZoomRegion],
    sensitivity: AutoZoomSensitivity | SensitivityProfile,
    source_width: float,
    source_height: float,
) -> list[ZoomKeyframe]:
    """将启用的缩放区域展开为关键帧序列。

    Args:
        regions: 缩放区域（可含禁用区域）
        sensitivity: 灵敏度档位名或档位参数，决定放大/缩回时长
        source_width: 源画面宽
        source_height: 源画面高

    Returns:
        按时间稳定排序的关键帧；没有启用区域时为空
    """
    enabled = sorted((r for r in regions if r.is_enabled), key=lambda r: r.start_time)
    if not enabled:
        return []

    profile = get_sensitivity_profile(sensitivity)
    center_x = source_width / 2
    center_y = source_height / 2
    zoom_in = profile.zoom_in_duration
    zoom_out = profile.zoom_out_duration

    keyframes = [ZoomKeyframe(0.0, 1.0, center_x, center_y, 0.0)]
    for region in enabled:
        hold_start = max(_MIN_HOLD_OFFSET, region.start_time - zoom_in)
        peak_hold_end = max(region.start_time + _MIN_HOLD_OFFSET, region.end_time - zoom_out)
        keyframes.extend(
            [
                ZoomKeyframe(hold_start, 1.0, center_x, center_y, 0.0),
                ZoomKeyframe(region.start_time, region.zoom_level, region.focus_x, region.focus_y, zoom_in),
                ZoomKeyframe(peak_hold_end, region.zoom_level, region.focus_x, region.focus_y, 0.0),
                ZoomKeyframe(region.end_time, 1.0, center_x, center_y, zoom_out),
            ]
        )

    keyframes.sort(key=lambda kf: kf.timestamp)
    return keyframes


def interpolate_zoom(
    keyframes: Sequence[ZoomKeyframe],
    timestamp: float,
    keyframe_times: Sequence[float] | None = None,
) -> ZoomState:
    """求 timestamp 时刻的缩放倍数与焦点。

    next 的缓动时长近似为 0 时直接返回 next 的值（保持平台，不做混合）。
    keyframe_times 为与 keyframes 对应的时间戳，缺省时现场取出。
    """
    if not keyframes:
        return ZoomState(1.0, 0.0, 0.0)

    first = keyframes[0]
    last = keyframes[-1]
    if timestamp <= first.timestamp:
        return ZoomState(first.zoom_level, first.focus_x, first.focus_y)
    if timestamp >= last.timestamp:
        return ZoomState(last.zoom_level, last.focus_x, last.focus_y)

    if keyframe_times is None:
        keyframe_times = [kf.timestamp for kf in keyframes]
    prev_index = bisect_right(keyframe_times, timestamp) - 1
    prev = keyframes[prev_index]
    nxt = keyframes[min(prev_index + 1, len(keyframes) - 1)]

    if nxt.easing_duration <= _MIN_EASING:
        return ZoomState(nxt.zoom_level, nxt.focus_x, nxt.focus_y)

    progress = min(1.0, max(0.0, (timestamp - prev.timestamp) / nxt.easing_duration))
    eased = smoothstep(progress)
    return ZoomState(
        zoom=prev.zoom_level + (nxt.zoom_level - prev.zoom_level) * eased,
        focus_x=prev.focus_x + (nxt.focus_x - prev.focus_x) * eased,
        focus_y=prev.focus_y + (nxt.focus_y - prev.focus_y) * eased,
    )


def zoom_crop_rect(
    keyframes: Sequence[ZoomKeyframe],
    timestamp: float,
    source_width: float,
    source_height: float,
    keyframe_times: Sequence[float] | None = None,
) -> CropRect | None:
    """计算 timestamp 时刻的裁剪矩形（左上角原点）。

    Returns:
        裁剪矩形；缩放倍数不超过 1.001 或没有关键帧时返回 None（整帧直通）
    """
    if not keyframes:
        return None
    state = interpolate_zoom(keyframes, timestamp, keyframe_times)
    if state.zoom <= _NO_CROP_ZOOM:
        return None

    crop_w = source_width / state.zoom
    crop_h = source_height / state.zoom
    crop_x = max(0.0, min(source_width - crop_w, state.focus_x - crop_w / 2))
    crop_y = max(0.0, min(source_height - crop_h, state.focus_y - crop_h / 2))
    return CropRect(x=crop_x, y=crop_y, width=crop_w, height=crop_h)
