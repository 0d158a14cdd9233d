"""光标轨迹平滑

将不规则采样的指针位置重采样为按输出帧间隔排列的平滑轨迹，
使用向心 Catmull-Rom 样条（alpha=0.5），避免不均匀采样下的尖点与过冲。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import structlog

from zoomline.domain.models.cursor import CursorSample, SmoothedCursorPoint

logger = structlog.get_logger(__name__)

CATMULL_ROM_ALPHA = 0.5
_MIN_POINT_DISTANCE = 0.001
_MIN_CONTROL_SPAN = 0.001
_MIN_SEGMENT_DURATION = 0.0001


@dataclass(frozen=True, eq=False)
class CursorTrajectory:
    """稠密光标轨迹（视频坐标，左上角原点），按时间升序。"""

    timestamps: np.ndarray
    xs: np.ndarray
    ys: np.ndarray

    @classmethod
    def empty(cls) -> CursorTrajectory:
        return cls(timestamps=np.empty(0), xs=np.empty(0), ys=np.empty(0))

    @classmethod
    def from_points(cls, points: Sequence[SmoothedCursorPoint | CursorSample]) -> CursorTrajectory:
        if not points:
            return cls.empty()
        return cls(
            timestamps=np.array([p.timestamp for p in points], dtype=float),
            xs=np.array([p.x for p in points], dtype=float),
            ys=np.array([p.y for p in points], dtype=float),
        )

    def __len__(self) -> int:
        return int(self.timestamps.size)

    @property
    def points(self) -> list[SmoothedCursorPoint]:
        return [
            SmoothedCursorPoint(timestamp=float(t), x=float(x), y=float(y))
            for t, x, y in zip(self.timestamps, self.xs, self.ys)
        ]

    def lookup_position(self, timestamp: float) -> tuple[float, float] | None:
        """二分定位 + 线性插值，越界夹紧到首尾点；空轨迹返回 None。"""
        n = len(self)
        if n == 0:
            return None
        ts = self.timestamps
        if timestamp <= ts[0]:
            return float(self.xs[0]), float(self.ys[0])
        if timestamp >= ts[-1]:
            return float(self.xs[-1]), float(self.ys[-1])

        hi = int(np.searchsorted(ts, timestamp, side="right"))
        lo = hi - 1
        span = ts[hi] - ts[lo]
        if span <= _MIN_SEGMENT_DURATION:
            return float(self.xs[lo]), float(self.ys[lo])
        frac = (timestamp - ts[lo]) / span
        x = self.xs[lo] + frac * (self.xs[hi] - self.xs[lo])
        y = self.ys[lo] + frac * (self.ys[hi] - self.ys[lo])
        return float(x), float(y)


def lookup_position(
    points: CursorTrajectory | Sequence[SmoothedCursorPoint],
    timestamp: float,
) -> tuple[float, float] | None:
    trajectory = points if isinstance(points, CursorTrajectory) else CursorTrajectory.from_points(points)
    return trajectory.lookup_position(timestamp)


def _control_point(
    pa: np.ndarray,
    pb: np.ndarray,
    pc: np.ndarray,
    da: np.ndarray,
    db: np.ndarray,
) -> np.ndarray:
    """向心 Catmull-Rom 在 pb 处对应的三次 Bezier 控制点。

    Args:
        pa, pb, pc: 形状 (N, 2) 的相邻三个控制顶点
        da: |pa-pb|^alpha
        db: |pb-pc|^alpha

    Returns:
        形状 (N, 2) 的控制点；da+db 过小时退化为 pb
    """
    da = da[:, None]
    db = db[:, None]
    span = da + db
    safe_span = np.where(span > _MIN_CONTROL_SPAN, span, 1.0)
    numerator = da * da * pc - db * db * pa + (2 * da * da + 3 * da * db + db * db) * pb
    control = numerator / (3 * da * safe_span)
    return np.where(span > _MIN_CONTROL_SPAN, control, pb)


def evaluate_catmull_rom(
    timestamps: np.ndarray,
    positions: np.ndarray,
    query_times: np.ndarray,
) -> np.ndarray:
    """在 query_times 处批量求值向心 Catmull-Rom 样条。

    Args:
        timestamps: 输入点时间戳，升序，形状 (M,)
        positions: 输入点坐标，形状 (M, 2)
        query_times: 查询时间，形状 (N,)

    Returns:
        形状 (N, 2) 的坐标
    """
    count = timestamps.size
    i1 = np.clip(np.searchsorted(timestamps, query_times, side="right") - 1, 0, count - 1)
    i0 = np.maximum(i1 - 1, 0)
    i2 = np.minimum(i1 + 1, count - 1)
    i3 = np.minimum(i2 + 1, count - 1)

    p0, p1, p2, p3 = positions[i0], positions[i1], positions[i2], positions[i3]

    seg_duration = timestamps[i2] - timestamps[i1]
    valid = seg_duration > _MIN_SEGMENT_DURATION
    safe_duration = np.where(valid, seg_duration, 1.0)
    u = np.clip((query_times - timestamps[i1]) / safe_duration, 0.0, 1.0)

    def _alpha_distance(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        dist = np.hypot(b[:, 0] - a[:, 0], b[:, 1] - a[:, 1])
        return np.power(np.maximum(dist, _MIN_POINT_DISTANCE), CATMULL_ROM_ALPHA)

    d01 = _alpha_distance(p0, p1)
    d12 = _alpha_distance(p1, p2)
    d23 = _alpha_distance(p2, p3)

    cp1 = _control_point(p0, p1, p2, d01, d12)
    cp2 = _control_point(p3, p2, p1, d23, d12)

    u = u[:, None]
    mu = 1.0 - u
    curve = mu**3 * p1 + 3 * mu**2 * u * cp1 + 3 * mu * u**2 * cp2 + u**3 * p2
    return np.where(valid[:, None], curve, p1)


def smooth_positions(
    points: Sequence[CursorSample],
    output_frame_rate: float,
) -> CursorTrajectory:
    """按输出帧率重采样并平滑光标轨迹。

    在 [0, 最后时间戳] 上每帧取一个样本（t = i / 帧率）。

    Args:
        points: 按时间升序的稀疏采样点（视频坐标）
        output_frame_rate: 输出帧率

    Returns:
        稠密轨迹；少于 2 个点时原样返回，最后时间戳不大于 0 时返回空轨迹
    """
    if output_frame_rate <= 0:
        raise ValueError(f"output_frame_rate must be positive, got {output_frame_rate}")
    if len(points) < 2:
        return CursorTrajectory.from_points(points)

    total_duration = points[-1].timestamp
    if total_duration <= 0:
        return CursorTrajectory.empty()

    timestamps = np.array([p.timestamp for p in points], dtype=float)
    positions = np.array([[p.x, p.y] for p in points], dtype=float)

    frame_count = int(np.floor(total_duration * output_frame_rate)) + 1
    query_times = np.arange(frame_count, dtype=float) / output_frame_rate

    smoothed = evaluate_catmull_rom(timestamps, positions, query_times)

    logger.debug(
        "cursor.trajectory_smoothed",
        input_points=len(points),
        output_points=frame_count,
        frame_rate=output_frame_rate,
    )
    return CursorTrajectory(
        timestamps=query_times,
        xs=smoothed[:, 0].copy(),
        ys=smoothed[:, 1].copy(),
    )
