"""光标轨迹平滑单元测试。"""

from __future__ import annotations

import numpy as np
import pytest

from zoomline.cursor.smoothing import (
    CursorTrajectory,
    evaluate_catmull_rom,
    lookup_position,
    smooth_positions,
)
from zoomline.domain.models.cursor import CursorSample, SmoothedCursorPoint


def _samples(*points: tuple[float, float, float]) -> list[CursorSample]:
    return [CursorSample(timestamp=t, x=x, y=y) for t, x, y in points]


class TestSmoothPositions:
    """测试 smooth_positions。"""

    def test_fewer_than_two_points_pass_through(self) -> None:
        trajectory = smooth_positions(_samples((0.3, 10.0, 20.0)), 60)
        assert trajectory.points == [SmoothedCursorPoint(0.3, 10.0, 20.0)]

    def test_empty_input(self) -> None:
        assert len(smooth_positions([], 60)) == 0

    def test_non_positive_last_timestamp_gives_empty(self) -> None:
        trajectory = smooth_positions(_samples((0.0, 1.0, 1.0), (0.0, 2.0, 2.0)), 60)
        assert len(trajectory) == 0

    def test_rejects_non_positive_frame_rate(self) -> None:
        with pytest.raises(ValueError):
            smooth_positions(_samples((0.0, 0.0, 0.0), (1.0, 1.0, 1.0)), 0)

    def test_one_sample_per_frame_interval(self) -> None:
        trajectory = smooth_positions(_samples((0.0, 0.0, 0.0), (1.0, 100.0, 0.0)), 30)

        assert len(trajectory) == 31
        assert trajectory.timestamps[0] == 0.0
        assert trajectory.timestamps[-1] == pytest.approx(1.0)
        assert np.allclose(np.diff(trajectory.timestamps), 1 / 30)

    def test_passes_through_input_points(self) -> None:
        """测试样条经过输入点。"""
        samples = _samples((0.0, 0.0, 0.0), (0.5, 40.0, 30.0), (1.0, 100.0, 10.0), (1.5, 120.0, 90.0))
        trajectory = smooth_positions(samples, 60)

        for sample in samples:
            index = int(round(sample.timestamp * 60))
            assert trajectory.xs[index] == pytest.approx(sample.x)
            assert trajectory.ys[index] == pytest.approx(sample.y)

    def test_repeated_points_hold_exactly(self) -> None:
        """测试相同位置的重复采样之间插值结果保持该位置。"""
        samples = _samples((0.0, 250.0, 400.0), (0.4, 250.0, 400.0), (0.9, 250.0, 400.0), (1.2, 250.0, 400.0))
        trajectory = smooth_positions(samples, 60)

        assert np.allclose(trajectory.xs, 250.0)
        assert np.allclose(trajectory.ys, 400.0)

    def test_repeated_point_between_distinct_neighbours_stays_close(self) -> None:
        """测试停顿前后有移动时，两次相同采样之间基本保持静止。"""
        samples = _samples((0.0, 0.0, 0.0), (1.0, 100.0, 50.0), (2.0, 100.0, 50.0), (3.0, 400.0, 900.0))
        trajectory = smooth_positions(samples, 60)

        pause = (trajectory.timestamps >= 1.0) & (trajectory.timestamps <= 2.0)
        # 点距下限 0.001 让控制点略微偏离停顿点，实际漂移约 1e-4 px
        assert np.allclose(trajectory.xs[pause], 100.0, atol=1e-3)
        assert np.allclose(trajectory.ys[pause], 50.0, atol=1e-3)

    def test_irregular_sampling_does_not_overshoot(self) -> None:
        """测试不均匀采样下直线运动不出现过冲。"""
        samples = _samples((0.0, 0.0, 0.0), (0.05, 10.0, 0.0), (0.6, 20.0, 0.0), (0.62, 200.0, 0.0), (1.0, 210.0, 0.0))
        trajectory = smooth_positions(samples, 120)

        assert trajectory.xs.min() >= -1e-6
        assert trajectory.xs.max() <= 210.0 + 1e-6
        assert np.allclose(trajectory.ys, 0.0)

    def test_samples_before_first_timestamp_use_first_segment(self) -> None:
        samples = _samples((0.5, 10.0, 10.0), (1.0, 20.0, 20.0))
        trajectory = smooth_positions(samples, 10)

        # t < 0.5 时 u 被夹紧为 0，保持在首个点
        assert trajectory.xs[0] == pytest.approx(10.0)
        assert trajectory.ys[0] == pytest.approx(10.0)


class TestEvaluateCatmullRom:
    def test_zero_length_segment_returns_p1(self) -> None:
        timestamps = np.array([0.0, 1.0, 1.00001, 2.0])
        positions = np.array([[0.0, 0.0], [5.0, 5.0], [9.0, 9.0], [10.0, 10.0]])

        result = evaluate_catmull_rom(timestamps, positions, np.array([1.000005]))
        assert result[0] == pytest.approx([5.0, 5.0])

    def test_midpoint_of_straight_line(self) -> None:
        timestamps = np.array([0.0, 1.0, 2.0, 3.0])
        positions = np.array([[0.0, 0.0], [10.0, 0.0], [20.0, 0.0], [30.0, 0.0]])

        result = evaluate_catmull_rom(timestamps, positions, np.array([1.5]))
        assert result[0] == pytest.approx([15.0, 0.0])


class TestLookupPosition:
    """测试 lookup_position。"""

    @pytest.fixture
    def trajectory(self) -> CursorTrajectory:
        return CursorTrajectory.from_points(
            [
                SmoothedCursorPoint(0.0, 0.0, 0.0),
                SmoothedCursorPoint(1.0, 10.0, 20.0),
                SmoothedCursorPoint(2.0, 30.0, 20.0),
            ]
        )

    def test_empty_returns_none(self) -> None:
        assert lookup_position([], 1.0) is None
        assert CursorTrajectory.empty().lookup_position(0.0) is None

    def test_clamps_at_both_ends(self, trajectory: CursorTrajectory) -> None:
        assert trajectory.lookup_position(-1.0) == (0.0, 0.0)
        assert trajectory.lookup_position(5.0) == (30.0, 20.0)

    def test_linear_interpolation(self, trajectory: CursorTrajectory) -> None:
        assert trajectory.lookup_position(0.5) == pytest.approx((5.0, 10.0))
        assert trajectory.lookup_position(1.25) == pytest.approx((15.0, 20.0))

    def test_accepts_point_sequence(self) -> None:
        points = [SmoothedCursorPoint(0.0, 0.0, 0.0), SmoothedCursorPoint(2.0, 4.0, 8.0)]
        assert lookup_position(points, 1.0) == pytest.approx((2.0, 4.0))
