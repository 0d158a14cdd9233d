"""自动缩放区域合成

按时间邻近度对点击与键盘交互聚类，生成可编辑、可持久化的缩放区域。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from zoomline.domain.models.cursor import CursorClick, CursorSample
from zoomline.domain.models.zoom import (
    MAX_ZOOM_LEVEL,
    MIN_ZOOM_LEVEL,
    AutoZoomSensitivity,
    SensitivityProfile,
    ZoomRegion,
    get_sensitivity_profile,
)

logger = structlog.get_logger(__name__)

# 区域在聚类首个交互前提前开始放大的时长（秒）
LEAD_TIME = 0.3
# 候选区域起点距上一区域终点小于该值时合并（秒）
MERGE_WINDOW = 1.0


@dataclass(frozen=True)
class InteractionPoint:
    timestamp: float
    x: float
    y: float


@dataclass
class _Cluster:
    center_x: float
    center_y: float
    start_time: float
    end_time: float


def clamp_focus_point(
    x: float,
    y: float,
    zoom: float,
    width: float,
    height: float,
) -> tuple[float, float]:
    """夹紧焦点，使以其为中心、尺寸为 源尺寸/zoom 的裁剪框完全落在画面内。"""
    half_w = (width / zoom) / 2
    half_h = (height / zoom) / 2
    clamped_x = max(half_w, min(width - half_w, x))
    clamped_y = max(half_h, min(height - half_h, y))
    return clamped_x, clamped_y


def _cluster_interactions(
    interactions: Sequence[InteractionPoint],
    profile: SensitivityProfile,
) -> list[_Cluster]:
    clusters: list[_Cluster] = []
    current: list[InteractionPoint] = []

    def close(points: list[InteractionPoint]) -> None:
        if len(points) < profile.minimum_cluster_size:
            return
        clusters.append(
            _Cluster(
                center_x=sum(p.x for p in points) / len(points),
                center_y=sum(p.y for p in points) / len(points),
                start_time=points[0].timestamp,
                end_time=points[-1].timestamp,
            )
        )

    for point in interactions:
        if current and point.timestamp - current[-1].timestamp > profile.cluster_window:
            close(current)
            current = [point]
        else:
            current.append(point)
    if current:
        close(current)
    return clusters


def generate_zoom_regions(
    clicks: Sequence[CursorClick],
    key_interactions: Sequence[CursorSample],
    sensitivity: AutoZoomSensitivity | SensitivityProfile,
    zoom_level: float,
    source_width: float,
    source_height: float,
) -> list[ZoomRegion]:
    """从交互活动生成缩放区域。

    流程:
    1. 合并点击与按键交互并按时间排序，间隔超过 clusterWindow 即断开聚类，
       数量不足 minimumClusterSize 的聚类丢弃
    2. 每个聚类的区域为 [max(0, 起点 - LEAD_TIME), 终点 + holdDuration]，焦点取均值
    3. 起点距上一区域终点小于 MERGE_WINDOW 的区域合并（焦点取平均、延长终点）
    4. 焦点夹紧到画面内

    Args:
        clicks: 点击（视频坐标）
        key_interactions: 键盘交互位置（视频坐标）
        sensitivity: 灵敏度档位名或档位参数
        zoom_level: 目标缩放倍数，超出 [1.1, 4.0] 时夹紧
        source_width: 源画面宽
        source_height: 源画面高

    Returns:
        按起点排序的缩放区域，均为启用状态
    """
    profile = get_sensitivity_profile(sensitivity)
    zoom_level = max(MIN_ZOOM_LEVEL, min(MAX_ZOOM_LEVEL, zoom_level))

    interactions = [InteractionPoint(c.timestamp, c.x, c.y) for c in clicks]
    interactions.extend(InteractionPoint(k.timestamp, k.x, k.y) for k in key_interactions)
    interactions.sort(key=lambda p: p.timestamp)

    if not interactions:
        return []

    clusters = _cluster_interactions(interactions, profile)
    if not clusters:
        logger.debug("zoom.no_clusters", interaction_count=len(interactions))
        return []

    merged: list[_Cluster] = []
    for cluster in clusters:
        region_start = max(0.0, cluster.start_time - LEAD_TIME)
        region_end = cluster.end_time + profile.hold_duration
        if merged and region_start - merged[-1].end_time < MERGE_WINDOW:
            last = merged[-1]
            last.center_x = (last.center_x + cluster.center_x) / 2
            last.center_y = (last.center_y + cluster.center_y) / 2
            last.end_time = region_end
        else:
            merged.append(
                _Cluster(
                    center_x=cluster.center_x,
                    center_y=cluster.center_y,
                    start_time=region_start,
                    end_time=region_end,
                )
            )

    regions: list[ZoomRegion] = []
    for item in merged:
        focus_x, focus_y = clamp_focus_point(
            item.center_x, item.center_y, zoom_level, source_width, source_height
        )
        regions.append(
            ZoomRegion(
                start_time=item.start_time,
                end_time=item.end_time,
                zoom_level=zoom_level,
                focus_x=focus_x,
                focus_y=focus_y,
            )
        )

    logger.info(
        "zoom.regions_generated",
        interaction_count=len(interactions),
        cluster_count=len(clusters),
        region_count=len(regions),
        zoom_level=zoom_level,
    )
    return regions
