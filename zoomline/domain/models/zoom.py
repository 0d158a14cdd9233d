"""自动缩放相关数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AutoZoomSensitivity = Literal["subtle", "balanced", "dramatic"]

MIN_ZOOM_LEVEL = 1.1
MAX_ZOOM_LEVEL = 4.0


@dataclass(frozen=True)
class SensitivityProfile:
    """自动缩放灵敏度档位对应的聚类与缓动参数（秒）。"""

    cluster_window: float
    minimum_cluster_size: int
    hold_duration: float
    zoom_in_duration: float
    zoom_out_duration: float


SENSITIVITY_PROFILES: dict[AutoZoomSensitivity, SensitivityProfile] = {
    "subtle": SensitivityProfile(
        cluster_window=4.0,
        minimum_cluster_size=3,
        hold_duration=1.0,
        zoom_in_duration=0.8,
        zoom_out_duration=1.0,
    ),
    "balanced": SensitivityProfile(
        cluster_window=3.0,
        minimum_cluster_size=2,
        hold_duration=1.5,
        zoom_in_duration=0.5,
        zoom_out_duration=0.8,
    ),
    "dramatic": SensitivityProfile(
        cluster_window=2.0,
        minimum_cluster_size=1,
        hold_duration=2.5,
        zoom_in_duration=0.3,
        zoom_out_duration=0.5,
    ),
}


def get_sensitivity_profile(
    sensitivity: AutoZoomSensitivity | SensitivityProfile,
) -> SensitivityProfile:
    """按名称解析灵敏度档位，已是档位对象时原样返回。"""
    if isinstance(sensitivity, SensitivityProfile):
        return sensitivity
    return SENSITIVITY_PROFILES[sensitivity]


class ZoomRegion(BaseModel):
    """用户可编辑、随项目持久化的缩放区域（源时间，视频坐标）。

    由合成器或用户手动创建，可拖动/调整，显式删除。
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    start_time: float  # 开始放大
    end_time: float  # 缩回完成
    zoom_level: float = Field(ge=MIN_ZOOM_LEVEL, le=MAX_ZOOM_LEVEL)  # 峰值缩放倍数
    focus_x: float
    focus_y: float
    is_enabled: bool = True

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class ZoomKeyframe:
    """由启用的缩放区域派生的插值控制点。"""

    timestamp: float
    zoom_level: float
    focus_x: float
    focus_y: float
    easing_duration: float

    @property
    def focus_point(self) -> tuple[float, float]:
        return (self.focus_x, self.focus_y)
