"""光标事件与侧车元数据模型。

侧车 JSON 与录制视频同目录保存，字段名使用 camelCase，
是本核心输入边界上唯一需要逐字节兼容的外部契约。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CursorEventType = Literal["move", "click", "release", "scroll", "keyDown"]
MouseButton = Literal["left", "right"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CursorEvent(_CamelModel):
    """单条原始交互事件（屏幕坐标，左下角为原点）。"""

    timestamp: float
    x: float
    y: float
    type: CursorEventType
    button: MouseButton | None = None


class CodableSize(_CamelModel):
    width: float
    height: float


class CodablePoint(_CamelModel):
    x: float
    y: float


class CursorMetadataFile(_CamelModel):
    """录制侧车文件。"""

    version: int = 1
    frame_rate: float
    source_size: CodableSize
    capture_origin: CodablePoint | None = None
    display_height: float | None = None
    backing_scale_factor: float | None = None
    events: list[CursorEvent] = Field(default_factory=list)


@dataclass(frozen=True)
class CursorSample:
    """视频坐标系（左上角为原点）下的稀疏采样点。"""

    timestamp: float
    x: float
    y: float


@dataclass(frozen=True)
class SmoothedCursorPoint:
    """平滑后按输出帧间隔排列的轨迹点（视频坐标，左上角原点）。"""

    timestamp: float
    x: float
    y: float


@dataclass(frozen=True)
class CursorClick:
    timestamp: float
    x: float
    y: float
    button: MouseButton
