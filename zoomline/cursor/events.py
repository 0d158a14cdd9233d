"""光标侧车文件读写与交互事件提取

侧车 JSON 使用屏幕坐标（左下角原点），提取时统一转换为视频坐标（左上角原点）：
video_x = x - origin.x，video_y = sourceHeight - (y - origin.y)。
displayHeight 与 backingScaleFactor 原样保留，不参与坐标换算。
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from zoomline.domain.models.cursor import (
    CursorClick,
    CursorEvent,
    CursorMetadataFile,
    CursorSample,
)

logger = structlog.get_logger(__name__)


class SidecarError(Exception):
    """侧车文件缺失、不是合法 JSON 或不符合结构约定。"""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


def load_cursor_metadata(path: str | Path) -> CursorMetadataFile:
    """加载并校验侧车文件。

    Raises:
        SidecarError: 文件无法读取、JSON 损坏或字段校验失败
    """
    sidecar_path = Path(path)
    try:
        raw = sidecar_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SidecarError(sidecar_path, f"cannot read sidecar: {exc}") from exc

    try:
        metadata = CursorMetadataFile.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "cursor.sidecar_invalid",
            path=str(sidecar_path),
            error_count=exc.error_count(),
        )
        raise SidecarError(sidecar_path, f"invalid sidecar: {exc}") from exc

    logger.info(
        "cursor.sidecar_loaded",
        path=str(sidecar_path),
        version=metadata.version,
        event_count=len(metadata.events),
    )
    return metadata


def write_cursor_metadata(metadata: CursorMetadataFile, path: str | Path) -> None:
    """以 camelCase、键排序的 JSON 原子写入侧车文件（临时文件 + 替换）。"""
    sidecar_path = Path(path)
    sidecar_path.parent.mkdir(parents=True, exist_ok=True)

    data = metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
    payload = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)

    fd, tmp_name = tempfile.mkstemp(
        dir=sidecar_path.parent.as_posix(),
        prefix=f".{sidecar_path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.replace(tmp_name, sidecar_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("cursor.sidecar_written", path=str(sidecar_path), event_count=len(metadata.events))


def _to_video_space(event: CursorEvent, metadata: CursorMetadataFile) -> tuple[float, float]:
    origin_x = metadata.capture_origin.x if metadata.capture_origin else 0.0
    origin_y = metadata.capture_origin.y if metadata.capture_origin else 0.0
    video_x = event.x - origin_x
    video_y = metadata.source_size.height - (event.y - origin_y)
    return video_x, video_y


def extract_positions(metadata: CursorMetadataFile) -> list[CursorSample]:
    """提取 move/click 事件作为轨迹采样点（视频坐标）。"""
    samples: list[CursorSample] = []
    for event in metadata.events:
        if event.type not in ("move", "click"):
            continue
        x, y = _to_video_space(event, metadata)
        samples.append(CursorSample(timestamp=event.timestamp, x=x, y=y))
    return samples


def extract_clicks(metadata: CursorMetadataFile) -> list[CursorClick]:
    clicks: list[CursorClick] = []
    for event in metadata.events:
        # 没有按键信息的点击无法渲染点击效果
        if event.type != "click" or event.button is None:
            continue
        x, y = _to_video_space(event, metadata)
        clicks.append(CursorClick(timestamp=event.timestamp, x=x, y=y, button=event.button))
    return clicks


def extract_interactions(
    metadata: CursorMetadataFile,
) -> tuple[list[CursorClick], list[CursorSample], tuple[float, float]]:
    """提取自动缩放使用的交互点。

    Returns:
        (带按键的点击, keyDown 事件位置, (源宽, 源高))
    """
    key_interactions: list[CursorSample] = []
    for event in metadata.events:
        if event.type != "keyDown":
            continue
        x, y = _to_video_space(event, metadata)
        key_interactions.append(CursorSample(timestamp=event.timestamp, x=x, y=y))

    source_size = (metadata.source_size.width, metadata.source_size.height)
    return extract_clicks(metadata), key_interactions, source_size
