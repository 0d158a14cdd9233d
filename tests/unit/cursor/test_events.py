"""侧车文件读写与交互提取单元测试。"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from zoomline.cursor.events import (
    SidecarError,
    extract_clicks,
    extract_interactions,
    extract_positions,
    load_cursor_metadata,
    write_cursor_metadata,
)
from zoomline.domain.models.cursor import CursorClick, CursorMetadataFile, CursorSample

SIDECAR = {
    "version": 1,
    "frameRate": 60.0,
    "sourceSize": {"width": 1920, "height": 1080},
    "captureOrigin": {"x": 100, "y": 50},
    "displayHeight": 1200,
    "backingScaleFactor": 2.0,
    "events": [
        {"timestamp": 0.0, "x": 100, "y": 1130, "type": "move"},
        {"timestamp": 0.5, "x": 600, "y": 650, "type": "click", "button": "left"},
        {"timestamp": 0.6, "x": 600, "y": 650, "type": "release", "button": "left"},
        {"timestamp": 0.8, "x": 700, "y": 550, "type": "scroll"},
        {"timestamp": 1.0, "x": 1100, "y": 350, "type": "keyDown"},
        {"timestamp": 1.2, "x": 900, "y": 450, "type": "click", "button": None},
    ],
}


@pytest.fixture
def sidecar_path(tmp_path: Path) -> Path:
    path = tmp_path / "recording.cursor.json"
    path.write_text(json.dumps(SIDECAR))
    return path


class TestLoadCursorMetadata:
    """测试 load_cursor_metadata。"""

    def test_loads_camel_case_fields(self, sidecar_path: Path) -> None:
        metadata = load_cursor_metadata(sidecar_path)

        assert metadata.version == 1
        assert metadata.frame_rate == 60.0
        assert metadata.source_size.width == 1920
        assert metadata.capture_origin is not None
        assert metadata.capture_origin.x == 100
        assert metadata.display_height == 1200
        assert metadata.backing_scale_factor == 2.0
        assert len(metadata.events) == 6
        assert metadata.events[1].button == "left"
        assert metadata.events[4].type == "keyDown"

    def test_optional_fields_default(self, tmp_path: Path) -> None:
        path = tmp_path / "minimal.json"
        path.write_text(json.dumps({"frameRate": 30, "sourceSize": {"width": 10, "height": 10}}))

        metadata = load_cursor_metadata(path)
        assert metadata.version == 1
        assert metadata.capture_origin is None
        assert metadata.display_height is None
        assert metadata.events == []

    def test_corrupt_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(SidecarError):
            load_cursor_metadata(path)

    def test_unknown_event_type_raises(self, tmp_path: Path) -> None:
        data = dict(SIDECAR, events=[{"timestamp": 0, "x": 0, "y": 0, "type": "drag"}])
        path = tmp_path / "bad_type.json"
        path.write_text(json.dumps(data))

        with pytest.raises(SidecarError) as exc_info:
            load_cursor_metadata(path)
        assert exc_info.value.path == path

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SidecarError):
            load_cursor_metadata(tmp_path / "missing.json")


class TestWriteCursorMetadata:
    """测试 write_cursor_metadata。"""

    def test_round_trip(self, sidecar_path: Path, tmp_path: Path) -> None:
        metadata = load_cursor_metadata(sidecar_path)
        out = tmp_path / "out" / "copy.json"

        write_cursor_metadata(metadata, out)

        assert load_cursor_metadata(out) == metadata

    def test_writes_sorted_camel_case_keys(self, sidecar_path: Path, tmp_path: Path) -> None:
        out = tmp_path / "sorted.json"
        write_cursor_metadata(load_cursor_metadata(sidecar_path), out)

        raw = json.loads(out.read_text())
        assert list(raw.keys()) == sorted(raw.keys())
        assert "frameRate" in raw
        assert "sourceSize" in raw
        assert "button" not in raw["events"][0]

    def test_leaves_no_temp_files(self, sidecar_path: Path, tmp_path: Path) -> None:
        out_dir = tmp_path / "clean"
        write_cursor_metadata(load_cursor_metadata(sidecar_path), out_dir / "a.json")
        assert [p.name for p in out_dir.iterdir()] == ["a.json"]


class TestExtraction:
    """测试屏幕坐标 → 视频坐标的事件提取。"""

    @pytest.fixture
    def metadata(self) -> CursorMetadataFile:
        return CursorMetadataFile.model_validate(SIDECAR)

    def test_positions_include_moves_and_clicks(self, metadata: CursorMetadataFile) -> None:
        positions = extract_positions(metadata)

        assert positions == [
            CursorSample(0.0, 0.0, 0.0),
            CursorSample(0.5, 500.0, 480.0),
            CursorSample(1.2, 800.0, 680.0),
        ]

    def test_clicks_without_button_are_skipped(self, metadata: CursorMetadataFile) -> None:
        assert extract_clicks(metadata) == [CursorClick(0.5, 500.0, 480.0, "left")]

    def test_interactions(self, metadata: CursorMetadataFile) -> None:
        clicks, keys, source_size = extract_interactions(metadata)

        assert len(clicks) == 1
        assert keys == [CursorSample(1.0, 1000.0, 780.0)]
        assert source_size == (1920, 1080)

    def test_missing_origin_uses_zero(self, cursor_metadata_factory) -> None:
        metadata = cursor_metadata_factory(events=[(0.1, 30.0, 80.0, "move")], height=100.0)
        assert extract_positions(metadata) == [CursorSample(0.1, 30.0, 20.0)]
