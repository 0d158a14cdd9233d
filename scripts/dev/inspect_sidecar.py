#!/usr/bin/env python
"""加载光标侧车文件，打印派生的导出计划。

用法:
    python scripts/dev/inspect_sidecar.py recording.cursor.json --duration 42.5 \
        --split 10 --split 20 --speed 1:4 --disable 2
"""

import argparse
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import structlog

from zoomline.cursor.events import SidecarError, extract_interactions, load_cursor_metadata
from zoomline.infra.observability.otel import configure_logging, configure_tracing
from zoomline.pipelines.editing.timeline_editor import TimelineEditor
from zoomline.pipelines.export.overlay import OverlaySettings
from zoomline.timeline.compiler import build_insertion_plan

logger = structlog.get_logger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="检查光标侧车与时间线导出计划")
    parser.add_argument("sidecar", type=Path)
    parser.add_argument("--duration", type=float, help="源视频时长（秒），默认取最后一个事件时间")
    parser.add_argument("--split", type=float, action="append", default=[], help="分割点（秒）")
    parser.add_argument("--speed", action="append", default=[], help="片段速度，格式 index:speed")
    parser.add_argument("--disable", type=int, action="append", default=[], help="禁用的片段序号")
    parser.add_argument(
        "--sensitivity",
        choices=["subtle", "balanced", "dramatic"],
        default="balanced",
    )
    parser.add_argument("--zoom-level", type=float, default=2.0)
    parser.add_argument("--trace", action="store_true", help="导出 OTEL span 到配置的端点")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    configure_logging()
    if args.trace:
        configure_tracing()

    try:
        metadata = load_cursor_metadata(args.sidecar)
    except SidecarError as exc:
        logger.error("inspect_sidecar.load_failed", path=str(exc.path), error=str(exc))
        return 1

    last_event = max((event.timestamp for event in metadata.events), default=0.0)
    duration = args.duration if args.duration is not None else last_event
    if duration <= 0:
        print("❌ 无法确定源视频时长，请通过 --duration 指定")
        return 1

    overlay = OverlaySettings(
        auto_zoom_enabled=True,
        auto_zoom_level=args.zoom_level,
        auto_zoom_sensitivity=args.sensitivity,
    )
    editor = TimelineEditor(
        duration,
        metadata.source_size.width,
        metadata.source_size.height,
        overlay_settings=overlay,
    )
    for at in args.split:
        editor.add_split(at)
    segment_ids = [seg.id for seg in editor.segments]
    for item in args.speed:
        index, speed = item.split(":", 1)
        editor.set_speed(float(speed), segment_ids[int(index)])
    for index in args.disable:
        editor.toggle_segment(segment_ids[index])

    clicks, keys, _ = extract_interactions(metadata)
    regions = editor.generate_auto_zoom_regions(metadata)

    print("=" * 60)
    print(f"侧车: {args.sidecar}")
    print(f"  事件: {len(metadata.events)}  点击: {len(clicks)}  按键: {len(keys)}")
    print(f"  源尺寸: {metadata.source_size.width}x{metadata.source_size.height}  源时长: {duration:.3f}s")
    print("=" * 60)

    print("\n🎬 片段:")
    for index, seg in enumerate(editor.segments):
        state = "✅" if seg.is_enabled else "❌"
        print(f"  [{index}] {state} {seg.start_time:8.3f} → {seg.end_time:8.3f}  x{seg.speed:g}")

    export_segments = editor.export_segments()
    plan = build_insertion_plan(export_segments)
    print(f"\n🧩 微片段: {len(export_segments)}  输出时长: {plan.total_duration:.3f}s")
    for seg, (start, length) in zip(export_segments, plan.scaled_points()):
        print(
            f"  {seg.source_start:8.3f} → {seg.source_end:8.3f}  x{seg.speed:6.3f}"
            f"  @ {start:8.3f} (+{length:.3f})"
        )

    table = editor.remap_table()
    print(f"\n🗺  映射表: {len(table)} 条目，合成时长 {table.duration:.3f}s")

    print(f"\n🔍 缩放区域 ({args.sensitivity}): {len(regions)}")
    for region in regions:
        print(
            f"  {region.start_time:8.3f} → {region.end_time:8.3f}  x{region.zoom_level:g}"
            f"  focus=({region.focus_x:.0f}, {region.focus_y:.0f})"
        )

    keyframes = editor.keyframes()
    print(f"\n🎞  关键帧: {len(keyframes)}")
    for keyframe in keyframes:
        print(
            f"  t={keyframe.timestamp:8.3f}  x{keyframe.zoom_level:g}"
            f"  focus=({keyframe.focus_x:.0f}, {keyframe.focus_y:.0f})  ease={keyframe.easing_duration:g}"
        )

    state = editor.export_overlay(metadata)
    print(
        f"\n🖱  导出叠加层: 轨迹 {len(state.trajectory)} 点，点击 {len(state.clicks)}，"
        f"关键帧 {len(state.keyframes)}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
