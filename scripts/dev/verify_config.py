#!/usr/bin/env python
"""验证时间线引擎配置是否正确。"""

import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zoomline.domain.models.zoom import MAX_ZOOM_LEVEL, MIN_ZOOM_LEVEL, get_sensitivity_profile
from zoomline.infra.config.settings import get_settings


def main() -> None:
    """显示当前生效的配置。"""
    settings = get_settings()

    print("=" * 60)
    print("zoomline 配置验证")
    print("=" * 60)
    print()

    print("📋 基础配置:")
    print(f"  Environment: {settings.environment}")
    print(f"  Log Dir: {settings.log_dir}")
    print(f"  OTEL Endpoint: {settings.otel_endpoint}")
    print()

    print("⏱  变速时间线:")
    print(f"  Half Ramp Duration: {settings.half_ramp_duration_s}s")
    print(f"  Remap Samples / s: {settings.remap_samples_per_second}")
    print(f"  Reverse Lookup Tolerance: {settings.remap_max_reverse_distance_s}s")
    print()

    print("🖱  光标叠加层:")
    print(f"  Output Frame Rate: {settings.cursor_output_frame_rate}")
    print(f"  Click Effect Duration: {settings.click_effect_duration_s}s")
    print()

    profile = get_sensitivity_profile(settings.auto_zoom_sensitivity)
    print("🔍 自动缩放:")
    print(f"  Enabled: {'✅ 启用' if settings.auto_zoom_enabled else '❌ 禁用'}")
    print(f"  Zoom Level: {settings.auto_zoom_level}")
    print(f"  Sensitivity: {settings.auto_zoom_sensitivity}")
    print(f"    └─ 聚类窗口 {profile.cluster_window}s，最少 {profile.minimum_cluster_size} 次交互")
    print(f"    └─ 放大 {profile.zoom_in_duration}s / 保持 {profile.hold_duration}s / 缩回 {profile.zoom_out_duration}s")
    print()

    print("💡 配置建议:")
    warnings = 0
    if not MIN_ZOOM_LEVEL <= settings.auto_zoom_level <= MAX_ZOOM_LEVEL:
        print(f"  ⚠️  auto_zoom_level 超出 [{MIN_ZOOM_LEVEL}, {MAX_ZOOM_LEVEL}]，新建区域时会被夹紧")
        warnings += 1
    if settings.remap_samples_per_second < settings.cursor_output_frame_rate:
        print("  ⚠️  映射表采样率低于输出帧率，导出轨迹会出现阶梯")
        warnings += 1
    if settings.remap_max_reverse_distance_s <= 0:
        print("  ⚠️  反向查找容差不大于 0，所有点击都会被丢弃")
        warnings += 1
    if not warnings:
        print("  ✅ 配置正常")

    print()
    print("=" * 60)


if __name__ == "__main__":
    main()
