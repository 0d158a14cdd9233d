"""集中化配置管理。"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["dev", "staging", "prod"] = "dev"

    # 变速时间线配置
    half_ramp_duration_s: float = 0.15  # 变速边界单侧过渡时长
    remap_samples_per_second: float = 60.0  # 时间映射表每合成秒采样数
    remap_max_reverse_distance_s: float = 1.0  # 反向查找容差，超出视为落在禁用片段

    # 光标轨迹
    cursor_output_frame_rate: float = 60.0

    # 自动缩放
    auto_zoom_enabled: bool = False
    auto_zoom_level: float = 1.3
    auto_zoom_sensitivity: Literal["subtle", "balanced", "dramatic"] = "balanced"
    click_effect_duration_s: float = 0.4

    # 编辑器
    undo_history_limit: int = 50

    # 日志与可观测性
    log_dir: str = "logs"
    otel_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "zoomline"


@lru_cache()
def get_settings() -> AppSettings:
    return AppSettings()


# 便捷别名
settings = get_settings()
