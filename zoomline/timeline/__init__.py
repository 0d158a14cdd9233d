"""变速时间线模块

提供变速片段到平滑微片段的编译，以及合成时间与源时间的双向映射。
"""

from zoomline.timeline.compiler import (
    InsertionPlan,
    build_insertion_plan,
    compile_segments,
    find_ramp_zones,
)
from zoomline.timeline.remap import TimeRemapEntry, TimeRemapTable, build_time_remap_table

__all__ = [
    "InsertionPlan",
    "build_insertion_plan",
    "compile_segments",
    "find_ramp_zones",
    "TimeRemapEntry",
    "TimeRemapTable",
    "build_time_remap_table",
]
