"""光标数据模块

提供以下功能：
- events: 侧车文件读写、屏幕坐标到视频坐标的转换与交互提取
- smoothing: 向心 Catmull-Rom 轨迹平滑与位置查找
"""
