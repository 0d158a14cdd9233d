"""自动缩放模块

提供以下功能：
- synthesizer: 交互聚类生成可编辑的缩放区域
- interpolator: 区域到关键帧的展开、逐帧插值与裁剪框计算
"""
