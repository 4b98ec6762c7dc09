"""
AstrBot MediaDerive 插件
图片样式派生与数学公式渲染缓存
"""

__version__ = "1.0.0"
