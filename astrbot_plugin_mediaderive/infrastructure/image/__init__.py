"""
基础设施层 - 位图处理模块
"""
from .pillow_engine import ImageHandle, PillowImageEngine

__all__ = [
    "ImageHandle",
    "PillowImageEngine",
]
