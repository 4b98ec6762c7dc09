"""
基础设施层 - 外部引擎适配
"""
from .browser import (
    BrowserManager,
    MathJaxTypesetter,
    SvgRasterizer,
)
from .image import PillowImageEngine

__all__ = [
    "BrowserManager",
    "MathJaxTypesetter",
    "SvgRasterizer",
    "PillowImageEngine",
]
