"""
基础设施层 - 浏览器模块
"""
from .browser_manager import BrowserManager
from .mathjax_typesetter import MathJaxTypesetter
from .svg_rasterizer import SvgRasterizer

__all__ = [
    "BrowserManager",
    "MathJaxTypesetter",
    "SvgRasterizer",
]
