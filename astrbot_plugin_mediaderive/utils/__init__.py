"""
工具层 - AOP装饰器和通用工具
"""

from .decorators import log_execution
from .svg_metrics import ex_to_px, measure_svg

__all__ = ["log_execution", "ex_to_px", "measure_svg"]
