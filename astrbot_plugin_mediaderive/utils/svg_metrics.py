"""
SVG 尺寸测量
MathJax 输出的 width/height 以 ex 为单位，需要按 ex 大小换算为像素
"""

import math
import re
from typing import Pattern

# 匹配 SVG 根元素开标签
SVG_ROOT_TAG: Pattern[str] = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)

# 匹配 ex 单位数值，如 "2.176ex"
EX_VALUE: Pattern[str] = re.compile(r"^(.+)ex$", re.IGNORECASE)


def ex_to_px(value: str, ex: float) -> float:
    """将 "2.5ex" 换算为像素；不带单位的数值视为像素"""
    value = value.strip()
    match = EX_VALUE.match(value)
    if match:
        return float(match.group(1)) * ex
    if value.lower().endswith("px"):
        value = value[:-2]
    return float(value)


def get_svg_attribute(svg: str, name: str) -> str:
    """读取 SVG 根元素的属性

    Raises:
        ValueError: 不是 SVG 或缺少该属性
    """
    root = SVG_ROOT_TAG.search(svg)
    if root is None:
        raise ValueError("SVG 根元素不存在")
    attr = re.search(
        r"\s" + re.escape(name) + r"\s*=\s*(\"([^\"]*)\"|'([^']*)')", root.group(0)
    )
    if attr is None:
        raise ValueError(f"SVG 缺少 {name} 属性")
    return attr.group(2) if attr.group(2) is not None else attr.group(3)


def measure_svg(svg: str, ex: float) -> tuple[int, int]:
    """测量 SVG 像素尺寸（向上取整）

    Returns:
        (width, height)
    """
    width = math.ceil(ex_to_px(get_svg_attribute(svg, "width"), ex))
    height = math.ceil(ex_to_px(get_svg_attribute(svg, "height"), ex))
    return width, height
