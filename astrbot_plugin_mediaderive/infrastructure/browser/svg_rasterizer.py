"""
SVG 栅格化器
在浏览器中按指定像素尺寸绘制 SVG 并截图为 PNG
"""

import base64
from typing import TYPE_CHECKING

from astrbot.api import logger

if TYPE_CHECKING:
    from .browser_manager import BrowserManager

RASTER_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
  html, body {{ margin: 0; padding: 0; background: transparent; }}
  img {{ display: block; width: {width}px; height: {height}px; }}
</style>
</head>
<body><img src="data:image/svg+xml;base64,{data}"></body>
</html>
"""


class SvgRasterizer:
    """SVG 栅格化器 - 透明背景 PNG"""

    def __init__(self, browser_manager: "BrowserManager"):
        self._browser_manager = browser_manager

    async def rasterize(self, svg: bytes, width: int, height: int) -> bytes:
        """将 SVG 绘制为 width x height 的 PNG"""
        width = max(1, width)
        height = max(1, height)
        html = RASTER_TEMPLATE.format(
            width=width,
            height=height,
            data=base64.b64encode(svg).decode("ascii"),
        )

        page = await self._browser_manager.new_page(viewport={"width": width, "height": height})
        try:
            await page.set_content(html, wait_until="load")
            png = await page.screenshot(
                type="png",
                omit_background=True,
                clip={"x": 0, "y": 0, "width": width, "height": height},
            )
        finally:
            await page.close()

        logger.debug(f"[MediaDerive] SVG 栅格化完成: {width}x{height}, {len(png)} bytes")
        return png
