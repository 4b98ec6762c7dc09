"""
浏览器管理器
MathJax 排版页和 SVG 栅格化页共用一个 Chromium 实例；
页面统一从这里创建并登记，close() 时一并关闭
"""
import asyncio
from typing import Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from astrbot.api import logger

# 允许 file:// 页面加载本地 MathJax 组件
LAUNCH_ARGS = (
    "--allow-file-access-from-files",
    "--disable-features=VizDisplayCompositor",
)


class BrowserManager:
    """Chromium 生命周期与页面登记"""

    def __init__(self, headless: bool = True, launch_args: tuple = LAUNCH_ARGS):
        self._headless = headless
        self._launch_args = list(launch_args)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._pages: set = set()
        self._lock = asyncio.Lock()

    @property
    def open_pages(self) -> int:
        return len(self._pages)

    async def new_page(self, **kwargs) -> Page:
        """在共享浏览器中打开页面，浏览器未启动或已断开时重新启动"""
        async with self._lock:
            browser = await self._ensure_browser()
            page = await browser.new_page(**kwargs)
            self._pages.add(page)
        page.on("close", self._pages.discard)
        return page

    async def _ensure_browser(self) -> Browser:
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        # 断开的浏览器上登记的页面已失效
        self._pages.clear()
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        logger.info("[MediaDerive] 启动 Chromium")
        self._browser = await self._playwright.chromium.launch(
            headless=self._headless, args=self._launch_args
        )
        return self._browser

    async def close(self) -> None:
        """关闭所有登记的页面、浏览器和 Playwright"""
        async with self._lock:
            pages, self._pages = list(self._pages), set()
            for page in pages:
                if not page.is_closed():
                    await page.close()

            browser, self._browser = self._browser, None
            if browser is not None:
                try:
                    await browser.close()
                except Exception as e:
                    logger.warning(f"[MediaDerive] 关闭浏览器时出错: {e}")

            playwright, self._playwright = self._playwright, None
            if playwright is not None:
                await playwright.stop()

        logger.info(f"[MediaDerive] 浏览器资源已释放，关闭页面 {len(pages)} 个")
