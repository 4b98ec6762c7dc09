"""
MathJax 排版器
在无头浏览器中加载 MathJax，将 TeX/AsciiMath/MathML 排版为 SVG
"""

import asyncio
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from playwright.async_api import Page

from astrbot.api import logger

from ...domain.errors import UnsupportedInputFormatError
from ...types import ASCIIMATH, INLINE_TEX, MATHML, TEX, MathConfig, TypesetResult

if TYPE_CHECKING:
    from .browser_manager import BrowserManager

MATHJAX_FORMAT_MAP = {
    TEX: "TeX",
    INLINE_TEX: "inline-TeX",
    ASCIIMATH: "AsciiMath",
    MATHML: "MathML",
}

TYPESET_SCRIPT = (
    "([math, format, ex, width]) => window.typesetMath(math, format, ex, width)"
)


def mathjax_script_url(url: str) -> str:
    """本地路径转换为 file:// URL"""
    if "://" in url:
        return url
    return Path(url).expanduser().resolve().as_uri()


class MathJaxTypesetter:
    """MathJax 排版器 - 复用一个已加载 MathJax 的页面"""

    def __init__(
        self,
        browser_manager: "BrowserManager",
        template_path: Path,
        config: MathConfig = MathConfig(),
    ):
        self._browser_manager = browser_manager
        self._template_path = template_path
        self._config = config
        self._page: Optional[Page] = None
        self._page_file: Optional[Path] = None
        self._lock = asyncio.Lock()

    async def typeset(
        self, math: str, input_format: str, ex: float, width: float
    ) -> TypesetResult:
        """排版数学表达式

        Raises:
            UnsupportedInputFormatError: 输入格式不受支持
        """
        mathjax_format = MATHJAX_FORMAT_MAP.get(input_format)
        if mathjax_format is None:
            raise UnsupportedInputFormatError(input_format)

        page = await self._get_page()
        result = await page.evaluate(TYPESET_SCRIPT, [math, mathjax_format, ex, width])
        return TypesetResult(svg=result["svg"], errors=tuple(result["errors"]))

    async def close(self) -> None:
        """关闭排版页面"""
        async with self._lock:
            if self._page is not None and not self._page.is_closed():
                await self._page.close()
            self._page = None
            if self._page_file is not None:
                self._page_file.unlink(missing_ok=True)
                self._page_file = None

    def _build_html(self) -> str:
        with open(self._template_path, "r", encoding="utf-8") as f:
            template = f.read()
        html = template.replace("{{MATHJAX_URL}}", mathjax_script_url(self._config.mathjax_url))
        return html.replace(
            "{{DISPLAY_ERRORS}}", "true" if self._config.display_errors else "false"
        )

    async def _get_page(self) -> Page:
        """获取已就绪的排版页面（首次调用时加载 MathJax）"""
        async with self._lock:
            if self._page is not None and not self._page.is_closed():
                return self._page

            if self._page_file is None:
                fd, name = tempfile.mkstemp(prefix="mediaderive_", suffix=".html")
                with open(fd, "w", encoding="utf-8") as f:
                    f.write(self._build_html())
                self._page_file = Path(name)
                logger.debug(f"[MediaDerive] MathJax 页面: {self._page_file}")

            page = await self._browser_manager.new_page()
            self._setup_logging(page)

            try:
                await page.goto(
                    self._page_file.as_uri(), wait_until="domcontentloaded"
                )
                await page.wait_for_function(
                    "() => window.mathJaxReady === true",
                    timeout=self._config.typeset_timeout,
                )
            except Exception:
                await page.close()
                raise

            logger.info("[MediaDerive] MathJax 已加载")
            self._page = page
            return page

    def _setup_logging(self, page: Page) -> None:
        """设置页面日志"""
        page.on(
            "console", lambda msg: logger.debug(f"[Browser] {msg.type}: {msg.text}")
        )
        page.on("pageerror", lambda err: logger.error(f"[Browser Error] {err}"))
