"""
派生文件编排器
组合 URI 解析、命名规则和外部引擎，生成图片派生文件与数学公式渲染结果
"""
import asyncio
import base64
import os
import shutil
from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

from astrbot.api import logger

from ..domain.errors import (
    ConfigError,
    TypesetError,
    UnsupportedActionError,
    UnsupportedInputFormatError,
    UnsupportedOutputFormatError,
)
from ..domain.interfaces import IImageEngine, IRasterizer, ITypesetter
from ..domain.naming import (
    MATH_DIR,
    STYLES_DIR,
    DerivativeNaming,
    container_format,
    normalize_image_format,
)
from ..domain.uri import SchemeResolver
from ..types import (
    MATH_INPUT_FORMATS,
    MATH_OUTPUT_FORMATS,
    PNG,
    SVG,
    DerivativeConfig,
    MathRequest,
    MathResult,
    ResizeAction,
    Style,
)
from ..utils import log_execution, measure_svg

TEMPLATE_PATH = Path(__file__).resolve().parent.parent / "templates" / "mathjax.html"


def ensure_dir(path: str) -> None:
    """创建目录（含中间目录），已存在时不报错"""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


class DerivativeOrchestrator:
    """
    派生文件编排器

    Pipeline:
    uri ──► resolve ──► ensure dir ──► engine ──► write

    配置在构造时注入，之后只读；并发调用之间没有共享的可变状态。
    相同缓存键的并发请求会各自渲染并写入同一路径（后写覆盖）。
    """

    def __init__(
        self,
        config: DerivativeConfig,
        image_engine: Optional[IImageEngine] = None,
        typesetter: Optional[ITypesetter] = None,
        rasterizer: Optional[IRasterizer] = None,
    ):
        self._config = config
        self._resolver = SchemeResolver(config.schemes, config.public_schemes)
        self._naming = DerivativeNaming(self._resolver, config.math)
        self._browser_manager = None

        if image_engine is None:
            from ..infrastructure.image import PillowImageEngine

            image_engine = PillowImageEngine()

        if typesetter is None or rasterizer is None:
            from ..infrastructure.browser import (
                BrowserManager,
                MathJaxTypesetter,
                SvgRasterizer,
            )

            self._browser_manager = BrowserManager()
            if typesetter is None:
                typesetter = MathJaxTypesetter(
                    self._browser_manager, TEMPLATE_PATH, config.math
                )
            if rasterizer is None:
                rasterizer = SvgRasterizer(self._browser_manager)

        self._image_engine = image_engine
        self._typesetter = typesetter
        self._rasterizer = rasterizer

    @property
    def config(self) -> DerivativeConfig:
        return self._config

    @property
    def resolver(self) -> SchemeResolver:
        return self._resolver

    @property
    def naming(self) -> DerivativeNaming:
        return self._naming

    def get_style(self, style_name: str) -> Style:
        """
        Raises:
            ConfigError: 样式未配置
        """
        style = self._config.styles.get(style_name)
        if style is None:
            raise ConfigError(f"样式 `{style_name}` 未配置")
        return style

    def derivative_uri(self, style_name: str, src_uri: str) -> str:
        """按样式配置的输出格式计算派生文件 URI"""
        style = self.get_style(style_name)
        return self._naming.get_style_path(style_name, src_uri, style.format)

    # ==================== 图片派生 ====================

    @log_execution
    async def create_derivative(
        self, style: Union[Style, str], src: str, dist: str
    ) -> str:
        """按样式生成派生图片

        Args:
            style: 样式或样式名
            src: 源图片 URI
            dist: 目标 URI

        Returns:
            写入文件的物理路径

        Raises:
            UnsupportedSchemeError: src/dist 的 scheme 未注册
            UnsupportedActionError: 样式包含未实现的动作（此时不写入任何文件）
            UnsupportedOutputFormatError: 无法确定受支持的输出格式
        """
        if isinstance(style, str):
            style = self.get_style(style)

        src_resolved = self._resolver.resolve_path(src)
        dist_resolved = self._resolver.resolve_path(dist)

        for action in style.actions:
            if not isinstance(action, ResizeAction):
                raise UnsupportedActionError(action.name)

        image_format = style.format
        if image_format is None:
            image_format = container_format(dist_resolved)
            if image_format is None:
                raise UnsupportedOutputFormatError(Path(dist_resolved).suffix or dist)
            image_format = normalize_image_format(image_format)

        logger.info(f"[MediaDerive] 创建派生图片: {dist_resolved}")

        ensure_dir(os.path.dirname(dist_resolved))

        handle = await self._image_engine.open(src_resolved)
        for action in style.actions:
            handle = self._image_engine.resize(handle, action)
        handle = self._image_engine.encode(
            handle, image_format, style.encode_options(image_format)
        )
        await self._image_engine.write_to(handle, dist_resolved)

        return dist_resolved

    async def ensure_derivative(self, style_name: str, src: str) -> str:
        """派生文件不存在时生成，存在时直接复用

        Returns:
            派生文件 URI
        """
        dist = self.derivative_uri(style_name, src)
        if not os.path.isfile(self._resolver.resolve_path(dist)):
            await self.create_derivative(style_name, src, dist)
        return dist

    async def ensure_contained_derivative(self, style_name: str, src: str) -> str:
        """同 ensure_derivative，用于聊天用户提供的 URI

        源文件和派生文件都必须位于已注册 scheme 的目录内。

        Raises:
            UnsafePathError: 缺少 scheme 或路径越界（此时不读写任何文件）
        """
        self._resolver.resolve_contained_path(src)
        self._resolver.resolve_contained_path(self.derivative_uri(style_name, src))
        return await self.ensure_derivative(style_name, src)

    # ==================== 数学公式 ====================

    async def _typeset(self, request: MathRequest) -> tuple[str, float]:
        """排版为 SVG

        Returns:
            (svg, ex)
        """
        if request.input_format not in MATH_INPUT_FORMATS:
            raise UnsupportedInputFormatError(request.input_format)

        options = self._naming.math_options(request)
        result = await self._typesetter.typeset(
            request.input, request.input_format, options["ex"], options["width"]
        )
        if result.errors:
            raise TypesetError(
                f"排版失败: {'; '.join(result.errors)}", errors=list(result.errors)
            )
        return result.svg, options["ex"]

    async def _rasterize(self, svg: str, ex: float) -> bytes:
        width, height = measure_svg(svg, ex)
        return await self._rasterizer.rasterize(svg.encode("utf-8"), width, height)

    @log_execution
    async def create_math(self, request: MathRequest) -> MathResult:
        """排版并测量像素尺寸，仅支持 svg 输出

        Raises:
            UnsupportedInputFormatError / UnsupportedOutputFormatError / TypesetError
        """
        logger.info(f"[MediaDerive] 排版数学公式: {request.input[:50]}")

        if request.output_format != SVG:
            raise UnsupportedOutputFormatError(request.output_format)

        svg, ex = await self._typeset(request)
        width, height = measure_svg(svg, ex)
        return MathResult(data=svg, width=width, height=height)

    @log_execution
    async def create_math_file(self, request: MathRequest) -> str:
        """排版并写入文件，png 输出先排版为 SVG 再栅格化

        输出位置为 request.output，未指定时使用缓存文件 URI。

        Returns:
            写入文件的物理路径
        """
        logger.info(f"[MediaDerive] 排版数学公式: {request.input[:50]}")

        if request.output_format not in MATH_OUTPUT_FORMATS:
            raise UnsupportedOutputFormatError(request.output_format)
        if request.input_format not in MATH_INPUT_FORMATS:
            raise UnsupportedInputFormatError(request.input_format)

        output = request.output or self._naming.get_math_uri(request)
        output_resolved = self._resolver.resolve_path(output)

        ensure_dir(os.path.dirname(output_resolved))
        svg, ex = await self._typeset(request)

        if request.output_format == SVG:
            Path(output_resolved).write_text(svg, encoding="utf-8")
        else:
            png = await self._rasterize(svg, ex)
            Path(output_resolved).write_bytes(png)

        return output_resolved

    @log_execution
    async def create_math_data_uri_base64(self, request: MathRequest) -> str:
        """排版为 base64 data URI，不写文件"""
        logger.info(f"[MediaDerive] 排版数学公式: {request.input[:50]}")

        if request.output_format == SVG:
            svg, _ = await self._typeset(request)
            data = base64.b64encode(svg.encode("utf-8")).decode("ascii")
            return f"data:image/svg+xml;base64,{data}"

        if request.output_format == PNG:
            svg, ex = await self._typeset(request)
            png = await self._rasterize(svg, ex)
            return f"data:image/png;base64,{base64.b64encode(png).decode('ascii')}"

        raise UnsupportedOutputFormatError(request.output_format)

    async def ensure_math_file(
        self, request: MathRequest, scheme: Optional[str] = None
    ) -> str:
        """缓存文件不存在时渲染，存在时直接复用

        Returns:
            缓存文件 URI
        """
        uri = self._naming.get_math_uri(request, scheme)
        if not os.path.isfile(self._resolver.resolve_path(uri)):
            await self.create_math_file(replace(request, output=uri))
        return uri

    # ==================== 清理与释放 ====================

    async def purge(self, scheme: str) -> list[str]:
        """递归删除 scheme 下生成的 styles/ 和 math/ 目录

        Returns:
            已删除的物理路径

        Raises:
            UnsupportedSchemeError: scheme 未注册
            UnsafePathError: scheme 没有路径前缀
        """
        root = self._resolver.scheme_root(scheme)
        removed = []
        for name in (STYLES_DIR, MATH_DIR):
            path = f"{root}{name}/"
            if os.path.isdir(path):
                await asyncio.to_thread(shutil.rmtree, path)
                removed.append(path)
                logger.info(f"[MediaDerive] 已删除: {path}")
        return removed

    async def close(self) -> None:
        """释放资源"""
        await self._typesetter.close()
        if self._browser_manager is not None:
            await self._browser_manager.close()
        logger.info("[MediaDerive] 编排器资源已释放")
