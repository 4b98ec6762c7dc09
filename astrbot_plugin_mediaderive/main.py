"""
AstrBot MediaDerive 插件
图片样式派生与数学公式渲染，结果按确定性路径缓存
"""
import json
import os
import traceback
from pathlib import Path
from typing import Any

from astrbot.api.event import filter, AstrMessageEvent, MessageChain
from astrbot.api.star import Context, Star, StarTools, register
from astrbot.api import logger
import astrbot.api.message_components as Comp
from astrbot.api import AstrBotConfig

from .application import DerivativeOrchestrator
from .config import load_config
from .domain.errors import DerivativeError
from .types import ASCIIMATH, MATH_INPUT_FORMATS, PNG, PUBLIC, TEMPORARY, TEX, MathRequest

PLUGIN_NAME = "astrbot_plugin_mediaderive"

DEFAULT_STYLES = {
    "small": {"actions": [{"name": "resize", "width": 480}], "quality": 75},
}


@register(
    PLUGIN_NAME,
    "MediaDerive Contributors",
    "图片样式派生与数学公式渲染（带缓存）",
    "1.0.0"
)
class MediaDerivePlugin(Star):
    """MediaDerive 插件"""

    def __init__(self, context: Context, config: AstrBotConfig):
        super().__init__(context)
        self.config = config

        data_dir = Path(StarTools.get_data_dir(PLUGIN_NAME))
        settings = load_config(self._build_settings(config, data_dir))
        self.orchestrator = DerivativeOrchestrator(settings)

        # 数学公式缓存优先放在 temporary
        self.math_scheme = TEMPORARY if TEMPORARY in settings.schemes else PUBLIC

        logger.info(
            f"[MediaDerive] 已加载 scheme: {sorted(settings.schemes)}, "
            f"样式: {sorted(settings.styles)}"
        )

    @staticmethod
    def _parse_json(value: Any, default: Any, key: str) -> Any:
        """配置项支持 JSON 文本或已解析的对象"""
        if not value:
            return default
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                logger.error(f"[MediaDerive] 配置 {key} 不是合法 JSON: {e}")
                raise
        return value

    def _build_settings(self, config: AstrBotConfig, data_dir: Path) -> dict:
        default_schemes = {
            PUBLIC: {"path": str(data_dir / PUBLIC) + os.sep},
            TEMPORARY: {"path": str(data_dir / TEMPORARY) + os.sep},
        }
        return {
            "schemes": self._parse_json(config.get("schemes"), default_schemes, "schemes"),
            "public_schemes": config.get("public_schemes") or [PUBLIC, TEMPORARY],
            "styles": self._parse_json(config.get("styles"), DEFAULT_STYLES, "styles"),
            "math": {
                "ex": config.get("math_ex", 6),
                "width": config.get("math_width", 100),
                "display_errors": config.get("math_display_errors", False),
                "mathjax_url": config.get("mathjax_url", ""),
            },
        }

    def _extract_command_content(self, event: AstrMessageEvent, cmd_name: str) -> str:
        """从完整消息中提取命令后的内容（避免空格截断问题）"""
        full_msg = event.get_message_str()
        content = ""

        for prefix in [f"/{cmd_name} ", f"{cmd_name} "]:
            if prefix in full_msg:
                content = full_msg.split(prefix, 1)[1]
                break

        return content.strip()

    async def _render_math(self, input_text: str, input_format: str) -> str:
        """渲染公式为 PNG（已缓存时直接复用），返回物理路径"""
        request = MathRequest(input=input_text, input_format=input_format, output_format=PNG)
        uri = await self.orchestrator.ensure_math_file(request, scheme=self.math_scheme)
        return self.orchestrator.resolver.resolve_path(uri)

    async def _send_math(self, event: AstrMessageEvent, input_text: str, input_format: str):
        logger.info(f"[MediaDerive] 公式渲染请求，格式: {input_format}, 长度: {len(input_text)}")
        try:
            image_path = await self._render_math(input_text, input_format)
            yield event.chain_result([Comp.Image.fromFileSystem(image_path)])
        except DerivativeError as e:
            logger.warning(f"[MediaDerive] 公式渲染失败: {e}")
            yield event.plain_result(f"渲染失败: {e}")
        except Exception as e:
            logger.error(f"[MediaDerive] 公式渲染失败: {type(e).__name__}: {e}")
            logger.error(f"[MediaDerive] 堆栈信息:\n{traceback.format_exc()}")
            yield event.plain_result(f"渲染失败: {e}")

    @filter.command("tex")
    async def cmd_tex(self, event: AstrMessageEvent, content: str = ""):
        """将 TeX 公式渲染为图片"""
        tex = self._extract_command_content(event, "tex")
        if not tex:
            yield event.plain_result("请提供公式，例如: /tex E = mc^2")
            return

        async for result in self._send_math(event, tex, TEX):
            yield result

    @filter.command("amath")
    async def cmd_asciimath(self, event: AstrMessageEvent, content: str = ""):
        """将 AsciiMath 公式渲染为图片"""
        expr = self._extract_command_content(event, "amath")
        if not expr:
            yield event.plain_result("请提供公式，例如: /amath sum_(i=1)^n i^3")
            return

        async for result in self._send_math(event, expr, ASCIIMATH):
            yield result

    @filter.command("style")
    async def cmd_style(self, event: AstrMessageEvent, content: str = ""):
        """按样式生成派生图片，例如: /style small public://photo.jpg"""
        args = self._extract_command_content(event, "style").split(maxsplit=1)
        if len(args) != 2:
            styles = ", ".join(sorted(self.orchestrator.config.styles))
            yield event.plain_result(f"用法: /style <样式> <图片URI>，可用样式: {styles}")
            return

        style_name, src = args
        try:
            dist = await self.orchestrator.ensure_contained_derivative(style_name, src)
            image_path = self.orchestrator.resolver.resolve_path(dist)
            logger.info(f"[MediaDerive] 派生图片: {dist}")
            yield event.chain_result([Comp.Image.fromFileSystem(image_path)])
        except DerivativeError as e:
            logger.warning(f"[MediaDerive] 派生失败: {e}")
            yield event.plain_result(f"派生失败: {e}")
        except Exception as e:
            logger.error(f"[MediaDerive] 派生失败: {type(e).__name__}: {e}")
            logger.error(f"[MediaDerive] 堆栈信息:\n{traceback.format_exc()}")
            yield event.plain_result(f"派生失败: {e}")

    @filter.command("derive_purge")
    @filter.permission_type(filter.PermissionType.ADMIN)
    async def cmd_purge(self, event: AstrMessageEvent, content: str = ""):
        """清空生成的派生图片和公式缓存"""
        scheme = self._extract_command_content(event, "derive_purge")
        schemes = [scheme] if scheme else sorted(self.orchestrator.config.schemes)

        removed = []
        try:
            for name in schemes:
                removed.extend(await self.orchestrator.purge(name))
        except DerivativeError as e:
            yield event.plain_result(f"清理失败: {e}")
            return

        yield event.plain_result(f"已清理 {len(removed)} 个目录")

    # ==================== LLM 工具支持 ====================

    @filter.llm_tool(name="render_formula")
    async def llm_render_formula(
        self, event: AstrMessageEvent, content: str, input_format: str = TEX
    ) -> str:
        """将单个数学公式渲染为图片并发送给用户。

        Args:
            content(string): Required. 公式内容，不带 $ 定界符，如 a^2+b^2=c^2
            input_format(string): 公式格式，可选 tex、inline-tex、asciimath、mathml，默认 tex

        Returns:
            string: 渲染结果
        """
        if not content:
            return "错误：content 参数不能为空"
        if input_format not in MATH_INPUT_FORMATS:
            return f"错误：不支持的格式 {input_format}"

        try:
            image_path = await self._render_math(content, input_format)
            chain = [Comp.Image.fromFileSystem(image_path)]
            await self.context.send_message(event.unified_msg_origin, MessageChain(chain))
            return f"公式图片已发送: {Path(image_path).name}"
        except Exception as e:
            logger.error(f"[MediaDerive] LLM 工具渲染失败: {type(e).__name__}: {e}")
            return f"渲染失败: {str(e)}"

    async def terminate(self):
        """插件卸载时清理资源"""
        await self.orchestrator.close()
        logger.info("[MediaDerive] 插件已卸载")
