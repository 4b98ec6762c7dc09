"""
领域层 - 外部引擎接口定义
编排器只通过这些窄接口调用图片处理、数学排版和栅格化引擎
"""

from typing import Any, Protocol, runtime_checkable

from ..types import EncodeOptions, ResizeAction, TypesetResult


@runtime_checkable
class IImageEngine(Protocol):
    """位图处理引擎接口"""

    async def open(self, src_path: str) -> Any:
        """打开源图片，返回引擎句柄"""
        ...

    def resize(self, handle: Any, action: ResizeAction) -> Any:
        """缩放，返回新句柄"""
        ...

    def encode(self, handle: Any, image_format: str, options: EncodeOptions) -> Any:
        """设置输出编码"""
        ...

    async def write_to(self, handle: Any, dist_path: str) -> None:
        """写入目标文件"""
        ...


@runtime_checkable
class ITypesetter(Protocol):
    """数学排版引擎接口"""

    async def typeset(
        self, math: str, input_format: str, ex: float, width: float
    ) -> TypesetResult:
        """将数学表达式排版为 SVG"""
        ...

    async def close(self) -> None:
        """释放资源"""
        ...


@runtime_checkable
class IRasterizer(Protocol):
    """SVG 栅格化接口"""

    async def rasterize(self, svg: bytes, width: int, height: int) -> bytes:
        """将 SVG 渲染为 PNG 字节"""
        ...
