"""
MediaDerive 类型定义
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Union

# scheme
PUBLIC = "public"
TEMPORARY = "temporary"

# 输出格式
PNG = "png"
SVG = "svg"
JPEG = "jpeg"
WEBP = "webp"

# 数学输入格式
TEX = "tex"
INLINE_TEX = "inline-tex"
ASCIIMATH = "asciimath"
MATHML = "mathml"

# 样式动作
RESIZE = "resize"

MATH_INPUT_FORMATS = (TEX, INLINE_TEX, ASCIIMATH, MATHML)
MATH_OUTPUT_FORMATS = (SVG, PNG)
IMAGE_FORMATS = (JPEG, PNG, WEBP)

# 输出格式 -> 规范扩展名
FORMAT_EXTENSIONS = {
    JPEG: ".jpg",
    PNG: ".png",
    WEBP: ".webp",
    SVG: ".svg",
}

# 扩展名 -> 容器格式
EXTENSION_FORMATS = {
    ".jpg": JPEG,
    ".jpeg": JPEG,
    ".jpe": JPEG,
    ".png": PNG,
    ".webp": WEBP,
    ".svg": SVG,
}


class Fit(Enum):
    """缩放适配方式"""

    COVER = "cover"  # 裁剪填满目标框
    CONTAIN = "contain"  # 完整放入并补边
    FILL = "fill"  # 拉伸，忽略宽高比
    INSIDE = "inside"  # 保持宽高比，不超过目标框
    OUTSIDE = "outside"  # 保持宽高比，至少覆盖目标框


@dataclass(frozen=True)
class SchemeConfig:
    """scheme 对应的物理路径前缀"""

    path: str = ""


@dataclass(frozen=True)
class ResizeAction:
    """缩放动作"""

    width: Optional[int] = None
    height: Optional[int] = None
    fit: Fit = Fit.INSIDE
    without_enlargement: bool = False
    background: str = "#FFFFFF"
    name: str = field(default=RESIZE, init=False)

    def __post_init__(self):
        if self.width is None and self.height is None:
            raise ValueError("resize 至少需要 width 或 height")


@dataclass(frozen=True)
class UnknownAction:
    """未实现的动作，执行时报错"""

    name: str
    params: tuple = ()


StyleAction = Union[ResizeAction, UnknownAction]


@dataclass(frozen=True)
class JpegOptions:
    quality: int = 80
    progressive: bool = False
    optimize: bool = False


@dataclass(frozen=True)
class PngOptions:
    compression_level: int = 6
    optimize: bool = False


@dataclass(frozen=True)
class WebpOptions:
    quality: int = 80
    lossless: bool = False
    method: int = 4


EncodeOptions = Union[JpegOptions, PngOptions, WebpOptions]


@dataclass(frozen=True)
class Style:
    """图片样式（不可变）：有序动作 + 编码参数"""

    actions: tuple = ()
    format: Optional[str] = None
    jpeg: JpegOptions = field(default_factory=JpegOptions)
    png: PngOptions = field(default_factory=PngOptions)
    webp: WebpOptions = field(default_factory=WebpOptions)

    def encode_options(self, image_format: str) -> EncodeOptions:
        """获取指定格式的编码参数"""
        return {JPEG: self.jpeg, PNG: self.png, WEBP: self.webp}[image_format]


@dataclass(frozen=True)
class MathConfig:
    """数学排版默认配置（不可变）"""

    ex: float = 6  # ex 大小（像素）
    width: float = 100  # 容器宽度（ex），用于换行
    display_errors: bool = False
    mathjax_url: str = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/startup.js"
    typeset_timeout: int = 10000


@dataclass(frozen=True)
class DerivativeConfig:
    """系统配置（不可变），构造时注入"""

    schemes: Mapping[str, SchemeConfig] = field(default_factory=dict)
    public_schemes: tuple = (PUBLIC, TEMPORARY)
    styles: Mapping[str, Style] = field(default_factory=dict)
    math: MathConfig = field(default_factory=MathConfig)


@dataclass(frozen=True)
class MathRequest:
    """数学渲染请求"""

    input: str
    input_format: str = TEX
    output_format: str = SVG
    ex: Optional[float] = None
    width: Optional[float] = None
    output: Optional[str] = None


@dataclass(frozen=True)
class TypesetResult:
    """排版引擎结果"""

    svg: str
    errors: tuple = ()


@dataclass(frozen=True)
class MathResult:
    """create_math 结果"""

    data: str
    width: int
    height: int
