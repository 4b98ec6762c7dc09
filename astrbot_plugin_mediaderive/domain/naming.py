"""
派生文件命名
图片派生路径由 (样式名, 源 URI, 输出格式) 决定；
数学渲染缓存文件名由 (版本, 影响输出的配置, 去空白的输入) 的摘要决定
"""

import hashlib
import json
import posixpath
from typing import Any, Optional

from .. import __version__
from ..types import (
    EXTENSION_FORMATS,
    FORMAT_EXTENSIONS,
    IMAGE_FORMATS,
    JPEG,
    PNG,
    SVG,
    MathConfig,
    MathRequest,
)
from .errors import UnsupportedOutputFormatError
from .uri import SCHEME_DELIMITER, SchemeResolver

STYLES_DIR = "styles"
MATH_DIR = "math"

# 只有这些配置项会影响渲染结果，其余渲染参数不参与摘要
DIGEST_CONFIG_KEYS = ("ex", "width")

MATH_EXTENSIONS = {
    SVG: ".svg",
    PNG: ".png",
}


def normalize_image_format(image_format: str) -> str:
    """规范化图片格式名（jpg -> jpeg）

    Raises:
        UnsupportedOutputFormatError: 不支持的格式
    """
    value = image_format.lower()
    if value == "jpg":
        value = JPEG
    if value not in IMAGE_FORMATS:
        raise UnsupportedOutputFormatError(image_format)
    return value


def container_format(target: str) -> Optional[str]:
    """根据扩展名推断源文件容器格式"""
    ext = posixpath.splitext(target)[1].lower()
    return EXTENSION_FORMATS.get(ext)


def canonical_json(value: Any) -> str:
    """与键顺序无关的 JSON 序列化"""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _canonical_number(value: Any) -> Any:
    # 6 与 6.0 视为同一配置
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class DerivativeNaming:
    """派生路径与数学缓存键计算（纯函数，无 I/O）"""

    def __init__(
        self,
        resolver: SchemeResolver,
        math_config: MathConfig = MathConfig(),
        version: str = __version__,
    ):
        self._resolver = resolver
        self._math_config = math_config
        self._version = version

    # ==================== 图片样式 ====================

    def get_style_path(
        self, style_name: str, uri: str, output_format: Optional[str] = None
    ) -> str:
        """计算样式派生文件的虚拟 URI

        保留源 URI 的 scheme（没有时使用 public），target 变为
        styles/{style_name}/{target}；指定的输出格式与源文件格式不同时替换扩展名。

        Raises:
            UnsupportedOutputFormatError: 输出格式不受支持
        """
        scheme, target = self._resolver.with_default_scheme(uri)

        if output_format is not None:
            image_format = normalize_image_format(output_format)
            if container_format(target) != image_format:
                stem = posixpath.splitext(target)[0]
                target = stem + FORMAT_EXTENSIONS[image_format]

        return f"{scheme}{SCHEME_DELIMITER}{STYLES_DIR}/{style_name}/{target}"

    def get_style_url(
        self, style_name: str, uri: str, output_format: Optional[str] = None
    ) -> str:
        """派生文件的公开 URL

        Raises:
            UnsupportedSchemeError: 派生文件的 scheme 不可公开访问
        """
        return self._resolver.get_public_url(
            self.get_style_path(style_name, uri, output_format)
        )

    # ==================== 数学公式 ====================

    def math_options(self, request: MathRequest) -> dict:
        """合并默认配置与请求中影响输出的参数"""
        options = {
            "ex": self._math_config.ex,
            "width": self._math_config.width,
        }
        for key in DIGEST_CONFIG_KEYS:
            value = getattr(request, key)
            if value is not None:
                options[key] = value
        return options

    def get_math_digest(self, request: MathRequest) -> str:
        """计算数学渲染请求的摘要（32位十六进制）"""
        options = {k: _canonical_number(v) for k, v in self.math_options(request).items()}
        data = ";".join(
            [self._version, canonical_json(options), request.input.strip()]
        )
        return hashlib.md5(data.encode("utf-8")).hexdigest()

    def get_math_filename(self, request: MathRequest) -> str:
        """摘要 + 输出格式扩展名

        Raises:
            UnsupportedOutputFormatError: 输出格式不是 svg/png
        """
        ext = MATH_EXTENSIONS.get(request.output_format)
        if ext is None:
            raise UnsupportedOutputFormatError(request.output_format)
        return self.get_math_digest(request) + ext

    def get_math_path(self, output_format: str, uri: str) -> str:
        """数学输出的虚拟 URI: {scheme}://math/{output_format}/{target}"""
        scheme, target = self._resolver.with_default_scheme(uri)
        return f"{scheme}{SCHEME_DELIMITER}{MATH_DIR}/{output_format}/{target}"

    def get_math_url(self, output_format: str, uri: str) -> str:
        """
        Raises:
            UnsupportedSchemeError: scheme 不可公开访问
        """
        return self._resolver.get_public_url(self.get_math_path(output_format, uri))

    def get_math_uri(self, request: MathRequest, scheme: Optional[str] = None) -> str:
        """请求对应的缓存文件虚拟 URI"""
        filename = self.get_math_filename(request)
        if scheme is not None:
            filename = self._resolver.set_scheme(filename, scheme)
        return self.get_math_path(request.output_format, filename)
