"""
领域层 - URI 解析、派生文件命名和错误定义
"""

from .errors import (
    ErrorCode,
    DerivativeError,
    UnsupportedSchemeError,
    UnsupportedActionError,
    UnsupportedInputFormatError,
    UnsupportedOutputFormatError,
    UnsafePathError,
    ConfigError,
    TypesetError,
)
from .interfaces import IImageEngine, ITypesetter, IRasterizer
from .naming import DerivativeNaming
from .uri import SchemeResolver

__all__ = [
    "ErrorCode",
    "DerivativeError",
    "UnsupportedSchemeError",
    "UnsupportedActionError",
    "UnsupportedInputFormatError",
    "UnsupportedOutputFormatError",
    "UnsafePathError",
    "ConfigError",
    "TypesetError",
    "IImageEngine",
    "ITypesetter",
    "IRasterizer",
    "DerivativeNaming",
    "SchemeResolver",
]
