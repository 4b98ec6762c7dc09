"""
领域层 - 错误类型定义
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """错误代码枚举"""

    UNSUPPORTED_SCHEME = "UNSUPPORTED_SCHEME"
    UNSUPPORTED_ACTION = "UNSUPPORTED_ACTION"
    UNSUPPORTED_INPUT_FORMAT = "UNSUPPORTED_INPUT_FORMAT"
    UNSUPPORTED_OUTPUT_FORMAT = "UNSUPPORTED_OUTPUT_FORMAT"
    INVALID_CONFIG = "INVALID_CONFIG"
    TYPESET_FAILED = "TYPESET_FAILED"
    UNSAFE_PATH = "UNSAFE_PATH"


class DerivativeError(Exception):
    """派生文件错误基类"""

    def __init__(self, message: str, code: ErrorCode = None):
        super().__init__(message)
        self.code = code


class UnsupportedSchemeError(DerivativeError):
    """scheme 未注册或不可公开访问"""

    def __init__(self, scheme: Optional[str]):
        super().__init__(
            f"Scheme `{scheme}` not supported", code=ErrorCode.UNSUPPORTED_SCHEME
        )
        self.scheme = scheme


class UnsupportedActionError(DerivativeError):
    """样式中包含未实现的动作"""

    def __init__(self, action: str):
        super().__init__(
            f'Action "{action}" is not supported', code=ErrorCode.UNSUPPORTED_ACTION
        )
        self.action = action


class UnsupportedInputFormatError(DerivativeError):
    """不支持的数学输入格式"""

    def __init__(self, input_format: str):
        super().__init__(
            f"Input format `{input_format}` is not supported",
            code=ErrorCode.UNSUPPORTED_INPUT_FORMAT,
        )
        self.format = input_format


class UnsupportedOutputFormatError(DerivativeError):
    """不支持的输出格式（数学或图片）"""

    def __init__(self, output_format: str):
        super().__init__(
            f"Output format `{output_format}` is not supported",
            code=ErrorCode.UNSUPPORTED_OUTPUT_FORMAT,
        )
        self.format = output_format


class UnsafePathError(DerivativeError):
    """URI 指向 scheme 目录之外，或 scheme 没有路径前缀"""

    def __init__(self, uri: str, reason: str):
        super().__init__(f"Path `{uri}` rejected: {reason}", code=ErrorCode.UNSAFE_PATH)
        self.uri = uri
        self.reason = reason


class ConfigError(DerivativeError):
    """配置校验错误"""

    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.INVALID_CONFIG)


class TypesetError(DerivativeError):
    """排版引擎返回错误"""

    def __init__(self, message: str, errors: list[str] = None):
        super().__init__(message, code=ErrorCode.TYPESET_FAILED)
        self.errors = errors or []
