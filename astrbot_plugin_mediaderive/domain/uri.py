"""
虚拟 URI 解析
URI 格式: [<scheme>://]<target>，scheme 通过配置映射到物理路径前缀
"""

import os
from typing import Iterable, Mapping, Optional

from ..types import PUBLIC, TEMPORARY, SchemeConfig
from .errors import UnsafePathError, UnsupportedSchemeError

SCHEME_DELIMITER = "://"


class SchemeResolver:
    """scheme 注册表 + URI 解析（注册表构造后只读）"""

    def __init__(
        self,
        schemes: Mapping[str, SchemeConfig],
        public_schemes: Iterable[str] = (PUBLIC, TEMPORARY),
    ):
        self._schemes = dict(schemes)
        self._public_schemes = frozenset(public_schemes)

    def is_public(self, scheme: Optional[str]) -> bool:
        """是否为可公开访问的 scheme"""
        return scheme in self._public_schemes

    def get_scheme(self, uri: str) -> Optional[str]:
        """返回第一个 :// 之前的部分，没有 scheme 时返回 None"""
        index = uri.find(SCHEME_DELIMITER)
        if index == -1:
            return None
        return uri[:index]

    def get_target(self, uri: str) -> str:
        """返回第一个 :// 之后的部分，没有 scheme 时原样返回"""
        index = uri.find(SCHEME_DELIMITER)
        if index == -1:
            return uri
        return uri[index + len(SCHEME_DELIMITER):]

    def set_scheme(self, uri: str, scheme: str) -> str:
        return scheme + SCHEME_DELIMITER + self.get_target(uri)

    def with_default_scheme(self, uri: str, default: str = PUBLIC) -> tuple[str, str]:
        """拆分 URI，没有 scheme 时使用默认 scheme

        Returns:
            (scheme, target)
        """
        scheme = self.get_scheme(uri)
        if scheme is None:
            return default, uri
        return scheme, self.get_target(uri)

    def resolve_path(self, uri: str) -> str:
        """将虚拟 URI 解析为物理路径

        没有 scheme 的 URI 视为物理路径原样返回；
        前缀与 target 直接拼接，分隔符由配置负责。

        Raises:
            UnsupportedSchemeError: scheme 未注册
        """
        scheme = self.get_scheme(uri)

        if scheme is None:
            return uri

        if scheme not in self._schemes:
            raise UnsupportedSchemeError(scheme)

        return self._schemes[scheme].path + self.get_target(uri)

    def scheme_root(self, scheme: Optional[str]) -> str:
        """scheme 的路径前缀，用于删除等需要明确根目录的操作

        Raises:
            UnsupportedSchemeError: scheme 未注册
            UnsafePathError: 前缀为空（会落到进程工作目录）
        """
        if scheme not in self._schemes:
            raise UnsupportedSchemeError(scheme)
        prefix = self._schemes[scheme].path
        if not prefix:
            raise UnsafePathError(f"{scheme}{SCHEME_DELIMITER}", "scheme has no path prefix")
        return prefix

    def resolve_contained_path(self, uri: str) -> str:
        """解析外部输入的 URI，要求结果位于 scheme 目录内

        与 resolve_path 不同：没有 scheme 的 URI 不会被当作物理路径，
        target 不能以 / 开头或包含 .. 段，解析后的真实路径必须仍在前缀目录下。

        Raises:
            UnsupportedSchemeError: scheme 未注册
            UnsafePathError: 缺少 scheme、前缀为空或路径越界
        """
        scheme = self.get_scheme(uri)
        if scheme is None:
            raise UnsafePathError(uri, "missing scheme")
        prefix = self.scheme_root(scheme)

        target = self.get_target(uri)
        segments = target.replace("\\", "/").split("/")
        if target.startswith(("/", "\\")) or ".." in segments:
            raise UnsafePathError(uri, "target leaves the scheme root")

        path = prefix + target
        root = os.path.realpath(prefix)
        if os.path.commonpath([root, os.path.realpath(path)]) != root:
            raise UnsafePathError(uri, "target leaves the scheme root")
        return path

    def get_url(self, uri: str) -> str:
        """返回公开 URL；非公开 scheme（如 http）或无 scheme 时原样返回"""
        if self.is_public(self.get_scheme(uri)):
            return "/" + self.resolve_path(uri)
        return uri

    def get_public_url(self, uri: str) -> str:
        """同 get_url，但非公开 scheme 直接报错

        Raises:
            UnsupportedSchemeError: scheme 不可公开访问或未注册
        """
        scheme = self.get_scheme(uri)
        if not self.is_public(scheme):
            raise UnsupportedSchemeError(scheme)
        return "/" + self.resolve_path(uri)
