"""
配置加载
将插件配置（普通 dict）转换为不可变的 DerivativeConfig，编码参数在此处校验
"""

from types import MappingProxyType
from typing import Any, Mapping, Optional

from .domain.errors import ConfigError
from .domain.naming import normalize_image_format
from .types import (
    JPEG,
    PNG,
    PUBLIC,
    RESIZE,
    TEMPORARY,
    WEBP,
    DerivativeConfig,
    Fit,
    JpegOptions,
    MathConfig,
    PngOptions,
    ResizeAction,
    SchemeConfig,
    Style,
    UnknownAction,
    WebpOptions,
)

_ENCODE_OPTION_TYPES = {
    JPEG: JpegOptions,
    PNG: PngOptions,
    WEBP: WebpOptions,
}

_QUALITY_FORMATS = (JPEG, WEBP)

_RANGES = {
    "quality": (1, 100),
    "compression_level": (0, 9),
    "method": (0, 6),
}


def _require_mapping(value: Any, where: str) -> Mapping:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where} 必须是对象，实际为 {type(value).__name__}")
    return value


def _optional_int(value: Any, where: str, minimum: int = 1) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{where} 必须是整数: {value!r}")
    if value < minimum:
        raise ConfigError(f"{where} 不能小于 {minimum}: {value}")
    return value


def _positive_number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{where} 必须是正数: {value!r}")
    return value


def load_schemes(raw: Any) -> Mapping[str, SchemeConfig]:
    schemes = {}
    for name, value in _require_mapping(raw, "schemes").items():
        if isinstance(value, str):
            schemes[name] = SchemeConfig(path=value)
            continue
        value = _require_mapping(value, f"schemes.{name}")
        path = value.get("path", "")
        if not isinstance(path, str):
            raise ConfigError(f"schemes.{name}.path 必须是字符串")
        schemes[name] = SchemeConfig(path=path)
    return MappingProxyType(schemes)


def load_action(raw: Any, where: str):
    raw = _require_mapping(raw, where)
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigError(f"{where}.name 缺失")

    # 未知动作保留到执行阶段再报 UnsupportedActionError
    if name != RESIZE:
        params = tuple(sorted((k, repr(v)) for k, v in raw.items() if k != "name"))
        return UnknownAction(name=name, params=params)

    width = _optional_int(raw.get("width"), f"{where}.width")
    height = _optional_int(raw.get("height"), f"{where}.height")
    if width is None and height is None:
        raise ConfigError(f"{where} 至少需要 width 或 height")

    fit_value = raw.get("fit", Fit.INSIDE.value)
    try:
        fit = Fit(fit_value)
    except ValueError:
        raise ConfigError(f"{where}.fit 不支持: {fit_value!r}") from None

    return ResizeAction(
        width=width,
        height=height,
        fit=fit,
        without_enlargement=bool(raw.get("without_enlargement", False)),
        background=str(raw.get("background", "#FFFFFF")),
    )


def load_encode_options(image_format: str, raw: Any, quality: Optional[int], where: str):
    """按格式构造编码参数，未知字段报错"""
    options_type = _ENCODE_OPTION_TYPES[image_format]
    raw = dict(_require_mapping(raw, where))

    allowed = set(options_type.__dataclass_fields__)
    unknown = set(raw) - allowed
    if unknown:
        raise ConfigError(f"{where} 包含未知字段: {sorted(unknown)}")

    for key, (low, high) in _RANGES.items():
        if key in raw:
            value = _optional_int(raw[key], f"{where}.{key}", minimum=low)
            if value > high:
                raise ConfigError(f"{where}.{key} 不能大于 {high}: {value}")

    if quality is not None and image_format in _QUALITY_FORMATS:
        raw.setdefault("quality", quality)

    return options_type(**raw)


def load_style(name: str, raw: Any) -> Style:
    where = f"styles.{name}"
    raw = _require_mapping(raw, where)

    actions = raw.get("actions", [])
    if not isinstance(actions, (list, tuple)):
        raise ConfigError(f"{where}.actions 必须是列表")

    quality = _optional_int(raw.get("quality"), f"{where}.quality")
    if quality is not None and quality > 100:
        raise ConfigError(f"{where}.quality 不能大于 100: {quality}")

    image_format = raw.get("format")
    if image_format is not None:
        image_format = normalize_image_format(image_format)

    return Style(
        actions=tuple(
            load_action(action, f"{where}.actions[{i}]")
            for i, action in enumerate(actions)
        ),
        format=image_format,
        jpeg=load_encode_options(JPEG, raw.get(JPEG), quality, f"{where}.jpeg"),
        png=load_encode_options(PNG, raw.get(PNG), quality, f"{where}.png"),
        webp=load_encode_options(WEBP, raw.get(WEBP), quality, f"{where}.webp"),
    )


def load_math(raw: Any) -> MathConfig:
    raw = _require_mapping(raw, "math")
    defaults = MathConfig()
    return MathConfig(
        ex=_positive_number(raw.get("ex", defaults.ex), "math.ex"),
        width=_positive_number(raw.get("width", defaults.width), "math.width"),
        display_errors=bool(raw.get("display_errors", defaults.display_errors)),
        mathjax_url=str(raw.get("mathjax_url") or defaults.mathjax_url),
        typeset_timeout=_optional_int(
            raw.get("typeset_timeout", defaults.typeset_timeout), "math.typeset_timeout"
        ),
    )


def load_config(raw: Mapping[str, Any]) -> DerivativeConfig:
    """从 dict 构造配置

    Raises:
        ConfigError: 配置结构或取值不合法
        UnsupportedOutputFormatError: 样式指定了不支持的输出格式
    """
    raw = _require_mapping(raw, "config")

    public_schemes = raw.get("public_schemes", (PUBLIC, TEMPORARY))
    if isinstance(public_schemes, str) or not all(
        isinstance(s, str) for s in public_schemes
    ):
        raise ConfigError("public_schemes 必须是字符串列表")

    styles = {
        name: load_style(name, style)
        for name, style in _require_mapping(raw.get("styles"), "styles").items()
    }

    return DerivativeConfig(
        schemes=load_schemes(raw.get("schemes")),
        public_schemes=tuple(public_schemes),
        styles=MappingProxyType(styles),
        math=load_math(raw.get("math")),
    )
