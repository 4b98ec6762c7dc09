import re

import pytest

from astrbot_plugin_mediaderive import __version__
from astrbot_plugin_mediaderive.domain.errors import (
    UnsupportedOutputFormatError,
    UnsupportedSchemeError,
)
from astrbot_plugin_mediaderive.domain.naming import DerivativeNaming, canonical_json
from astrbot_plugin_mediaderive.types import MathConfig, MathRequest

PUBLIC_PATH = "data/files/"


class TestGetStylePath:
    def test_keeps_source_scheme(self, naming):
        actual = naming.get_style_path("small", "private://dir/file.jpg")
        assert actual == "private://styles/small/dir/file.jpg"

    def test_defaults_to_public(self, naming):
        actual = naming.get_style_path("small", "dir/file.jpg")
        assert actual == "public://styles/small/dir/file.jpg"

    def test_deterministic(self, naming):
        first = naming.get_style_path("small", "public://a/b.png", "webp")
        second = naming.get_style_path("small", "public://a/b.png", "webp")
        assert first == second

    def test_rewrites_extension_for_other_format(self, naming):
        actual = naming.get_style_path("small", "public://dir/file.png", "jpeg")
        assert actual == "public://styles/small/dir/file.jpg"

    def test_jpg_alias(self, naming):
        actual = naming.get_style_path("small", "public://dir/file.png", "jpg")
        assert actual == "public://styles/small/dir/file.jpg"

    def test_same_container_keeps_extension(self, naming):
        actual = naming.get_style_path("small", "public://dir/file.JPEG", "jpeg")
        assert actual == "public://styles/small/dir/file.JPEG"

    def test_adds_extension_when_missing(self, naming):
        actual = naming.get_style_path("small", "public://dir/file", "webp")
        assert actual == "public://styles/small/dir/file.webp"

    def test_only_last_extension_replaced(self, naming):
        actual = naming.get_style_path("small", "public://v1.2/photo.tar.png", "webp")
        assert actual == "public://styles/small/v1.2/photo.tar.webp"

    def test_unsupported_output_format(self, naming):
        with pytest.raises(UnsupportedOutputFormatError):
            naming.get_style_path("small", "public://a.jpg", "bmp")


class TestGetStyleURL:
    def test_with_scheme(self, naming):
        actual = naming.get_style_url("small", "public://dir/file.jpg")
        assert actual == "/" + PUBLIC_PATH + "styles/small/dir/file.jpg"

    def test_without_scheme(self, naming):
        actual = naming.get_style_url("small", "dir/file.jpg")
        assert actual == "/" + PUBLIC_PATH + "styles/small/dir/file.jpg"

    def test_external_scheme_raises(self, naming):
        with pytest.raises(UnsupportedSchemeError, match="Scheme `http` not supported"):
            naming.get_style_url("small", "http://dir/file.jpg")

    def test_non_public_source_scheme_raises(self, naming):
        with pytest.raises(UnsupportedSchemeError):
            naming.get_style_url("small", "private://dir/file.jpg")


class TestMathDigest:
    def test_is_32_hex(self, naming):
        digest = naming.get_math_digest(MathRequest(input="E = mc^2"))
        assert re.fullmatch(r"[0-9a-f]{32}", digest)

    def test_repeatable(self, naming):
        request = MathRequest(input="E = mc^2")
        assert naming.get_math_digest(request) == naming.get_math_digest(request)

    def test_surrounding_whitespace_ignored(self, naming):
        plain = naming.get_math_digest(MathRequest(input="E = mc^2"))
        padded = naming.get_math_digest(MathRequest(input="  \n E = mc^2 \t"))
        assert plain == padded

    def test_inner_whitespace_matters(self, naming):
        a = naming.get_math_digest(MathRequest(input="E = mc^2"))
        b = naming.get_math_digest(MathRequest(input="E=mc^2"))
        assert a != b

    @pytest.mark.parametrize(
        "changed",
        [
            MathRequest(input="E = mc^3"),
            MathRequest(input="E = mc^2", ex=8),
            MathRequest(input="E = mc^2", width=50),
        ],
    )
    def test_changes_with_input_or_options(self, naming, changed):
        base = naming.get_math_digest(MathRequest(input="E = mc^2"))
        assert naming.get_math_digest(changed) != base

    def test_explicit_defaults_hit_same_entry(self, naming):
        implicit = naming.get_math_digest(MathRequest(input="x"))
        explicit = naming.get_math_digest(MathRequest(input="x", ex=6, width=100.0))
        assert implicit == explicit

    def test_formats_do_not_change_digest(self, naming):
        svg = naming.get_math_digest(MathRequest(input="x", output_format="svg"))
        png = naming.get_math_digest(MathRequest(input="x", output_format="png"))
        assert svg == png

    def test_version_changes_digest(self, resolver):
        request = MathRequest(input="x")
        current = DerivativeNaming(resolver, MathConfig(), version=__version__)
        other = DerivativeNaming(resolver, MathConfig(), version=__version__ + ".post1")
        assert current.get_math_digest(request) != other.get_math_digest(request)

    def test_configured_defaults_change_digest(self, resolver):
        request = MathRequest(input="x")
        a = DerivativeNaming(resolver, MathConfig(ex=6))
        b = DerivativeNaming(resolver, MathConfig(ex=7))
        assert a.get_math_digest(request) != b.get_math_digest(request)

    def test_unrelated_renderer_flags_ignored(self, resolver):
        request = MathRequest(input="x")
        a = DerivativeNaming(resolver, MathConfig(display_errors=False))
        b = DerivativeNaming(resolver, MathConfig(display_errors=True, mathjax_url="local/startup.js"))
        assert a.get_math_digest(request) == b.get_math_digest(request)


def test_canonical_json_order_independent():
    assert canonical_json({"width": 100, "ex": 6}) == canonical_json({"ex": 6, "width": 100})
    assert canonical_json({"width": 100, "ex": 6}) == '{"ex":6,"width":100}'


class TestMathFilename:
    def test_svg(self, naming):
        filename = naming.get_math_filename(MathRequest(input="E = mc^2", output_format="svg"))
        assert re.fullmatch(r"[0-9a-f]{32}\.svg", filename)

    def test_png(self, naming):
        filename = naming.get_math_filename(MathRequest(input="E = mc^2", output_format="png"))
        assert re.fullmatch(r"[0-9a-f]{32}\.png", filename)

    def test_unsupported_format(self, naming):
        with pytest.raises(UnsupportedOutputFormatError, match="`gif`"):
            naming.get_math_filename(MathRequest(input="x", output_format="gif"))


class TestMathPath:
    def test_defaults_to_public(self, naming):
        assert naming.get_math_path("svg", "abc.svg") == "public://math/svg/abc.svg"

    def test_keeps_scheme(self, naming):
        assert naming.get_math_path("png", "temporary://abc.png") == "temporary://math/png/abc.png"

    def test_url(self, naming):
        assert naming.get_math_url("svg", "abc.svg") == "/" + PUBLIC_PATH + "math/svg/abc.svg"

    def test_url_external_scheme_raises(self, naming):
        with pytest.raises(UnsupportedSchemeError):
            naming.get_math_url("svg", "http://abc.svg")

    def test_math_uri(self, naming):
        request = MathRequest(input="x", output_format="png")
        filename = naming.get_math_filename(request)
        assert naming.get_math_uri(request) == f"public://math/png/{filename}"
        assert naming.get_math_uri(request, "temporary") == f"temporary://math/png/{filename}"
