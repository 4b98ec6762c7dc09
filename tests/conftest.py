import os

import pytest
from PIL import Image

from astrbot_plugin_mediaderive.config import load_config
from astrbot_plugin_mediaderive.domain.naming import DerivativeNaming
from astrbot_plugin_mediaderive.domain.uri import SchemeResolver
from astrbot_plugin_mediaderive.types import TypesetResult

EARTH = "The_Earth_seen_from_Apollo_17.jpg"

# MathJax 风格的输出：尺寸以 ex 为单位
SAMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="8.5ex" height="2.2ex" '
    'viewBox="0 -750 3757 972"><g stroke="currentColor"></g></svg>'
)

STATIC_CONFIG = {
    "schemes": {
        "public": {"path": "data/files/"},
        "temporary": {"path": "data/tmp/"},
    },
    "styles": {
        "small": {
            "actions": [{"name": "resize", "width": 480}],
            "quality": 75,
        }
    },
}


class FakeTypesetter:
    """记录调用并返回固定 SVG 的排版器"""

    def __init__(self, svg=SAMPLE_SVG, errors=()):
        self.svg = svg
        self.errors = errors
        self.calls = []
        self.closed = False

    async def typeset(self, math, input_format, ex, width):
        self.calls.append((math, input_format, ex, width))
        return TypesetResult(svg=self.svg, errors=tuple(self.errors))

    async def close(self):
        self.closed = True


class FakeRasterizer:
    """用 Pillow 生成指定尺寸的 PNG"""

    def __init__(self):
        self.calls = []

    async def rasterize(self, svg, width, height):
        import io

        self.calls.append((svg, width, height))
        buffer = io.BytesIO()
        Image.new("RGBA", (width, height), (0, 0, 0, 0)).save(buffer, format="PNG")
        return buffer.getvalue()


@pytest.fixture
def static_config():
    return load_config(STATIC_CONFIG)


@pytest.fixture
def resolver(static_config):
    return SchemeResolver(static_config.schemes, static_config.public_schemes)


@pytest.fixture
def naming(resolver, static_config):
    return DerivativeNaming(resolver, static_config.math)


@pytest.fixture
def files_dir(tmp_path):
    path = tmp_path / "files"
    path.mkdir()
    return path


@pytest.fixture
def config_dict(files_dir, tmp_path):
    return {
        "schemes": {
            "public": {"path": str(files_dir) + os.sep},
            "temporary": {"path": str(tmp_path / "tmp") + os.sep},
            "private": {"path": str(tmp_path / "private") + os.sep},
        },
        "public_schemes": ["public", "temporary"],
        "styles": {
            "small": {
                "actions": [{"name": "resize", "width": 480}],
                "quality": 75,
            },
            "thumb": {
                "actions": [{"name": "resize", "width": 100, "height": 100, "fit": "cover"}],
                "format": "webp",
                "webp": {"quality": 60},
            },
            "boxed": {
                "actions": [
                    {"name": "resize", "width": 200, "height": 200, "fit": "contain"}
                ],
                "format": "png",
            },
            "rotated": {
                "actions": [{"name": "rotate", "angle": 90}],
            },
        },
        "math": {"ex": 6, "width": 100},
    }


@pytest.fixture
def earth(files_dir):
    """1000x800 的示例图片"""
    path = files_dir / EARTH
    Image.new("RGB", (1000, 800), (20, 60, 140)).save(path, format="JPEG")
    return path
