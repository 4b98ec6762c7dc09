"""
Pillow 位图引擎
open/resize/encode 只记录操作，write_to 在工作线程中一次性执行
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Optional

from PIL import Image, ImageOps

from ...types import (
    JPEG,
    PNG,
    WEBP,
    EncodeOptions,
    Fit,
    JpegOptions,
    PngOptions,
    ResizeAction,
    WebpOptions,
)

RESAMPLE = Image.Resampling.LANCZOS

# 需要去除的嵌入元数据
STRIPPED_INFO_KEYS = ("icc_profile", "exif", "xmp", "comment")

# 可直接缩放并写入 PNG/WEBP 的模式，其余（CMYK、YCbCr、I;16 等）先转换
WORKING_MODES = ("RGB", "RGBA", "L", "LA")


@dataclass(frozen=True)
class ImageHandle:
    """待执行的变换流水线"""

    src_path: str
    size: tuple[int, int]
    actions: tuple = ()
    image_format: Optional[str] = None
    options: Optional[EncodeOptions] = None


def target_size(size: tuple[int, int], action: ResizeAction) -> tuple[int, int]:
    """只给出一边时按比例计算另一边"""
    src_width, src_height = size
    width, height = action.width, action.height
    if width is None:
        width = max(1, round(src_width * height / src_height))
    elif height is None:
        height = max(1, round(src_height * width / src_width))
    return width, height


def resize_image(img: Image.Image, action: ResizeAction) -> Image.Image:
    width, height = target_size(img.size, action)

    if action.without_enlargement and img.width <= width and img.height <= height:
        return img

    # 只给出一边时各种 fit 都退化为等比缩放
    if action.width is None or action.height is None or action.fit is Fit.FILL:
        return img.resize((width, height), resample=RESAMPLE)

    if action.fit is Fit.INSIDE:
        return ImageOps.contain(img, (width, height), method=RESAMPLE)

    if action.fit is Fit.OUTSIDE:
        scale = max(width / img.width, height / img.height)
        size = (max(1, round(img.width * scale)), max(1, round(img.height * scale)))
        return img.resize(size, resample=RESAMPLE)

    if action.fit is Fit.CONTAIN:
        return ImageOps.pad(
            img, (width, height), method=RESAMPLE, color=action.background
        )

    return ImageOps.fit(img, (width, height), method=RESAMPLE)


def normalize_mode(img: Image.Image) -> Image.Image:
    """转换为 RGB/RGBA，保留透明度"""
    if img.mode in WORKING_MODES:
        return img
    if "A" in img.getbands() or "transparency" in img.info:
        return img.convert("RGBA")
    return img.convert("RGB")


def _flatten(img: Image.Image) -> Image.Image:
    """JPEG 不支持透明通道，合成到白色背景"""
    if img.mode in ("RGBA", "LA"):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def save_image(img: Image.Image, path: str, image_format: str, options: EncodeOptions) -> None:
    for key in STRIPPED_INFO_KEYS:
        img.info.pop(key, None)

    if image_format == JPEG:
        options = options if isinstance(options, JpegOptions) else JpegOptions()
        _flatten(img).save(
            path,
            format="JPEG",
            quality=options.quality,
            progressive=options.progressive,
            optimize=options.optimize,
        )
    elif image_format == PNG:
        options = options if isinstance(options, PngOptions) else PngOptions()
        img.save(
            path,
            format="PNG",
            compress_level=options.compression_level,
            optimize=options.optimize,
        )
    elif image_format == WEBP:
        options = options if isinstance(options, WebpOptions) else WebpOptions()
        img.save(
            path,
            format="WEBP",
            quality=options.quality,
            lossless=options.lossless,
            method=options.method,
        )
    else:
        raise ValueError(f"unknown image format: {image_format}")


class PillowImageEngine:
    """基于 Pillow 的位图引擎"""

    async def open(self, src_path: str) -> ImageHandle:
        size = await asyncio.to_thread(self._probe, src_path)
        return ImageHandle(src_path=src_path, size=size)

    def resize(self, handle: ImageHandle, action: ResizeAction) -> ImageHandle:
        return replace(handle, actions=handle.actions + (action,))

    def encode(
        self, handle: ImageHandle, image_format: str, options: EncodeOptions
    ) -> ImageHandle:
        return replace(handle, image_format=image_format, options=options)

    async def write_to(self, handle: ImageHandle, dist_path: str) -> None:
        await asyncio.to_thread(self._run, handle, dist_path)

    @staticmethod
    def _probe(src_path: str) -> tuple[int, int]:
        with Image.open(src_path) as img:
            return img.size

    @staticmethod
    def _run(handle: ImageHandle, dist_path: str) -> None:
        with Image.open(handle.src_path) as src:
            img = normalize_mode(src.copy())
            image_format = handle.image_format or (src.format or "").lower()

        for action in handle.actions:
            img = resize_image(img, action)

        save_image(img, dist_path, image_format, handle.options)
