"""Pillow stages: incremental decode, resize, encode.

Fit 규칙 (width, height 모두 지정된 경우):
- cover (기본값): 비율 유지, 대상 크기를 덮도록 확대/축소 후 중앙 crop
- contain: 비율 유지, 대상 크기 안에 맞춘 뒤 투명(알파 없으면 검정) 여백
- fill: 비율 무시, 정확히 대상 크기로 늘림
- inside: 비율 유지, 대상 크기 안에 들어가도록
- outside: 비율 유지, 대상 크기를 덮도록 (crop 없음)

한 쪽만 지정되면 fit 과 무관하게 비율을 유지하며 해당 변에 맞춥니다.
비율로 계산된 변도 MAX_DIMENSION 을 넘지 않습니다 (필요하면 전체를 더 작게 축소).
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Iterable, Optional

from PIL import Image, ImageFile, ImageOps

from image_delivery.core.constants import MAX_DIMENSION
from image_delivery.schemas.image import FitMode, ImageFormat

logger = logging.getLogger(__name__)

DEFAULT_FIT = FitMode.cover
RESAMPLE = Image.Resampling.LANCZOS

# Pillow format name -> output format used when re-encoding without an explicit format
SOURCE_FORMATS = {
    "JPEG": ImageFormat.jpeg,
    "MPO": ImageFormat.jpeg,
    "PNG": ImageFormat.png,
    "WEBP": ImageFormat.webp,
    "AVIF": ImageFormat.avif,
}
FALLBACK_FORMAT = ImageFormat.png

_WORKING_MODES = ("RGB", "RGBA", "L", "LA")


def decode(chunks: Iterable[bytes]) -> Image.Image:
    """Feed storage chunks into an incremental parser and return the image.

    Raises OSError (incl. ``UnidentifiedImageError``) on undecodable data.
    """
    parser = ImageFile.Parser()
    for chunk in chunks:
        parser.feed(chunk)
    image = parser.close()
    source_format = image.format
    image = _normalize_mode(image)
    image.format = source_format
    return image


def source_output_format(image: Image.Image) -> ImageFormat:
    return SOURCE_FORMATS.get(image.format or "", FALLBACK_FORMAT)


def _normalize_mode(image: Image.Image) -> Image.Image:
    if image.mode in _WORKING_MODES:
        return image
    has_alpha = "A" in image.getbands() or "transparency" in image.info
    return image.convert("RGBA" if has_alpha else "RGB")


def _background(image: Image.Image) -> int | tuple[int, ...]:
    bands = len(image.getbands())
    return 0 if bands == 1 else (0,) * bands


def _scaled(image: Image.Image, scale: float) -> Image.Image:
    src_w, src_h = image.size
    # 계산된 변도 MAX_DIMENSION 을 넘지 않도록 비율 유지하며 축소
    scale = min(scale, MAX_DIMENSION / src_w, MAX_DIMENSION / src_h)
    size = (
        min(MAX_DIMENSION, max(1, round(src_w * scale))),
        min(MAX_DIMENSION, max(1, round(src_h * scale))),
    )
    return image.resize(size, RESAMPLE)


def resize(
    image: Image.Image,
    width: Optional[int],
    height: Optional[int],
    fit: Optional[FitMode] = None,
) -> Image.Image:
    src_w, src_h = image.size
    if width is None and height is None:
        return image
    if width is None:
        return _scaled(image, height / src_h)
    if height is None:
        return _scaled(image, width / src_w)

    mode = fit or DEFAULT_FIT
    if mode is FitMode.cover:
        return ImageOps.fit(image, (width, height), method=RESAMPLE)
    if mode is FitMode.contain:
        return ImageOps.pad(image, (width, height), method=RESAMPLE, color=_background(image))
    if mode is FitMode.fill:
        return image.resize((width, height), RESAMPLE)
    if mode is FitMode.inside:
        return _scaled(image, min(width / src_w, height / src_h))
    if mode is FitMode.outside:
        return _scaled(image, max(width / src_w, height / src_h))
    raise ValueError(f"Unsupported fit mode: {mode!r}")


def encode(
    image: Image.Image,
    output_format: ImageFormat,
    quality: Optional[int],
    fp: BinaryIO,
) -> None:
    """Write ``image`` to ``fp``; quality is dropped for formats without it."""
    options = {"quality": quality} if quality is not None and output_format.supports_quality else {}

    if output_format is ImageFormat.jpeg:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(fp, format="JPEG", **options)
    elif output_format is ImageFormat.webp:
        image.save(fp, format="WEBP", **options)
    elif output_format is ImageFormat.avif:
        image.save(fp, format="AVIF", **options)
    elif output_format is ImageFormat.png:
        image.save(fp, format="PNG")
    else:
        raise ValueError(f"Unsupported output format: {output_format!r}")
