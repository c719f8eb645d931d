"""Output format negotiation."""

from __future__ import annotations

from typing import Optional

from image_delivery.schemas.image import ImageFormat

# Accept 헤더로 선택 가능한 포맷 (앞쪽 우선)
NEGOTIABLE_FORMATS = (ImageFormat.webp, ImageFormat.avif)


def _accepted_media_types(accept: str) -> set[str]:
    accepted = set()
    for part in accept.split(","):
        media_type, _, params = part.strip().partition(";")
        quality = 1.0
        for param in params.split(";"):
            name, _, value = param.strip().partition("=")
            if name.lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if media_type and quality > 0:
            accepted.add(media_type.strip().lower())
    return accepted


def negotiate(
    explicit_format: Optional[ImageFormat],
    negotiation_enabled: bool,
    accept: Optional[str],
) -> Optional[ImageFormat]:
    """Pick the output encoding; ``None`` keeps the source encoding.

    An explicit format always wins. Otherwise, when negotiation is enabled,
    the first of ``NEGOTIABLE_FORMATS`` listed in ``Accept`` is chosen.
    Wildcards (``*/*``, ``image/*``) do not select a modern format.
    """
    if explicit_format is not None:
        return explicit_format
    if not negotiation_enabled or not accept:
        return None
    accepted = _accepted_media_types(accept)
    for candidate in NEGOTIABLE_FORMATS:
        if candidate.media_type in accepted:
            return candidate
    return None
