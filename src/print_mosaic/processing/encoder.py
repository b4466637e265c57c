"""画布编码为字节缓冲。"""

from __future__ import annotations

import io
import logging

from PIL import Image

from print_mosaic.core.exceptions import PrintMosaicError
from print_mosaic.core.models import EncodedBuffer

LOGGER = logging.getLogger(__name__)

FALLBACK_MEDIA_TYPE = "image/jpeg"

SUPPORTED_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}


class EncodeError(PrintMosaicError):
    """画布编码失败或没有产出数据。"""


def resolve_output_media_type(media_type: str) -> str:
    """源媒体类型可编码时沿用，否则退回 image/jpeg。"""

    normalized = (media_type or "").split(";", 1)[0].strip().lower()
    normalized = _ALIASES.get(normalized, normalized)
    if normalized in SUPPORTED_FORMATS:
        return normalized
    if normalized:
        LOGGER.debug("不支持的输出类型 %s，改用 %s", media_type, FALLBACK_MEDIA_TYPE)
    return FALLBACK_MEDIA_TYPE


def encode_image(image: Image.Image, media_type: str, quality: float) -> EncodedBuffer:
    """按媒体类型与 0~1 的质量系数编码图像。"""

    output_type = resolve_output_media_type(media_type)
    image_format = SUPPORTED_FORMATS[output_type]

    save_params: dict[str, object] = {}
    image_to_save = image
    if image_format == "JPEG":
        save_params.update(quality=_quality_percent(quality), optimize=True, subsampling=1)
        if image.mode != "RGB":
            image_to_save = image.convert("RGB")
    elif image_format == "WEBP":
        save_params.update(quality=_quality_percent(quality))
    elif image.mode not in {"RGB", "RGBA"}:
        image_to_save = image.convert("RGB")

    stream = io.BytesIO()
    try:
        image_to_save.save(stream, format=image_format, **save_params)
    except (OSError, ValueError) as exc:
        raise EncodeError(f"编码 {output_type} 失败") from exc

    payload = stream.getvalue()
    if not payload:
        raise EncodeError(f"编码 {output_type} 没有产出数据")
    return EncodedBuffer(data=payload, media_type=output_type)


def _quality_percent(quality: float) -> int:
    return max(1, min(100, int(round(quality * 100))))
