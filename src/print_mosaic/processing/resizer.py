"""单图模式：按方向固定一边，输出一张画布。"""

from __future__ import annotations

import logging

from print_mosaic.core.config import TargetSpec
from print_mosaic.core.models import EncodedBuffer, SourceImage
from print_mosaic.processing.canvas import draw_scaled, new_canvas
from print_mosaic.processing.encoder import encode_image
from print_mosaic.processing.geometry import LETTERBOX, resolve_fit
from print_mosaic.processing.image_loader import open_image

LOGGER = logging.getLogger(__name__)


def resize_image(source: SourceImage, spec: TargetSpec) -> EncodedBuffer:
    """把源图绘制到方向推导出的画布上并编码为源媒体类型。

    解码失败抛出 ``DecodeError``，编码失败抛出 ``EncodeError``。
    """

    background = spec.background_rgb
    with open_image(source, background) as image:
        fit = resolve_fit(image.width, image.height, spec.horizontal_width, spec.vertical_height, LETTERBOX)
        LOGGER.debug(
            "缩放 %s: %dx%d -> 画布 %dx%d",
            source.name,
            image.width,
            image.height,
            fit.canvas_width,
            fit.canvas_height,
        )
        canvas = new_canvas(fit.canvas_size, background)
        try:
            draw_scaled(canvas, image, fit)
            return encode_image(canvas, source.media_type, spec.quality)
        finally:
            canvas.close()
