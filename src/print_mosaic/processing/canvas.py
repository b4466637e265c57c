"""画布分配与缩放绘制。"""

from __future__ import annotations

from typing import Tuple

from PIL import Image

from print_mosaic.processing.geometry import FitResult


def new_canvas(size: Tuple[int, int], background: Tuple[int, int, int]) -> Image.Image:
    """分配一块以背景色填满的 RGB 画布。"""

    return Image.new("RGB", size, background)


def draw_scaled(canvas: Image.Image, image: Image.Image, fit: FitResult) -> None:
    """把 ``image`` 缩放到 ``fit.scaled_size`` 后绘制到 ``fit.paste_position``。

    只重采样落在画布内的那部分源图，画布外的部分直接裁掉，
    避免先生成完整的超大缩放图。
    """

    pos_x, pos_y = fit.paste_position
    left = max(pos_x, 0)
    top = max(pos_y, 0)
    right = min(pos_x + fit.scaled_width, canvas.width)
    bottom = min(pos_y + fit.scaled_height, canvas.height)
    if right <= left or bottom <= top:
        return

    ratio_x = image.width / fit.scaled_width
    ratio_y = image.height / fit.scaled_height
    box = (
        (left - pos_x) * ratio_x,
        (top - pos_y) * ratio_y,
        (right - pos_x) * ratio_x,
        (bottom - pos_y) * ratio_y,
    )
    region = image.resize((right - left, bottom - top), Image.LANCZOS, box=box)
    try:
        canvas.paste(region, (left, top))
    finally:
        region.close()
