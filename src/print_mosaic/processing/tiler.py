"""马赛克模式：把源图铺满拼接画布，再切成等大的分片。"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from print_mosaic.core.config import MosaicConfig, TargetSpec
from print_mosaic.core.models import EncodedBuffer, SourceImage, TileCell, TileGrid
from print_mosaic.processing.canvas import draw_scaled, new_canvas
from print_mosaic.processing.encoder import EncodeError, encode_image, resolve_output_media_type
from print_mosaic.processing.geometry import COVER, FitResult, resolve_fit
from print_mosaic.processing.image_loader import open_image

LOGGER = logging.getLogger(__name__)

LABEL_BOX = (10, 10, 50, 40)
LABEL_FILL = (0, 0, 0, 128)
LABEL_TEXT = (255, 255, 255, 255)


class TileEncodeError(EncodeError):
    """某个分片编码失败，整组分片作废。"""

    def __init__(self, index: int, name: str) -> None:
        super().__init__(f"分片 {index + 1} 编码失败: {name}")
        self.index = index
        self.name = name


def render_composite(
    image: Image.Image,
    mosaic: MosaicConfig,
    background: Tuple[int, int, int],
) -> tuple[Image.Image, FitResult]:
    """按 cover 方式把整张图绘制到 ``piece * grid`` 大小的拼接画布上。

    每张源图只绘制一次，所有分片都从这块画布上切出。
    """

    box_w, box_h = mosaic.composite_size
    fit = resolve_fit(image.width, image.height, box_w, box_h, COVER)
    composite = new_canvas(fit.canvas_size, background)
    draw_scaled(composite, image, fit)
    return composite, fit


def cut_piece(
    composite: Image.Image,
    cell: TileCell,
    mosaic: MosaicConfig,
    background: Tuple[int, int, int],
) -> Image.Image:
    """从拼接画布复制 ``cell`` 对应的矩形区域到新的分片画布。"""

    left = cell.col * mosaic.piece_width
    top = cell.row * mosaic.piece_height
    piece = new_canvas((mosaic.piece_width, mosaic.piece_height), background)
    region = composite.crop((left, top, left + mosaic.piece_width, top + mosaic.piece_height))
    try:
        piece.paste(region, (0, 0))
    finally:
        region.close()

    if mosaic.label_pieces:
        _draw_label(piece, cell.number)
    return piece


def tile_image(
    source: SourceImage,
    spec: TargetSpec,
    mosaic: Optional[MosaicConfig] = None,
) -> list[EncodedBuffer]:
    """生成行优先排列的全部分片缓冲。

    任一分片编码失败时抛出 ``TileEncodeError``，已完成的分片全部丢弃。
    """

    mosaic = mosaic or MosaicConfig()
    grid = TileGrid(rows=mosaic.rows, cols=mosaic.cols)
    background = spec.background_rgb
    media_type = resolve_output_media_type(source.media_type)

    with open_image(source, background) as image:
        composite, fit = render_composite(image, mosaic, background)

    LOGGER.debug(
        "马赛克 %s: 缩放 %.4f -> %dx%d，偏移 (%.1f, %.1f)，画布 %dx%d",
        source.name,
        fit.scale,
        fit.scaled_width,
        fit.scaled_height,
        fit.offset_x,
        fit.offset_y,
        fit.canvas_width,
        fit.canvas_height,
    )

    try:
        pieces = [cut_piece(composite, cell, mosaic, background) for cell in grid.cells()]
    finally:
        composite.close()

    try:
        return _encode_pieces(pieces, source.name, media_type, spec.quality, mosaic.encode_workers)
    finally:
        for piece in pieces:
            piece.close()


def _encode_pieces(
    pieces: list[Image.Image],
    name: str,
    media_type: str,
    quality: float,
    workers: int,
) -> list[EncodedBuffer]:
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tile-encoder") as executor:
        futures = [executor.submit(encode_image, piece, media_type, quality) for piece in pieces]
        results: list[EncodedBuffer] = []
        for index, future in enumerate(futures):
            try:
                results.append(future.result())
            except EncodeError as exc:
                for pending in futures:
                    pending.cancel()
                LOGGER.debug("分片 %d 编码失败 %s: %s", index + 1, name, exc)
                raise TileEncodeError(index, name) from exc
    return results


def _draw_label(piece: Image.Image, number: int) -> None:
    """在分片左上角绘制半透明序号标记。"""

    draw = ImageDraw.Draw(piece, "RGBA")
    draw.rectangle(LABEL_BOX, fill=LABEL_FILL)

    text = str(number)
    font = ImageFont.load_default()
    text_box = draw.textbbox((0, 0), text, font=font)
    text_w = text_box[2] - text_box[0]
    text_h = text_box[3] - text_box[1]
    center_x = (LABEL_BOX[0] + LABEL_BOX[2]) / 2
    center_y = (LABEL_BOX[1] + LABEL_BOX[3]) / 2
    draw.text(
        (center_x - text_w / 2 - text_box[0], center_y - text_h / 2 - text_box[1]),
        text,
        fill=LABEL_TEXT,
        font=font,
    )
