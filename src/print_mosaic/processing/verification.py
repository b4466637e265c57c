"""分片重组与逐像素比对工具。"""

from __future__ import annotations

import io
from typing import Sequence

import numpy as np
from PIL import Image

from print_mosaic.core.models import EncodedBuffer, TileGrid


def reassemble_tiles(tiles: Sequence[EncodedBuffer], grid: TileGrid) -> Image.Image:
    """按行优先顺序把分片首尾相接拼回一张图。

    所有分片尺寸必须一致。
    """

    if len(tiles) != len(grid):
        raise ValueError(f"分片数量 {len(tiles)} 与网格 {grid.rows}×{grid.cols} 不符")

    arrays = [_to_array(tile) for tile in tiles]
    shape = arrays[0].shape
    if any(array.shape != shape for array in arrays):
        raise ValueError("分片尺寸不一致")

    rows = [np.concatenate(arrays[row * grid.cols : (row + 1) * grid.cols], axis=1) for row in range(grid.rows)]
    return Image.fromarray(np.concatenate(rows, axis=0))


def tiles_match_composite(tiles: Sequence[EncodedBuffer], grid: TileGrid, composite: Image.Image) -> bool:
    """检查分片重组后是否与拼接画布逐像素一致（仅适用于无损编码）。"""

    reassembled = reassemble_tiles(tiles, grid)
    try:
        expected = np.asarray(composite.convert("RGB"))
        actual = np.asarray(reassembled)
        return actual.shape == expected.shape and bool(np.array_equal(actual, expected))
    finally:
        reassembled.close()


def _to_array(tile: EncodedBuffer) -> np.ndarray:
    with Image.open(io.BytesIO(tile.data)) as img:
        return np.asarray(img.convert("RGB"))
