"""缩放与马赛克任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass

from print_mosaic.core.exceptions import InvalidConfigurationError
from print_mosaic.utils.colors import parse_color

DEFAULT_HORIZONTAL_WIDTH = 2050
DEFAULT_VERTICAL_HEIGHT = 2994
DEFAULT_BACKGROUND = "#FFFFFF"
DEFAULT_QUALITY = 0.95


@dataclass(slots=True, frozen=True)
class TargetSpec:
    """输出画布尺寸、背景与编码质量。

    横图（宽 > 高）固定宽度为 ``horizontal_width``，竖图与方图固定高度为
    ``vertical_height``，另一边按原图比例推导。
    """

    horizontal_width: int = DEFAULT_HORIZONTAL_WIDTH
    vertical_height: int = DEFAULT_VERTICAL_HEIGHT
    background_color: str = DEFAULT_BACKGROUND
    quality: float = DEFAULT_QUALITY

    def validate(self) -> None:
        if self.horizontal_width <= 0 or self.vertical_height <= 0:
            raise InvalidConfigurationError("目标宽高必须大于 0")
        if not 0 < self.quality <= 1:
            raise InvalidConfigurationError(f"编码质量必须位于 (0, 1] 区间: {self.quality}")
        parse_color(self.background_color)

    @property
    def background_rgb(self) -> tuple[int, int, int]:
        return parse_color(self.background_color)


@dataclass(slots=True, frozen=True)
class MosaicConfig:
    """马赛克分片配置，默认 3×3，每片与单图模式的目标尺寸一致。"""

    piece_width: int = DEFAULT_HORIZONTAL_WIDTH
    piece_height: int = DEFAULT_VERTICAL_HEIGHT
    rows: int = 3
    cols: int = 3
    label_pieces: bool = False
    encode_workers: int = 4

    def validate(self) -> None:
        if self.piece_width <= 0 or self.piece_height <= 0:
            raise InvalidConfigurationError("分片宽高必须大于 0")
        if self.rows < 1 or self.cols < 1:
            raise InvalidConfigurationError(f"网格至少为 1×1: {self.rows}×{self.cols}")
        if self.encode_workers < 1:
            raise InvalidConfigurationError("encode_workers 必须至少为 1")

    @property
    def composite_size(self) -> tuple[int, int]:
        """完整拼接画布的尺寸。"""

        return self.piece_width * self.cols, self.piece_height * self.rows
