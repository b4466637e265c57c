"""适配几何计算：缩放比例、缩放后尺寸与居中偏移。纯函数，不做 I/O。"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

from print_mosaic.core.exceptions import InvalidDimensions

LETTERBOX = "letterbox"
COVER = "cover"
VALID_MODES = {LETTERBOX, COVER}


@dataclass(slots=True, frozen=True)
class FitResult:
    """一次适配的计算结果。

    ``offset_x``/``offset_y`` 可以是小数或负数（cover 模式下图像超出画布的部分被裁掉）。
    """

    scale: float
    scaled_width: int
    scaled_height: int
    offset_x: float
    offset_y: float
    canvas_width: int
    canvas_height: int

    @property
    def canvas_size(self) -> tuple[int, int]:
        return self.canvas_width, self.canvas_height

    @property
    def scaled_size(self) -> tuple[int, int]:
        return self.scaled_width, self.scaled_height

    @property
    def paste_position(self) -> tuple[int, int]:
        """绘制时使用的整数左上角坐标，统一向下取整。"""

        return math.floor(self.offset_x), math.floor(self.offset_y)


def resolve_fit(source_w: float, source_h: float, box_w: float, box_h: float, mode: str) -> FitResult:
    """计算把源图放到目标框中的缩放与偏移。

    ``letterbox``：按源图方向固定一条边。横图（宽 > 高）画布为
    ``box_w × round(box_h * h / w)``，竖图与方图为 ``round(box_w * w / h) × box_h``，
    因此画布本身跟随源图比例而不是固定的 ``box_w × box_h``。

    ``cover``：画布固定为 ``box_w × box_h``，比例取 ``max(box_w / w, box_h / h)``，
    超出画布的部分在绘制时被裁掉。
    """

    if mode not in VALID_MODES:
        raise ValueError(f"未知的适配模式: {mode}")
    _require_positive(source_w=source_w, source_h=source_h, box_w=box_w, box_h=box_h)

    if mode == LETTERBOX:
        return _resolve_letterbox(source_w, source_h, box_w, box_h)
    return _resolve_cover(source_w, source_h, box_w, box_h)


def _resolve_letterbox(source_w: float, source_h: float, box_w: float, box_h: float) -> FitResult:
    if source_w > source_h:
        scale = box_w / source_w
        scaled_w = round_half_up(box_w)
        scaled_h = round_half_up(box_h * source_h / source_w)
    else:
        scale = box_h / source_h
        scaled_w = round_half_up(box_w * source_w / source_h)
        scaled_h = round_half_up(box_h)

    # 极端比例下推导边可能被舍入为 0
    scaled_w = max(scaled_w, 1)
    scaled_h = max(scaled_h, 1)
    canvas_w, canvas_h = scaled_w, scaled_h

    return FitResult(
        scale=scale,
        scaled_width=scaled_w,
        scaled_height=scaled_h,
        offset_x=(canvas_w - scaled_w) / 2,
        offset_y=(canvas_h - scaled_h) / 2,
        canvas_width=canvas_w,
        canvas_height=canvas_h,
    )


def _resolve_cover(source_w: float, source_h: float, box_w: float, box_h: float) -> FitResult:
    canvas_w = round_half_up(box_w)
    canvas_h = round_half_up(box_h)
    scale = max(box_w / source_w, box_h / source_h)
    scaled_w = max(round_half_up(source_w * scale), 1)
    scaled_h = max(round_half_up(source_h * scale), 1)

    return FitResult(
        scale=scale,
        scaled_width=scaled_w,
        scaled_height=scaled_h,
        offset_x=(canvas_w - scaled_w) / 2,
        offset_y=(canvas_h - scaled_h) / 2,
        canvas_width=canvas_w,
        canvas_height=canvas_h,
    )


def round_half_up(value: float) -> int:
    """四舍五入到整数（.5 向上），与常见画布实现保持一致。"""

    return int(math.floor(value + 0.5))


def _require_positive(**values: float) -> None:
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidDimensions(f"{name} 必须是数值: {value!r}")
        if not math.isfinite(value) or value <= 0:
            raise InvalidDimensions(f"{name} 必须是正的有限数值: {value!r}")
