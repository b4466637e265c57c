"""源图片探测与解码。"""

from __future__ import annotations

import io
import logging
import mimetypes
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from print_mosaic.core.exceptions import PrintMosaicError, UnsupportedMediaType
from print_mosaic.core.models import SourceImage

LOGGER = logging.getLogger(__name__)

WHITE = (255, 255, 255)

# EXIF Orientation 中需要交换宽高的取值
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}
_ORIENTATION_TAG = 0x0112

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)


class DecodeError(PrintMosaicError):
    """源字节无法解码为图片。"""


def require_image_media_type(media_type: str, name: str) -> None:
    if not media_type or not media_type.lower().startswith("image/"):
        raise UnsupportedMediaType(f"不支持的文件类型 {media_type or '(空)'}: {name}")


def load_source(data: bytes, media_type: str, name: str) -> SourceImage:
    """读取图片头部得到像素尺寸，构造 SourceImage。

    只解析头部信息，完整解码推迟到渲染阶段。尺寸已按 EXIF 方向校正。
    """

    require_image_media_type(media_type, name)
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            orientation = img.getexif().get(_ORIENTATION_TAG)
    except _DECODE_ERRORS as exc:
        LOGGER.debug("无法识别图像 %s: %s", name, exc)
        raise DecodeError(f"无法识别图像: {name}") from exc

    if orientation in _TRANSPOSED_ORIENTATIONS:
        width, height = height, width

    return SourceImage(name=name, data=bytes(data), media_type=media_type, width=width, height=height)


def load_source_file(path: Path) -> SourceImage:
    """从磁盘读取文件，媒体类型按文件名推断。"""

    media_type, _ = mimetypes.guess_type(path.name)
    require_image_media_type(media_type or "", path.name)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"无法读取文件: {path}") from exc
    return load_source(data, media_type or "", path.name)


@contextmanager
def open_image(source: SourceImage, background: Tuple[int, int, int] = WHITE) -> Iterator[Image.Image]:
    """解码源图片并在退出时释放，包括异常路径。"""

    image = decode_image(source, background)
    try:
        yield image
    finally:
        image.close()


def decode_image(source: SourceImage, background: Tuple[int, int, int] = WHITE) -> Image.Image:
    """完整解码一张图片，执行 EXIF 旋转并统一为 RGB。

    返回值为新的 Image 对象，调用者负责关闭。
    """

    try:
        with Image.open(io.BytesIO(source.data)) as opened:
            opened.load()

            # EXIF Orientation 校正
            img = ImageOps.exif_transpose(opened)

            if img.mode != "RGB":
                converted = _convert_to_rgb(img, background)
                if img is not opened:
                    img.close()
                img = converted

            # 未产生新图像时需要脱离即将关闭的文件对象
            return img.copy() if img is opened else img
    except _DECODE_ERRORS as exc:
        LOGGER.debug("解码失败 %s: %s", source.name, exc)
        raise DecodeError(f"无法加载图像: {source.name}") from exc


def _convert_to_rgb(img: Image.Image, background: Tuple[int, int, int]) -> Image.Image:
    """将任意模式图像转换为 RGB，透明区域与背景色混合。"""

    has_alpha = img.mode in {"RGBA", "LA", "PA"} or (img.mode == "P" and "transparency" in img.info)
    if has_alpha:
        rgba = img.convert("RGBA")
        flattened = Image.new("RGB", img.size, background)
        flattened.paste(rgba, mask=rgba.split()[-1])
        rgba.close()
        return flattened

    return img.convert("RGB")
