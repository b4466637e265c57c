"""将一组输出缓冲打包为 zip。"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Sequence

from print_mosaic.core.exceptions import PrintMosaicError
from print_mosaic.core.models import EncodedBuffer
from print_mosaic.core.naming import piece_filename

LOGGER = logging.getLogger(__name__)

ZIP_MEDIA_TYPE = "application/zip"


class EmptyArchiveError(PrintMosaicError):
    """没有可打包的缓冲。"""


class ArchiveBuildError(PrintMosaicError):
    """压缩步骤失败或产出为空。"""


def package_zip(buffers: Sequence[EncodedBuffer], base_name: str) -> EncodedBuffer:
    """按顺序打包缓冲，条目 i 命名为 ``{base_name}_parte_{i+1}.{ext}``。

    缓冲只被读取，不会被修改。
    """

    if not buffers:
        raise EmptyArchiveError(f"没有可打包的文件: {base_name}")

    LOGGER.debug("创建压缩包 %s，共 %d 个条目", base_name, len(buffers))
    stream = io.BytesIO()
    try:
        with zipfile.ZipFile(stream, "w", zipfile.ZIP_DEFLATED) as archive:
            for index, buffer in enumerate(buffers):
                entry = piece_filename(base_name, index + 1, buffer.media_type)
                archive.writestr(entry, buffer.data)
    except (OSError, ValueError, zipfile.BadZipFile) as exc:
        raise ArchiveBuildError(f"创建压缩包失败: {base_name}") from exc

    payload = stream.getvalue()
    if not payload:
        raise ArchiveBuildError(f"压缩包为空: {base_name}")

    LOGGER.debug("压缩包 %s 大小 %d 字节", base_name, len(payload))
    return EncodedBuffer(data=payload, media_type=ZIP_MEDIA_TYPE)
