"""导出文件命名规则。"""

from __future__ import annotations

from pathlib import PurePath

DEFAULT_EXTENSION = "jpg"

# 子类型与常用扩展名不一致的情况
_SUBTYPE_EXTENSIONS = {
    "jpeg": "jpg",
    "pjpeg": "jpg",
    "svg+xml": "svg",
    "x-icon": "ico",
}

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def extension_for_media_type(media_type: str) -> str:
    """由媒体类型的子类型推导扩展名，无法推导时返回 jpg。"""

    _, _, subtype = (media_type or "").partition("/")
    subtype = subtype.split(";", 1)[0].strip().lower()
    if not subtype:
        return DEFAULT_EXTENSION
    return _SUBTYPE_EXTENSIONS.get(subtype, subtype)


def base_name(original_name: str) -> str:
    """去掉最后一个扩展名后的文件名。"""

    name = PurePath(original_name).name
    stem, dot, _ = name.rpartition(".")
    if not dot or not stem:
        return name
    return stem


def resized_filename(original_name: str, media_type: str) -> str:
    """单图模式：``{原名}_resized.{原扩展名}``。

    原文件名没有扩展名时，使用输出媒体类型推导的扩展名。
    """

    name = PurePath(original_name).name
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return f"{name}_resized.{extension_for_media_type(media_type)}"
    return f"{stem}_resized.{ext}"


def piece_filename(base: str, number: int, media_type: str) -> str:
    """马赛克分片：``{base}_parte_{n}.{ext}``，n 从 1 开始。"""

    return f"{base}_parte_{number}.{extension_for_media_type(media_type)}"


def mosaic_archive_name(base: str) -> str:
    return f"{base}_mosaico.zip"


def format_file_size(num_bytes: int) -> str:
    """以 1024 为进制格式化字节数，例如 ``1.5 KB``。"""

    if num_bytes <= 0:
        return "0 Bytes"

    value = float(num_bytes)
    exponent = 0
    while value >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[exponent]}"
