"""命令行外壳使用的输入文件扫描。"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Iterator, Sequence


def _iter_candidate_files(path: Path, recursive: bool) -> Iterator[Path]:
    """遍历路径下的所有文件。"""

    if path.is_file():
        yield path
        return

    if not path.is_dir():
        return

    iterator = path.rglob("*") if recursive else path.glob("*")
    for candidate in iterator:
        if candidate.is_file():
            yield candidate


def is_image_file(path: Path) -> bool:
    media_type, _ = mimetypes.guess_type(path.name)
    return bool(media_type and media_type.startswith("image/"))


def collect_image_files(sources: Sequence[Path], recursive: bool = True) -> list[Path]:
    """收集媒体类型为 image/* 的文件。

    直接指定的文件保持给定顺序，目录内的文件按路径排序后追加。
    """

    collected: list[Path] = []
    seen_paths: set[Path] = set()

    for root in sources:
        resolved_root = root.resolve()
        candidates = list(_iter_candidate_files(resolved_root, recursive))
        if resolved_root.is_dir():
            candidates.sort(key=lambda x: str(x).lower())

        for candidate in candidates:
            if candidate in seen_paths or not is_image_file(candidate):
                continue
            seen_paths.add(candidate)
            collected.append(candidate)

    return collected
