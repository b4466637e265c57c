"""导出文件写入与冲突处理模块。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import count
from pathlib import Path
from typing import Optional

from print_mosaic.core.exceptions import InvalidConfigurationError, PrintMosaicError
from print_mosaic.core.models import ExportArtifact

LOGGER = logging.getLogger(__name__)

CONFLICT_STRATEGIES = {"overwrite", "skip", "rename"}


class ArtifactWriteError(PrintMosaicError):
    """输出写入失败。"""


@dataclass(slots=True)
class WriteOutcome:
    """单个导出文件的写入结果。"""

    filename: str
    action: str
    destination: Optional[Path] = None
    note: Optional[str] = None


class OutputManager:
    """负责输出目录、冲突策略与文件写入。"""

    def __init__(self, output_dir: Path, conflict_strategy: str = "rename") -> None:
        if conflict_strategy not in CONFLICT_STRATEGIES:
            raise InvalidConfigurationError(f"未知的冲突策略: {conflict_strategy}")
        self.conflict_strategy = conflict_strategy
        self.output_dir = output_dir.resolve()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write(self, artifact: ExportArtifact) -> WriteOutcome:
        """根据冲突策略把导出文件写入输出目录。"""

        destination = self.output_dir / Path(artifact.filename).name
        action = "write"
        note: Optional[str] = None

        if destination.exists():
            note = f"目标已存在: {destination.name}"
            if self.conflict_strategy == "skip":
                LOGGER.info("跳过输出（已存在）：%s", destination)
                return WriteOutcome(filename=artifact.filename, action="skip", destination=destination, note=note)
            if self.conflict_strategy == "rename":
                destination = self._generate_renamed_path(destination)
                action = "rename"
                note = f"{note} -> 重命名为 {destination.name}"
            else:
                action = "overwrite"

        try:
            destination.write_bytes(artifact.buffer.data)
        except OSError as exc:
            raise ArtifactWriteError(f"写入文件失败: {destination}") from exc

        LOGGER.debug("写入 %s (%d 字节)", destination, len(artifact.buffer))
        return WriteOutcome(filename=artifact.filename, action=action, destination=destination, note=note)

    def _generate_renamed_path(self, destination: Path) -> Path:
        """在 rename 策略下生成新的文件名。"""

        stem = destination.stem
        suffix = destination.suffix

        for idx in count(1):
            candidate = destination.with_name(f"{stem}_{idx}{suffix}")
            if not candidate.exists():
                return candidate

        # 理论上不会执行到此处
        return destination
