"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class ItemStatus(str, Enum):
    """任务项生命周期：IDLE -> PROCESSING -> COMPLETED | ERROR。"""

    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class SourceImage:
    """外部调用方提交的原始图片：字节、像素尺寸与声明的媒体类型。"""

    name: str
    data: bytes = field(repr=False)
    media_type: str
    width: int
    height: int

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def byte_size(self) -> int:
        return len(self.data)


@dataclass(slots=True, frozen=True)
class EncodedBuffer:
    """画布编码后的字节与媒体类型。"""

    data: bytes = field(repr=False)
    media_type: str

    def __len__(self) -> int:
        return len(self.data)


@dataclass(slots=True)
class WorkItem:
    """批处理的基本单元，状态只由编排器修改。"""

    item_id: int
    source: SourceImage
    status: ItemStatus = ItemStatus.IDLE
    outputs: list[EncodedBuffer] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.source.name

    def release(self) -> None:
        """丢弃持有的输出缓冲。"""

        self.outputs.clear()


@dataclass(slots=True, frozen=True)
class TileCell:
    """网格中的一个分片位置。"""

    row: int
    col: int
    index: int

    @property
    def number(self) -> int:
        """导出命名与标注使用的 1 起始序号。"""

        return self.index + 1


@dataclass(slots=True, frozen=True)
class TileGrid:
    """行优先的分片网格，index = row * cols + col。"""

    rows: int = 3
    cols: int = 3

    def __len__(self) -> int:
        return self.rows * self.cols

    def cells(self) -> Iterator[TileCell]:
        for row in range(self.rows):
            for col in range(self.cols):
                yield TileCell(row=row, col=col, index=row * self.cols + col)


@dataclass(slots=True, frozen=True)
class ExportArtifact:
    """可供下载的单个文件。"""

    item_id: int
    filename: str
    buffer: EncodedBuffer


@dataclass(slots=True, frozen=True)
class ExportFailure:
    """导出失败记录，不影响任务项本身的状态。"""

    item_id: int
    name: str
    message: str


@dataclass(slots=True)
class BulkExport:
    """批量导出的产出。"""

    artifacts: list[ExportArtifact]
    failed: list[ExportFailure]
