"""批处理编排：维护任务队列、逐项调度缩放或切片、汇总导出。"""

from __future__ import annotations

import logging
from itertools import count
from typing import Callable, Iterable, Optional, Sequence

from print_mosaic.core.archive import package_zip
from print_mosaic.core.config import MosaicConfig, TargetSpec
from print_mosaic.core.exceptions import ModeChangeRejected, PrintMosaicError, UnknownItemError
from print_mosaic.core.models import (
    BulkExport,
    EncodedBuffer,
    ExportArtifact,
    ExportFailure,
    ItemStatus,
    SourceImage,
    WorkItem,
)
from print_mosaic.core.naming import base_name, mosaic_archive_name, resized_filename
from print_mosaic.core.progress import StatusCallback, StatusUpdate
from print_mosaic.processing.image_loader import require_image_media_type
from print_mosaic.processing.resizer import resize_image
from print_mosaic.processing.tiler import tile_image

LOGGER = logging.getLogger(__name__)

Resizer = Callable[[SourceImage, TargetSpec], EncodedBuffer]
Tiler = Callable[[SourceImage, TargetSpec, MosaicConfig], Sequence[EncodedBuffer]]


class BatchOrchestrator:
    """按到达顺序逐项处理图片。

    同一时刻只有一个任务项处于渲染中；``process_pending`` 在运行期间被再次调用时
    直接返回。单个任务项失败只会把该项标记为 ERROR，后续任务项照常处理。
    """

    def __init__(
        self,
        spec: Optional[TargetSpec] = None,
        *,
        mosaic: bool = False,
        mosaic_config: Optional[MosaicConfig] = None,
        on_status_change: StatusCallback = None,
        auto_process: bool = True,
        resizer: Resizer = resize_image,
        tiler: Tiler = tile_image,
    ) -> None:
        self.spec = spec or TargetSpec()
        self.mosaic_config = mosaic_config or MosaicConfig()
        self.spec.validate()
        self.mosaic_config.validate()

        self._mosaic = mosaic
        self._on_status_change = on_status_change
        self._auto_process = auto_process
        self._resizer = resizer
        self._tiler = tiler
        self._items: dict[int, WorkItem] = {}
        self._ids = count(1)
        self._in_flight = False

    # ------------------------------------------------------------------
    # 队列
    # ------------------------------------------------------------------
    @property
    def mosaic(self) -> bool:
        return self._mosaic

    @property
    def is_processing(self) -> bool:
        return self._in_flight

    @property
    def items(self) -> list[WorkItem]:
        """按到达顺序返回当前任务项。"""

        return list(self._items.values())

    def get(self, item_id: int) -> WorkItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise UnknownItemError(f"任务项不存在: {item_id}") from None

    def stats(self) -> tuple[int, int]:
        """返回 (已完成数量, 总数量)。"""

        completed = sum(1 for item in self._items.values() if item.status is ItemStatus.COMPLETED)
        return completed, len(self._items)

    def enqueue(self, sources: Iterable[SourceImage]) -> list[WorkItem]:
        """追加新的任务项（IDLE），并在未运行时触发处理。

        任一源文件类型不是 image/* 时整批拒绝，队列不变。
        """

        accepted = list(sources)
        for source in accepted:
            require_image_media_type(source.media_type, source.name)

        created: list[WorkItem] = []
        for source in accepted:
            item = WorkItem(item_id=next(self._ids), source=source)
            self._items[item.item_id] = item
            created.append(item)
            self._notify(item)

        LOGGER.info("加入 %d 张图片，队列共 %d 项", len(created), len(self._items))

        if created and self._auto_process:
            self.process_pending()
        return created

    def set_mode(self, mosaic: bool) -> None:
        """切换单图/马赛克模式，队列非空时拒绝。"""

        if self._items:
            raise ModeChangeRejected(f"队列中仍有 {len(self._items)} 张图片，请先清空后再切换模式")
        if mosaic != self._mosaic:
            LOGGER.info("切换到%s模式", "马赛克" if mosaic else "单图")
        self._mosaic = mosaic

    def remove(self, item_id: int) -> None:
        """移除任务项并释放其输出，任何状态下均可调用。

        正在渲染的任务项被移除后，渲染结果会在完成时直接丢弃。
        """

        item = self._items.pop(item_id, None)
        if item is None:
            raise UnknownItemError(f"任务项不存在: {item_id}")
        item.release()
        LOGGER.debug("移除任务项 %d (%s)", item_id, item.display_name)

    def reset(self) -> None:
        """释放所有任务项，回到空队列。"""

        for item in self._items.values():
            item.release()
        self._items.clear()
        LOGGER.info("已清空全部图片")

    # ------------------------------------------------------------------
    # 处理
    # ------------------------------------------------------------------
    def process_pending(self) -> None:
        """依次处理所有 IDLE 任务项，处理期间新加入的任务项也会被处理。"""

        if self._in_flight:
            LOGGER.debug("已有处理流程在运行，忽略本次调用")
            return

        self._in_flight = True
        try:
            while True:
                item = self._next_idle()
                if item is None:
                    break
                self._process_item(item)
        finally:
            self._in_flight = False

        completed, total = self.stats()
        LOGGER.info("处理完成：%d / %d 张已转换", completed, total)

    def _next_idle(self) -> Optional[WorkItem]:
        for item in self._items.values():
            if item.status is ItemStatus.IDLE:
                return item
        return None

    def _process_item(self, item: WorkItem) -> None:
        self._transition(item, ItemStatus.PROCESSING)
        try:
            outputs = self._render(item.source)
        except PrintMosaicError as exc:
            self._fail(item, exc)
            return
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("任务项 %d (%s) 出现未预期的异常", item.item_id, item.display_name)
            self._fail(item, exc)
            return

        if self._items.get(item.item_id) is not item:
            LOGGER.debug("任务项 %d (%s) 已被移除，丢弃渲染结果", item.item_id, item.display_name)
            return

        item.outputs = outputs
        self._transition(item, ItemStatus.COMPLETED)

    def _render(self, source: SourceImage) -> list[EncodedBuffer]:
        if not self._mosaic:
            return [self._resizer(source, self.spec)]

        pieces = list(self._tiler(source, self.spec, self.mosaic_config))
        expected = self.mosaic_config.rows * self.mosaic_config.cols
        if len(pieces) != expected:
            raise PrintMosaicError(f"分片数量异常：期望 {expected}，实际 {len(pieces)}: {source.name}")
        return pieces

    def _fail(self, item: WorkItem, exc: Exception) -> None:
        LOGGER.error("处理 %s 失败 (任务项 %d): %s", item.display_name, item.item_id, exc)
        if self._items.get(item.item_id) is not item:
            return
        item.outputs = []
        item.error = f"处理 {item.display_name} 出错: {exc}"
        self._transition(item, ItemStatus.ERROR, item.error)

    def _transition(self, item: WorkItem, status: ItemStatus, message: Optional[str] = None) -> None:
        LOGGER.debug("任务项 %d (%s): %s -> %s", item.item_id, item.display_name, item.status.value, status.value)
        item.status = status
        self._notify(item, message)

    def _notify(self, item: WorkItem, message: Optional[str] = None) -> None:
        if not self._on_status_change:
            return
        update = StatusUpdate(item_id=item.item_id, name=item.display_name, status=item.status, message=message)
        try:
            self._on_status_change(update)
        except Exception:  # noqa: BLE001
            LOGGER.exception("状态回调出错 (任务项 %d, %s)", item.item_id, item.status.value)

    # ------------------------------------------------------------------
    # 导出
    # ------------------------------------------------------------------
    def export_item(self, item_id: int) -> ExportArtifact:
        """生成单个任务项的下载文件：单图模式为缩放结果，马赛克模式为分片压缩包。

        导出失败不会改变任务项状态。
        """

        item = self.get(item_id)
        if item.status is not ItemStatus.COMPLETED or not item.outputs:
            raise PrintMosaicError(f"{item.display_name} 尚未处理完成，无法下载")

        if self._mosaic:
            base = base_name(item.display_name)
            archive = package_zip(item.outputs, base)
            return ExportArtifact(item_id=item.item_id, filename=mosaic_archive_name(base), buffer=archive)

        buffer = item.outputs[0]
        filename = resized_filename(item.display_name, buffer.media_type)
        return ExportArtifact(item_id=item.item_id, filename=filename, buffer=buffer)

    def export_all(self) -> BulkExport:
        """逐项导出所有已完成的任务项，每项一个文件（马赛克模式下每项一个压缩包）。"""

        artifacts: list[ExportArtifact] = []
        failed: list[ExportFailure] = []
        for item in self.items:
            if item.status is not ItemStatus.COMPLETED:
                continue
            try:
                artifacts.append(self.export_item(item.item_id))
            except PrintMosaicError as exc:
                LOGGER.error("导出 %s 失败: %s", item.display_name, exc)
                failed.append(ExportFailure(item_id=item.item_id, name=item.display_name, message=str(exc)))

        LOGGER.info("导出 %d 个文件，失败 %d 个", len(artifacts), len(failed))
        return BulkExport(artifacts=artifacts, failed=failed)
