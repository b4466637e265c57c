"""批处理编排：状态流转、顺序、模式切换与导出。"""

from __future__ import annotations

import io
import zipfile

import pytest
from PIL import Image

from print_mosaic.core.archive import ArchiveBuildError
from print_mosaic.core.config import MosaicConfig, TargetSpec
from print_mosaic.core.exceptions import (
    ModeChangeRejected,
    PrintMosaicError,
    UnknownItemError,
    UnsupportedMediaType,
)
from print_mosaic.core.models import ItemStatus, SourceImage
from print_mosaic.core.progress import StatusUpdate
from print_mosaic.processing import batch as batch_module
from print_mosaic.processing.batch import BatchOrchestrator
from print_mosaic.processing.image_loader import load_source
from print_mosaic.processing.resizer import resize_image

SPEC = TargetSpec(horizontal_width=40, vertical_height=60)
MOSAIC = MosaicConfig(piece_width=10, piece_height=12)


def _png_source(name: str, size: tuple[int, int] = (30, 20), color: str = "blue") -> SourceImage:
    stream = io.BytesIO()
    Image.new("RGB", size, color).save(stream, format="PNG")
    return load_source(stream.getvalue(), "image/png", name)


def _broken_source(name: str) -> SourceImage:
    return SourceImage(name=name, data=b"\x00garbage", media_type="image/jpeg", width=30, height=20)


def _make(**kwargs) -> tuple[BatchOrchestrator, list[StatusUpdate]]:
    updates: list[StatusUpdate] = []
    kwargs.setdefault("mosaic_config", MOSAIC)
    orchestrator = BatchOrchestrator(SPEC, on_status_change=updates.append, **kwargs)
    return orchestrator, updates


def test_failure_does_not_block_or_reorder_batch() -> None:
    orchestrator, _ = _make()

    orchestrator.enqueue([_png_source("a.png"), _broken_source("b.jpg"), _png_source("c.png")])

    items = orchestrator.items
    assert [item.display_name for item in items] == ["a.png", "b.jpg", "c.png"]
    assert [item.status for item in items] == [ItemStatus.COMPLETED, ItemStatus.ERROR, ItemStatus.COMPLETED]
    assert items[1].error is not None and "b.jpg" in items[1].error
    assert items[1].outputs == []
    assert orchestrator.stats() == (2, 3)


def test_status_notifications_follow_lifecycle() -> None:
    orchestrator, updates = _make()

    created = orchestrator.enqueue([_png_source("a.png"), _broken_source("b.jpg")])

    first, second = (item.item_id for item in created)
    assert [(u.item_id, u.status) for u in updates] == [
        (first, ItemStatus.IDLE),
        (second, ItemStatus.IDLE),
        (first, ItemStatus.PROCESSING),
        (first, ItemStatus.COMPLETED),
        (second, ItemStatus.PROCESSING),
        (second, ItemStatus.ERROR),
    ]
    assert updates[-1].message is not None and "b.jpg" in updates[-1].message


def test_mosaic_mode_stores_all_pieces() -> None:
    orchestrator, _ = _make(mosaic=True)

    (item,) = orchestrator.enqueue([_png_source("photo.png")])

    assert item.status is ItemStatus.COMPLETED
    assert len(item.outputs) == 9


def test_set_mode_rejected_while_queue_not_empty() -> None:
    orchestrator, _ = _make(auto_process=False)
    orchestrator.enqueue([_png_source("a.png")])

    with pytest.raises(ModeChangeRejected):
        orchestrator.set_mode(True)

    assert orchestrator.mosaic is False
    assert orchestrator.items[0].status is ItemStatus.IDLE


def test_set_mode_allowed_after_reset() -> None:
    orchestrator, _ = _make()
    orchestrator.enqueue([_png_source("a.png")])

    orchestrator.reset()
    orchestrator.set_mode(True)

    assert orchestrator.mosaic is True
    assert orchestrator.items == []


def test_reentrant_process_pending_is_noop() -> None:
    calls: list[str] = []
    orchestrator: BatchOrchestrator

    def resizer(source: SourceImage, spec: TargetSpec):
        calls.append(source.name)
        orchestrator.process_pending()
        return resize_image(source, spec)

    orchestrator = BatchOrchestrator(SPEC, resizer=resizer)
    orchestrator.enqueue([_png_source("a.png"), _png_source("b.png")])

    assert calls == ["a.png", "b.png"]
    assert not orchestrator.is_processing


def test_items_enqueued_during_processing_are_picked_up() -> None:
    orchestrator: BatchOrchestrator
    late = _png_source("late.png")
    added = False

    def on_status(update: StatusUpdate) -> None:
        nonlocal added
        if update.status is ItemStatus.PROCESSING and not added:
            added = True
            orchestrator.enqueue([late])

    orchestrator = BatchOrchestrator(SPEC, on_status_change=on_status)
    orchestrator.enqueue([_png_source("first.png")])

    assert [item.display_name for item in orchestrator.items] == ["first.png", "late.png"]
    assert all(item.status is ItemStatus.COMPLETED for item in orchestrator.items)


def test_removing_in_flight_item_discards_result() -> None:
    orchestrator: BatchOrchestrator

    def on_status(update: StatusUpdate) -> None:
        if update.status is ItemStatus.PROCESSING and update.name == "a.png":
            orchestrator.remove(update.item_id)

    orchestrator = BatchOrchestrator(SPEC, on_status_change=on_status)
    orchestrator.enqueue([_png_source("a.png"), _png_source("b.png")])

    assert [item.display_name for item in orchestrator.items] == ["b.png"]
    assert orchestrator.items[0].status is ItemStatus.COMPLETED


def test_remove_releases_outputs_and_rejects_unknown_id() -> None:
    orchestrator, _ = _make()
    (item,) = orchestrator.enqueue([_png_source("a.png")])
    assert item.outputs

    orchestrator.remove(item.item_id)

    assert item.outputs == []
    assert orchestrator.items == []
    with pytest.raises(UnknownItemError):
        orchestrator.remove(item.item_id)


def test_enqueue_rejects_non_image_media_type() -> None:
    orchestrator, _ = _make()
    document = SourceImage(name="notes.txt", data=b"hello", media_type="text/plain", width=1, height=1)

    with pytest.raises(UnsupportedMediaType, match="notes.txt"):
        orchestrator.enqueue([_png_source("a.png"), document])

    assert orchestrator.items == []


def test_export_single_mode_uses_resized_name() -> None:
    orchestrator, _ = _make()
    (item,) = orchestrator.enqueue([_png_source("holiday.photo.png")])

    artifact = orchestrator.export_item(item.item_id)

    assert artifact.filename == "holiday.photo_resized.png"
    assert artifact.buffer is item.outputs[0]


def test_export_all_packages_one_zip_per_item() -> None:
    orchestrator, _ = _make(mosaic=True)
    orchestrator.enqueue([_png_source("a.png"), _broken_source("b.jpg"), _png_source("c.png")])

    export = orchestrator.export_all()

    assert [artifact.filename for artifact in export.artifacts] == ["a_mosaico.zip", "c_mosaico.zip"]
    assert export.failed == []
    with zipfile.ZipFile(io.BytesIO(export.artifacts[0].buffer.data)) as archive:
        assert archive.namelist() == [f"a_parte_{n}.png" for n in range(1, 10)]


def test_export_failure_keeps_item_completed(monkeypatch: pytest.MonkeyPatch) -> None:
    orchestrator, _ = _make(mosaic=True)
    (item,) = orchestrator.enqueue([_png_source("a.png")])

    def broken_package(buffers, base_name):  # noqa: ANN001
        raise ArchiveBuildError(f"压缩包为空: {base_name}")

    monkeypatch.setattr(batch_module, "package_zip", broken_package)

    export = orchestrator.export_all()

    assert export.artifacts == []
    assert len(export.failed) == 1
    assert export.failed[0].name == "a.png"
    assert item.status is ItemStatus.COMPLETED
    assert len(item.outputs) == 9


def test_export_rejects_unfinished_item() -> None:
    orchestrator, _ = _make(auto_process=False)
    (item,) = orchestrator.enqueue([_png_source("a.png")])

    with pytest.raises(PrintMosaicError, match="a.png"):
        orchestrator.export_item(item.item_id)


def test_raising_status_callback_does_not_stall_batch() -> None:
    def on_status(update: StatusUpdate) -> None:
        if update.status is ItemStatus.PROCESSING and update.name == "a.png":
            raise RuntimeError("ui bug")

    orchestrator = BatchOrchestrator(SPEC, on_status_change=on_status)
    orchestrator.enqueue([_png_source("a.png"), _png_source("b.png")])

    assert [item.status for item in orchestrator.items] == [ItemStatus.COMPLETED, ItemStatus.COMPLETED]
    assert not orchestrator.is_processing
