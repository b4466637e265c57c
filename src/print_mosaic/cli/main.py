"""命令行入口：扫描文件、逐项处理并写出下载文件。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from print_mosaic.core.config import MosaicConfig, TargetSpec
from print_mosaic.core.exceptions import PrintMosaicError
from print_mosaic.core.models import ItemStatus
from print_mosaic.core.naming import format_file_size
from print_mosaic.core.output_manager import OutputManager
from print_mosaic.core.progress import StatusUpdate
from print_mosaic.core.scanner import collect_image_files
from print_mosaic.processing.batch import BatchOrchestrator
from print_mosaic.processing.geometry import COVER, LETTERBOX, resolve_fit
from print_mosaic.processing.image_loader import load_source_file
from print_mosaic.utils.logging import setup_logging

app = typer.Typer(help="将图片缩放到打印尺寸，或切分为马赛克分片。")
console = Console()

MAX_BATCH_SIZE = 100


def _build_status_callback(progress: Progress, task_id: int):
    def callback(update: StatusUpdate) -> None:
        if update.status is ItemStatus.COMPLETED:
            progress.advance(task_id)
        elif update.status is ItemStatus.ERROR:
            progress.advance(task_id)
            progress.log(update.message or "", style="red", markup=False)

    return callback


@app.command("run")
def run_cli(  # noqa: PLR0913
    source: List[Path] = typer.Argument(..., help="源图片文件或目录，可指定多个"),
    output: Path = typer.Option(..., "--output", "-o", help="输出目录"),
    mosaic: bool = typer.Option(False, "--mosaic/--single", help="切分为马赛克分片并按图片打包 zip"),
    width: int = typer.Option(2050, "--width", help="横图宽度 / 马赛克分片宽度"),
    height: int = typer.Option(2994, "--height", help="竖图高度 / 马赛克分片高度"),
    rows: int = typer.Option(3, "--rows", help="马赛克行数"),
    cols: int = typer.Option(3, "--cols", help="马赛克列数"),
    quality: float = typer.Option(0.95, "--quality", help="编码质量 0~1"),
    background_color: str = typer.Option("#FFFFFF", "--background-color", help="背景色 (HEX 或颜色名)"),
    label_pieces: bool = typer.Option(False, "--label-pieces", help="在分片左上角标注序号"),
    allow_recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="是否递归扫描目录"),
    conflict_strategy: str = typer.Option("rename", "--on-conflict", help="文件名冲突策略"),
    max_files: int = typer.Option(MAX_BATCH_SIZE, "--max-files", help="单次最多处理的图片数量"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量处理。"""

    setup_logging(verbose=verbose)
    logger = logging.getLogger(__name__)

    spec = TargetSpec(
        horizontal_width=width,
        vertical_height=height,
        background_color=background_color,
        quality=quality,
    )
    mosaic_config = MosaicConfig(piece_width=width, piece_height=height, rows=rows, cols=cols, label_pieces=label_pieces)

    try:
        spec.validate()
        mosaic_config.validate()
        output_manager = OutputManager(output.expanduser(), conflict_strategy)
    except PrintMosaicError as exc:
        raise typer.BadParameter(str(exc)) from exc

    paths = collect_image_files([p.expanduser() for p in source], recursive=allow_recursive)
    if not paths:
        typer.echo("没有找到图片文件。")
        raise typer.Exit(code=1)
    if len(paths) > max_files:
        typer.echo(f"最多处理 {max_files} 张图片，当前 {len(paths)} 张。")
        raise typer.Exit(code=1)

    sources = []
    for path in paths:
        try:
            sources.append(load_source_file(path))
        except PrintMosaicError as exc:
            logger.warning("跳过 %s: %s", path, exc)
            typer.echo(f"跳过 {path.name}: {exc}")

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )

    task_id = progress.add_task("处理图片", total=len(sources))
    orchestrator = BatchOrchestrator(
        spec,
        mosaic=mosaic,
        mosaic_config=mosaic_config,
        on_status_change=_build_status_callback(progress, task_id),
        auto_process=False,
    )

    with progress:
        orchestrator.enqueue(sources)
        orchestrator.process_pending()

    export = orchestrator.export_all()
    written = 0
    write_failures = 0
    for artifact in export.artifacts:
        try:
            outcome = output_manager.write(artifact)
        except PrintMosaicError as exc:
            logger.error("写出 %s 失败: %s", artifact.filename, exc)
            typer.echo(f"写出失败 {artifact.filename}: {exc}")
            write_failures += 1
            continue
        if outcome.action != "skip":
            written += 1
        if outcome.note:
            typer.echo(outcome.note)
    for failure in export.failed:
        typer.echo(f"导出失败 {failure.name}: {failure.message}")

    completed, total = orchestrator.stats()
    failed = sum(1 for item in orchestrator.items if item.status is ItemStatus.ERROR)
    typer.echo(f"处理完成：成功 {completed} / {total} 张，失败 {failed} 张，写出 {written} 个文件。")
    typer.echo(f"输出目录：{output_manager.output_dir}")
    if failed or write_failures or export.failed:
        raise typer.Exit(code=2)


@app.command("inspect")
def inspect_cli(
    source: List[Path] = typer.Argument(..., help="源图片文件或目录"),
    mosaic: bool = typer.Option(False, "--mosaic/--single", help="按马赛克模式计算"),
    width: int = typer.Option(2050, "--width", help="横图宽度 / 马赛克分片宽度"),
    height: int = typer.Option(2994, "--height", help="竖图高度 / 马赛克分片高度"),
    rows: int = typer.Option(3, "--rows", help="马赛克行数"),
    cols: int = typer.Option(3, "--cols", help="马赛克列数"),
) -> None:
    """只读取图片头部，显示输出画布尺寸，不做渲染。"""

    mosaic_config = MosaicConfig(piece_width=width, piece_height=height, rows=rows, cols=cols)
    try:
        mosaic_config.validate()
    except PrintMosaicError as exc:
        raise typer.BadParameter(str(exc)) from exc

    composite_w, composite_h = mosaic_config.composite_size
    table = Table("文件", "大小", "原始尺寸", "画布", "缩放", "偏移")
    for path in collect_image_files(source):
        try:
            image = load_source_file(path)
        except PrintMosaicError as exc:
            table.add_row(path.name, "-", "-", f"[red]{exc}", "-", "-")
            continue

        if mosaic:
            fit = resolve_fit(image.width, image.height, composite_w, composite_h, COVER)
        else:
            fit = resolve_fit(image.width, image.height, width, height, LETTERBOX)
        table.add_row(
            image.name,
            format_file_size(image.byte_size),
            f"{image.width}×{image.height}",
            f"{fit.canvas_width}×{fit.canvas_height}",
            f"{fit.scale:.4f}",
            f"({fit.offset_x:g}, {fit.offset_y:g})",
        )
    console.print(table)


if __name__ == "__main__":
    app()
