"""
Batch processing of a directory of scanned sheets.

Each source file is independent, so files are spread over a process pool.
Failures are contained per file: a corrupt scan or an unwritable output
is reported and the run moves on to the next file.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional

from photosplit.config_loader import ExtractionConfig, OutputConfig
from photosplit.processor import PhotoExtractionProcessor
from photosplit.types import (
    BatchSummary,
    FileReport,
    ImageDecodeError,
    OutputWriteError,
    RectifiedImage,
)
from photosplit.utils.io import list_image_files, read_image, write_image

logger = logging.getLogger(__name__)


def output_path(output_dir: Path, source: Path, index: int, extension: str = "jpg") -> Path:
    """Destination for photo ``index`` (1-based) cut from ``source``."""
    return Path(output_dir) / f"{Path(source).stem}_{index}.{extension}"


def save_photos(
    photos: Iterable[RectifiedImage],
    source: Path,
    output_dir: Path,
    output_cfg: OutputConfig,
    written: List[Path],
) -> List[Path]:
    """
    Write photos as name_1, name_2, ... in the order given.

    Paths are appended to ``written`` as they succeed, so the caller still
    knows what made it to disk when a later write fails. An existing file
    at a destination is overwritten with a warning.

    Raises:
        OutputWriteError: On the first photo that cannot be written.
    """
    for index, photo in enumerate(photos, start=1):
        path = output_path(output_dir, source, index, output_cfg.extension)
        if path.exists():
            logger.warning(f"Overwriting existing output {path} (from {Path(source).name})")
        try:
            write_image(path, photo.image, jpeg_quality=output_cfg.jpeg_quality)
        except OSError as e:
            raise OutputWriteError(path, source, index, str(e)) from e
        written.append(path)
    return written


def process_file(source: Path, output_dir: Path, config: ExtractionConfig) -> FileReport:
    """
    Extract and save every photo on one scanned sheet.

    Decode and write failures are captured in the returned report rather
    than raised, so they can cross a process boundary intact.
    """
    source = Path(source)
    report = FileReport(source=source)

    try:
        image = read_image(source)
        result = PhotoExtractionProcessor(config=config).process(image)
        report.dropped = len(result.dropped)
        save_photos(result.photos, source, output_dir, config.output, report.outputs)
    except ImageDecodeError as e:
        report.error = str(e)
    except OutputWriteError as e:
        report.error = str(e)

    return report


def _log_report(report: FileReport) -> None:
    name = report.source.name
    if report.error is not None:
        logger.error(f"{name}: {report.error}")
        if report.outputs:
            logger.error(f"{name}: {len(report.outputs)} photo(s) written before failure")
    elif report.outputs:
        logger.info(f"{name}: saved {len(report.outputs)} photo(s)")
    else:
        logger.info(f"{name}: no photos found")

    if report.dropped:
        logger.warning(f"{name}: {report.dropped} candidate(s) dropped on degenerate geometry")


def resolve_workers(requested: Optional[int], file_count: int) -> int:
    """Worker count: requested or one per CPU core, never more than the files."""
    workers = requested or os.cpu_count() or 1
    return max(1, min(workers, file_count))


def run_batch(input_dir: Path, output_dir: Path, config: ExtractionConfig) -> BatchSummary:
    """
    Process every image under ``input_dir`` into ``output_dir``.

    Args:
        input_dir: Directory of scanned sheets.
        output_dir: Destination directory (created if missing).
        config: Validated pipeline configuration.

    Returns:
        BatchSummary with totals and per-file failures.

    Raises:
        FileNotFoundError: If input_dir does not exist.
        OSError: If output_dir cannot be created.
    """
    input_dir = Path(input_dir)
    output_dir = Path(output_dir)

    files = list_image_files(input_dir, recursive=config.batch.recursive)
    output_dir.mkdir(parents=True, exist_ok=True)

    summary = BatchSummary()
    if not files:
        logger.warning(f"No image files found in {input_dir}")
        return summary

    workers = resolve_workers(config.batch.workers, len(files))
    logger.info(f"Processing {len(files)} file(s) with {workers} worker(s)")

    if workers == 1:
        for source in files:
            logger.info(f"Processing {source}...")
            try:
                report = process_file(source, output_dir, config)
            except Exception as e:
                logger.exception(f"{source.name}: unexpected failure")
                report = FileReport(source=source, error=f"Unexpected error: {e}")
            _log_report(report)
            summary.record(report)
        return summary

    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(process_file, source, output_dir, config): source
            for source in files
        }
        for future in as_completed(futures):
            source = futures[future]
            try:
                report = future.result()
            except Exception as e:
                logger.exception(f"{source.name}: unexpected failure")
                report = FileReport(source=source, error=f"Unexpected error: {e}")
            _log_report(report)
            summary.record(report)

    return summary
