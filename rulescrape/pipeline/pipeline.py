"""Top-level batch pipeline.

Collect documents → Parse → Extract, with every document handled by an
independent extraction on a worker thread. One RuleEngine is shared by
all workers.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from rulescrape.config import ExtractionSettings, get_settings
from rulescrape.models import BatchResult, ExtractionResult, Value
from rulescrape.pipeline.parse import DocumentParseError, collect_document_files, parse_file
from rulescrape.pipeline.rules import RuleEngine
from rulescrape.pipeline.rules_factory import build_rule_engine

logger = logging.getLogger(__name__)


def extract_file(file_path: Path, engine: RuleEngine, encoding: str = "utf-8") -> Value:
    """Parse one HTML file and extract its record.

    Raises:
        DocumentParseError: If the file cannot be read or parsed
    """
    document = parse_file(file_path, encoding)
    return engine.extract(document)


def _extract_one(file_path: Path, engine: RuleEngine, encoding: str) -> tuple[Path, Value | None, str | None]:
    try:
        return file_path, extract_file(file_path, engine, encoding), None
    except DocumentParseError as e:
        logger.warning("Skipping %s: %s", file_path, e)
        return file_path, None, str(e)


def extract_files(
    files: list[Path],
    engine: RuleEngine,
    workers: int = 4,
    encoding: str = "utf-8",
) -> BatchResult:
    """
    Extract records from many files concurrently.

    Args:
        files: Documents to process
        engine: Shared rule engine
        workers: Number of worker threads
        encoding: Document encoding

    Returns:
        BatchResult with records in input order and per-file failures
    """
    result = BatchResult()
    with ThreadPoolExecutor(max_workers=workers) as executor:
        outcomes = executor.map(lambda path: _extract_one(path, engine, encoding), files)
        for path, record, error in outcomes:
            if error is not None:
                result.failed_files[path] = error
            else:
                result.results.append(ExtractionResult(path=path, record=record))
    return result


def run_pipeline(
    target_path: Path,
    settings: Optional[ExtractionSettings] = None,
    engine: Optional[RuleEngine] = None,
) -> BatchResult:
    """
    Run the extraction pipeline on a file or directory.

    Args:
        target_path: HTML file or directory of HTML files
        settings: Settings (global settings if omitted)
        engine: Pre-built engine (built from settings if omitted)

    Returns:
        BatchResult with extracted records and failures
    """
    if settings is None:
        settings = get_settings()
    if engine is None:
        engine = build_rule_engine(settings)

    logger.info("Stage 1/2: Collecting documents...")
    files = collect_document_files(target_path, settings.batch.glob)
    logger.info("Found %d document(s) in %s", len(files), target_path)

    logger.info("Stage 2/2: Extracting with %d worker(s)...", settings.batch.workers)
    result = extract_files(files, engine, settings.batch.workers, settings.document.encoding)
    logger.info(
        "Extraction complete: %d succeeded, %d failed",
        result.success_count,
        result.failure_count,
    )
    return result
