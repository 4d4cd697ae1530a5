"""JSON formatter for extraction results."""

import json
from typing import Any

from rulescrape.models import BatchResult, Value


def format_as_json(value: Value, *, pretty: bool = True) -> str:
    """Format an extracted record as JSON.

    Object field order is preserved, integers and floats stay distinct
    and null fields are written out rather than dropped.

    Args:
        value: The extracted record
        pretty: If True, format with indentation for readability

    Returns:
        JSON-formatted string
    """
    if pretty:
        return json.dumps(value, indent=2, ensure_ascii=False)
    return json.dumps(value, ensure_ascii=False)


def format_batch_as_json(result: BatchResult, *, pretty: bool = True) -> str:
    """Format a batch result as JSON.

    Args:
        result: The batch extraction result
        pretty: If True, format with indentation for readability

    Returns:
        JSON-formatted string
    """
    data: dict[str, Any] = {
        "total_files": result.total_files,
        "failed_files": result.failure_count,
        "records": {str(item.path): item.record for item in result.results},
        "errors": [
            {"file_path": str(path), "error": error}
            for path, error in result.failed_files.items()
        ],
    }
    return format_as_json(data, pretty=pretty)
