"""Output formatters for extraction results."""

from rulescrape.formatters.json import format_as_json, format_batch_as_json

__all__ = ["format_as_json", "format_batch_as_json"]
