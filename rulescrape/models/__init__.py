"""Domain models for rulescrape."""

from rulescrape.models.document import ParsedDocument
from rulescrape.models.extraction import BatchResult, ExtractionResult
from rulescrape.models.value import Value, to_value

__all__ = ["BatchResult", "ExtractionResult", "ParsedDocument", "Value", "to_value"]
