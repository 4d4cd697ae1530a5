"""Models for extraction results."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class ExtractionResult(BaseModel):
    """Extracted record for a single document."""

    path: Path = Field(description="Path to the source document")
    record: Any = Field(description="Extracted record (a Value tree)")


class BatchResult(BaseModel):
    """Result of extracting records from one or more documents."""

    results: list[ExtractionResult] = Field(
        default_factory=list, description="Successful extractions in input order"
    )
    failed_files: dict[Path, str] = Field(
        default_factory=dict, description="Files that failed with error messages"
    )

    @property
    def total_files(self) -> int:
        """Total number of files processed."""
        return len(self.results) + len(self.failed_files)

    @property
    def success_count(self) -> int:
        """Number of successfully extracted files."""
        return len(self.results)

    @property
    def failure_count(self) -> int:
        """Number of failed files."""
        return len(self.failed_files)
