"""Document domain models."""

from pathlib import Path

from lxml.html import HtmlElement
from pydantic import BaseModel, Field


class ParsedDocument(BaseModel):
    """Represents a successfully parsed HTML document."""

    model_config = {"arbitrary_types_allowed": True}

    path: Path | None = Field(default=None, description="Path to the source file, if any")
    root: HtmlElement = Field(description="Root <html> element of the parsed tree")
