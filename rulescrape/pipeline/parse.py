"""Parse stage: turn raw HTML into lxml document trees."""

import copy
import logging
import re
from pathlib import Path

import lxml.html
from lxml import etree
from lxml.html import HtmlElement

from rulescrape.models import ParsedDocument

logger = logging.getLogger(__name__)


class DocumentParseError(Exception):
    """Raised when a document cannot be read or parsed."""

    pass


def parse_html(source: str | bytes, encoding: str = "utf-8") -> HtmlElement:
    """
    Parse HTML markup into a document tree.

    Complete pages are rooted at <html>. A fragment made of a single
    top-level element becomes its own document, so `/meta` addresses
    `<meta ...>` directly. Fragments with several top-level elements or
    text between them keep the <html> root the parser builds.

    Args:
        source: HTML text or raw bytes
        encoding: Encoding used for bytes input (and for encoding str input)

    Returns:
        The document element

    Raises:
        DocumentParseError: If the markup is empty or cannot be parsed
    """
    data = source.encode(encoding) if isinstance(source, str) else source
    if not data.strip():
        raise DocumentParseError("Document is empty")

    parser = lxml.html.HTMLParser(encoding=encoding)
    try:
        root = lxml.html.document_fromstring(data, parser=parser)
    except (etree.ParserError, ValueError) as e:
        raise DocumentParseError(f"Failed to parse document: {e}") from e
    if not _FULL_DOCUMENT.search(data):
        element = _single_top_level_element(root)
        if element is not None:
            root = copy.deepcopy(element)
            root.tail = None
    return root


_FULL_DOCUMENT = re.compile(rb"<\s*(?:html|head|body|!doctype)\b", re.IGNORECASE)


def _single_top_level_element(root: HtmlElement) -> HtmlElement | None:
    """Return the only element the parser placed under the implied head and body."""
    elements = []
    for container in root:
        if container.tag not in ("head", "body") or (container.text and container.text.strip()):
            return None
        for child in container:
            if not isinstance(child.tag, str) or (child.tail and child.tail.strip()):
                return None
            elements.append(child)
    if len(elements) != 1:
        logger.debug("Fragment has %d top-level elements; keeping the html root", len(elements))
        return None
    return elements[0]


def read_document_file(file_path: Path) -> bytes:
    """Read raw document bytes from file."""
    try:
        return file_path.read_bytes()
    except OSError as e:
        raise DocumentParseError(f"Failed to read file {file_path}: {e}") from e


def parse_file(file_path: Path, encoding: str = "utf-8") -> ParsedDocument:
    """
    Parse a single HTML file.

    Args:
        file_path: Path to the HTML file
        encoding: Encoding of the file contents

    Returns:
        ParsedDocument with the document root

    Raises:
        DocumentParseError: If the file cannot be read or parsed
    """
    logger.debug("Parsing document: %s", file_path)
    source = read_document_file(file_path)
    try:
        root = parse_html(source, encoding)
    except DocumentParseError as e:
        raise DocumentParseError(f"{file_path}: {e}") from e
    return ParsedDocument(path=file_path, root=root)


def collect_document_files(target_path: Path, pattern: str = "*.html") -> list[Path]:
    """
    Collect the documents to process under a path.

    Args:
        target_path: A single file or a directory searched recursively
        pattern: Glob pattern for files inside a directory

    Returns:
        Sorted list of file paths
    """
    if target_path.is_file():
        return [target_path]
    files = sorted(p for p in target_path.rglob(pattern) if p.is_file())
    logger.debug("Found %d document(s) matching '%s' in %s", len(files), pattern, target_path)
    return files
