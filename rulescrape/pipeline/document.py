"""Read-only document views with per-evaluation subtree exclusion.

A view never mutates the underlying lxml tree. Excluded subtrees are
tracked as a frozen set of element proxies which is consulted by queries
and by text computation, so any number of evaluations can share one
parsed document.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from lxml import etree

logger = logging.getLogger(__name__)


def is_element(item: Any) -> bool:
    """Check whether a query result is a real element (not a comment or string)."""
    return isinstance(item, etree._Element) and isinstance(item.tag, str)


def owner_element(item: Any) -> Any:
    """Return the element a query result belongs to.

    Elements own themselves. Smart strings returned for attributes and
    text() belong to their parent element, except tail text which belongs
    to the parent's parent.
    """
    if isinstance(item, etree._Element):
        return item
    getparent = getattr(item, "getparent", None)
    if getparent is None:
        return None
    parent = getparent()
    if parent is not None and getattr(item, "is_tail", False):
        parent = parent.getparent()
    return parent


def join_segments(segments: Iterable[str]) -> str:
    """Join text segments with a single space at each boundary.

    No space is inserted where either side of the join already has
    whitespace. The result is trimmed.
    """
    parts: list[str] = []
    for segment in segments:
        if not segment:
            continue
        if parts and not parts[-1][-1].isspace() and not segment[0].isspace():
            parts.append(" ")
        parts.append(segment)
    return "".join(parts).strip()


def _text_segments(node: Any, excluded: frozenset) -> Iterator[str]:
    """Yield text nodes under an element in document order, skipping excluded subtrees."""
    if node.text and isinstance(node.tag, str):
        yield node.text
    for child in node:
        if isinstance(child.tag, str) and child not in excluded:
            yield from _text_segments(child, excluded)
        if child.tail:
            yield child.tail


def text_above_length(node: Any) -> int:
    """Length of the text preceding a node among its siblings.

    Covers the parent's leading text, every preceding sibling subtree and
    the tail text following each of them, joined like ExtractText and not
    whitespace-collapsed. Always reads the full, unfiltered tree.
    """
    if not is_element(node):
        return 0
    parent = node.getparent()
    if parent is None:
        return 0

    segments: list[str] = []
    if parent.text:
        segments.append(parent.text)
    for sibling in parent:
        if sibling is node:
            break
        if isinstance(sibling.tag, str):
            segments.append(join_segments(_text_segments(sibling, frozenset())))
        if sibling.tail:
            segments.append(sibling.tail)
    return len(join_segments(segments))


class DocumentView:
    """Query view over a document tree with a set of excluded subtrees."""

    def __init__(self, excluded: frozenset = frozenset()):
        self._excluded = excluded

    @property
    def excluded(self) -> frozenset:
        """Elements whose subtrees are hidden from this view."""
        return self._excluded

    def exclude(self, context: Any, selectors: Iterable[str]) -> "DocumentView":
        """Return a new view that also hides everything matched by selectors.

        Every selector is evaluated against the original context node; the
        matches are a plain union and do not affect one another.
        """
        matched: set[Any] = set()
        for selector in selectors:
            result = context.xpath(selector)
            items = result if isinstance(result, list) else [result]
            for item in items:
                if isinstance(item, etree._Element):
                    matched.add(item)
                else:
                    logger.debug("Ignoring non-element match for remove selector %s", selector)
        if not matched:
            return self
        return DocumentView(self._excluded | matched)

    def is_excluded(self, item: Any) -> bool:
        """Check whether a node or string result lies inside an excluded subtree."""
        if not self._excluded:
            return False
        element = owner_element(item)
        while element is not None:
            if element in self._excluded:
                return True
            element = element.getparent()
        return False

    def query(self, context: Any, selector: str) -> list[Any]:
        """Evaluate an XPath selector relative to context, dropping excluded results.

        Non node-set results (numbers, booleans, strings) come back as a
        single-item list. libxml2 computes them over the whole tree, so
        while any subtree is excluded they are rejected as an empty match.
        """
        result = context.xpath(selector)
        if not isinstance(result, list):
            if self._excluded:
                logger.error(
                    "Selector %s yields a %s computed over excluded nodes; treated as no match",
                    selector,
                    type(result).__name__,
                )
                return []
            return [result]
        return [item for item in result if not self.is_excluded(item)]

    def text_segments(self, node: Any) -> Iterator[str]:
        """Yield the visible text nodes under an element."""
        return _text_segments(node, self._excluded)

    def text_content(self, node: Any) -> str:
        """Concatenated visible text of an element and its descendants."""
        return "".join(self.text_segments(node))

    def extract_text(self, node: Any) -> str:
        """Visible text with a space inserted at element boundaries."""
        return join_segments(self.text_segments(node))


@dataclass(frozen=True)
class NodeValue:
    """A matched element together with the view it was matched through.

    This is the seed value handed to the first transformation of a field.
    """

    element: Any
    view: DocumentView

    def text_content(self) -> str:
        """Raw visible text of the element."""
        return self.view.text_content(self.element)

    def extract_text(self) -> str:
        """Visible text with element boundaries separated by spaces."""
        return self.view.extract_text(self.element)


def as_text(value: Any) -> str:
    """Coerce a pipeline value into a plain string."""
    if isinstance(value, NodeValue):
        return value.text_content()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
