"""Data models for the rules system."""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from lxml import etree


class RuleKind(Enum):
    """How the nodes matched by a rule become a value."""

    SCALAR = "scalar"  # First match through the transformation pipeline
    OBJECT = "object"  # First match as context for child rules
    LIST = "list"  # Item rule applied to every match
    REGEX = "regex"  # Scalar seeded with a regex capture


class RuleParseError(Exception):
    """Raised when a ruleset cannot be parsed."""

    pass


class RuleValidationError(RuleParseError):
    """Raised when a rule violates the invariants of its kind."""

    pass


def validate_selector(selector: str) -> None:
    """Check that an XPath selector compiles."""
    try:
        etree.XPath(selector)
    except etree.XPathSyntaxError as e:
        raise RuleValidationError(f"Invalid selector '{selector}': {e}") from e


@dataclass(frozen=True)
class TransformationSpec:
    """A transformation reference in a rule: name plus parameters."""

    name: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def __str__(self) -> str:
        if not self.params:
            return self.name
        args = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
        return f"{self.name}({args})"


@dataclass(frozen=True)
class Rule:
    """One node of a rule tree: how to find and shape one field's value.

    Rules are immutable once constructed and may be shared by any number of
    concurrent extractions.
    """

    kind: RuleKind = RuleKind.SCALAR
    name: Optional[str] = None  # None for list item templates
    selector: Optional[str] = None  # None means the context node itself
    children: Mapping[str, "Rule"] = field(default_factory=dict)
    item: Optional["Rule"] = None
    remove_selectors: tuple[str, ...] = ()
    transformations: tuple[TransformationSpec, ...] = ()
    pattern: Optional[str] = None
    group: int | str = 1
    text_above_length: Optional[str] = None  # Synthetic field name for list items

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", MappingProxyType(dict(self.children)))
        object.__setattr__(self, "remove_selectors", tuple(self.remove_selectors))
        object.__setattr__(self, "transformations", tuple(self.transformations))
        self._validate()

    @property
    def label(self) -> str:
        """Readable identifier for messages."""
        return self.name or "<item>"

    def _validate(self) -> None:
        if self.selector is not None:
            validate_selector(self.selector)
        for selector in self.remove_selectors:
            validate_selector(selector)

        if self.kind == RuleKind.OBJECT and not self.children:
            raise RuleValidationError(f"Object rule '{self.label}' requires at least one field")
        if self.kind != RuleKind.OBJECT and self.children:
            raise RuleValidationError(f"Rule '{self.label}' has fields but is not an object rule")
        if self.kind == RuleKind.LIST and self.item is None:
            raise RuleValidationError(f"List rule '{self.label}' requires an item rule")
        if self.kind != RuleKind.LIST and self.item is not None:
            raise RuleValidationError(f"Rule '{self.label}' has an item rule but is not a list rule")
        if self.kind in (RuleKind.OBJECT, RuleKind.LIST) and self.transformations:
            raise RuleValidationError(
                f"Rule '{self.label}': transformations apply to scalar and regex rules only"
            )
        if self.kind == RuleKind.REGEX:
            self._validate_pattern()
        elif self.pattern is not None:
            raise RuleValidationError(f"Rule '{self.label}' has a pattern but is not a regex rule")
        if self.text_above_length is not None:
            self._validate_text_above_length()

    def _validate_pattern(self) -> None:
        if not self.pattern:
            raise RuleValidationError(f"Regex rule '{self.label}' requires a pattern")
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise RuleValidationError(f"Regex rule '{self.label}' has an invalid pattern: {e}") from e
        if isinstance(self.group, int) and not 0 <= self.group <= compiled.groups:
            raise RuleValidationError(
                f"Regex rule '{self.label}' references group {self.group} "
                f"but the pattern has {compiled.groups}"
            )
        if isinstance(self.group, str) and self.group not in compiled.groupindex:
            raise RuleValidationError(
                f"Regex rule '{self.label}' references unknown group '{self.group}'"
            )

    def _validate_text_above_length(self) -> None:
        if self.kind != RuleKind.LIST:
            raise RuleValidationError(f"Only list rules can report text above length ('{self.label}')")
        if self.item is None or self.item.kind != RuleKind.OBJECT:
            raise RuleValidationError(
                f"List rule '{self.label}' reports text above length, so its item must be an object"
            )
        if self.text_above_length in self.item.children:
            raise RuleValidationError(
                f"List rule '{self.label}': '{self.text_above_length}' clashes with an item field"
            )

    def walk(self) -> "list[Rule]":
        """This rule and all nested rules, depth first."""
        rules = [self]
        for child in self.children.values():
            rules.extend(child.walk())
        if self.item is not None:
            rules.extend(self.item.walk())
        return rules
