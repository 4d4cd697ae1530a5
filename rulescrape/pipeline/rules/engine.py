"""Rule engine for evaluating rule trees against document trees."""

import logging
from typing import Any, Callable, Optional

from lxml import etree

from rulescrape.models import ParsedDocument, Value
from rulescrape.pipeline.document import DocumentView, NodeValue, is_element, text_above_length
from rulescrape.pipeline.transformations import (
    TransformationError,
    TransformationPipeline,
    TransformationRegistry,
    get_default_registry,
)

from .models import Rule, RuleKind, RuleValidationError

logger = logging.getLogger(__name__)

REGEX_TRANSFORMATION = "Regex"


class RuleEngine:
    """Engine for extracting records with one rule tree.

    Transformation pipelines for every rule in the tree are resolved once
    here. After construction the engine holds no mutable state, so a single
    instance can serve concurrent extractions.
    """

    def __init__(self, root: Rule, registry: Optional[TransformationRegistry] = None):
        """Initialize the engine and bind the pipelines of the rule tree.

        Raises:
            UnknownTransformationError: If a rule references an unregistered transformation
            RuleValidationError: If transformation parameters are invalid
        """
        self.root = root
        self.registry = registry or get_default_registry()
        self._kind_handlers = self._build_kind_handlers()
        self._pipelines: dict[int, TransformationPipeline] = {
            id(rule): self._build_pipeline(rule) for rule in root.walk()
        }

    def _build_kind_handlers(
        self,
    ) -> dict[RuleKind, Callable[[Rule, list[Any], DocumentView], Value]]:
        """Build mapping of rule kinds to handler functions."""
        return {
            RuleKind.SCALAR: self._evaluate_scalar,
            RuleKind.REGEX: self._evaluate_scalar,
            RuleKind.OBJECT: self._evaluate_object,
            RuleKind.LIST: self._evaluate_list,
        }

    def _build_pipeline(self, rule: Rule) -> TransformationPipeline:
        """Resolve the transformations of a rule; regex rules get an implicit first step."""
        try:
            steps = []
            if rule.kind == RuleKind.REGEX:
                steps.append(
                    self.registry.bind(REGEX_TRANSFORMATION, {"pattern": rule.pattern, "group": rule.group})
                )
            steps.extend(self.registry.bind(spec.name, spec.params) for spec in rule.transformations)
        except ValueError as e:
            raise RuleValidationError(f"Rule '{rule.label}': {e}") from e
        return TransformationPipeline(steps)

    def _get_pipeline(self, rule: Rule) -> TransformationPipeline:
        pipeline = self._pipelines.get(id(rule))
        if pipeline is None:
            # Rule outside the bound tree
            pipeline = self._build_pipeline(rule)
        return pipeline

    @staticmethod
    def _seed(match: Any, view: DocumentView) -> Any:
        """Turn a query result into the first pipeline value."""
        if is_element(match):
            return NodeValue(match, view)
        if isinstance(match, etree._Element):
            # Comments and processing instructions
            return match.text or ""
        if isinstance(match, str):
            return str(match)
        return match

    def _evaluate_scalar(self, rule: Rule, matches: list[Any], view: DocumentView) -> Value:
        """Handle SCALAR and REGEX rules."""
        if not matches:
            return None
        try:
            return self._get_pipeline(rule).apply(self._seed(matches[0], view))
        except TransformationError as e:
            logger.warning("Field '%s' set to null: %s", rule.label, e)
            return None

    def _evaluate_object(self, rule: Rule, matches: list[Any], view: DocumentView) -> Value:
        """Handle OBJECT rules."""
        if not matches:
            return None
        context = matches[0]
        if not is_element(context):
            logger.warning("Object '%s' matched a non-element value; set to null", rule.label)
            return None
        return {name: self.evaluate(child, context, view) for name, child in rule.children.items()}

    def _evaluate_list(self, rule: Rule, matches: list[Any], view: DocumentView) -> Value:
        """Handle LIST rules.

        With a text-above-length field, every item is an object carrying the
        metric. An item whose object selector matches nothing gets all its
        fields set to None next to the metric.
        """
        item = rule.item
        if item is None:
            raise RuleValidationError(f"List rule '{rule.label}' requires an item rule")
        items: list[Value] = []
        for node in matches:
            value = self.evaluate(item, node, view)
            if rule.text_above_length is not None:
                if value is None:
                    value = dict.fromkeys(item.children)
                if isinstance(value, dict):
                    value[rule.text_above_length] = text_above_length(node)
            items.append(value)
        return items

    def _query(self, rule: Rule, context: Any, view: DocumentView) -> list[Any]:
        """Resolve the rule's selector relative to the context node."""
        if rule.selector is None:
            return [context]
        if not isinstance(context, etree._Element):
            logger.debug("Rule '%s' has a selector but its context is not an element", rule.label)
            return []
        try:
            return view.query(context, rule.selector)
        except etree.XPathError as e:
            logger.error("Selector for '%s' failed: %s", rule.label, e)
            return []

    def evaluate(self, rule: Rule, context: Any, view: Optional[DocumentView] = None) -> Value:
        """Evaluate a rule against a context node.

        Args:
            rule: The rule to evaluate
            context: Element (or query result) the rule's selector is relative to
            view: Exclusions inherited from enclosing rules

        Returns:
            The extracted value; None for an empty SCALAR/OBJECT match and an
            empty list for an empty LIST match
        """
        if view is None:
            view = DocumentView()
        if rule.remove_selectors and isinstance(context, etree._Element):
            try:
                view = view.exclude(context, rule.remove_selectors)
            except etree.XPathError as e:
                logger.error("Remove selector for '%s' failed: %s", rule.label, e)

        matches = self._query(rule, context, view)
        return self._kind_handlers[rule.kind](rule, matches, view)

    def extract(self, document: Any) -> Value:
        """Extract a record from a document root (or ParsedDocument)."""
        root = document.root if isinstance(document, ParsedDocument) else document
        return self.evaluate(self.root, root)


def extract(rule: Rule, document: Any, registry: Optional[TransformationRegistry] = None) -> Value:
    """Extract a record from a document with a rule tree.

    Builds a throwaway engine; reuse a RuleEngine when extracting many
    documents with the same rules.
    """
    return RuleEngine(rule, registry).extract(document)
