"""Factory for building rule engines from settings."""

import logging
from pathlib import Path
from typing import Optional

from rulescrape.config import ExtractionSettings
from rulescrape.pipeline.rules import Rule, RuleEngine, RuleParseError, parse_ruleset_file
from rulescrape.pipeline.transformations import TransformationRegistry

logger = logging.getLogger(__name__)


def _load_rules_from_file(
    rules_file_path: str,
    ruleset_name: str,
    registry: Optional[TransformationRegistry] = None,
) -> Rule:
    """Load a ruleset from a file with error handling.

    Raises:
        FileNotFoundError: If file doesn't exist
        RuleParseError: If parsing fails
    """
    path = Path(rules_file_path)
    logger.info("Loading rules from file: %s", path)

    try:
        root = parse_ruleset_file(str(path), ruleset_name, registry)
        logger.info("Loaded ruleset '%s' with %d field(s) from %s", ruleset_name, len(root.children), path)
        return root
    except (FileNotFoundError, RuleParseError) as e:
        logger.error("Failed to load rules file: %s", e)
        raise


def describe_rule(rule: Rule) -> str:
    """One-line description of a rule for display and logging."""
    parts = [rule.kind.value]
    if rule.selector:
        parts.append(f"selector={rule.selector}")
    if rule.remove_selectors:
        parts.append(f"remove={'|'.join(rule.remove_selectors)}")
    if rule.pattern:
        parts.append(f"pattern={rule.pattern}, group={rule.group}")
    if rule.transformations:
        parts.append(f"transformations={' > '.join(str(t) for t in rule.transformations)}")
    if rule.text_above_length:
        parts.append(f"text_above_length={rule.text_above_length}")
    return ", ".join(parts)


def _log_active_rules(rule: Rule, depth: int = 0) -> None:
    """Log the rule tree for debugging."""
    logger.debug("%s%s (%s)", "  " * depth, rule.label, describe_rule(rule))
    for child in rule.children.values():
        _log_active_rules(child, depth + 1)
    if rule.item is not None:
        _log_active_rules(rule.item, depth + 1)


def build_rule_engine(
    settings: ExtractionSettings,
    registry: Optional[TransformationRegistry] = None,
) -> RuleEngine:
    """Build a rule engine from settings.

    Args:
        settings: Settings containing the rules file and ruleset name
        registry: Transformation registry (default registry if omitted)

    Returns:
        Configured RuleEngine instance

    Raises:
        RuleParseError: If no rules file is configured or it cannot be parsed
    """
    if not settings.rules.rules_file:
        raise RuleParseError("No rules file configured")

    root = _load_rules_from_file(settings.rules.rules_file, settings.rules.ruleset, registry)
    logger.debug("Active rules:")
    _log_active_rules(root)
    return RuleEngine(root, registry)
