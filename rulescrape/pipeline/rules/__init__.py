"""Rules system for declarative, XPath-driven record extraction."""

from .engine import RuleEngine, extract
from .models import Rule, RuleKind, RuleParseError, RuleValidationError, TransformationSpec
from .parser import (
    get_rulesets,
    load_rules_file,
    parse_rule_tree,
    parse_ruleset,
    parse_ruleset_file,
    parse_ruleset_string,
)

__all__ = [
    "Rule",
    "RuleEngine",
    "RuleKind",
    "RuleParseError",
    "RuleValidationError",
    "TransformationSpec",
    "extract",
    "get_rulesets",
    "load_rules_file",
    "parse_rule_tree",
    "parse_ruleset",
    "parse_ruleset_file",
    "parse_ruleset_string",
]
