"""Declarative, rule-driven structured data extraction from HTML."""

from rulescrape.models import Value
from rulescrape.pipeline.parse import parse_html
from rulescrape.pipeline.rules import Rule, RuleEngine, RuleKind, RuleParseError, extract, parse_ruleset_string
from rulescrape.pipeline.transformations import register_transformation

__all__ = [
    "Rule",
    "RuleEngine",
    "RuleKind",
    "RuleParseError",
    "Value",
    "extract",
    "parse_html",
    "parse_ruleset_string",
    "register_transformation",
]
