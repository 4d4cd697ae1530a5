"""Parser for YAML/JSON extraction rulesets."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]

from rulescrape.pipeline.transformations import (
    TransformationRegistry,
    UnknownTransformationError,
    get_default_registry,
)

from .models import Rule, RuleKind, RuleParseError, TransformationSpec

logger = logging.getLogger(__name__)

RULE_KEYS = {
    "selector",
    "kind",
    "fields",
    "item",
    "remove",
    "transformations",
    "pattern",
    "group",
    "text_above_length",
}
RULESET_KEYS = {"extends", "selector", "remove", "fields"}
DEFAULT_TEXT_ABOVE_LENGTH_FIELD = "textAboveLength"


def _parse_kind(kind_str: Any) -> RuleKind:
    """Parse kind string into RuleKind enum."""
    try:
        return RuleKind(str(kind_str).lower())
    except ValueError:
        valid_kinds = [kind.value for kind in RuleKind]
        raise RuleParseError(
            f"Invalid kind '{kind_str}'. Valid kinds: {', '.join(valid_kinds)}"
        )


def _infer_kind(rule_dict: dict[str, Any]) -> RuleKind:
    """Infer the kind of a rule that does not declare one."""
    if "kind" in rule_dict:
        return _parse_kind(rule_dict["kind"])
    if "fields" in rule_dict:
        return RuleKind.OBJECT
    if "item" in rule_dict:
        return RuleKind.LIST
    if "pattern" in rule_dict:
        return RuleKind.REGEX
    return RuleKind.SCALAR


def _parse_string_list(value: Any, key: str, path: str) -> tuple[str, ...]:
    """Parse a string or list of strings."""
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise RuleParseError(f"{path}: '{key}' must be a string or a list of strings")


def _parse_transformation(entry: Any, path: str) -> TransformationSpec:
    """Parse a transformation given as a name or a mapping with parameters.

    Accepted forms:
        ExtractText
        {name: ParseDate, format: "dd/MM/yyyy", culture: fr-FR}
        {ParseDate: {format: "dd/MM/yyyy"}}
    """
    if isinstance(entry, str):
        return TransformationSpec(name=entry)
    if isinstance(entry, dict):
        if "name" in entry:
            params = {k: v for k, v in entry.items() if k != "name"}
            return TransformationSpec(name=str(entry["name"]), params=params)
        if len(entry) == 1:
            name, params = next(iter(entry.items()))
            if params is None or isinstance(params, dict):
                return TransformationSpec(name=str(name), params=params or {})
    raise RuleParseError(f"{path}: invalid transformation entry {entry!r}")


def _parse_transformations(value: Any, path: str) -> tuple[TransformationSpec, ...]:
    entries = value if isinstance(value, list) else [value]
    return tuple(_parse_transformation(entry, path) for entry in entries)


def _parse_text_above_length(value: Any, path: str) -> Optional[str]:
    if value is None or value is False:
        return None
    if value is True:
        return DEFAULT_TEXT_ABOVE_LENGTH_FIELD
    if isinstance(value, str) and value:
        return value
    raise RuleParseError(f"{path}: 'text_above_length' must be true or a field name")


def _validate_rule_keys(rule_dict: dict[str, Any], path: str) -> None:
    unknown = set(rule_dict) - RULE_KEYS
    if unknown:
        raise RuleParseError(
            f"{path}: unknown key(s) {', '.join(sorted(unknown))}. "
            f"Valid keys: {', '.join(sorted(RULE_KEYS))}"
        )


def _parse_fields(fields: Any, path: str) -> dict[str, Rule]:
    if not isinstance(fields, dict):
        raise RuleParseError(f"{path}: 'fields' must be a mapping")
    return {
        str(name): _parse_rule(value, str(name), f"{path}.{name}")
        for name, value in fields.items()
    }


def _parse_rule(value: Any, name: Optional[str], path: str) -> Rule:
    """Parse a single rule from a selector string or a mapping."""
    if isinstance(value, str):
        return Rule(kind=RuleKind.SCALAR, name=name, selector=value)
    if not isinstance(value, dict):
        raise RuleParseError(f"{path}: rule must be a selector string or a mapping")

    _validate_rule_keys(value, path)
    kind = _infer_kind(value)

    selector = value.get("selector")
    if selector is not None and not isinstance(selector, str):
        raise RuleParseError(f"{path}: 'selector' must be a string")

    group = value.get("group", 1)
    if isinstance(group, bool) or not isinstance(group, (int, str)):
        raise RuleParseError(f"{path}: 'group' must be a number or a name")

    return Rule(
        kind=kind,
        name=name,
        selector=selector,
        children=_parse_fields(value["fields"], path) if "fields" in value else {},
        item=_parse_rule(value["item"], None, f"{path}[]") if "item" in value else None,
        remove_selectors=_parse_string_list(value["remove"], "remove", path) if "remove" in value else (),
        transformations=_parse_transformations(value["transformations"], path)
        if "transformations" in value
        else (),
        pattern=value.get("pattern"),
        group=group,
        text_above_length=_parse_text_above_length(value.get("text_above_length"), path),
    )


def _check_transformations(root: Rule, registry: TransformationRegistry) -> None:
    """Resolve every transformation referenced by a rule tree."""
    for rule in root.walk():
        for spec in rule.transformations:
            try:
                registry.bind(spec.name, spec.params)
            except UnknownTransformationError as e:
                raise RuleParseError(f"Rule '{rule.label}': {e}") from e
            except ValueError as e:
                raise RuleParseError(f"Rule '{rule.label}': invalid parameters for {spec.name}: {e}") from e


def parse_rule_tree(
    data: Any,
    name: Optional[str] = None,
    registry: Optional[TransformationRegistry] = None,
) -> Rule:
    """
    Parse a rule tree from an already-deserialized mapping.

    Args:
        data: Rule mapping (or selector string)
        name: Name of the root rule
        registry: Registry used to resolve transformation names (default registry if omitted)

    Returns:
        The root Rule

    Raises:
        RuleParseError: If the structure is invalid or references unknown transformations
    """
    root = _parse_rule(data, name, name or "<root>")
    _check_transformations(root, registry or get_default_registry())
    return root


def _merge_rulesets(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge a child ruleset over its parent: fields override by name, removes accumulate."""
    merged = dict(base)
    merged["fields"] = {**base.get("fields", {}), **override.get("fields", {})}
    merged["remove"] = list(base.get("remove", [])) + list(override.get("remove", []))
    if "selector" in override:
        merged["selector"] = override["selector"]
    return merged


def _validate_ruleset(ruleset: Any, ruleset_name: str) -> dict[str, Any]:
    if not isinstance(ruleset, dict):
        raise RuleParseError(f"Ruleset '{ruleset_name}' must be a mapping")
    unknown = set(ruleset) - RULESET_KEYS
    if unknown:
        raise RuleParseError(
            f"Ruleset '{ruleset_name}': unknown key(s) {', '.join(sorted(unknown))}. "
            f"Valid keys: {', '.join(sorted(RULESET_KEYS))}"
        )
    if "fields" in ruleset and not isinstance(ruleset["fields"], dict):
        raise RuleParseError(f"Ruleset '{ruleset_name}': 'fields' must be a mapping")
    if "remove" in ruleset:
        ruleset = {**ruleset, "remove": list(_parse_string_list(ruleset["remove"], "remove", ruleset_name))}
    return ruleset


def _resolve_extends(
    rulesets: dict[str, Any],
    ruleset_name: str,
    resolved: set[str],
) -> dict[str, Any]:
    """Recursively resolve ruleset inheritance."""
    if ruleset_name in resolved:
        raise RuleParseError(f"Circular dependency detected in ruleset '{ruleset_name}'")

    if ruleset_name not in rulesets:
        raise RuleParseError(f"Ruleset '{ruleset_name}' not found (referenced by 'extends')")

    resolved.add(ruleset_name)
    ruleset = _validate_ruleset(rulesets[ruleset_name], ruleset_name)
    own = {k: v for k, v in ruleset.items() if k != "extends"}

    if "extends" not in ruleset:
        return own
    if not isinstance(ruleset["extends"], str):
        raise RuleParseError(f"Ruleset '{ruleset_name}': 'extends' must be a ruleset name")
    base = _resolve_extends(rulesets, ruleset["extends"], resolved)
    return _merge_rulesets(base, own)


def _validate_rulesets_structure(data: Any, ruleset_name: str) -> dict[str, Any]:
    """Validate and extract rulesets from loaded data."""
    rulesets = get_rulesets(data)
    if ruleset_name not in rulesets:
        available = ", ".join(rulesets.keys())
        raise RuleParseError(
            f"Ruleset '{ruleset_name}' not found. Available rulesets: {available}"
        )
    return rulesets


def get_rulesets(data: Any) -> dict[str, Any]:
    """Return the 'rulesets' mapping of a loaded rules document."""
    if not isinstance(data, dict):
        raise RuleParseError("Rules document must contain a mapping")

    if "rulesets" not in data:
        raise RuleParseError("Rules document missing 'rulesets' key")

    rulesets = data["rulesets"]
    if not isinstance(rulesets, dict):
        raise RuleParseError("'rulesets' must be a mapping")
    return rulesets


def parse_ruleset(
    data: Any,
    ruleset_name: str = "default",
    registry: Optional[TransformationRegistry] = None,
) -> Rule:
    """
    Build the root rule of a named ruleset from a loaded rules document.

    Raises:
        RuleParseError: If the ruleset is missing or malformed
    """
    rulesets = _validate_rulesets_structure(data, ruleset_name)
    resolved: set[str] = set()
    ruleset = _resolve_extends(rulesets, ruleset_name, resolved)
    if not ruleset.get("fields"):
        raise RuleParseError(f"Ruleset '{ruleset_name}' defines no fields")

    root = parse_rule_tree(
        {k: v for k, v in ruleset.items() if v not in (None, [])},
        None,
        registry,
    )
    logger.debug("Parsed ruleset '%s' with %d field(s)", ruleset_name, len(root.children))
    return root


def load_rules_text(text: str, fmt: str = "yaml") -> Any:
    """Deserialize a rules document (YAML accepts JSON as well)."""
    try:
        if fmt == "json":
            return json.loads(text)
        return yaml.safe_load(text)
    except json.JSONDecodeError as e:
        raise RuleParseError(f"Invalid JSON: {e}")
    except yaml.YAMLError as e:
        raise RuleParseError(f"Invalid YAML: {e}")


def load_rules_file(file_path: str) -> Any:
    """Load and deserialize a rules file, choosing the format by extension."""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {file_path}")
    fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    return load_rules_text(path.read_text(encoding="utf-8"), fmt)


def parse_ruleset_string(
    text: str,
    ruleset_name: str = "default",
    registry: Optional[TransformationRegistry] = None,
) -> Rule:
    """Parse a named ruleset from YAML or JSON text."""
    return parse_ruleset(load_rules_text(text), ruleset_name, registry)


def parse_ruleset_file(
    file_path: str,
    ruleset_name: str = "default",
    registry: Optional[TransformationRegistry] = None,
) -> Rule:
    """
    Parse a named ruleset from a YAML or JSON file.

    Args:
        file_path: Path to the rules file
        ruleset_name: Name of the ruleset to load (default: "default")
        registry: Registry used to resolve transformation names

    Returns:
        Root Rule of the ruleset

    Raises:
        RuleParseError: If the file is invalid or the ruleset is malformed
        FileNotFoundError: If the file doesn't exist
    """
    data = load_rules_file(file_path)
    return parse_ruleset(data, ruleset_name, registry)
