"""Tests for ruleset parser."""

import json

import pytest

from rulescrape.pipeline.rules import (
    RuleKind,
    RuleParseError,
    RuleValidationError,
    get_rulesets,
    load_rules_file,
    parse_rule_tree,
    parse_ruleset_file,
    parse_ruleset_string,
)
from rulescrape.pipeline.transformations import get_default_registry


class TestParseRuleTree:
    """Tests for parsing single rule mappings."""

    def test_string_is_scalar_shorthand(self):
        """Test that a bare string is a scalar rule with that selector."""
        rule = parse_rule_tree("//h1", "title")
        assert rule.kind == RuleKind.SCALAR
        assert rule.name == "title"
        assert rule.selector == "//h1"
        assert rule.transformations == ()

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"selector": "//p"}, RuleKind.SCALAR),
            ({"fields": {"a": "//p"}}, RuleKind.OBJECT),
            ({"selector": "//li", "item": "."}, RuleKind.LIST),
            ({"selector": "//p", "pattern": r"(\d+)"}, RuleKind.REGEX),
            ({"selector": "//p", "kind": "SCALAR"}, RuleKind.SCALAR),
        ],
    )
    def test_kind_inference(self, data, expected):
        """Test that kind is inferred from the keys present."""
        assert parse_rule_tree(data, "x").kind == expected

    def test_transformation_forms(self):
        """Test name, name-with-params and single-key mapping forms."""
        rule = parse_rule_tree(
            {
                "selector": "//time",
                "transformations": [
                    "ExtractText",
                    {"name": "ParseDate", "format": "dd/MM/yyyy", "culture": "fr-FR"},
                    {"Split": {"separator": ";"}},
                ],
            },
            "when",
        )
        names = [spec.name for spec in rule.transformations]
        assert names == ["ExtractText", "ParseDate", "Split"]
        assert dict(rule.transformations[1].params) == {"format": "dd/MM/yyyy", "culture": "fr-FR"}
        assert dict(rule.transformations[2].params) == {"separator": ";"}

    def test_single_transformation_string(self):
        """Test that a single transformation does not need a list."""
        rule = parse_rule_tree({"selector": "//p", "transformations": "Trim"}, "x")
        assert [spec.name for spec in rule.transformations] == ["Trim"]

    def test_legacy_transformation_names(self):
        """Test that the Transformation suffix is accepted."""
        rule = parse_rule_tree(
            {"selector": "//p", "transformations": ["ExtractTextTransformation", "CastToIntegerTransformation"]},
            "x",
        )
        assert len(rule.transformations) == 2

    def test_unknown_transformation(self):
        """Test that unknown transformation names are a load error."""
        with pytest.raises(RuleParseError, match="Unknown transformation 'Frobnicate'"):
            parse_rule_tree({"selector": "//p", "transformations": ["Frobnicate"]}, "x")

    def test_invalid_transformation_params(self):
        """Test that parameter validation runs at load time."""
        with pytest.raises(RuleParseError, match="invalid parameters for ParseDate"):
            parse_rule_tree(
                {"selector": "//p", "transformations": [{"name": "ParseDate", "culture": "zz-ZZ"}]},
                "x",
            )

    def test_custom_registry(self):
        """Test that transformations resolve against the given registry."""
        registry = get_default_registry().copy()
        registry.register("Shout", lambda value, params: str(value).upper())
        rule = parse_rule_tree({"selector": "//p", "transformations": ["Shout"]}, "x", registry)
        assert rule.transformations[0].name == "Shout"
        with pytest.raises(RuleParseError):
            parse_rule_tree({"selector": "//p", "transformations": ["Shout"]}, "x")

    def test_remove_accepts_string_or_list(self):
        """Test that remove can be one selector or several."""
        one = parse_rule_tree({"selector": "//div", "remove": ".//script"}, "x")
        many = parse_rule_tree({"selector": "//div", "remove": [".//script", ".//style"]}, "x")
        assert one.remove_selectors == (".//script",)
        assert many.remove_selectors == (".//script", ".//style")

    def test_text_above_length_default_name(self):
        """Test that text_above_length: true uses the default field name."""
        rule = parse_rule_tree(
            {"selector": "//div", "text_above_length": True, "item": {"fields": {"t": "."}}},
            "answers",
        )
        assert rule.text_above_length == "textAboveLength"

    def test_text_above_length_custom_name(self):
        rule = parse_rule_tree(
            {"selector": "//div", "text_above_length": "offset", "item": {"fields": {"t": "."}}},
            "answers",
        )
        assert rule.text_above_length == "offset"

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"kind": "object"}, "requires at least one field"),
            ({"kind": "list", "selector": "//li"}, "requires an item rule"),
            ({"kind": "regex", "selector": "//p"}, "requires a pattern"),
            ({"selector": "//p", "pattern": "(a)", "group": 3}, "references group 3"),
            ({"selector": "//p", "pattern": "(a"}, "invalid pattern"),
            ({"selector": "//p", "kind": "scalar", "fields": {"a": "."}}, "not an object rule"),
            ({"fields": {"a": "."}, "transformations": ["Trim"]}, "scalar and regex rules only"),
            ({"selector": "//["}, "Invalid selector"),
            ({"selector": "//p", "remove": ["//["]}, "Invalid selector"),
            ({"selector": "//li", "item": ".", "text_above_length": True}, "item must be an object"),
            ({"selector": "//p", "text_above_length": True}, "Only list rules"),
            (
                {"selector": "//li", "item": {"fields": {"offset": "."}}, "text_above_length": "offset"},
                "clashes with an item field",
            ),
        ],
    )
    def test_invalid_rules(self, data, message):
        """Test that rules violating their kind's invariants are rejected."""
        with pytest.raises(RuleValidationError, match=message):
            parse_rule_tree(data, "x")

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"selector": "//p", "kind": "table"}, "Invalid kind 'table'"),
            ({"selector": "//p", "xpath": "//p"}, "unknown key"),
            ({"selector": 3}, "'selector' must be a string"),
            ({"selector": "//p", "pattern": "(a)", "group": True}, "'group' must be a number or a name"),
            ({"fields": ["a"]}, "'fields' must be a mapping"),
            ({"selector": "//p", "remove": 5}, "'remove' must be a string or a list"),
            ({"selector": "//p", "transformations": [42]}, "invalid transformation entry"),
            ({"selector": "//li", "item": ".", "text_above_length": 1}, "must be true or a field name"),
            (42, "rule must be a selector string or a mapping"),
        ],
    )
    def test_malformed_rules(self, data, message):
        """Test that structural errors are reported."""
        with pytest.raises(RuleParseError, match=message):
            parse_rule_tree(data, "x")

    def test_error_path_names_nested_field(self):
        """Test that errors name the path of the offending rule."""
        with pytest.raises(RuleParseError, match=r"x\.author\.name"):
            parse_rule_tree({"fields": {"author": {"fields": {"name": {"selector": 1}}}}}, "x")


class TestParseRuleset:
    """Tests for parsing named rulesets."""

    def test_parse_ruleset_string(self):
        """Test parsing a simple YAML ruleset."""
        root = parse_ruleset_string(
            """
rulesets:
  default:
    fields:
      title: "//h1"
      links:
        selector: "//a/@href"
        item: "."
"""
        )
        assert root.kind == RuleKind.OBJECT
        assert root.selector is None
        assert list(root.children) == ["title", "links"]
        assert root.children["links"].kind == RuleKind.LIST

    def test_ruleset_root_selector_and_remove(self):
        """Test that a ruleset may scope its root and exclude subtrees."""
        root = parse_ruleset_string(
            """
rulesets:
  default:
    selector: "//main"
    remove: "//nav"
    fields:
      title: ".//h1"
"""
        )
        assert root.selector == "//main"
        assert root.remove_selectors == ("//nav",)

    def test_parse_json_ruleset(self):
        """Test that JSON is accepted as well."""
        text = json.dumps({"rulesets": {"default": {"fields": {"title": "//h1"}}}})
        assert list(parse_ruleset_string(text).children) == ["title"]

    def test_named_ruleset(self, rules_path):
        """Test selecting a ruleset by name from a file."""
        root = parse_ruleset_file(str(rules_path), "answers")
        answers = root.children["answers"]
        assert answers.text_above_length == "textAboveLength"
        assert answers.item is not None
        assert list(answers.item.children) == ["title", "text"]

    def test_extends_merges_fields(self, rules_path):
        """Test that an extending ruleset inherits and adds fields."""
        root = parse_ruleset_file(str(rules_path), "article-extended")
        assert list(root.children) == [
            "title",
            "body",
            "published",
            "views",
            "rating",
            "tags",
            "author",
            "author_url",
        ]

    def test_extends_overrides_and_accumulates(self):
        """Test that child fields override by name and removes accumulate."""
        root = parse_ruleset_string(
            """
rulesets:
  base:
    remove: "//nav"
    fields:
      title: "//h1"
      body: "//main"
  child:
    extends: base
    remove: "//footer"
    fields:
      title: "//h2"
""",
            "child",
        )
        assert root.children["title"].selector == "//h2"
        assert root.children["body"].selector == "//main"
        assert root.remove_selectors == ("//nav", "//footer")

    def test_circular_extends(self):
        """Test that circular inheritance is detected."""
        text = """
rulesets:
  a:
    extends: b
    fields: {x: "//p"}
  b:
    extends: a
    fields: {y: "//p"}
"""
        with pytest.raises(RuleParseError, match="Circular dependency"):
            parse_ruleset_string(text, "a")

    def test_extends_missing_ruleset(self):
        with pytest.raises(RuleParseError, match="'nope' not found"):
            parse_ruleset_string("rulesets: {a: {extends: nope, fields: {x: '//p'}}}", "a")

    def test_missing_ruleset(self):
        """Test that a missing ruleset lists the available ones."""
        with pytest.raises(RuleParseError, match="Available rulesets: a"):
            parse_ruleset_string("rulesets: {a: {fields: {x: '//p'}}}", "default")

    def test_missing_rulesets_key(self):
        with pytest.raises(RuleParseError, match="missing 'rulesets' key"):
            parse_ruleset_string("fields: {x: '//p'}")

    def test_ruleset_without_fields(self):
        with pytest.raises(RuleParseError, match="defines no fields"):
            parse_ruleset_string("rulesets: {default: {selector: '//main'}}")

    def test_unknown_ruleset_key(self):
        with pytest.raises(RuleParseError, match="unknown key"):
            parse_ruleset_string("rulesets: {default: {kind: list, fields: {x: '//p'}}}")

    def test_invalid_yaml(self):
        with pytest.raises(RuleParseError, match="Invalid YAML"):
            parse_ruleset_string("rulesets: [unclosed")


class TestLoadRulesFile:
    """Tests for reading rules files."""

    def test_load_json_file(self, tmp_path):
        """Test that .json files are read as JSON."""
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"rulesets": {"default": {"fields": {"t": "//title"}}}}))
        assert list(parse_ruleset_file(str(path)).children) == ["t"]

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{not json")
        with pytest.raises(RuleParseError, match="Invalid JSON"):
            load_rules_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_ruleset_file(str(tmp_path / "missing.yaml"))

    def test_get_rulesets(self, rules_path):
        """Test listing the rulesets of a file."""
        rulesets = get_rulesets(load_rules_file(str(rules_path)))
        assert list(rulesets) == ["article", "article-extended", "answers"]
