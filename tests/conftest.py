from pathlib import Path

import pytest
from lxml.html import HtmlElement

from rulescrape.config import ExtractionSettings, RulesSettings, set_settings
from rulescrape.pipeline.parse import parse_html
from rulescrape.pipeline.rules import RuleEngine, parse_ruleset_file

fixtures_dir = Path(__file__).parent / "fixtures"
html_fixtures = fixtures_dir / "html"
rules_fixture = fixtures_dir / "rules.yaml"

article_fixture = html_fixtures / "article.html"
answers_fixture = html_fixtures / "answers.html"


def load_html(path: Path) -> HtmlElement:
    """Parse an HTML fixture file."""
    return parse_html(path.read_bytes())


def fixture_engine(ruleset: str) -> RuleEngine:
    """Build an engine for a ruleset of the fixture rules file."""
    return RuleEngine(parse_ruleset_file(str(rules_fixture), ruleset))


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset global settings before and after each test."""
    set_settings(ExtractionSettings())
    yield
    set_settings(ExtractionSettings())


@pytest.fixture
def article_doc() -> HtmlElement:
    return load_html(article_fixture)


@pytest.fixture
def answers_doc() -> HtmlElement:
    return load_html(answers_fixture)


@pytest.fixture
def rules_path() -> Path:
    return rules_fixture


@pytest.fixture
def ruleset_engine():
    """Factory building engines from the fixture rules file."""
    return fixture_engine


@pytest.fixture
def article_path() -> Path:
    return article_fixture


@pytest.fixture
def answers_path() -> Path:
    return answers_fixture


@pytest.fixture
def article_settings(rules_path) -> ExtractionSettings:
    """Settings pointing at the article ruleset of the fixture rules file."""
    settings = ExtractionSettings(
        rules=RulesSettings(rules_file=str(rules_path), ruleset="article"),
    )
    set_settings(settings)
    return settings
