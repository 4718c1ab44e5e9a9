"""Unit tests for feature parser"""
import pytest
from retrygen.core.exceptions import FeatureParserError
from retrygen.parser.feature_parser import DataTable, DocString, FeatureParser, StepKeyword


FEATURE_TEXT = '''
# language: en
@web @Retry:2
Feature: Login
  As a user I want to log in

  Background:
    Given the application is running

  @smoke
  Scenario: Successful login
    Given I am on the "login" page
    When I log in with
      | user  | password |
      | alice | s3cret   |
    Then I should see "Welcome"
    * the session is stored

  Scenario: Payload
    Given the request body
      """json
      {"name": "alice"}
      """
'''


def test_parse_feature_header_and_tags():
    feature = FeatureParser().parse(FEATURE_TEXT, "login.feature")

    assert feature.name == "Login"
    assert feature.description == "As a user I want to log in"
    assert [tag.name for tag in feature.tags] == ["web", "Retry:2"]
    assert feature.language == "en"
    assert feature.file_path == "login.feature"


def test_parse_background_and_scenarios():
    feature = FeatureParser().parse(FEATURE_TEXT)

    assert feature.background is not None
    assert feature.background.steps[0].text == "the application is running"
    assert [scenario.name for scenario in feature.scenarios] == ["Successful login", "Payload"]
    assert [tag.name for tag in feature.scenarios[0].tags] == ["smoke"]
    assert feature.scenarios[1].tags == []


def test_parse_steps_keep_keyword_and_role():
    steps = FeatureParser().parse(FEATURE_TEXT).scenarios[0].steps

    assert [step.step_keyword for step in steps] == [
        StepKeyword.GIVEN, StepKeyword.WHEN, StepKeyword.THEN, StepKeyword.AND]
    assert steps[0].keyword == "Given "
    assert steps[0].text == 'I am on the "login" page'
    assert steps[3].keyword == "* "


def test_parse_data_table():
    step = FeatureParser().parse(FEATURE_TEXT).scenarios[0].steps[1]

    assert isinstance(step.argument, DataTable)
    assert step.argument.header == ["user", "password"]
    assert step.argument.body == [["alice", "s3cret"]]


def test_parse_doc_string():
    step = FeatureParser().parse(FEATURE_TEXT).scenarios[1].steps[0]

    assert isinstance(step.argument, DocString)
    assert step.argument.content == '{"name": "alice"}'
    assert step.argument.content_type == "json"


def test_parse_table_cell_escapes():
    text = '''
Feature: Escapes
  Scenario: Cells
    Given the values
      | a \\| b | line\\nbreak |
'''
    step = FeatureParser().parse(text).scenarios[0].steps[0]

    assert step.argument.header == ["a | b", "line\nbreak"]


def test_parse_scenario_outline_examples():
    text = '''
Feature: Outline
  Scenario Outline: Add <a> and <b>
    Given I add <a> and <b>
    Then the result is <sum>

    @fast
    Examples: small numbers
      | a | b | sum |
      | 1 | 2 | 3   |
      | 2 | 2 | 4   |
'''
    scenario = FeatureParser().parse(text).scenarios[0]

    assert scenario.is_outline
    examples = scenario.examples[0]
    assert examples.name == "small numbers"
    assert [tag.name for tag in examples.tags] == ["fast"]
    assert examples.header == ["a", "b", "sum"]
    assert examples.rows == [["1", "2", "3"], ["2", "2", "4"]]


def test_parse_first_star_step_is_given():
    text = '''
Feature: Stars
  Scenario: Star
    * something
'''
    step = FeatureParser().parse(text).scenarios[0].steps[0]

    assert step.step_keyword == StepKeyword.GIVEN


def test_parse_missing_feature_raises():
    with pytest.raises(FeatureParserError, match="No 'Feature:' found"):
        FeatureParser().parse("# nothing but a comment\n", "empty.feature")


def test_parse_scenario_before_feature_raises():
    with pytest.raises(FeatureParserError, match="found before 'Feature:'"):
        FeatureParser().parse("Scenario: orphan\n", "orphan.feature")


def test_parse_unexpected_line_reports_location():
    text = '''
Feature: Broken
  Scenario: One
    Given a step
    this is not gherkin
'''
    with pytest.raises(FeatureParserError) as exc_info:
        FeatureParser().parse(text, "broken.feature")

    assert exc_info.value.line_number == 5
    assert str(exc_info.value).startswith("broken.feature:5:")


def test_parse_inconsistent_table_raises():
    text = '''
Feature: Tables
  Scenario: One
    Given a table
      | a | b |
      | 1 |
'''
    with pytest.raises(FeatureParserError, match="Inconsistent cell count"):
        FeatureParser().parse(text)


def test_parse_unterminated_doc_string_raises():
    text = '''
Feature: Docs
  Scenario: One
    Given a doc string
      """
      never closed
'''
    with pytest.raises(FeatureParserError, match="not terminated"):
        FeatureParser().parse(text)


def test_parse_features_filters_by_tag(tmp_path):
    (tmp_path / "a.feature").write_text(FEATURE_TEXT, encoding="utf-8")
    (tmp_path / "b.feature").write_text("Feature: Other\n  Scenario: Untagged\n    Given x\n", encoding="utf-8")

    features = FeatureParser(str(tmp_path)).parse_features(["@smoke"])

    assert len(features) == 1
    assert [scenario.name for scenario in features[0].scenarios] == ["Successful login"]


def test_parse_features_without_filter(tmp_path):
    (tmp_path / "a.feature").write_text(FEATURE_TEXT, encoding="utf-8")
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "b.feature").write_text("Feature: Other\n  Scenario: Untagged\n    Given x\n", encoding="utf-8")

    features = FeatureParser(str(tmp_path)).parse_features()

    assert [feature.name for feature in features] == ["Login", "Other"]
