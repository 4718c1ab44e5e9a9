"""Integration tests for complete flow: parse, generate, render and run the generated tests"""
import unittest

import pytest
from click.testing import CliRunner

from retrygen.codedom.python_renderer import PythonRenderer
from retrygen.core.config_manager import GeneratorConfiguration
from retrygen.generator.factory import create_feature_generator
from retrygen.parser.feature_parser import FeatureParser
from run import main


FLAKY_FEATURE = '''
@nightly
Feature: Flaky service

  @Retry:2 @smoke
  Scenario: S
    Given "x"

  @Retry:1 @RetryExcept:InvalidOperationException
  Scenario: S2
    Given "y"

  @Retry:0
  Scenario: Once
    Given "once"

  @Retry:3
  Scenario: Broken
    Given "broken"

  Scenario: Plain
    Given a table
      | a | b |
      | 1 | 2 |
'''

OUTLINE_FEATURE = '''
Feature: Calculator
  Background:
    Given a calculator

  Scenario Outline: Add numbers
    When I add <a> and <b>
    Then the result is "{<sum>}"

    @fast
    Examples:
      | a | b | sum |
      | 1 | 2 | 3   |
      | 2 | 5 | 7   |
'''


class InvalidOperationException(Exception):
    pass


class StepFailure(Exception):
    pass


class RecordingRunner:
    """Test runner double that records every call and fails steps on demand"""

    def __init__(self, failures=None):
        self.calls = []
        self.failures = {text: list(errors) for text, errors in (failures or {}).items()}

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    def OnFeatureStart(self, feature_info):
        self.calls.append(('OnFeatureStart', feature_info.title))

    def OnFeatureEnd(self):
        self.calls.append(('OnFeatureEnd',))

    def OnScenarioStart(self, scenario_info):
        self.calls.append(('OnScenarioStart', scenario_info.title, scenario_info.tags))

    def OnScenarioEnd(self):
        self.calls.append(('OnScenarioEnd',))

    def CollectScenarioErrors(self):
        self.calls.append(('CollectScenarioErrors',))

    def _step(self, role, text, doc_string, table, keyword):
        self.calls.append((role, text, doc_string, table, keyword))
        pending = self.failures.get(text)
        if pending:
            raise pending.pop(0)

    def Given(self, *args):
        self._step('Given', *args)

    def When(self, *args):
        self._step('When', *args)

    def Then(self, *args):
        self._step('Then', *args)

    def And(self, *args):
        self._step('And', *args)

    def But(self, *args):
        self._step('But', *args)


class Info:
    def __init__(self, *args):
        self.args = args


class ScenarioInfo(Info):
    def __init__(self, title, tags):
        super().__init__(title, tags)
        self.title = title
        self.tags = tags


class FeatureInfo(Info):
    def __init__(self, culture, title, description, language, tags):
        super().__init__(culture, title, description, language, tags)
        self.title = title


class Table:
    def __init__(self, header):
        self.header = header
        self.rows = []

    def AddRow(self, row):
        self.rows.append(row)


def category(*names):
    def decorate(target):
        target.categories = names
        return target
    return decorate


def load_test_class(feature_text, runner):
    """Generate, render and execute a feature; returns the generated class"""
    feature = FeatureParser().parse(feature_text, "generated.feature")
    namespace = create_feature_generator(GeneratorConfiguration()).generate_unit_test_fixture(feature)
    namespace.imports = [imp for imp in namespace.imports if imp.name != 'specflow']
    source = PythonRenderer().render(namespace)

    class TestRunnerManager:
        @staticmethod
        def GetTestRunner(*args):
            return runner

    class ProgrammingLanguage:
        PYTHON = "python"

    module_globals = {
        '__name__': 'generated_feature',
        'ScenarioInfo': ScenarioInfo,
        'FeatureInfo': FeatureInfo,
        'CultureInfo': Info,
        'ProgrammingLanguage': ProgrammingLanguage,
        'Table': Table,
        'TestRunnerManager': TestRunnerManager,
        'InvalidOperationException': InvalidOperationException,
        'category': category,
    }
    exec(compile(source, "generated_feature.py", "exec"), module_globals)
    return module_globals[namespace.types[0].name]


def run_scenario(test_class, method_name):
    test_class.setUpClass()
    test = test_class(f"test_{method_name}")
    test.setUp()
    try:
        getattr(test, method_name)()
    finally:
        runner = test.testRunner
        test.tearDown()
        test_class.tearDownClass()
    return runner


def test_retry_recovers_after_two_failures():
    runner = RecordingRunner({'"x"': [StepFailure("attempt 1"), StepFailure("attempt 2")]})
    test_class = load_test_class(FLAKY_FEATURE, runner)

    test_class.setUpClass()
    test_class("test_S").S()

    assert runner.count('Given') == 3
    assert runner.count('OnScenarioStart') == 3
    assert runner.count('OnScenarioEnd') == 2
    assert runner.count('CollectScenarioErrors') == 1


def test_retry_exhaustion_rethrows_last_exception():
    errors = [StepFailure(f"attempt {n}") for n in range(1, 5)]
    runner = RecordingRunner({'"broken"': errors})
    test_class = load_test_class(FLAKY_FEATURE, runner)

    test_class.setUpClass()
    with pytest.raises(StepFailure, match="attempt 4"):
        test_class("test_Broken").Broken()

    assert runner.count('Given') == 4
    assert runner.count('OnScenarioEnd') == 3


def test_retry_zero_runs_once():
    runner = RecordingRunner({'"once"': [StepFailure("only attempt")]})
    test_class = load_test_class(FLAKY_FEATURE, runner)

    test_class.setUpClass()
    with pytest.raises(StepFailure, match="only attempt"):
        test_class("test_Once").Once()

    assert runner.count('Given') == 1
    assert runner.count('OnScenarioEnd') == 0


def test_retry_except_propagates_immediately():
    runner = RecordingRunner({'"y"': [InvalidOperationException("not retried"), StepFailure("unused")]})
    test_class = load_test_class(FLAKY_FEATURE, runner)

    test_class.setUpClass()
    with pytest.raises(InvalidOperationException, match="not retried"):
        test_class("test_S2").S2()

    assert runner.count('Given') == 1
    assert runner.count('OnScenarioEnd') == 0


def test_other_exceptions_are_still_retried_with_except_tag():
    runner = RecordingRunner({'"y"': [StepFailure("retried")]})
    test_class = load_test_class(FLAKY_FEATURE, runner)

    test_class.setUpClass()
    test_class("test_S2").S2()

    assert runner.count('Given') == 2
    assert runner.count('OnScenarioEnd') == 1


def test_plain_scenario_passes_table_to_runner():
    runner = RecordingRunner()
    test_class = load_test_class(FLAKY_FEATURE, runner)

    run_scenario(test_class, "Plain")

    given = next(call for call in runner.calls if call[0] == 'Given')
    _, text, doc_string, table, keyword = given
    assert text == "a table"
    assert doc_string is None
    assert table.header == ['a', 'b']
    assert table.rows == [['1', '2']]
    assert keyword == "Given "


def test_lifecycle_hooks_wrap_the_scenario():
    runner = RecordingRunner()
    test_class = load_test_class(FLAKY_FEATURE, runner)

    run_scenario(test_class, "Plain")

    names = [call[0] for call in runner.calls]
    assert names == ['OnFeatureStart', 'OnScenarioStart', 'Given', 'CollectScenarioErrors',
                     'OnScenarioEnd', 'OnFeatureEnd']
    assert test_class.testRunner is None


def test_generated_class_runs_under_unittest():
    runner = RecordingRunner({'"x"': [StepFailure("flaky")], '"y"': [InvalidOperationException("fatal")]})
    test_class = load_test_class(FLAKY_FEATURE, runner)

    result = unittest.TestResult()
    unittest.defaultTestLoader.loadTestsFromTestCase(test_class).run(result)

    assert result.testsRun == 5
    failed = sorted(test.id().rsplit('.', 1)[-1] for test, _ in result.errors)
    assert failed == ["test_S2"]
    assert test_class.categories == ('nightly',)
    assert test_class.S.categories == ('smoke',)


def test_outline_variants_substitute_example_values():
    runner = RecordingRunner()
    test_class = load_test_class(OUTLINE_FEATURE, runner)

    run_scenario(test_class, "AddNumbers_1")

    steps = [call[:2] for call in runner.calls if call[0] in ('Given', 'When', 'Then')]
    assert steps == [('Given', 'a calculator'), ('When', 'I add 1 and 2'), ('Then', 'the result is "{3}"')]
    start = next(call for call in runner.calls if call[0] == 'OnScenarioStart')
    assert start[2] == ['fast']


def test_cli_writes_one_module_per_feature(tmp_path):
    features_dir = tmp_path / "features"
    features_dir.mkdir()
    (features_dir / "flaky.feature").write_text(FLAKY_FEATURE, encoding="utf-8")
    output_dir = tmp_path / "generated"

    result = CliRunner().invoke(main, ['--features', str(features_dir), '--output', str(output_dir)])

    assert result.exit_code == 0, result.output
    module_path = output_dir / "test_flakyservice.py"
    source = module_path.read_text(encoding="utf-8")
    assert "class FlakyServiceFeature(unittest.TestCase):" in source
    assert "def SInternal(self):" in source
    compile(source, str(module_path), "exec")


def test_cli_stdout_and_no_retry(tmp_path):
    features_dir = tmp_path / "features"
    features_dir.mkdir()
    (features_dir / "flaky.feature").write_text(FLAKY_FEATURE, encoding="utf-8")

    result = CliRunner().invoke(main, ['--features', str(features_dir), '--output', str(tmp_path / "generated"),
                                       '--stdout', '--no-retry', '--namespace', 'Acceptance'])

    assert result.exit_code == 0, result.output
    assert result.output.startswith("# Acceptance\n")
    assert "Internal" not in result.output
    assert not (tmp_path / "generated").exists()


def test_cli_reports_generation_errors(tmp_path):
    features_dir = tmp_path / "features"
    features_dir.mkdir()
    (features_dir / "untitled.feature").write_text("Feature: Untitled\n  Scenario:\n    Given x\n", encoding="utf-8")

    result = CliRunner().invoke(main, ['--features', str(features_dir), '--stdout'])

    assert result.exit_code == 1
