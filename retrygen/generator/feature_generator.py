"""
Feature generator
Builds the test class for a parsed feature: lifecycle methods and one test per scenario
"""

import os
from typing import Iterable, List, Optional

from retrygen.codedom.helper import (
    CodeDomHelper,
    STRING_ARRAY_TYPE,
    STRING_TYPE,
    create_method,
    invoke,
    primitive,
    this_invoke,
    variable,
)
from retrygen.codedom.nodes import (
    ArrayConcatExpression,
    AssignStatement,
    BinaryOperator,
    BinaryOperatorExpression,
    ConditionStatement,
    Expression,
    FieldReferenceExpression,
    MemberField,
    MemberMethod,
    MethodInvokeExpression,
    Namespace,
    NamespaceImport,
    ObjectCreateExpression,
    ParameterDeclaration,
    TypeReference,
    TypeReferenceExpression,
    VariableDeclarationStatement,
)
from retrygen.core.config_manager import GeneratorConfiguration
from retrygen.core.exceptions import TestGeneratorError
from retrygen.core.generation_context import TestClassGenerationContext
from retrygen.generator.decorators import DecoratorRegistry
from retrygen.generator.retry import RetryWrapper
from retrygen.generator.steps import (
    TEST_RUNNER_FIELD,
    ParameterSubstitution,
    StepEmitter,
    get_tags_array_expression,
    get_test_runner_expression,
)
from retrygen.generator.unit_test_provider import UnitTestGeneratorProvider, UnitTestGeneratorTraits
from retrygen.parser.feature_parser import Examples, Feature, Scenario, Tag
from retrygen.parser.tag_matcher import TagFilterMatcher
from retrygen.utils.helpers import to_identifier, to_identifier_camel_case
from retrygen.utils.logger import setup_logger

logger = setup_logger(__name__)

TEST_CLASS_NAME_FORMAT = "{0}Feature"
SCENARIO_INITIALIZE_NAME = "ScenarioSetup"
SCENARIO_CLEANUP_NAME = "ScenarioCleanup"
TEST_INITIALIZE_NAME = "TestInitialize"
TEST_CLEANUP_NAME = "ScenarioTearDown"
TEST_CLASS_INITIALIZE_NAME = "FeatureSetup"
TEST_CLASS_CLEANUP_NAME = "FeatureTearDown"
BACKGROUND_NAME = "FeatureBackground"
EXAMPLE_TAGS_PARAMETER = "exampleTags"
TAGS_VARIABLE = "__tags"

SCENARIO_INFO_TYPE = TypeReference("ScenarioInfo")
FEATURE_INFO_TYPE = TypeReference("FeatureInfo")
TEST_RUNNER_TYPE = TypeReference("ITestRunner")


class UnitTestFeatureGenerator:
    """Generates a namespace holding the test class of one feature"""

    def __init__(self, test_generator_provider: UnitTestGeneratorProvider, code_dom_helper: CodeDomHelper,
                 configuration: GeneratorConfiguration, decorator_registry: DecoratorRegistry,
                 tag_filter_matcher: TagFilterMatcher, retry_wrapper: Optional[RetryWrapper] = None):
        self.test_generator_provider = test_generator_provider
        self.code_dom_helper = code_dom_helper
        self.configuration = configuration
        self.decorator_registry = decorator_registry
        self.tag_filter_matcher = tag_filter_matcher
        self.retry_wrapper = retry_wrapper
        self.step_emitter = StepEmitter()

    def generate_unit_test_fixture(self, feature: Feature, test_class_name: Optional[str] = None,
                                   target_namespace: Optional[str] = None) -> Namespace:
        """Generate the test class for ``feature``; any failure aborts the whole feature"""
        namespace = self._create_namespace(target_namespace)
        test_class_name = test_class_name or TEST_CLASS_NAME_FORMAT.format(to_identifier(feature.name))
        context = self._create_test_class_structure(namespace, test_class_name, feature)

        self._setup_test_class(context)
        self._setup_test_class_initialize_method(context)
        self._setup_test_class_cleanup_method(context)

        self._setup_scenario_initialize_method(context)
        self._setup_feature_background(context)
        self._setup_scenario_cleanup_method(context)

        self._setup_test_initialize_method(context)
        self._setup_test_cleanup_method(context)

        for scenario in feature.scenarios:
            if not scenario.name:
                raise TestGeneratorError("The scenario must have a title specified.")

            if scenario.is_outline:
                self._generate_scenario_outline_test(context, scenario)
            else:
                self._generate_test(context, scenario)

        self.test_generator_provider.finalize_test_class(context)
        logger.info(f"Generated {test_class_name} with {len(feature.scenarios)} scenario(s)")
        return namespace

    def _create_namespace(self, target_namespace: Optional[str]) -> Namespace:
        namespace = Namespace(target_namespace or self.configuration.default_namespace)
        namespace.add_import(NamespaceImport(self.configuration.runtime_namespace, ["*"]))
        return namespace

    def _create_test_class_structure(self, namespace: Namespace, test_class_name: str,
                                     feature: Feature) -> TestClassGenerationContext:
        test_class = self.code_dom_helper.create_generated_type_declaration(test_class_name)
        namespace.types.append(test_class)

        test_runner_field = MemberField(TEST_RUNNER_TYPE, TEST_RUNNER_FIELD)
        test_class.members.append(test_runner_field)

        generate_row_tests = (
            UnitTestGeneratorTraits.ROW_TESTS in self.test_generator_provider.get_traits()
            and self.configuration.allow_row_tests
        )

        return TestClassGenerationContext(
            unit_test_generator_provider=self.test_generator_provider,
            feature=feature,
            namespace=namespace,
            test_class=test_class,
            test_runner_field=test_runner_field,
            test_class_initialize_method=create_method(test_class),
            test_class_cleanup_method=create_method(test_class),
            test_initialize_method=create_method(test_class),
            test_cleanup_method=create_method(test_class),
            scenario_initialize_method=create_method(test_class),
            scenario_cleanup_method=create_method(test_class),
            feature_background_method=create_method(test_class) if feature.background else None,
            generate_row_tests=generate_row_tests,
        )

    def _setup_test_class(self, context: TestClassGenerationContext):
        test_class = context.test_class
        test_class.is_partial = True
        test_class.is_public = True

        if not self.configuration.allow_debug_generated_files:
            self.code_dom_helper.bind_type_to_source_file(test_class, os.path.basename(context.feature.file_path))

        self.test_generator_provider.set_test_class(context, context.feature.name, context.feature.description)

        categories = self.decorator_registry.decorate_test_class(context, context.feature.tags)
        if categories:
            self.test_generator_provider.set_test_class_categories(context, categories)

    def _setup_test_class_initialize_method(self, context: TestClassGenerationContext):
        method = context.test_class_initialize_method
        method.name = TEST_CLASS_INITIALIZE_NAME

        self.test_generator_provider.set_test_class_initialize_method(context)

        test_runner = get_test_runner_expression()
        if UnitTestGeneratorTraits.PARALLEL_EXECUTION in self.test_generator_provider.get_traits():
            runner_arguments = []
        else:
            runner_arguments = [primitive(None), primitive(0)]

        # testRunner = TestRunnerManager.GetTestRunner(...)
        method.statements.append(AssignStatement(
            test_runner,
            MethodInvokeExpression(
                TypeReferenceExpression(TypeReference("TestRunnerManager")), "GetTestRunner", runner_arguments)))

        feature = context.feature
        method.statements.append(VariableDeclarationStatement(
            FEATURE_INFO_TYPE,
            "featureInfo",
            ObjectCreateExpression(FEATURE_INFO_TYPE, [
                ObjectCreateExpression(TypeReference("CultureInfo"), [primitive(feature.language)]),
                primitive(feature.name),
                primitive(feature.description),
                FieldReferenceExpression(
                    TypeReferenceExpression(TypeReference("ProgrammingLanguage")),
                    self.code_dom_helper.target_language.name),
                get_tags_array_expression(feature.tags),
            ])))

        method.statements.append(invoke(test_runner, "OnFeatureStart", variable("featureInfo")))

    def _setup_test_class_cleanup_method(self, context: TestClassGenerationContext):
        method = context.test_class_cleanup_method
        method.name = TEST_CLASS_CLEANUP_NAME

        self.test_generator_provider.set_test_class_cleanup_method(context)

        test_runner = get_test_runner_expression()
        method.statements.append(invoke(test_runner, "OnFeatureEnd"))
        method.statements.append(AssignStatement(test_runner, primitive(None)))

    def _setup_test_initialize_method(self, context: TestClassGenerationContext):
        context.test_initialize_method.name = TEST_INITIALIZE_NAME
        self.test_generator_provider.set_test_initialize_method(context)

    def _setup_test_cleanup_method(self, context: TestClassGenerationContext):
        method = context.test_cleanup_method
        method.name = TEST_CLEANUP_NAME

        self.test_generator_provider.set_test_cleanup_method(context)
        method.statements.append(invoke(get_test_runner_expression(), "OnScenarioEnd"))

    def _setup_scenario_initialize_method(self, context: TestClassGenerationContext):
        method = context.scenario_initialize_method
        method.name = SCENARIO_INITIALIZE_NAME
        method.parameters.append(ParameterDeclaration(SCENARIO_INFO_TYPE, "scenarioInfo"))
        method.statements.append(invoke(get_test_runner_expression(), "OnScenarioStart", variable("scenarioInfo")))

    def _setup_scenario_cleanup_method(self, context: TestClassGenerationContext):
        method = context.scenario_cleanup_method
        method.name = SCENARIO_CLEANUP_NAME
        method.statements.append(invoke(get_test_runner_expression(), "CollectScenarioErrors"))

    def _setup_feature_background(self, context: TestClassGenerationContext):
        if not context.has_background:
            return

        method = context.feature_background_method
        method.name = BACKGROUND_NAME

        for step in context.feature.background.steps:
            self.step_emitter.generate_step(context, method.statements, step)

    def _generate_test(self, context: TestClassGenerationContext, scenario: Scenario):
        directive = self.retry_wrapper.resolve(scenario, context.feature) if self.retry_wrapper else None

        test_method = self._create_test_method(context, scenario, None)
        if directive is None:
            self._generate_test_body(context, scenario, test_method)
        else:
            inner_method = self.retry_wrapper.wrap(context, test_method, directive)
            self._generate_test_body(context, scenario, inner_method)

    def _generate_scenario_outline_test(self, context: TestClassGenerationContext, scenario: Scenario):
        self._validate_example_set_consistency(scenario)

        if self.retry_wrapper and self.retry_wrapper.resolve(scenario, context.feature):
            logger.warning(f"Retry tags are not supported on scenario outlines, "
                           f"'{scenario.name}' is generated without retries")

        param_to_identifier = ParameterSubstitution()
        for header in scenario.examples[0].header:
            param_to_identifier.add(header, to_identifier_camel_case(header))

        if context.generate_row_tests:
            self._generate_scenario_outline_row_test(context, scenario, param_to_identifier)
            return

        template_method = create_method(context.test_class, self._get_test_method_name(scenario))
        self._add_outline_parameters(template_method, param_to_identifier)
        self._generate_test_body(context, scenario, template_method,
                                 variable(EXAMPLE_TAGS_PARAMETER), param_to_identifier)

        set_identifiers = self._get_example_set_identifiers(scenario.examples)
        for examples, set_identifier in zip(scenario.examples, set_identifiers):
            for variant_name, row in zip(self._get_variant_names(examples), examples.rows):
                variant_method = self._create_test_method(context, scenario, examples.tags,
                                                          variant_name, set_identifier)
                variant_method.statements.append(this_invoke(
                    template_method.name,
                    *[primitive(value) for value in row],
                    get_tags_array_expression(examples.tags)))

    def _generate_scenario_outline_row_test(self, context: TestClassGenerationContext, scenario: Scenario,
                                            param_to_identifier: ParameterSubstitution):
        method = create_method(context.test_class)
        self._setup_test_method(context, method, scenario, None, None, None, row_test=True)
        self._add_outline_parameters(method, param_to_identifier)

        for examples in scenario.examples:
            tag_names = [tag.name for tag in examples.tags]
            is_ignored = self.tag_filter_matcher.match("ignore", tag_names)
            for row in examples.rows:
                self.test_generator_provider.set_row(context, method, list(row), tag_names, is_ignored)

        self._generate_test_body(context, scenario, method,
                                 variable(EXAMPLE_TAGS_PARAMETER), param_to_identifier)

    def _add_outline_parameters(self, method: MemberMethod, param_to_identifier: ParameterSubstitution):
        for param in param_to_identifier:
            identifier = param_to_identifier.try_get_identifier(param)
            method.parameters.append(ParameterDeclaration(STRING_TYPE, identifier))
        method.parameters.append(ParameterDeclaration(STRING_ARRAY_TYPE, EXAMPLE_TAGS_PARAMETER))

    def _validate_example_set_consistency(self, scenario: Scenario):
        headers = [examples.header for examples in scenario.examples]
        if any(header is None for header in headers):
            raise TestGeneratorError(f"The examples of '{scenario.name}' must have a header row.")
        if any(header != headers[0] for header in headers[1:]):
            raise TestGeneratorError(f"The example sets of '{scenario.name}' must provide the same parameters.")

    def _get_example_set_identifiers(self, example_sets: List[Examples]) -> List[Optional[str]]:
        if len(example_sets) == 1 and not example_sets[0].name:
            return [None]

        identifiers = []
        for index, examples in enumerate(example_sets):
            identifier = to_identifier_camel_case(examples.name) if examples.name else f"ExampleSet{index}"
            identifiers.append(identifier)

        # Named sets may collide once turned into identifiers
        if len(set(identifiers)) != len(identifiers):
            return [f"ExampleSet{index}" for index in range(len(example_sets))]
        return identifiers

    def _get_variant_names(self, examples: Examples) -> List[str]:
        first_column = [row[0] if row else "" for row in examples.rows]
        identifiers = [to_identifier(value).lstrip('_') for value in first_column]

        if all(identifiers) and len(set(identifiers)) == len(identifiers):
            return first_column
        return [f"Variant {index}" for index in range(len(examples.rows))]

    def _create_test_method(self, context: TestClassGenerationContext, scenario: Scenario,
                            additional_tags: Optional[List[Tag]], variant_name: Optional[str] = None,
                            example_set_identifier: Optional[str] = None) -> MemberMethod:
        method = create_method(context.test_class)
        self._setup_test_method(context, method, scenario, additional_tags, variant_name, example_set_identifier)
        return method

    def _setup_test_method(self, context: TestClassGenerationContext, method: MemberMethod, scenario: Scenario,
                           additional_tags: Optional[List[Tag]], variant_name: Optional[str],
                           example_set_identifier: Optional[str], row_test: bool = False):
        method.is_public = True
        method.name = self._get_test_method_name(scenario, variant_name, example_set_identifier)

        friendly_test_name = scenario.name
        if variant_name is not None:
            friendly_test_name = f"{scenario.name}: {variant_name}"

        if row_test:
            self.test_generator_provider.set_row_test(context, method, friendly_test_name)
        else:
            self.test_generator_provider.set_test_method(context, method, friendly_test_name)

        categories = self.decorator_registry.decorate_test_method(
            context, method, self._concat_tags(scenario.tags, additional_tags))
        if categories:
            self.test_generator_provider.set_test_method_categories(context, method, categories)

    def _get_test_method_name(self, scenario: Scenario, variant_name: Optional[str] = None,
                              example_set_identifier: Optional[str] = None) -> str:
        method_name = to_identifier(scenario.name)

        if variant_name is not None:
            variant_identifier = to_identifier(variant_name).lstrip('_')
            if example_set_identifier:
                method_name = f"{method_name}_{example_set_identifier}_{variant_identifier}"
            else:
                method_name = f"{method_name}_{variant_identifier}"

        return method_name

    def _generate_test_body(self, context: TestClassGenerationContext, scenario: Scenario, method: MemberMethod,
                            additional_tags_expression: Optional[Expression] = None,
                            param_to_identifier: Optional[ParameterSubstitution] = None):
        statements = method.statements

        # ScenarioInfo scenarioInfo = new ScenarioInfo("name", tags)
        if additional_tags_expression is None:
            tags_expression = get_tags_array_expression(scenario.tags)
        elif not scenario.tags:
            tags_expression = additional_tags_expression
        else:
            tags_expression = variable(TAGS_VARIABLE)
            statements.append(VariableDeclarationStatement(
                STRING_ARRAY_TYPE, TAGS_VARIABLE, get_tags_array_expression(scenario.tags)))
            statements.append(ConditionStatement(
                BinaryOperatorExpression(additional_tags_expression, BinaryOperator.IDENTITY_INEQUALITY,
                                         primitive(None)),
                [AssignStatement(tags_expression, ArrayConcatExpression(tags_expression,
                                                                        additional_tags_expression))]))

        statements.append(VariableDeclarationStatement(
            SCENARIO_INFO_TYPE,
            "scenarioInfo",
            ObjectCreateExpression(SCENARIO_INFO_TYPE, [primitive(scenario.name), tags_expression])))

        statements.append(this_invoke(context.scenario_initialize_method.name, variable("scenarioInfo")))

        if context.has_background:
            statements.append(this_invoke(context.feature_background_method.name))

        for step in scenario.steps:
            self.step_emitter.generate_step(context, statements, step, param_to_identifier)

        statements.append(this_invoke(context.scenario_cleanup_method.name))

    @staticmethod
    def _concat_tags(*tag_lists: Optional[Iterable[Tag]]) -> List[Tag]:
        return [tag for tag_list in tag_lists if tag_list for tag in tag_list]
