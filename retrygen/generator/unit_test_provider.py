"""
Unit test framework adapters
Decide the framework-specific metadata of the generated test class
"""

from enum import Flag
from typing import List

from retrygen.codedom.helper import primitive, variable
from retrygen.codedom.nodes import (
    CodeAttribute,
    MemberField,
    MemberMethod,
    NamespaceImport,
    TypeReference,
)
from retrygen.core.generation_context import TestClassGenerationContext


class UnitTestGeneratorTraits(Flag):
    NONE = 0
    ROW_TESTS = 1
    PARALLEL_EXECUTION = 2


class UnitTestGeneratorProvider:
    """Contract between the feature generator and a test framework"""

    def get_traits(self) -> UnitTestGeneratorTraits:
        return UnitTestGeneratorTraits.NONE

    def set_test_class(self, context: TestClassGenerationContext, feature_title: str, feature_description: str):
        raise NotImplementedError

    def set_test_class_categories(self, context: TestClassGenerationContext, categories: List[str]):
        raise NotImplementedError

    def set_test_class_ignore(self, context: TestClassGenerationContext):
        raise NotImplementedError

    def set_test_class_initialize_method(self, context: TestClassGenerationContext):
        raise NotImplementedError

    def set_test_class_cleanup_method(self, context: TestClassGenerationContext):
        raise NotImplementedError

    def set_test_initialize_method(self, context: TestClassGenerationContext):
        raise NotImplementedError

    def set_test_cleanup_method(self, context: TestClassGenerationContext):
        raise NotImplementedError

    def set_test_method(self, context: TestClassGenerationContext, method: MemberMethod, friendly_name: str):
        raise NotImplementedError

    def set_test_method_categories(self, context: TestClassGenerationContext, method: MemberMethod,
                                   categories: List[str]):
        raise NotImplementedError

    def set_test_method_ignore(self, context: TestClassGenerationContext, method: MemberMethod):
        raise NotImplementedError

    def set_row_test(self, context: TestClassGenerationContext, method: MemberMethod, friendly_name: str):
        raise NotImplementedError

    def set_row(self, context: TestClassGenerationContext, method: MemberMethod, arguments: List[str],
                tags: List[str], is_ignored: bool):
        raise NotImplementedError

    def finalize_test_class(self, context: TestClassGenerationContext):
        pass


class UnittestGeneratorProvider(UnitTestGeneratorProvider):
    """
    Targets the standard library ``unittest`` runner.

    Lifecycle and test methods keep their generated names; the class gets
    ``setUpClass``/``setUp``/... and ``test_<name>`` aliases when finalized.
    """

    TEST_CASE_BASE = TypeReference("unittest.TestCase")
    CATEGORY_ATTRIBUTE = "category"
    TEST_METHODS_KEY = "unittest.test_methods"

    def set_test_class(self, context, feature_title, feature_description):
        context.namespace.add_import(NamespaceImport("unittest"))
        context.test_class.base_types.append(self.TEST_CASE_BASE)
        context.test_class.description = feature_description or feature_title

    def set_test_class_categories(self, context, categories):
        context.test_class.custom_attributes.append(self._category_attribute(categories))

    def set_test_class_ignore(self, context):
        context.test_class.custom_attributes.append(CodeAttribute("unittest.skip", [primitive("Ignored")]))

    def set_test_class_initialize_method(self, context):
        context.test_class_initialize_method.custom_attributes.append(CodeAttribute("classmethod"))

    def set_test_class_cleanup_method(self, context):
        context.test_class_cleanup_method.custom_attributes.append(CodeAttribute("classmethod"))

    def set_test_initialize_method(self, context):
        pass

    def set_test_cleanup_method(self, context):
        pass

    def set_test_method(self, context, method, friendly_name):
        method.description = friendly_name
        context.custom_data.setdefault(self.TEST_METHODS_KEY, []).append(method)

    def set_test_method_categories(self, context, method, categories):
        method.custom_attributes.append(self._category_attribute(categories))

    def set_test_method_ignore(self, context, method):
        method.custom_attributes.append(CodeAttribute("unittest.skip", [primitive("Ignored")]))

    def set_row_test(self, context, method, friendly_name):
        raise NotImplementedError("unittest has no row tests")

    def set_row(self, context, method, arguments, tags, is_ignored):
        raise NotImplementedError("unittest has no row tests")

    def finalize_test_class(self, context):
        aliases = [
            ("setUpClass", context.test_class_initialize_method.name),
            ("tearDownClass", context.test_class_cleanup_method.name),
            ("setUp", context.test_initialize_method.name),
            ("tearDown", context.test_cleanup_method.name),
        ]
        for method in context.custom_data.get(self.TEST_METHODS_KEY, []):
            aliases.append((f"test_{method.name}", method.name))

        for alias, target in aliases:
            context.test_class.members.append(MemberField(None, alias, variable(target)))

    def _category_attribute(self, categories: List[str]) -> CodeAttribute:
        return CodeAttribute(self.CATEGORY_ATTRIBUTE, [primitive(category) for category in categories])
