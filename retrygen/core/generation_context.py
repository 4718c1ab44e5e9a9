"""Mutable state for building one test class"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, TYPE_CHECKING

from retrygen.codedom.nodes import MemberField, MemberMethod, Namespace, TypeDeclaration
from retrygen.parser.feature_parser import Feature

if TYPE_CHECKING:
    from retrygen.generator.unit_test_provider import UnitTestGeneratorProvider


@dataclass
class TestClassGenerationContext:
    """
    Build state for one generated test class.

    Owned by a single ``generate_unit_test_fixture`` call and discarded
    afterwards, so the table counter never leaks between features.
    """
    __test__ = False

    unit_test_generator_provider: 'UnitTestGeneratorProvider'
    feature: Feature
    namespace: Namespace
    test_class: TypeDeclaration
    test_runner_field: MemberField
    test_class_initialize_method: MemberMethod
    test_class_cleanup_method: MemberMethod
    test_initialize_method: MemberMethod
    test_cleanup_method: MemberMethod
    scenario_initialize_method: MemberMethod
    scenario_cleanup_method: MemberMethod
    feature_background_method: Optional[MemberMethod] = None
    generate_row_tests: bool = False
    table_counter: int = 0
    custom_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_background(self) -> bool:
        return self.feature_background_method is not None

    def next_table_name(self) -> str:
        self.table_counter += 1
        return f"table{self.table_counter}"
