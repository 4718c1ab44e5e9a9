"""
Language-neutral code model
Statements, expressions and members that make up a generated test class
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union


@dataclass(frozen=True)
class TypeReference:
    """A type by name; ``array_rank`` > 0 means an array of that type"""
    name: str
    array_rank: int = 0

    @property
    def element_type(self) -> 'TypeReference':
        return TypeReference(self.name, max(self.array_rank - 1, 0))


# Expressions

@dataclass
class PrimitiveExpression:
    value: Any


@dataclass
class VariableReferenceExpression:
    name: str


@dataclass
class ThisReferenceExpression:
    pass


@dataclass
class TypeReferenceExpression:
    type: TypeReference


@dataclass
class FieldReferenceExpression:
    target: 'Expression'
    field_name: str


@dataclass
class MethodInvokeExpression:
    target: 'Expression'
    method_name: str
    arguments: List['Expression'] = field(default_factory=list)


@dataclass
class ObjectCreateExpression:
    type: TypeReference
    arguments: List['Expression'] = field(default_factory=list)


@dataclass
class ArrayCreateExpression:
    type: TypeReference
    items: List['Expression'] = field(default_factory=list)


@dataclass
class CastExpression:
    type: TypeReference
    expression: 'Expression'


class BinaryOperator(Enum):
    ADD = "+"
    LESS_THAN_OR_EQUAL = "<="
    VALUE_EQUALITY = "=="
    IDENTITY_EQUALITY = "is"
    IDENTITY_INEQUALITY = "is not"


@dataclass
class BinaryOperatorExpression:
    left: 'Expression'
    operator: BinaryOperator
    right: 'Expression'


@dataclass
class FormatStringExpression:
    """A string built from a composite format (``{0}`` slots, ``{{``/``}}`` escapes)"""
    format: str
    arguments: List['Expression'] = field(default_factory=list)


@dataclass
class ArrayConcatExpression:
    left: 'Expression'
    right: 'Expression'


Expression = Union[
    PrimitiveExpression, VariableReferenceExpression, ThisReferenceExpression,
    TypeReferenceExpression, FieldReferenceExpression, MethodInvokeExpression,
    ObjectCreateExpression, ArrayCreateExpression, CastExpression,
    BinaryOperatorExpression, FormatStringExpression, ArrayConcatExpression,
]


# Statements

@dataclass
class ExpressionStatement:
    expression: Expression


@dataclass
class VariableDeclarationStatement:
    type: TypeReference
    name: str
    init_expression: Optional[Expression] = None


@dataclass
class AssignStatement:
    left: Expression
    right: Expression


@dataclass
class IterationStatement:
    """``for (init; test; increment) { statements }``"""
    init_statement: 'Statement'
    test_expression: Expression
    increment_statement: 'Statement'
    statements: List['Statement'] = field(default_factory=list)


@dataclass
class CatchClause:
    variable_name: str
    catch_type: TypeReference
    statements: List['Statement'] = field(default_factory=list)


@dataclass
class TryCatchStatement:
    try_statements: List['Statement'] = field(default_factory=list)
    catch_clauses: List[CatchClause] = field(default_factory=list)


@dataclass
class ConditionStatement:
    condition: Expression
    true_statements: List['Statement'] = field(default_factory=list)
    false_statements: List['Statement'] = field(default_factory=list)


@dataclass
class MethodReturnStatement:
    expression: Optional[Expression] = None


@dataclass
class ThrowExceptionStatement:
    """Throw ``expression``, or rethrow the caught exception when it is None"""
    expression: Optional[Expression] = None


Statement = Union[
    ExpressionStatement, VariableDeclarationStatement, AssignStatement,
    IterationStatement, TryCatchStatement, ConditionStatement,
    MethodReturnStatement, ThrowExceptionStatement,
]


# Members

@dataclass
class CodeAttribute:
    name: str
    arguments: List[Expression] = field(default_factory=list)


@dataclass
class ParameterDeclaration:
    type: TypeReference
    name: str


@dataclass
class MemberField:
    type: Optional[TypeReference]
    name: str
    init_expression: Optional[Expression] = None


@dataclass
class MemberMethod:
    name: str = ""
    is_public: bool = True
    parameters: List[ParameterDeclaration] = field(default_factory=list)
    statements: List[Statement] = field(default_factory=list)
    custom_attributes: List[CodeAttribute] = field(default_factory=list)
    description: Optional[str] = None


Member = Union[MemberField, MemberMethod]


@dataclass
class TypeDeclaration:
    name: str
    members: List[Member] = field(default_factory=list)
    base_types: List[TypeReference] = field(default_factory=list)
    custom_attributes: List[CodeAttribute] = field(default_factory=list)
    comments: List[str] = field(default_factory=list)
    is_public: bool = True
    is_partial: bool = False
    description: Optional[str] = None
    source_file: Optional[str] = None

    @property
    def methods(self) -> List[MemberMethod]:
        return [member for member in self.members if isinstance(member, MemberMethod)]

    def get_method(self, name: str) -> Optional[MemberMethod]:
        return next((method for method in self.methods if method.name == name), None)


@dataclass
class NamespaceImport:
    """``import name``, or ``from name import *members`` when members are given"""
    name: str
    members: Optional[List[str]] = None


@dataclass
class Namespace:
    name: str
    imports: List[NamespaceImport] = field(default_factory=list)
    types: List[TypeDeclaration] = field(default_factory=list)

    def add_import(self, namespace_import: NamespaceImport):
        if namespace_import not in self.imports:
            self.imports.append(namespace_import)
