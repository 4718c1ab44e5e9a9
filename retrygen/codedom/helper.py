"""Builders for the code model used by the generator"""
from typing import Iterable, List, Optional

from retrygen.codedom.nodes import (
    ArrayCreateExpression,
    CastExpression,
    Expression,
    ExpressionStatement,
    FieldReferenceExpression,
    MemberMethod,
    MethodInvokeExpression,
    PrimitiveExpression,
    ThisReferenceExpression,
    TypeDeclaration,
    TypeReference,
    VariableReferenceExpression,
)
from retrygen.core.config_manager import TargetLanguage

STRING_TYPE = TypeReference("string")
STRING_ARRAY_TYPE = TypeReference("string", 1)
INT_TYPE = TypeReference("int")
EXCEPTION_TYPE = TypeReference("Exception")
GENERATED_COMMENT = "This code was generated by retrygen. Changes to this file will be lost."


class CodeDomHelper:
    """Creates target-aware declarations"""

    def __init__(self, target_language: TargetLanguage = TargetLanguage.PYTHON):
        self.target_language = target_language

    def create_generated_type_declaration(self, name: str) -> TypeDeclaration:
        return TypeDeclaration(name=name, comments=[GENERATED_COMMENT])

    def bind_type_to_source_file(self, type_declaration: TypeDeclaration, file_name: str):
        type_declaration.source_file = file_name or None


def primitive(value) -> PrimitiveExpression:
    return PrimitiveExpression(value)


def variable(name: str) -> VariableReferenceExpression:
    return VariableReferenceExpression(name)


def this_field(name: str) -> FieldReferenceExpression:
    return FieldReferenceExpression(ThisReferenceExpression(), name)


def null_cast(type_reference: TypeReference) -> CastExpression:
    return CastExpression(type_reference, PrimitiveExpression(None))


def invoke(target: Expression, method_name: str, *arguments: Expression) -> ExpressionStatement:
    return ExpressionStatement(MethodInvokeExpression(target, method_name, list(arguments)))


def this_invoke(method_name: str, *arguments: Expression) -> ExpressionStatement:
    return invoke(ThisReferenceExpression(), method_name, *arguments)


def string_array(items: Iterable[Expression]) -> ArrayCreateExpression:
    return ArrayCreateExpression(STRING_ARRAY_TYPE, list(items))


def create_method(type_declaration: TypeDeclaration, name: str = "",
                  statements: Optional[List] = None) -> MemberMethod:
    """Add a new public method to the type and return it"""
    method = MemberMethod(name=name, statements=statements or [])
    type_declaration.members.append(method)
    return method
