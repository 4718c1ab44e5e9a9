"""
Python renderer
Turns a code-model namespace into Python source text
"""

import keyword
from typing import List

from jinja2 import Template

from retrygen.codedom.nodes import (
    ArrayConcatExpression,
    ArrayCreateExpression,
    AssignStatement,
    BinaryOperatorExpression,
    CastExpression,
    CodeAttribute,
    ConditionStatement,
    ExpressionStatement,
    FieldReferenceExpression,
    FormatStringExpression,
    IterationStatement,
    MemberField,
    MemberMethod,
    MethodInvokeExpression,
    MethodReturnStatement,
    Namespace,
    ObjectCreateExpression,
    PrimitiveExpression,
    ThisReferenceExpression,
    ThrowExceptionStatement,
    TryCatchStatement,
    TypeDeclaration,
    TypeReference,
    TypeReferenceExpression,
    VariableDeclarationStatement,
    VariableReferenceExpression,
)

MODULE_TEMPLATE = Template('''\
# {{ namespace.name }}
{%- for line in header %}
# {{ line }}
{%- endfor %}
{% for imp in imports %}
{{ imp }}
{%- endfor %}
{% for cls in classes %}

{{ cls }}
{%- endfor %}
''')

# Built-in type names of the neutral model and their Python spelling
TYPE_NAMES = {
    'string': 'str',
    'int': 'int',
    'bool': 'bool',
    'object': 'object',
    'Exception': 'Exception',
}


class PythonRenderer:
    """Renders namespaces, classes, statements and expressions as Python"""

    def __init__(self, indent: str = "    "):
        self.indent = indent

    def render(self, namespace: Namespace) -> str:
        header = []
        for type_declaration in namespace.types:
            header.extend(type_declaration.comments)
        return MODULE_TEMPLATE.render(
            namespace=namespace,
            header=list(dict.fromkeys(header)),
            imports=[self.render_import(imp) for imp in namespace.imports],
            classes=[self.render_type(t) for t in namespace.types],
        ) + '\n'

    def render_import(self, namespace_import) -> str:
        if namespace_import.members:
            return f"from {namespace_import.name} import {', '.join(namespace_import.members)}"
        return f"import {namespace_import.name}"

    def render_type(self, type_declaration: TypeDeclaration) -> str:
        lines = self._attributes(type_declaration.custom_attributes)
        bases = ', '.join(self.type_name(base) for base in type_declaration.base_types)
        lines.append(f"class {self.name(type_declaration.name)}({bases}):" if bases
                     else f"class {self.name(type_declaration.name)}:")

        body = []
        if type_declaration.description:
            body.append(self._docstring(type_declaration.description))
        if type_declaration.source_file:
            body.append(f"# source: {type_declaration.source_file}")
        for member in type_declaration.members:
            if body and isinstance(member, MemberMethod):
                body.append("")
            body.extend(self.render_member(member))

        lines.extend(self._indent(body or ["pass"]))
        return '\n'.join(lines)

    def render_member(self, member) -> List[str]:
        if isinstance(member, MemberField):
            init = self.expression(member.init_expression) if member.init_expression is not None else 'None'
            return [f"{self.name(member.name)} = {init}"]

        lines = self._attributes(member.custom_attributes)
        params = ['self'] + [self.name(p.name) for p in member.parameters]
        lines.append(f"def {self.name(member.name)}({', '.join(params)}):")

        body = []
        if member.description:
            body.append(self._docstring(member.description))
        body.extend(self.statements(member.statements))
        lines.extend(self._indent(body or ["pass"]))
        return lines

    def statements(self, statements) -> List[str]:
        lines = []
        for statement in statements:
            lines.extend(self.statement(statement))
        return lines

    def statement(self, statement) -> List[str]:
        if isinstance(statement, ExpressionStatement):
            return [self.expression(statement.expression)]

        if isinstance(statement, VariableDeclarationStatement):
            init = 'None' if statement.init_expression is None else self.expression(statement.init_expression)
            return [f"{self.name(statement.name)} = {init}"]

        if isinstance(statement, AssignStatement):
            return [f"{self.expression(statement.left)} = {self.expression(statement.right)}"]

        if isinstance(statement, IterationStatement):
            body = self.statements(statement.statements) + self.statement(statement.increment_statement)
            return (self.statement(statement.init_statement)
                    + [f"while {self.expression(statement.test_expression)}:"]
                    + self._indent(body))

        if isinstance(statement, TryCatchStatement):
            lines = ["try:"] + self._indent(self.statements(statement.try_statements) or ["pass"])
            for clause in statement.catch_clauses:
                lines.append(f"except {self.type_name(clause.catch_type)} as {self.name(clause.variable_name)}:")
                lines.extend(self._indent(self.statements(clause.statements) or ["pass"]))
            if not statement.catch_clauses:
                lines.extend(["except Exception:", self.indent + "raise"])
            return lines

        if isinstance(statement, ConditionStatement):
            lines = [f"if {self.expression(statement.condition)}:"]
            lines.extend(self._indent(self.statements(statement.true_statements) or ["pass"]))
            if statement.false_statements:
                lines.append("else:")
                lines.extend(self._indent(self.statements(statement.false_statements)))
            return lines

        if isinstance(statement, MethodReturnStatement):
            if statement.expression is None:
                return ["return"]
            return [f"return {self.expression(statement.expression)}"]

        if isinstance(statement, ThrowExceptionStatement):
            if statement.expression is None:
                return ["raise"]
            return [f"raise {self.expression(statement.expression)}"]

        raise TypeError(f"Cannot render statement {type(statement).__name__}")

    def expression(self, expression) -> str:
        if isinstance(expression, PrimitiveExpression):
            return repr(expression.value)

        if isinstance(expression, VariableReferenceExpression):
            return self.name(expression.name)

        if isinstance(expression, ThisReferenceExpression):
            return "self"

        if isinstance(expression, TypeReferenceExpression):
            return self.type_name(expression.type)

        if isinstance(expression, FieldReferenceExpression):
            return f"{self.expression(expression.target)}.{self.name(expression.field_name)}"

        if isinstance(expression, MethodInvokeExpression):
            return f"{self.expression(expression.target)}.{self.name(expression.method_name)}" \
                   f"({self._arguments(expression.arguments)})"

        if isinstance(expression, ObjectCreateExpression):
            return f"{self.type_name(expression.type)}({self._arguments(expression.arguments)})"

        if isinstance(expression, ArrayCreateExpression):
            return f"[{self._arguments(expression.items)}]"

        if isinstance(expression, CastExpression):
            return self.expression(expression.expression)

        if isinstance(expression, BinaryOperatorExpression):
            return f"{self._operand(expression.left)} {expression.operator.value} {self._operand(expression.right)}"

        if isinstance(expression, FormatStringExpression):
            return f"{expression.format!r}.format({self._arguments(expression.arguments)})"

        if isinstance(expression, ArrayConcatExpression):
            return f"list({self.expression(expression.left)}) + list({self.expression(expression.right)})"

        raise TypeError(f"Cannot render expression {type(expression).__name__}")

    def type_name(self, type_reference: TypeReference) -> str:
        if type_reference.array_rank:
            return 'list'
        return TYPE_NAMES.get(type_reference.name, type_reference.name)

    def name(self, identifier: str) -> str:
        """Identifiers that clash with Python keywords get a trailing underscore"""
        if keyword.iskeyword(identifier) or identifier == 'self':
            return identifier + '_'
        return identifier

    def _operand(self, expression) -> str:
        rendered = self.expression(expression)
        if isinstance(expression, BinaryOperatorExpression):
            return f"({rendered})"
        return rendered

    def _arguments(self, arguments) -> str:
        return ', '.join(self.expression(argument) for argument in arguments)

    def _attributes(self, attributes: List[CodeAttribute]) -> List[str]:
        lines = []
        for attribute in attributes:
            if attribute.arguments:
                lines.append(f"@{attribute.name}({self._arguments(attribute.arguments)})")
            else:
                lines.append(f"@{attribute.name}")
        return lines

    def _docstring(self, text: str) -> str:
        escaped = text.replace('\\', '\\\\').replace('"""', '\\"\\"\\"')
        if escaped.endswith('"'):
            escaped = escaped[:-1] + '\\"'
        return f'"""{escaped}"""'

    def _indent(self, lines: List[str]) -> List[str]:
        return [(self.indent + line) if line else line for line in lines]
