"""
Step emission
Compiles steps, their tables and doc strings into test runner calls
"""

import re
from typing import Dict, Iterable, Iterator, List, Optional

from retrygen.codedom.helper import (
    STRING_TYPE,
    invoke,
    null_cast,
    primitive,
    string_array,
    this_field,
    variable,
)
from retrygen.codedom.nodes import (
    Expression,
    FormatStringExpression,
    ObjectCreateExpression,
    Statement,
    TypeReference,
    VariableDeclarationStatement,
)
from retrygen.core.exceptions import TestGeneratorError
from retrygen.core.generation_context import TestClassGenerationContext
from retrygen.parser.feature_parser import DataTable, DocString, Step, Tag

TEST_RUNNER_FIELD = "testRunner"
TABLE_TYPE = TypeReference("Table")
PARAM_RE = re.compile(r'<(?P<param>[^>]+)>')


class ParameterSubstitution:
    """Placeholder name -> declared identifier; the first registration of a name wins"""

    def __init__(self):
        self._identifiers: Dict[str, str] = {}

    def add(self, param: str, identifier: str):
        self._identifiers.setdefault(param.strip(), identifier)

    def try_get_identifier(self, param: str) -> Optional[str]:
        return self._identifiers.get(param.strip())

    def __iter__(self) -> Iterator[str]:
        return iter(self._identifiers)

    def __len__(self) -> int:
        return len(self._identifiers)


def get_test_runner_expression() -> Expression:
    return this_field(TEST_RUNNER_FIELD)


def get_substituted_string(text: Optional[str],
                           param_to_identifier: Optional[ParameterSubstitution]) -> Expression:
    """
    Literal string, or a format expression when ``<param>`` placeholders resolve.

    Braces are escaped before slots are inserted so literal ``{``/``}`` survive
    formatting. Unresolved placeholders stay in the text verbatim.
    """
    if text is None:
        return null_cast(STRING_TYPE)

    if param_to_identifier is None:
        return primitive(text)

    format_text = text.replace('{', '{{').replace('}', '}}')
    arguments: List[str] = []

    def replace(match):
        identifier = param_to_identifier.try_get_identifier(match.group('param'))
        if identifier is None:
            return match.group(0)

        if identifier not in arguments:
            arguments.append(identifier)
        return '{' + str(arguments.index(identifier)) + '}'

    format_text = PARAM_RE.sub(replace, format_text)

    if not arguments:
        return primitive(text)
    return FormatStringExpression(format_text, [variable(identifier) for identifier in arguments])


def get_string_array_expression(items: Iterable[str],
                                param_to_identifier: Optional[ParameterSubstitution] = None) -> Expression:
    return string_array(get_substituted_string(item, param_to_identifier) for item in items)


def get_tags_array_expression(tags: Optional[Iterable[Tag]]) -> Expression:
    """Tag names as a string array, or a null string array when there are none"""
    names = [tag.name for tag in tags or ()]
    if not names:
        return null_cast(TypeReference("string", 1))
    return string_array(primitive(name) for name in names)


class StepEmitter:
    """Emits one runner invocation per step"""

    def generate_step(self, context: TestClassGenerationContext, statements: List[Statement],
                      step: Step, param_to_identifier: Optional[ParameterSubstitution] = None):
        """testRunner.Given("something", docString, table, "Given ")"""
        argument = step.argument
        if argument is not None and not isinstance(argument, (DocString, DataTable)):
            raise TestGeneratorError("The step argument must be a doc string or a data table.")

        arguments = [
            get_substituted_string(step.text, param_to_identifier),
            self._get_doc_string_arg_expression(
                argument if isinstance(argument, DocString) else None, param_to_identifier),
            self._get_table_arg_expression(
                context, argument if isinstance(argument, DataTable) else None, statements, param_to_identifier),
            primitive(step.keyword),
        ]
        statements.append(invoke(get_test_runner_expression(), step.step_keyword.value, *arguments))

    def _get_doc_string_arg_expression(self, doc_string: Optional[DocString],
                                       param_to_identifier: Optional[ParameterSubstitution]) -> Expression:
        return get_substituted_string(doc_string.content if doc_string else None, param_to_identifier)

    def _get_table_arg_expression(self, context: TestClassGenerationContext, table: Optional[DataTable],
                                  statements: List[Statement],
                                  param_to_identifier: Optional[ParameterSubstitution]) -> Expression:
        if table is None:
            return null_cast(TABLE_TYPE)

        table_var = variable(context.next_table_name())
        statements.append(VariableDeclarationStatement(
            TABLE_TYPE,
            table_var.name,
            ObjectCreateExpression(TABLE_TYPE, [get_string_array_expression(table.header, param_to_identifier)])))

        for row in table.body:
            statements.append(invoke(table_var, "AddRow", get_string_array_expression(row, param_to_identifier)))

        return table_var
