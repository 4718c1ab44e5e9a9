"""
Retry wrapper
Splits a scenario test method into an inner body and an outer retry loop
"""

from typing import Optional

from retrygen.codedom.helper import (
    EXCEPTION_TYPE,
    INT_TYPE,
    create_method,
    invoke,
    primitive,
    variable,
)
from retrygen.codedom.nodes import (
    AssignStatement,
    BinaryOperator,
    BinaryOperatorExpression,
    CatchClause,
    ConditionStatement,
    ExpressionStatement,
    IterationStatement,
    MemberMethod,
    MethodInvokeExpression,
    MethodReturnStatement,
    ParameterDeclaration,
    ThisReferenceExpression,
    ThrowExceptionStatement,
    TryCatchStatement,
    TypeReference,
    VariableDeclarationStatement,
)
from retrygen.core.generation_context import TestClassGenerationContext
from retrygen.generator.steps import get_test_runner_expression
from retrygen.generator.tags import RetryDirective, resolve_retry_directive
from retrygen.parser.feature_parser import Feature, Scenario
from retrygen.parser.tag_matcher import TagFilterMatcher
from retrygen.utils.logger import setup_logger

logger = setup_logger(__name__)

INTERNAL_METHOD_SUFFIX = "Internal"
LAST_EXCEPTION_VARIABLE = "lastException"
LOOP_VARIABLE = "i"
CAUGHT_EXCEPTION_VARIABLE = "exc"


class RetryWrapper:
    """Builds the retry loop for scenarios tagged with @Retry:N"""

    def __init__(self, tag_filter_matcher: TagFilterMatcher):
        self.tag_filter_matcher = tag_filter_matcher

    def resolve(self, scenario: Scenario, feature: Optional[Feature]) -> Optional[RetryDirective]:
        return resolve_retry_directive(self.tag_filter_matcher, scenario, feature)

    def wrap(self, context: TestClassGenerationContext, test_method: MemberMethod,
             directive: RetryDirective) -> MemberMethod:
        """
        Fill ``test_method`` with the retry loop and return the inner method
        that receives the scenario body.

        ``test_method`` keeps its name, attributes and categories; the inner
        method is ``<name>Internal`` with the same parameters.
        """
        inner = create_method(context.test_class, test_method.name + INTERNAL_METHOD_SUFFIX)
        inner.parameters = [ParameterDeclaration(p.type, p.name) for p in test_method.parameters]

        retry_count = directive.retry_count
        loop_var = variable(LOOP_VARIABLE)
        last_exception = variable(LAST_EXCEPTION_VARIABLE)

        catch_clauses = []
        if directive.except_exception:
            catch_clauses.append(CatchClause(
                CAUGHT_EXCEPTION_VARIABLE,
                TypeReference(directive.except_exception),
                [ThrowExceptionStatement()]))
        catch_clauses.append(CatchClause(
            CAUGHT_EXCEPTION_VARIABLE,
            EXCEPTION_TYPE,
            [AssignStatement(last_exception, variable(CAUGHT_EXCEPTION_VARIABLE))]))

        call_inner = ExpressionStatement(MethodInvokeExpression(
            ThisReferenceExpression(),
            inner.name,
            [variable(p.name) for p in inner.parameters]))

        # for (int i = 0; i <= retryCount; i = i + 1)
        loop = IterationStatement(
            init_statement=VariableDeclarationStatement(INT_TYPE, LOOP_VARIABLE, primitive(0)),
            test_expression=BinaryOperatorExpression(
                loop_var, BinaryOperator.LESS_THAN_OR_EQUAL, primitive(retry_count)),
            increment_statement=AssignStatement(
                loop_var, BinaryOperatorExpression(loop_var, BinaryOperator.ADD, primitive(1))),
            statements=[
                TryCatchStatement(
                    try_statements=[call_inner, MethodReturnStatement()],
                    catch_clauses=catch_clauses),
                # Close the failed attempt's reporting cycle unless it was the last one
                ConditionStatement(
                    BinaryOperatorExpression(
                        BinaryOperatorExpression(loop_var, BinaryOperator.ADD, primitive(1)),
                        BinaryOperator.LESS_THAN_OR_EQUAL,
                        primitive(retry_count)),
                    [invoke(get_test_runner_expression(), "OnScenarioEnd")]),
            ])

        test_method.statements.extend([
            VariableDeclarationStatement(EXCEPTION_TYPE, LAST_EXCEPTION_VARIABLE, primitive(None)),
            loop,
            ConditionStatement(
                BinaryOperatorExpression(last_exception, BinaryOperator.IDENTITY_INEQUALITY, primitive(None)),
                [ThrowExceptionStatement(last_exception)]),
        ])

        logger.debug(f"Wrapped {test_method.name} in a retry loop of {retry_count + 1} attempt(s)")
        return inner
