"""Retry directives carried by scenario and feature tags"""
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from retrygen.parser.feature_parser import Feature, Scenario
from retrygen.parser.tag_matcher import TagFilterMatcher
from retrygen.utils.logger import setup_logger

logger = setup_logger(__name__)

RETRY_TAG = "Retry"
RETRY_EXCEPT_TAG = "RetryExcept"

T = TypeVar('T')


@dataclass(frozen=True)
class RetryDirective:
    retry_count: int
    except_exception: Optional[str] = None


def parse_retry_count(value: str) -> Optional[int]:
    """Non-negative integer, or None when the value is not one"""
    try:
        count = int(value.strip())
    except ValueError:
        return None
    return count if count >= 0 else None


def parse_exception_name(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


def get_tag_value(matcher: TagFilterMatcher, tag_name: str, scenario: Scenario,
                  feature: Optional[Feature], parser: Callable[[str], Optional[T]]) -> Optional[T]:
    """
    Look up ``tag_name:value`` on the scenario, then on the feature.

    Every value of a scope is tried in tag order; the first one that parses
    wins. A scope with no parsable value falls through to the next one.
    """
    scopes = [('scenario', scenario.name, scenario.tags)]
    if feature is not None:
        scopes.append(('feature', feature.name, feature.tags))

    for scope, owner, tags in scopes:
        for raw_value in matcher.get_tag_values(tag_name, tags):
            value = parser(raw_value)
            if value is not None:
                return value
            logger.warning(f"Ignoring @{tag_name}:{raw_value} on {scope} '{owner}': value cannot be parsed")

    return None


def resolve_retry_directive(matcher: TagFilterMatcher, scenario: Scenario,
                            feature: Optional[Feature]) -> Optional[RetryDirective]:
    retry_count = get_tag_value(matcher, RETRY_TAG, scenario, feature, parse_retry_count)
    if retry_count is None:
        return None

    except_exception = get_tag_value(matcher, RETRY_EXCEPT_TAG, scenario, feature, parse_exception_name)
    logger.debug(f"Scenario '{scenario.name}' retries {retry_count} time(s)"
                 + (f", except on {except_exception}" if except_exception else ""))
    return RetryDirective(retry_count, except_exception)
