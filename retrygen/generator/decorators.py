"""
Tag decorators
Policy objects that turn tags into class/method metadata or hide them from categories
"""

from typing import Iterable, List, Optional

from retrygen.codedom.nodes import MemberMethod
from retrygen.core.generation_context import TestClassGenerationContext
from retrygen.generator.tags import RETRY_EXCEPT_TAG, RETRY_TAG
from retrygen.parser.feature_parser import Tag
from retrygen.parser.tag_matcher import TagFilterMatcher
from retrygen.utils.logger import setup_logger

logger = setup_logger(__name__)


class PriorityValues:
    HIGHEST = 0
    HIGH = 10
    NORMAL = 100
    LOW = 1000
    LOWEST = 10000


class TagDecorator:
    """Base class; lower priority values run first"""

    priority = PriorityValues.NORMAL
    remove_processed_tags = False
    apply_other_decorators_for_processed_tags = True

    def can_decorate_from(self, tag_name: str, context: TestClassGenerationContext,
                          method: Optional[MemberMethod] = None) -> bool:
        raise NotImplementedError

    def decorate_from(self, tag_name: str, context: TestClassGenerationContext,
                      method: Optional[MemberMethod] = None):
        raise NotImplementedError


class RetryTagDecorator(TagDecorator):
    """Keeps the retry directives out of the test categories"""

    priority = PriorityValues.HIGH
    remove_processed_tags = True
    apply_other_decorators_for_processed_tags = False

    def __init__(self, tag_filter_matcher: TagFilterMatcher):
        self.tag_filter_matcher = tag_filter_matcher

    def can_decorate_from(self, tag_name, context, method=None) -> bool:
        tag_names = [tag_name]
        return (self.tag_filter_matcher.match_directive(RETRY_TAG, tag_names)
                or self.tag_filter_matcher.match_directive(RETRY_EXCEPT_TAG, tag_names))

    def decorate_from(self, tag_name, context, method=None):
        # Retry tags only change how the test body is generated
        pass


class IgnoreDecorator(TagDecorator):
    """@ignore marks the class or method as skipped by the test framework"""

    IGNORE_TAG = "ignore"

    def __init__(self, tag_filter_matcher: TagFilterMatcher):
        self.tag_filter_matcher = tag_filter_matcher

    def can_decorate_from(self, tag_name, context, method=None) -> bool:
        return self.tag_filter_matcher.match(self.IGNORE_TAG, [tag_name])

    def decorate_from(self, tag_name, context, method=None):
        provider = context.unit_test_generator_provider
        if method is None:
            provider.set_test_class_ignore(context)
        else:
            provider.set_test_method_ignore(context, method)


class DecoratorRegistry:
    """Applies decorators to tags and reports the tags left over as categories"""

    def __init__(self, decorators: Iterable[TagDecorator] = ()):
        self.decorators: List[TagDecorator] = sorted(decorators, key=lambda d: d.priority)

    def decorate_test_class(self, context: TestClassGenerationContext,
                            tags: Iterable[Tag]) -> List[str]:
        return self._decorate(context, None, tags)

    def decorate_test_method(self, context: TestClassGenerationContext, method: MemberMethod,
                             tags: Iterable[Tag]) -> List[str]:
        return self._decorate(context, method, tags)

    def _decorate(self, context, method, tags) -> List[str]:
        categories = []

        for tag in tags or ():
            tag_name = tag.name if isinstance(tag, Tag) else tag
            remove_tag = False

            for decorator in self.decorators:
                if not decorator.can_decorate_from(tag_name, context, method):
                    continue

                decorator.decorate_from(tag_name, context, method)
                remove_tag = remove_tag or decorator.remove_processed_tags
                if not decorator.apply_other_decorators_for_processed_tags:
                    break

            if remove_tag:
                logger.debug(f"Tag '{tag_name}' removed from categories")
            else:
                categories.append(tag_name)

        return categories
