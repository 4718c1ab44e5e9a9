"""Wires a feature generator from configuration"""
from typing import Dict, Optional, Type

from retrygen.codedom.helper import CodeDomHelper
from retrygen.core.config_manager import GeneratorConfiguration, GeneratorKind
from retrygen.core.exceptions import ConfigurationError
from retrygen.generator.decorators import DecoratorRegistry, IgnoreDecorator, RetryTagDecorator
from retrygen.generator.feature_generator import UnitTestFeatureGenerator
from retrygen.generator.retry import RetryWrapper
from retrygen.generator.unit_test_provider import UnitTestGeneratorProvider, UnittestGeneratorProvider
from retrygen.parser.tag_matcher import TagFilterMatcher
from retrygen.utils.logger import setup_logger

logger = setup_logger(__name__)

PROVIDERS: Dict[str, Type[UnitTestGeneratorProvider]] = {
    'unittest': UnittestGeneratorProvider,
}


def create_unit_test_provider(name: str) -> UnitTestGeneratorProvider:
    try:
        return PROVIDERS[name.lower()]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown unit test provider '{name}' (available: {', '.join(sorted(PROVIDERS))})") from None


def create_feature_generator(configuration: Optional[GeneratorConfiguration] = None,
                             provider: Optional[UnitTestGeneratorProvider] = None,
                             tag_filter_matcher: Optional[TagFilterMatcher] = None) -> UnitTestFeatureGenerator:
    """Build the generator selected by ``configuration.kind``"""
    configuration = configuration or GeneratorConfiguration()
    provider = provider or create_unit_test_provider(configuration.unit_test_provider)
    tag_filter_matcher = tag_filter_matcher or TagFilterMatcher()

    decorators = [IgnoreDecorator(tag_filter_matcher)]
    retry_wrapper = None
    if configuration.kind is GeneratorKind.RETRY:
        decorators.append(RetryTagDecorator(tag_filter_matcher))
        retry_wrapper = RetryWrapper(tag_filter_matcher)

    logger.debug(f"Using {configuration.kind.value} generator with {type(provider).__name__}")
    return UnitTestFeatureGenerator(
        test_generator_provider=provider,
        code_dom_helper=CodeDomHelper(configuration.target_language),
        configuration=configuration,
        decorator_registry=DecoratorRegistry(decorators),
        tag_filter_matcher=tag_filter_matcher,
        retry_wrapper=retry_wrapper,
    )
