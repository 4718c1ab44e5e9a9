#!/usr/bin/env python3
"""
retrygen - Gherkin to unit test class generator
Main entry point for turning feature files into retry-aware test modules
"""

import sys
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv

from retrygen import __version__
from retrygen.codedom.python_renderer import PythonRenderer
from retrygen.core.config_manager import ConfigManager, GeneratorKind
from retrygen.core.exceptions import RetryGenError
from retrygen.generator.factory import create_feature_generator
from retrygen.parser.feature_parser import FeatureParser
from retrygen.utils.helpers import sanitize_filename, to_identifier
from retrygen.utils.logger import setup_logger

# Initialize logger
logger = setup_logger(__name__)


@click.command()
@click.option('--features', '-f', default='features', help='Path to features directory')
@click.option('--output', '-o', default=None, help='Directory for the generated modules')
@click.option('--config', '-c', default=None, help='Path to config file')
@click.option('--env', '-e', default=None, help='Environment config to merge (config/environments/<env>.yaml)')
@click.option('--tags', '-t', multiple=True, help='Only generate scenarios carrying one of these tags')
@click.option('--namespace', '-n', default=None, help='Namespace of the generated classes')
@click.option('--no-retry', is_flag=True, help='Ignore @Retry tags and generate plain test methods')
@click.option('--stdout', 'to_stdout', is_flag=True, help='Print generated code instead of writing files')
@click.version_option(__version__)
def main(features, output, config, env, tags, namespace, no_retry, to_stdout):
    """
    Generate unit test modules from Gherkin feature files

    Examples:
        # Generate every feature under ./features into ./generated
        python run.py --features features --output generated

        # Only smoke scenarios, printed to the console
        python run.py --tags @smoke --stdout
    """

    try:
        load_dotenv()
        logger.info(f"Starting retrygen v{__version__}")

        config_manager = ConfigManager(config, env)
        config_manager.load_config()
        configuration = config_manager.get_generator_configuration()
        if no_retry:
            configuration = replace(configuration, kind=GeneratorKind.UNIT_TEST)

        parsed_features = FeatureParser(features).parse_features(list(tags))
        if not parsed_features:
            logger.warning("No scenarios found matching the criteria")
            return

        generator = create_feature_generator(configuration)
        renderer = PythonRenderer()
        output_dir = Path(output or config_manager.get('output.directory', 'generated'))

        for feature in parsed_features:
            code_namespace = generator.generate_unit_test_fixture(feature, target_namespace=namespace)
            source = renderer.render(code_namespace)

            if to_stdout:
                click.echo(source)
                continue

            output_dir.mkdir(parents=True, exist_ok=True)
            module_path = output_dir / f"test_{sanitize_filename(to_identifier(feature.name))}.py"
            module_path.write_text(source, encoding='utf-8')
            logger.info(f"Generated {module_path}")

        logger.info(f"Generated {len(parsed_features)} feature(s)")

    except (RetryGenError, OSError) as e:
        logger.error(f"Generation failed: {str(e)}")
        sys.exit(1)


if __name__ == '__main__':
    main()
