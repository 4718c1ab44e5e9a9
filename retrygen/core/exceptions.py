"""Errors raised by retrygen"""


class RetryGenError(Exception):
    """Base class for all retrygen errors"""


class TestGeneratorError(RetryGenError):
    """A feature cannot be turned into a test class"""

    __test__ = False


class FeatureParserError(RetryGenError):
    """A feature file is not valid Gherkin"""

    def __init__(self, message: str, file_path: str = "", line_number: int = 0):
        self.file_path = file_path
        self.line_number = line_number
        location = f"{file_path or '<text>'}:{line_number}" if line_number else (file_path or '<text>')
        super().__init__(f"{location}: {message}")


class ConfigurationError(RetryGenError):
    """Invalid generator configuration"""
