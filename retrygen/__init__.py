"""Generates retry-aware unit test classes from Gherkin features"""

__version__ = "1.0.0"
