"""Helper utilities"""
import re
from typing import Dict, Any

_NON_WORD_RE = re.compile(r'\W+', re.UNICODE)


def sanitize_filename(name: str) -> str:
    """Sanitize string for use as filename"""
    return re.sub(r'[<>:"/\\|?*\s]', '_', name.strip()).lower()


def deep_get(dictionary: Dict, keys: str, default: Any = None) -> Any:
    """Get nested dictionary value using dot notation"""
    value = dictionary

    for key in keys.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def to_identifier(text: str) -> str:
    """Convert free text to a PascalCase identifier ("my scenario" -> "MyScenario")"""
    words = [word for word in _NON_WORD_RE.split(text) if word]
    identifier = ''.join(word[0].upper() + word[1:] for word in words)

    if not identifier:
        return '_'
    if identifier[0].isdigit():
        identifier = '_' + identifier
    return identifier


def to_identifier_camel_case(text: str) -> str:
    """Convert free text to a camelCase identifier ("user name" -> "userName")"""
    identifier = to_identifier(text)
    if identifier.startswith('_'):
        return identifier
    return identifier[0].lower() + identifier[1:]
