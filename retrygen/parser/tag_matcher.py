"""Tag matching helpers used to find generation directives in tags"""
from typing import Iterable, List, Optional, Union

from retrygen.parser.feature_parser import Tag

TagLike = Union[str, Tag]


def _tag_names(tags: Iterable[TagLike]) -> List[str]:
    names = []
    for tag in tags or ():
        name = tag.name if isinstance(tag, Tag) else str(tag)
        names.append(name[1:] if name.startswith('@') else name)
    return names


class TagFilterMatcher:
    """Case-insensitive matching of tag names and ``name:value`` tags"""

    def match(self, expected_tag: str, tags: Iterable[TagLike]) -> bool:
        expected = expected_tag.lstrip('@').lower()
        return any(name.lower() == expected for name in _tag_names(tags))

    def match_directive(self, expected_tag: str, tags: Iterable[TagLike]) -> bool:
        """True for a bare ``expected_tag`` or an ``expected_tag:value`` tag"""
        return self.match(expected_tag, tags) or bool(self.get_tag_values(expected_tag, tags))

    def get_tag_values(self, expected_tag: str, tags: Iterable[TagLike]) -> List[str]:
        """Values of every ``expected_tag:value`` tag, in tag order"""
        prefix = expected_tag.lstrip('@').lower() + ':'
        return [name[len(prefix):] for name in _tag_names(tags) if name.lower().startswith(prefix)]

    def get_tag_value(self, expected_tag: str, tags: Iterable[TagLike]) -> Optional[str]:
        """Value of the first ``expected_tag:value`` tag, or None"""
        values = self.get_tag_values(expected_tag, tags)
        return values[0] if values else None
