"""
Feature parser
Parses Gherkin feature files into the feature model consumed by the generator
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from retrygen.core.exceptions import FeatureParserError
from retrygen.utils.logger import setup_logger

logger = setup_logger(__name__)


class StepKeyword(Enum):
    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"


@dataclass(frozen=True)
class Tag:
    name: str
    line_number: int = field(default=0, compare=False)


@dataclass
class DocString:
    content: str
    content_type: Optional[str] = None


@dataclass
class DataTable:
    rows: List[List[str]]

    @property
    def header(self) -> List[str]:
        return self.rows[0]

    @property
    def body(self) -> List[List[str]]:
        return self.rows[1:]


StepArgument = Union[DocString, DataTable]


@dataclass
class Step:
    keyword: str
    step_keyword: StepKeyword
    text: str
    argument: Optional[StepArgument] = None
    line_number: int = 0


@dataclass
class Examples:
    name: str = ""
    tags: List[Tag] = field(default_factory=list)
    header: Optional[List[str]] = None
    rows: List[List[str]] = field(default_factory=list)
    line_number: int = 0


@dataclass
class Scenario:
    name: str
    steps: List[Step] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)
    description: str = ""
    examples: List[Examples] = field(default_factory=list)
    line_number: int = 0

    @property
    def is_outline(self) -> bool:
        return bool(self.examples)


@dataclass
class Background:
    name: str = ""
    steps: List[Step] = field(default_factory=list)
    description: str = ""
    line_number: int = 0


@dataclass
class Feature:
    name: str
    description: str = ""
    scenarios: List[Scenario] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)
    background: Optional[Background] = None
    language: str = "en"
    file_path: str = ""


_HEADER_RE = re.compile(
    r'^(Feature|Background|Scenario Outline|Scenario Template|Scenarios|Scenario|Examples|Example)\s*:\s*(.*)$')
_STEP_RE = re.compile(r'^(Given|When|Then|And|But|\*)\s+(.*)$')
_LANGUAGE_RE = re.compile(r'^#\s*language\s*:\s*(\S+)\s*$')
_DOC_STRING_DELIMITERS = ('"""', '```')


class FeatureParser:
    """Parse Gherkin feature files"""

    def __init__(self, features_dir: str = "features"):
        self.features_dir = Path(features_dir)

    def parse_features(self, tags: List[str] = None) -> List[Feature]:
        """Parse all feature files in directory"""
        features = []
        wanted = {tag.lstrip('@').lower() for tag in tags} if tags else None

        for feature_file in sorted(self.features_dir.glob("**/*.feature")):
            feature = self.parse_file(feature_file)

            if wanted:
                feature_tags = {tag.name.lower() for tag in feature.tags}
                feature.scenarios = [
                    scenario for scenario in feature.scenarios
                    if wanted & (feature_tags | {tag.name.lower() for tag in scenario.tags})
                ]
                if not feature.scenarios:
                    logger.debug(f"No scenario of {feature_file} matches tags {sorted(wanted)}")
                    continue

            features.append(feature)

        logger.info(f"Parsed {len(features)} feature(s) from {self.features_dir}")
        return features

    def parse_file(self, file_path: Union[str, Path]) -> Feature:
        """Parse a single feature file"""
        with open(file_path, 'r', encoding='utf-8') as f:
            return self.parse(f.read(), str(file_path))

    def parse(self, text: str, file_path: str = "") -> Feature:
        """Parse feature text"""
        return _FeatureBuilder(file_path).build(text.splitlines())


class _FeatureBuilder:
    """Line-by-line state machine for one feature file"""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.feature: Optional[Feature] = None
        self.language = "en"
        self.pending_tags: List[Tag] = []
        self.current: Optional[Union[Scenario, Background]] = None
        self.current_step: Optional[Step] = None
        self.current_examples: Optional[Examples] = None
        self.description_target = None
        self.description_lines: List[str] = []

        # Doc string state
        self.doc_delimiter: Optional[str] = None
        self.doc_indent = 0
        self.doc_content_type: Optional[str] = None
        self.doc_lines: List[str] = []
        self.doc_start_line = 0

    def error(self, message: str, line_number: int = 0) -> FeatureParserError:
        return FeatureParserError(message, self.file_path, line_number)

    def build(self, lines: List[str]) -> Feature:
        for line_num, raw in enumerate(lines, 1):
            if self.doc_delimiter:
                self._doc_string_line(raw, line_num)
                continue

            line = raw.strip()

            # Skip empty lines and comments
            if not line:
                continue
            if line.startswith('#'):
                match = _LANGUAGE_RE.match(line)
                if match and self.feature is None:
                    self.language = match.group(1)
                continue

            if line.startswith('@'):
                self._flush_description()
                self._tags(line, line_num)
                continue

            header = _HEADER_RE.match(line)
            if header:
                self._flush_description()
                self._header(header.group(1), header.group(2).strip(), line_num)
                continue

            step = _STEP_RE.match(line)
            if step:
                self._flush_description()
                self._step(step.group(1), step.group(2).strip(), line_num)
                continue

            if line.startswith('|'):
                self._flush_description()
                self._table_row(line, line_num)
                continue

            if line.startswith(_DOC_STRING_DELIMITERS):
                self._flush_description()
                self._start_doc_string(raw, line, line_num)
                continue

            if self.description_target is not None:
                self.description_lines.append(line)
                continue

            raise self.error(f"Unexpected line: {line}", line_num)

        if self.doc_delimiter:
            raise self.error("Doc string is not terminated", self.doc_start_line)
        self._flush_description()

        if self.feature is None:
            raise self.error("No 'Feature:' found")
        return self.feature

    def _tags(self, line: str, line_num: int):
        for token in line.split():
            if token.startswith('#'):
                break
            if not token.startswith('@') or len(token) == 1:
                raise self.error(f"Invalid tag: {token}", line_num)
            self.pending_tags.append(Tag(token[1:], line_num))

    def _take_tags(self) -> List[Tag]:
        tags, self.pending_tags = self.pending_tags, []
        return tags

    def _header(self, keyword: str, name: str, line_num: int):
        self.current_step = None

        if keyword == 'Feature':
            if self.feature is not None:
                raise self.error("Only one 'Feature:' is allowed per file", line_num)
            self.feature = Feature(name=name, tags=self._take_tags(),
                                   language=self.language, file_path=self.file_path)
            self.description_target = self.feature
            return

        if self.feature is None:
            raise self.error(f"'{keyword}:' found before 'Feature:'", line_num)

        if keyword == 'Background':
            if self.feature.background is not None or self.feature.scenarios:
                raise self.error("'Background:' must come once, before the scenarios", line_num)
            self.current = self.feature.background = Background(name=name, line_number=line_num)
            self.current_examples = None
            self.description_target = self.current
            self._take_tags()

        elif keyword in ('Examples', 'Scenarios'):
            if not isinstance(self.current, Scenario):
                raise self.error(f"'{keyword}:' must follow a scenario outline", line_num)
            self.current_examples = Examples(name=name, tags=self._take_tags(), line_number=line_num)
            self.current.examples.append(self.current_examples)
            self.description_target = self.current_examples

        else:
            scenario = Scenario(name=name, tags=self._take_tags(), line_number=line_num)
            self.feature.scenarios.append(scenario)
            self.current = scenario
            self.current_examples = None
            self.description_target = scenario

    def _step(self, keyword: str, text: str, line_num: int):
        if self.current is None or self.current_examples is not None:
            raise self.error("Steps must belong to a background or a scenario", line_num)

        if keyword == '*':
            step_keyword = StepKeyword.AND if self.current.steps else StepKeyword.GIVEN
        else:
            step_keyword = StepKeyword(keyword)

        self.current_step = Step(keyword=f"{keyword} ", step_keyword=step_keyword,
                                 text=text, line_number=line_num)
        self.current.steps.append(self.current_step)
        self.description_target = None

    def _table_row(self, line: str, line_num: int):
        cells = self._split_row(line, line_num)

        if self.current_examples is not None:
            examples = self.current_examples
            if examples.header is None:
                examples.header = cells
            elif len(cells) != len(examples.header):
                raise self.error("Inconsistent cell count within the examples table", line_num)
            else:
                examples.rows.append(cells)
            return

        step = self.current_step
        if step is None:
            raise self.error("A table must follow a step or an examples header", line_num)
        if step.argument is None:
            step.argument = DataTable(rows=[cells])
        elif isinstance(step.argument, DataTable):
            if len(cells) != len(step.argument.header):
                raise self.error("Inconsistent cell count within the table", line_num)
            step.argument.rows.append(cells)
        else:
            raise self.error("A step cannot have both a doc string and a table", line_num)

    def _split_row(self, line: str, line_num: int) -> List[str]:
        cells = []
        current = []
        chars = iter(line[1:])

        for char in chars:
            if char == '\\':
                escaped = next(chars, '')
                if escaped == 'n':
                    current.append('\n')
                elif escaped in ('|', '\\'):
                    current.append(escaped)
                else:
                    current.append(char + escaped)
            elif char == '|':
                cells.append(''.join(current).strip())
                current = []
            else:
                current.append(char)

        if ''.join(current).strip():
            raise self.error("Table row must end with '|'", line_num)
        return cells

    def _start_doc_string(self, raw: str, line: str, line_num: int):
        step = self.current_step
        if step is None or step.argument is not None:
            raise self.error("A doc string must directly follow a step", line_num)

        self.doc_delimiter = line[:3]
        self.doc_content_type = line[3:].strip() or None
        self.doc_indent = len(raw) - len(raw.lstrip())
        self.doc_lines = []
        self.doc_start_line = line_num

    def _doc_string_line(self, raw: str, line_num: int):
        if raw.strip() == self.doc_delimiter:
            self.current_step.argument = DocString('\n'.join(self.doc_lines), self.doc_content_type)
            self.doc_delimiter = None
            return

        # Strip the indentation of the opening delimiter, but never content characters
        prefix = raw[:self.doc_indent]
        text = raw[self.doc_indent:] if not prefix.strip() else raw.lstrip()
        escaped_delimiter = '\\' + '\\'.join(self.doc_delimiter)
        self.doc_lines.append(text.replace(escaped_delimiter, self.doc_delimiter))

    def _flush_description(self):
        if self.description_target is not None and self.description_lines:
            if hasattr(self.description_target, 'description'):
                self.description_target.description = '\n'.join(self.description_lines)
        self.description_lines = []
        self.description_target = None
