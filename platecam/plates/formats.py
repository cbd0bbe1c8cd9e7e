"""
Plate Format Table

Ordered plate-shape patterns for Indian registration plates.
First matching pattern wins; its groups become the canonical segments.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union


@dataclass(frozen=True)
class PlatePattern:
    """One row of the pattern table"""
    name: str
    regex: str  # matched with fullmatch against whitespace-free text
    segments: Tuple[str, ...]  # one name per capture group
    literals: Dict[str, str] = field(default_factory=dict)  # fixed segments, e.g. country code
    description: str = ""

    def __post_init__(self):
        compiled = re.compile(self.regex)
        if compiled.groups != len(self.segments):
            raise ValueError(
                f"Pattern {self.name} has {compiled.groups} groups "
                f"but {len(self.segments)} segment names"
            )
        object.__setattr__(self, "_compiled", compiled)

    def match(self, text: str) -> Optional[Dict[str, str]]:
        """Return segment name -> value, or None"""
        m = self._compiled.fullmatch(text)
        if m is None:
            return None
        segments = dict(self.literals)
        segments.update(zip(self.segments, m.groups()))
        return segments

    def render(self, segments: Dict[str, str]) -> str:
        order = list(self.literals) + list(self.segments)
        return " ".join(segments[name] for name in order if segments.get(name))


@dataclass(frozen=True)
class CanonicalPlate:
    """Successfully formatted plate"""
    text: str
    pattern: str
    segments: Dict[str, str]

    def __str__(self) -> str:
        return self.text


class _NoMatch:
    """Sentinel: text does not fit any known plate shape"""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = _NoMatch()

FormatResult = Union[CanonicalPlate, _NoMatch]


class PatternTable:
    """
    Ordered list of plate patterns, most specific first.

    Tables are immutable; extended() returns a new table.
    """

    def __init__(self, patterns: Iterable[PlatePattern]):
        self.patterns: Tuple[PlatePattern, ...] = tuple(patterns)
        names = [p.name for p in self.patterns]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate pattern names: {names}")

    def __iter__(self):
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.patterns]

    def extended(self, *patterns: PlatePattern, before: Optional[str] = None) -> "PatternTable":
        """
        Add patterns to the table.

        Args:
            patterns: Patterns to add
            before: Insert ahead of this pattern name (default: append)
        """
        rows = list(self.patterns)
        if before is None:
            rows.extend(patterns)
        else:
            index = self.names.index(before)
            rows[index:index] = patterns
        return PatternTable(rows)

    def without(self, *names: str) -> "PatternTable":
        return PatternTable(p for p in self.patterns if p.name not in names)


INDIA_PATTERNS = PatternTable([
    PlatePattern(
        name="country_prefixed",
        regex=r'[I1]ND([A-Z]{2})([0-9]{2})([A-Z]{1,2})([0-9]{4})',
        segments=("state", "district", "series", "number"),
        literals={"country": "IND"},
        description="IND HR 26 AB 1234",
    ),
    PlatePattern(
        name="standard",
        regex=r'([A-Z]{2})([0-9]{2})([A-Z]{1,2})([0-9]{4})',
        segments=("state", "district", "series", "number"),
        description="HR 26 AB 1234",
    ),
    PlatePattern(
        name="bharat_series",
        regex=r'([0-9]{2})(BH)([0-9]{4})([A-Z]{1,2})',
        segments=("year", "region", "number", "series"),
        description="22 BH 1234 AA",
    ),
    PlatePattern(
        name="legacy",
        regex=r'([A-Z]{2})([0-9]{2})([0-9]{4,6})',
        segments=("state", "district", "number"),
        description="HR 26 1234",
    ),
    PlatePattern(
        name="special",
        regex=r'([A-Z]{3})([0-9]{4})',
        segments=("series", "number"),
        description="DLA 1234",
    ),
])


_WHITESPACE = re.compile(r'\s+')


def format_plate(plate_text: str, table: PatternTable = INDIA_PATTERNS) -> FormatResult:
    """
    Format normalized plate text into its canonical segmented form.

    Args:
        plate_text: Normalized text (spaces are ignored)
        table: Ordered pattern table

    Returns:
        CanonicalPlate for the first matching pattern, else NO_MATCH
    """
    if not plate_text or not isinstance(plate_text, str):
        return NO_MATCH

    compact = _WHITESPACE.sub('', plate_text)

    for pattern in table:
        segments = pattern.match(compact)
        if segments is not None:
            return CanonicalPlate(
                text=pattern.render(segments),
                pattern=pattern.name,
                segments=segments,
            )

    return NO_MATCH


def is_valid_plate(plate_text: str, table: PatternTable = INDIA_PATTERNS) -> bool:
    """Check if plate text matches any known format"""
    return bool(format_plate(plate_text, table))
