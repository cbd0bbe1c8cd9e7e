"""
License Plate Normalization

Cleans raw OCR text into a comparable plate string.

Confusion correction is global: a plate whose series genuinely contains
O, I (or Z, S in strict mode) is rewritten too. Callers that need the
uncorrected text pass correct_confusions=False.
"""

import re
from typing import List, Tuple


# Applied in order, every occurrence
CONFUSION_CORRECTIONS: List[Tuple[str, str]] = [
    ('O', '0'),
    ('I', '1'),
]

# Extra substitutions for strict mode
STRICT_CONFUSION_CORRECTIONS: List[Tuple[str, str]] = [
    ('Z', '2'),
    ('S', '5'),
]

_NON_PLATE_CHARS = re.compile(r'[^A-Z0-9]')
_NON_PLATE_CHARS_KEEP_SPACE = re.compile(r'[^A-Z0-9\s]')
_WHITESPACE_RUN = re.compile(r'\s+')


def normalize_plate(
    plate_text: str,
    preserve_spaces: bool = False,
    strict: bool = False,
    correct_confusions: bool = True,
) -> str:
    """
    Normalize license plate text.

    Steps:
    1. Convert to uppercase
    2. Remove everything outside A-Z0-9 (whitespace kept and collapsed
       to single spaces when preserve_spaces is set)
    3. Apply confusion corrections (O->0, I->1; strict adds Z->2, S->5)

    Args:
        plate_text: Raw plate text from OCR
        preserve_spaces: Keep single spaces between words for segmentation
        strict: Also apply the strict substitutions
        correct_confusions: Apply the substitution table at all

    Returns:
        Normalized plate string ("" for empty or non-string input)
    """
    if not plate_text or not isinstance(plate_text, str):
        return ""

    plate = plate_text.upper()

    if preserve_spaces:
        plate = _NON_PLATE_CHARS_KEEP_SPACE.sub('', plate)
        plate = _WHITESPACE_RUN.sub(' ', plate).strip()
    else:
        plate = _NON_PLATE_CHARS.sub('', plate)

    if correct_confusions:
        plate = apply_confusion_corrections(plate, strict=strict)

    return plate


def apply_confusion_corrections(plate_text: str, strict: bool = False) -> str:
    """Apply the fixed substitution table to every character"""
    table = CONFUSION_CORRECTIONS
    if strict:
        table = CONFUSION_CORRECTIONS + STRICT_CONFUSION_CORRECTIONS

    for wrong, right in table:
        plate_text = plate_text.replace(wrong, right)

    return plate_text


def is_plate_charset(plate_text: str, preserve_spaces: bool = False) -> bool:
    """True if text only holds characters a normalized plate may contain"""
    if not isinstance(plate_text, str):
        return False
    pattern = r'[A-Z0-9 ]*' if preserve_spaces else r'[A-Z0-9]*'
    return re.fullmatch(pattern, plate_text) is not None


def plates_match(plate1: str, plate2: str, max_distance: int = 1) -> bool:
    """
    Check if two plates are similar (fuzzy match).

    Both sides are normalized first, so spacing and case never count.
    """
    p1 = normalize_plate(plate1)
    p2 = normalize_plate(plate2)

    if not p1 or not p2:
        return False

    return levenshtein_distance(p1, p2) <= max_distance


def levenshtein_distance(s1: str, s2: str) -> int:
    """Number of single-character inserts, deletes or substitutions between two strings"""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    # costs[j] is the distance between the current prefix of s1 and s2[:j]
    costs = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        diagonal, costs[0] = costs[0], i
        for j, c2 in enumerate(s2, start=1):
            substitution = diagonal + (c1 != c2)
            diagonal = costs[j]
            costs[j] = min(costs[j] + 1, costs[j - 1] + 1, substitution)

    return costs[-1]
