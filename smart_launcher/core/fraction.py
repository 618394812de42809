"""Fractions written in words: "one half", "two thirds of ninety"."""

import logging
import re
from typing import List

from smart_launcher.core.numbers import format_number, words_to_number
from smart_launcher.models.schemas import ExecutableCommand

logger = logging.getLogger(__name__)

FRACTION_WORDS = {
    "half": 2,
    "halves": 2,
    "third": 3,
    "thirds": 3,
    "quarter": 4,
    "quarters": 4,
    "fourth": 4,
    "fourths": 4,
    "fifth": 5,
    "fifths": 5,
    "sixth": 6,
    "sixths": 6,
    "seventh": 7,
    "sevenths": 7,
    "eighth": 8,
    "eighths": 8,
    "ninth": 9,
    "ninths": 9,
    "tenth": 10,
    "tenths": 10,
}

FRACTION_PATTERN = re.compile(
    r"^(?:(?P<numerator>.+?)\s+)?(?P<fraction>[a-z]+)(?:\s+of\s+(?P<quantity>.+))?$"
)


def parse_fraction(query: str) -> List[ExecutableCommand]:
    """Resolve "<numerator> <fraction word> [of <number>]" into a decimal."""
    text = re.sub(r"(?<=[a-z])-(?=[a-z])", " ", query.strip().lower())
    match = FRACTION_PATTERN.match(text)
    if not match or match.group("fraction") not in FRACTION_WORDS:
        return []

    try:
        numerator = (
            words_to_number(match.group("numerator")) if match.group("numerator") else 1
        )
        value = numerator / FRACTION_WORDS[match.group("fraction")]
        if match.group("quantity"):
            value *= words_to_number(match.group("quantity"))
    except ValueError as e:
        logger.debug(f"Not a fraction {query!r}: {e}")
        return []

    return [ExecutableCommand.formula_result(format_number(value))]
