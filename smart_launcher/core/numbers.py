"""Number words and result formatting shared by the expression parsers."""

import re
from typing import List, Optional

DECIMAL_PLACES = 2

UNITS = {
    "zero": 0,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
}

TEENS = {
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
    "fifteen": 15,
    "sixteen": 16,
    "seventeen": 17,
    "eighteen": 18,
    "nineteen": 19,
}

TENS = {
    "twenty": 20,
    "thirty": 30,
    "forty": 40,
    "fifty": 50,
    "sixty": 60,
    "seventy": 70,
    "eighty": 80,
    "ninety": 90,
}

SCALES = {"thousand": 1_000, "million": 1_000_000, "billion": 1_000_000_000}

NUMBER_LITERAL = re.compile(r"^[-+]?\d+(?:\.\d+)?$")
SIGN_WORDS = ("negative", "minus")


def is_number_word(token: str) -> bool:
    return (
        token in UNITS
        or token in TEENS
        or token in TENS
        or token in SCALES
        or token == "hundred"
        or bool(NUMBER_LITERAL.match(token))
    )


def _digits_after_point(tokens: List[str]) -> str:
    digits = []
    for token in tokens:
        if token in UNITS:
            digits.append(str(UNITS[token]))
        elif token.isdigit():
            digits.append(token)
        else:
            raise ValueError(f"Not a decimal digit: {token}")
    if not digits:
        raise ValueError("Missing digits after 'point'")
    return "".join(digits)


def _integer_words(tokens: List[str]) -> float:
    total = 0.0
    current = 0.0
    last_kind: Optional[str] = None

    for token in tokens:
        if token == "and" and last_kind is not None:
            continue
        if token in ("a", "an") and last_kind is None:
            current, last_kind = 1, "article"
            continue

        if NUMBER_LITERAL.match(token):
            kind, value = "digit", float(token)
        elif token in UNITS:
            kind, value = "unit", UNITS[token]
        elif token in TEENS:
            kind, value = "teen", TEENS[token]
        elif token in TENS:
            kind, value = "tens", TENS[token]
        elif token == "hundred":
            current = (current or 1) * 100
            last_kind = "hundred"
            continue
        elif token in SCALES:
            total += (current or 1) * SCALES[token]
            current = 0
            last_kind = "scale"
            continue
        else:
            raise ValueError(f"Not a number word: {token}")

        # "five seven" or "twenty thirty" are not numbers
        if last_kind in ("digit", "unit", "teen", "article") or (
            kind in ("tens", "teen", "digit") and last_kind == "tens"
        ):
            raise ValueError(f"Unexpected number word: {token}")

        current += value
        last_kind = kind

    if last_kind is None:
        raise ValueError("Empty number phrase")
    return total + current


def words_to_number(text: str) -> float:
    """Convert an English cardinal phrase or a digit literal into a float.

    Supports compound words ("one hundred and twenty-three"), scales up to
    billions, a leading "negative"/"minus" sign and "point" decimals
    ("three point one four"). Raises ValueError for anything else.
    """
    text = text.strip().lower()
    if NUMBER_LITERAL.match(text):
        return float(text)

    text = re.sub(r"(?<=[a-z])-(?=[a-z])", " ", text)
    tokens = text.split()
    if not tokens:
        raise ValueError("Empty number phrase")

    sign = 1
    if tokens[0] in SIGN_WORDS:
        sign = -1
        tokens = tokens[1:]

    if "point" in tokens:
        index = tokens.index("point")
        whole = _integer_words(tokens[:index]) if index else 0.0
        fraction = float("0." + _digits_after_point(tokens[index + 1 :]))
        return sign * (whole + fraction)

    return sign * _integer_words(tokens)


def parse_number(text: str) -> Optional[float]:
    """Like words_to_number but returns None instead of raising."""
    try:
        return words_to_number(text)
    except ValueError:
        return None


def format_number(value: float) -> str:
    """Round to DECIMAL_PLACES and drop a zero fraction ("3", "0.5", "2.67")."""
    text = f"{round(value, DECIMAL_PLACES):.{DECIMAL_PLACES}f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text
