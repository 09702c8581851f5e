"""Answer text normalization for speech and typed comparisons."""

import re

# Spoken digits the recognizer tends to emit in place of number words
NUMBER_WORDS: dict[str, str] = {
    "0": "zero",
    "1": "one",
    "2": "two",
    "3": "three",
    "4": "four",
    "5": "five",
    "6": "six",
    "7": "seven",
    "8": "eight",
    "9": "nine",
    "10": "ten",
    "20": "twenty",
    "30": "thirty",
    "40": "forty",
    "50": "fifty",
    "60": "sixty",
    "70": "seventy",
    "80": "eighty",
    "90": "ninety",
    "100": "one hundred",
}

PUNCTUATION_PATTERN = re.compile(r"""[.,/#!$%^&*;:{}=\-_`~()'"?]""")


def normalize_loose(text: str) -> str:
    """Canonicalize a (usually spoken) answer for loose comparison.

    Lower-cases, strips punctuation, rewrites standalone numerals as
    number words and removes all whitespace, so "T h r e e." and "3"
    both become "three".

    Args:
        text: Raw answer text.

    Returns:
        Normalized text.
    """
    stripped = PUNCTUATION_PATTERN.sub("", text.lower())
    tokens = [NUMBER_WORDS.get(token, token) for token in stripped.split()]
    return "".join("".join(tokens).split())


def compare_strict(input_text: str, target: str) -> bool:
    """Exact comparison for typed answers; only outer whitespace is ignored."""
    return input_text.strip() == target.strip()
