# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Text normalization shared by script indexing and transcript matching.

Both sides of a match must go through the same pipeline so that the
script word "1984," and the spoken "nineteen eighty four" end up as the
same sequence of normalized tokens.
"""

import re
import unicodedata
from decimal import Decimal, InvalidOperation
from re import Pattern

from num2words import num2words

# Tokens are runs of non-space characters, additionally split on hyphens,
# dashes and slashes ("well-known" is spoken as two words)
TOKEN_PATTERN: Pattern[str] = re.compile(r"[^\s\-\u2010-\u2015/]+")

NUMBER_PATTERNS: dict[str, Pattern[str]] = {
    # Pure integers: 7, 100, 1000000
    'integer': re.compile(r'^\d+$'),

    # Comma-separated integers: 1,100, 1,000,000
    'comma_integer': re.compile(r'^\d{1,3}(,\d{3})+$'),

    # Decimals: 3.5, 0.25
    'decimal': re.compile(r'^\d+\.\d+$'),

    # Ordinals: 1st, 2nd, 3rd, 23rd, 101st
    'ordinal': re.compile(r'^(\d+)(st|nd|rd|th)$', re.IGNORECASE),
}

# Non-lexical speech artifacts only. Lexical fillers ("so", "well", "like")
# occur in scripts and must stay for phrase matching.
FILLER_WORDS: frozenset[str] = frozenset([
    'um', 'uh', 'er', 'ah', 'eh', 'hm', 'hmm', 'mm', 'mhm',
    'umm', 'uhh', 'ahh', 'err', 'erm',
])


def normalize_word(word: str) -> str:
    """Normalize a word for matching (lowercase, strip punctuation)."""
    word = unicodedata.normalize('NFC', word.lower())
    return re.sub(r'[^\w\s]', '', word).strip()


def strip_surrounding_punctuation(token: str) -> str:
    """Strip leading and trailing punctuation, keeping internal characters.

    Examples:
        "1100," -> "1100"
        '"hello"' -> "hello"
        "1,000" -> "1,000"
        "3.14." -> "3.14"
    """
    start = 0
    end = len(token)
    while start < end and not token[start].isalnum():
        start += 1
    while end > start and not token[end - 1].isalnum():
        end -= 1
    return token[start:end]


def _num2words_to_list(value: int | Decimal, to: str = 'cardinal') -> list[str]:
    """Run num2words and split the result into plain words."""
    words: str = num2words(value, to=to)
    # num2words writes "twenty-one" and "one thousand, two hundred"
    return words.replace('-', ' ').replace(',', '').split()


def _is_year_like(value: int) -> bool:
    return 1100 <= value <= 1999 or 2010 <= value <= 2099


def expand_numeral(token: str) -> list[str]:
    """Expand a numeral token to the words a speaker would say.

    Returns an empty list when the token is not a simple numeral.

    Examples:
        "7" -> ["seven"]
        "1,200" -> ["one", "thousand", "two", "hundred"]
        "1984" -> ["nineteen", "eighty", "four"]
        "3rd" -> ["third"]
        "3.5" -> ["three", "point", "five"]
    """
    stripped: str = token.strip()
    if not stripped:
        return []

    if NUMBER_PATTERNS['integer'].match(stripped):
        value = int(stripped)
        if len(stripped) == 4 and _is_year_like(value):
            return _num2words_to_list(value, to='year')
        return _num2words_to_list(value)

    if NUMBER_PATTERNS['comma_integer'].match(stripped):
        return _num2words_to_list(int(stripped.replace(',', '')))

    if NUMBER_PATTERNS['decimal'].match(stripped):
        try:
            return _num2words_to_list(Decimal(stripped))
        except InvalidOperation:
            return []

    ordinal_match = NUMBER_PATTERNS['ordinal'].match(stripped)
    if ordinal_match:
        return _num2words_to_list(int(ordinal_match.group(1)), to='ordinal')

    return []


def token_words(token: str) -> list[str]:
    """Convert one raw token into its normalized spoken words."""
    expanded: list[str] = expand_numeral(strip_surrounding_punctuation(token))
    if expanded:
        return expanded
    normalized: str = normalize_word(token)
    if not normalized:
        return []
    if normalized.isdecimal():
        # Digits wrapped in symbols, e.g. "$100" or "#5"
        return expand_numeral(normalized) or [normalized]
    return [normalized]


def is_filler_word(word: str) -> bool:
    """Check if a word is a non-lexical filler that should be ignored."""
    return normalize_word(word) in FILLER_WORDS


def filter_filler_words(words: list[str]) -> list[str]:
    """Remove filler words, keeping everything else in order."""
    return [w for w in words if not is_filler_word(w)]


def tokenize(text: str) -> list[str]:
    """Split text into normalized words (numerals expanded)."""
    words: list[str] = []
    for match in TOKEN_PATTERN.finditer(text):
        words.extend(token_words(match.group(0)))
    return words


def tokenize_transcript(transcript: str) -> list[str]:
    """Tokenize a speech transcript and drop filler words."""
    return filter_filler_words(tokenize(transcript))
