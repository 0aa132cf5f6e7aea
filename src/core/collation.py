"""
Korean-locale ordering for model names.

Mirrors the CLDR "ko" collation closely enough for dashboard sorting:
punctuation and spaces first, then digits, then Hangul, then Han, then
Latin and other letters. Letters compare case- and accent-insensitively
first; lower case wins ties, as in the browser's localeCompare("ko").
"""

import unicodedata

_PUNCT, _DIGIT, _HANGUL, _HAN, _OTHER = range(5)


def _script_rank(char: str) -> int:
    code = ord(char)
    if 0xAC00 <= code <= 0xD7A3 or 0x1100 <= code <= 0x11FF or 0x3130 <= code <= 0x318F:
        return _HANGUL
    if 0x4E00 <= code <= 0x9FFF or 0x3400 <= code <= 0x4DBF:
        return _HAN
    if char.isdigit():
        return _DIGIT
    if char.isalpha():
        return _OTHER
    return _PUNCT


def _base_letter(char: str) -> str:
    decomposed = unicodedata.normalize("NFD", char)
    return decomposed[0].casefold() if decomposed else char


def _primary_weight(char: str) -> tuple[int, str]:
    rank = _script_rank(char)
    if rank in (_HANGUL, _HAN):
        # Syllables already sit in dictionary order by code point
        return rank, char
    return rank, _base_letter(char)


def korean_sort_key(text: str) -> tuple:
    """Sort key for `sorted(..., key=korean_sort_key)`."""
    text = text or ""
    primary = tuple(_primary_weight(c) for c in text)
    tertiary = tuple(0 if c.islower() or not c.isalpha() else 1 for c in text)
    return primary, tertiary, text
