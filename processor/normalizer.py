"""Text normalization for display and for identity comparison."""
import re
import unicodedata

_WHITESPACE_RE = re.compile(r'\s+')
_COMBINING_RE = re.compile('[\u0300-\u036f]')
_APOSTROPHES_RE = re.compile('[\u2018\u2019]')
_QUOTES_RE = re.compile('[\u201c\u201d\u00ab\u00bb]')


def normalize(value) -> str:
    """
    Collapse whitespace runs and non-breaking spaces, then trim.

    Non-string input yields an empty string.
    """
    if not isinstance(value, str):
        return ''
    value = value.replace('\u00a0', ' ')
    return _WHITESPACE_RE.sub(' ', value).strip()


def normalize_for_identity(value) -> str:
    """
    Fold text for keys and pattern matching, never for display.

    Decomposes Unicode, drops combining accents, folds typographic quotes
    to ASCII and lowercases on top of :func:`normalize`.
    """
    if not isinstance(value, str):
        return ''
    value = unicodedata.normalize('NFKD', value)
    value = _COMBINING_RE.sub('', value)
    value = _APOSTROPHES_RE.sub("'", value)
    value = _QUOTES_RE.sub('"', value)
    return normalize(value).lower()
