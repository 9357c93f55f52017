"""Slug generation for continuous aggregate table names."""

import re
import unicodedata

# ascii flag matters - without it \w keeps accented letters and the result
# wouldn't be a safe identifier anymore
_NON_WORD = re.compile(r"[^\w-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def to_slug(value: str) -> str:
    """Turn a human report name into a lowercase, ascii-only table name.

    "My Report!! Café" -> "my_report_cafe". distinct names can collide
    ("a b" and "a  b"), callers deal with that.
    """
    no_whitespace = _WHITESPACE.sub("_", value)
    normalized = unicodedata.normalize("NFD", no_whitespace)
    return _NON_WORD.sub("", normalized).lower()
