"""Text Normalization and Similarity Utilities.

OCR output for a scanned policy is noisy: values often carry the printed
field label ("COMBUSTIBLE\\nNAFTA", "Destino: Particular"), stray
punctuation and line breaks. This module provides:
1. Coercion of untyped extracted values to text
2. Reading an ordered list of candidate source keys
3. Cleaning of label echoes and separators
4. Case/accent folding for keyword tables
5. The generic similarity score used as matching fallback

Examples:
    "COMBUSTIBLE\\nNAFTA"        → "NAFTA"
    "Destino del vehículo: Taxi" → "Taxi"
    "Todo Riesgo.\\n"            → "Todo Riesgo"
"""

import re
import unicodedata
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence


# Any first line made only of capitals, e.g. "COMBUSTIBLE\n"
_LABEL_LINE = re.compile(r"^[A-ZÁÉÍÓÚÜÑ ]+\n")

_SEPARATORS = re.compile(r"[.:\n\r\t]")
_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[\s,;\-_/]+$")


def text_value(value: Any) -> str:
    """Coerce an extracted value to text.

    Strings pass through, numbers are rendered, anything else (None,
    booleans, nested objects) is treated as absent.
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return ""


def first_present_value(data: Any, keys: Sequence[str]) -> Optional[str]:
    """Return the first non-blank value found under ``keys``, in order.

    Args:
        data: Extracted key/value mapping (anything else yields None)
        keys: Candidate source keys, most specific first

    Returns:
        The raw text of the first present key, or None
    """
    if not isinstance(data, Mapping):
        return None

    for key in keys:
        text = text_value(data.get(key))
        if text.strip():
            return text
    return None


def clean_extracted_value(
    value: Any,
    labels: Sequence[str] = (),
    drop_label_line: bool = False,
) -> str:
    """Clean an extracted value before matching.

    The cleaning process:
    1. Drop a leading line that is one of ``labels`` ("COMBUSTIBLE\\n");
       with ``drop_label_line`` any all-caps first line is dropped
    2. Strip a known label echo ("Combustible: ", "TIPO DE VEHÍCULO ")
    3. Replace dots, colons, tabs and line breaks with spaces
    4. Collapse whitespace and trailing punctuation

    A step that would leave nothing behind is skipped, so a value that is
    only a label is kept as-is. A first line that is not a known label
    ("CAMIONETA\\nPICK UP") is part of the value.

    Args:
        value: Raw extracted value
        labels: Labels printed next to this field's value
        drop_label_line: Also drop an unknown all-caps first line

    Returns:
        Cleaned text ("" when there is nothing usable)
    """
    text = text_value(value).replace("\r\n", "\n").replace("\r", "\n").strip()
    if not text:
        return ""

    first_line, newline, rest = text.partition("\n")
    if newline and rest.strip() and _is_label(first_line, labels):
        text = rest
    elif drop_label_line:
        remainder = _LABEL_LINE.sub("", text, count=1)
        if remainder.strip():
            text = remainder

    for label in sorted(labels, key=len, reverse=True):
        pattern = re.compile(rf"^\s*{re.escape(label)}(?:\s*[:\-]\s*|\s+)", re.IGNORECASE)
        remainder = pattern.sub("", text, count=1)
        if remainder != text and remainder.strip():
            text = remainder
            break

    text = _SEPARATORS.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return _TRAILING_PUNCTUATION.sub("", text)


def _is_label(line: str, labels: Sequence[str]) -> bool:
    name = fold_upper(line).strip().rstrip(":").strip()
    return bool(name) and any(name == fold_upper(label) for label in labels)


def fold_accents(text: str) -> str:
    """Remove diacritics ("Automóvil" → "Automovil")."""
    decomposed = unicodedata.normalize("NFD", text or "")
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def fold_upper(text: str) -> str:
    """Uppercase, accent-free form used by the keyword tables."""
    return fold_accents(text).upper()


def calculate_similarity(text1: Any, text2: Any) -> float:
    """Calculate similarity between two strings.

    Scoring, first rule that applies:
    - equal after lowercase/trim → 1.0
    - one contains the other → 0.9
    - word overlap: words of ``text1`` contained in (or containing) some
      word of ``text2``, over the larger word count
    - positional character matches over the shorter length

    The last rule is crude and sensitive to padding and transpositions;
    matching outcomes depend on it, so it stays as is.

    Args:
        text1: Extracted value
        text2: Catalog display name

    Returns:
        Similarity score from 0.0 to 1.0 (0.0 when either side is blank)
    """
    s1 = text_value(text1).lower().strip()
    s2 = text_value(text2).lower().strip()

    if not s1 or not s2:
        return 0.0

    if s1 == s2:
        return 1.0

    if s1 in s2 or s2 in s1:
        return 0.9

    words1 = s1.split()
    words2 = s2.split()
    common_words = [
        word for word in words1
        if any(other in word or word in other for other in words2)
    ]
    if common_words:
        return len(common_words) / max(len(words1), len(words2))

    matches = sum(1 for a, b in zip(s1, s2) if a == b)
    return matches / min(len(s1), len(s2))
