"""Parsers turning raw invoice text into typed values.

All parsers raise ``ValueError`` on malformed input; the record-level
``FieldNormalizer`` turns that into a ``NormalizationError`` carrying the
record position and field name.

Money never passes through ``float``: amounts are parsed from text straight
into ``Decimal`` and quantized to cents.
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..core.models import CENTS

_CURRENCY_MARKER_RE = re.compile(r"^(?:[$€£]|USD|EUR|GBP)|(?:[$€£]|USD|EUR|GBP)$", re.IGNORECASE)
_AMOUNT_CHARS_RE = re.compile(r"[0-9.,]+")
_WHITESPACE_RE = re.compile(r"\s+")

# Common date format patterns (order matters - most specific first)
DATE_FORMATS = [
    "%Y-%m-%d",           # 2024-01-15
    "%Y-%m-%dT%H:%M:%S",  # 2024-01-15T14:30:00
    "%Y-%m-%d %H:%M:%S",  # 2024-01-15 14:30:00
    "%m/%d/%Y",           # 01/15/2024 (US auctions first)
    "%m/%d/%y",           # 01/15/24
    "%m-%d-%Y",           # 01-15-2024
    "%d.%m.%Y",           # 15.01.2024
    "%d.%m.%y",           # 15.01.24
    "%B %d, %Y",          # January 15, 2024
    "%b %d, %Y",          # Jan 15, 2024
    "%d %B %Y",           # 15 January 2024
    "%d %b %Y",           # 15 Jan 2024
]

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to",
    "for", "of", "with", "by", "from", "is", "was", "are", "were",
    "total", "set", "lot", "pair",
})

MAX_KEYWORDS = 20
MAX_NAME_LENGTH = 60

_EMBEDDED_LOT_ID_RE = re.compile(r"\b\d{5,6}\s+\d{1,3}\s+[A-Z0-9]+\b")
_LEADING_NUMBER_RE = re.compile(r"^\d+\s+")
_TRAILING_ID_RE = re.compile(r"\s+\d{4,}$")
_FILLER_DASHES_RE = re.compile(r"-{3,}")
_EDGE_SEPARATORS = " \t-–—:|·*•"
_KEYWORD_RE = re.compile(r"\b[a-z]+\b")


def parse_currency(text: str | None) -> Decimal | None:
    """
    Parse a money amount into a cents-quantized Decimal.

    Accepts currency symbols or codes at either end, thousands separators
    and an unambiguous decimal comma ("1.234,56", "12,5").

    Args:
        text: Raw amount text

    Returns:
        Decimal amount, or None when the text is blank

    Raises:
        ValueError: On negative amounts, stray characters, several decimal
            points, misplaced thousands separators or sub-cent precision

    Examples:
        >>> parse_currency("$1,234.56")
        Decimal('1234.56')
        >>> parse_currency("150")
        Decimal('150.00')
    """
    if text is None:
        return None
    raw = str(text).strip()
    if not raw:
        return None

    cleaned = raw.replace("\u00a0", "").replace(" ", "")
    cleaned = _CURRENCY_MARKER_RE.sub("", cleaned)

    if cleaned.startswith("-") or (cleaned.startswith("(") and cleaned.endswith(")")):
        raise ValueError(f"Negative amount {raw!r}")
    if not _AMOUNT_CHARS_RE.fullmatch(cleaned) or not any(ch.isdigit() for ch in cleaned):
        raise ValueError(f"Not a money amount: {raw!r}")

    decimal_sep, thousands_sep = _separators(cleaned)

    if cleaned.count(decimal_sep) > 1:
        raise ValueError(f"Multiple decimal points in {raw!r}")

    integer, _, fraction = cleaned.partition(decimal_sep)
    if thousands_sep and thousands_sep in fraction:
        raise ValueError(f"Misplaced thousands separator in {raw!r}")
    if thousands_sep and thousands_sep in integer:
        grouping = re.escape(thousands_sep)
        if not re.fullmatch(rf"\d{{1,3}}(?:{grouping}\d{{3}})+", integer):
            raise ValueError(f"Misplaced thousands separator in {raw!r}")
        integer = integer.replace(thousands_sep, "")

    if len(fraction) > 2:
        raise ValueError(f"More than two decimal places in {raw!r}")
    if not (integer or fraction):
        raise ValueError(f"Not a money amount: {raw!r}")

    return Decimal(f"{integer or '0'}.{fraction or '0'}").quantize(CENTS)


def _separators(cleaned: str) -> tuple[str, str | None]:
    """Work out (decimal, thousands) separators for a digits-and-separators string."""
    has_dot = "." in cleaned
    has_comma = "," in cleaned

    if has_dot and has_comma:
        # Whichever comes last is the decimal separator
        if cleaned.rfind(",") > cleaned.rfind("."):
            return ",", "."
        return ".", ","
    if has_comma:
        if re.fullmatch(r"\d+,\d{1,2}", cleaned):
            return ",", None
        return ".", ","
    return ".", None


def parse_percent(text: str | None) -> Decimal | None:
    """
    Parse a percentage such as "18", "18.5 %" or "0.18".

    A bare value below 1 without a percent sign is read as a fraction
    (spreadsheets often store 18 % as 0.18).

    Raises:
        ValueError: If the text is not a number between 0 and 100
    """
    if text is None:
        return None
    raw = str(text).strip()
    if not raw:
        return None

    has_sign = raw.endswith("%")
    cleaned = raw.rstrip("%").strip()
    if "," in cleaned and "." not in cleaned:
        cleaned = cleaned.replace(",", ".")

    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Not a percentage: {raw!r}") from e

    if not value.is_finite():
        raise ValueError(f"Not a percentage: {raw!r}")
    if not has_sign and 0 < value < 1:
        value = value * 100
    if value < 0 or value > 100:
        raise ValueError(f"Percentage out of range: {raw!r}")

    return value.normalize() if value != value.to_integral_value() else value.quantize(Decimal("1"))


def parse_quantity(text: str | None) -> tuple[int, str | None]:
    """
    Parse an item quantity. Never fails.

    Returns:
        Tuple of (quantity >= 1, warning or None). Absent values give 1
        silently; unparseable or non-positive values give 1 with a warning.
    """
    if text is None or not str(text).strip():
        return 1, None

    raw = str(text).strip()
    try:
        value = Decimal(raw.replace(",", ""))
    except InvalidOperation:
        match = re.match(r"^\s*(-?\d+)", raw)
        if not match:
            return 1, f"Unparseable quantity {raw!r}, using 1"
        value = Decimal(match.group(1))

    if not value.is_finite() or value != value.to_integral_value():
        return 1, f"Unparseable quantity {raw!r}, using 1"

    quantity = int(value)
    if quantity < 1:
        return 1, f"Quantity {quantity} clamped to 1"
    return quantity, None


def parse_int(text: str | None) -> int | None:
    """Parse an identifier such as an auction number ("1234" or "1234.0")."""
    if text is None or not str(text).strip():
        return None
    raw = str(text).strip()
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(f"Not an integer: {raw!r}") from e
    if not value.is_finite() or value != value.to_integral_value():
        raise ValueError(f"Not an integer: {raw!r}")
    return int(value)


def parse_date(value: str | date | None) -> date | None:
    """Parse a date from the formats auction houses use. None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def apply_rate(amount: Decimal, percent: Decimal) -> Decimal:
    """Percentage of an amount, rounded half-up to cents."""
    return (amount * percent / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)


def clean_description(desc: str) -> str:
    """Strip lot ids, item numbers and filler from an item description."""
    desc = _EMBEDDED_LOT_ID_RE.sub("", desc)
    desc = _LEADING_NUMBER_RE.sub("", desc.strip())
    desc = _TRAILING_ID_RE.sub("", desc)
    desc = _FILLER_DASHES_RE.sub(" ", desc)
    desc = _WHITESPACE_RE.sub(" ", desc)
    return desc.strip(_EDGE_SEPARATORS)


def generate_item_name(description: str) -> str:
    """
    Derive a short display name from a description.

    Takes the first sentence when the description is longer than 60
    characters, drops leading numbers and title-cases the words.
    """
    name = description
    if len(name) > MAX_NAME_LENGTH:
        head = description[:MAX_NAME_LENGTH]
        idx = head.find(".")
        name = description[:idx] if idx > 0 else head

    name = _WHITESPACE_RE.sub(" ", name).strip()
    name = _LEADING_NUMBER_RE.sub("", name).strip(_EDGE_SEPARATORS)

    if not name:
        return "Unknown Item"

    words = name.lower().split()
    return " ".join(word[0].upper() + word[1:] for word in words)


def extract_keywords(description: str) -> list[str]:
    """Unique search keywords in order of appearance, stop words removed."""
    keywords: list[str] = []
    seen: set[str] = set()

    for word in _KEYWORD_RE.findall(description.lower()):
        if word in STOP_WORDS or len(word) <= 2 or word in seen:
            continue
        keywords.append(word)
        seen.add(word)
        if len(keywords) >= MAX_KEYWORDS:
            break

    return keywords
