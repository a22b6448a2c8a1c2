"""
Text extraction helpers shared by the ATS adapters and the reconciler.
Pure functions: no I/O, same input -> same output.
"""
import re
from typing import List, Optional

from app.schemas.posting import SalaryInfo


# Tried in order; the first delimiter present in the string wins
LOCATION_DELIMITERS = [",", " - ", "/", " and ", " & ", "·"]

REMOTE_KEYWORDS = (
    "remote",
    "work from home",
    "wfh",
    "virtual",
    "telecommute",
    "anywhere",
    "distributed",
)

# Order matters: &amp; first, so "&amp;lt;" decodes all the way to "<"
HTML_ENTITIES = [
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&nbsp;", " "),
    ("&#x2F;", "/"),
    ("&#x27;", "'"),
    ("&#x60;", "`"),
    ("&#x3D;", "="),
]
NUMERIC_ENTITY = re.compile(r"&#(\d+);")
# UTF-16 pairs written as two entities, e.g. &#55357;&#56832;
SURROGATE_PAIR_ENTITY = re.compile(r"&#(5[5-6]\d{3});&#(5[6-7]\d{3});")

_AMOUNT = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)([kK]\b)?"
SALARY_PATTERN = re.compile(
    r"\$\s*" + _AMOUNT + r"\s*(?:-|–|—|to)\s*\$\s*" + _AMOUNT,
    re.IGNORECASE,
)

INTERVAL_PATTERNS = [
    ("yearly", re.compile(r"per\s+year|/\s*(?:yr|year)\b|annual|yearly|annually", re.IGNORECASE)),
    ("monthly", re.compile(r"per\s+month|/\s*(?:mo|month)\b|monthly", re.IGNORECASE)),
    ("hourly", re.compile(r"per\s+hour|/\s*(?:hr|hour)\b|hourly", re.IGNORECASE)),
]

# Text right after the range ("... per hour") is checked before the whole text
INTERVAL_WINDOW = 40

LOCATION_PHRASES = [
    re.compile(r"\blocations?\s*(?::|is|are)\s*(.*?)(?:\.|,|\n|</p>|<br>)", re.IGNORECASE),
    re.compile(r"\boffices?\s*(?::|in|at)\s*(.*?)(?:\.|,|\n|</p>|<br>)", re.IGNORECASE),
    re.compile(r"\bpositions?\s*(?:is|are)\s*(?:in|at)\s*(.*?)(?:\.|,|\n|</p>|<br>)", re.IGNORECASE),
    re.compile(r"\bbased\s*(?:in|at)\s*(.*?)(?:\.|,|\n|</p>|<br>)", re.IGNORECASE),
    re.compile(r"\bwork\s*(?:from|in|at)\s*(.*?)(?:\.|,|\n|</p>|<br>)", re.IGNORECASE),
    re.compile(r"\bremote\s*(?:in|across)\s*(.*?)(?:\.|,|\n|</p>|<br>)", re.IGNORECASE),
]
PHRASE_DELIMITERS = [",", " or ", " and ", "/", "·", "-", "&"]
HTML_TAG = re.compile(r"<[^>]*>")

COMMON_LOCATIONS = [
    "New York", "San Francisco", "Los Angeles", "Chicago", "Boston", "Seattle",
    "Austin", "Denver", "Toronto", "London", "Berlin", "Paris", "Sydney",
    "Singapore", "Tokyo", "United States", "Canada", "UK", "Europe", "Asia",
]


def split_location_string(location: Optional[str]) -> List[str]:
    """
    Split a location string that may hold several locations.

    The first delimiter (in LOCATION_DELIMITERS order) found in the string is
    used; segments are trimmed and empty ones dropped. Without a delimiter the
    trimmed string is returned as the only element.
    """
    if not location or not location.strip():
        return []

    for delimiter in LOCATION_DELIMITERS:
        if delimiter in location:
            return [part.strip() for part in location.split(delimiter) if part.strip()]

    return [location.strip()]


def is_remote_location(location: Optional[str]) -> bool:
    """Check if a location string indicates a remote position."""
    if not location:
        return False
    location_lower = location.lower()
    return any(keyword in location_lower for keyword in REMOTE_KEYWORDS)


def decode_html_entities(html: Optional[str]) -> str:
    """Replace the common named and numeric HTML entities."""
    if not html:
        return ""
    text = html
    for entity, char in HTML_ENTITIES:
        text = text.replace(entity, char)
    text = SURROGATE_PAIR_ENTITY.sub(_decode_surrogate_pair, text)
    return NUMERIC_ENTITY.sub(_decode_numeric, text)


def _decode_surrogate_pair(match: re.Match) -> str:
    high, low = int(match.group(1)), int(match.group(2))
    if 0xD800 <= high <= 0xDBFF and 0xDC00 <= low <= 0xDFFF:
        return chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))
    return match.group(0)


def _decode_numeric(match: re.Match) -> str:
    code = int(match.group(1))
    if code > 0x10FFFF:
        return match.group(0)
    if 0xD800 <= code <= 0xDFFF:
        # Lone surrogates can't be stored
        return ""
    return chr(code)


def _parse_amount(number: str, k_suffix: Optional[str]) -> int:
    value = float(number.replace(",", ""))
    if k_suffix:
        value *= 1000
    return int(round(value))


def _detect_interval(text: str) -> Optional[str]:
    for interval, pattern in INTERVAL_PATTERNS:
        if pattern.search(text):
            return interval
    return None


def extract_salary_info(text: Optional[str]) -> SalaryInfo:
    """
    Extract a "$<min> - $<max> [per <unit>]" salary range from free text.

    Thousands separators are stripped and a "k" suffix multiplies by 1000.
    Currency is always USD. The interval comes from year/month/hour keywords,
    defaulting to yearly.

    Returns:
        SalaryInfo with all fields None when no range is found
    """
    if not text:
        return SalaryInfo()

    match = SALARY_PATTERN.search(text)
    if not match:
        return SalaryInfo()

    salary_min = _parse_amount(match.group(1), match.group(2))
    salary_max = _parse_amount(match.group(3), match.group(4))

    window = text[match.end():match.end() + INTERVAL_WINDOW]
    interval = _detect_interval(window) or _detect_interval(text) or "yearly"

    return SalaryInfo(min=salary_min, max=salary_max, currency="USD", interval=interval)


def map_salary_interval(interval: Optional[str]) -> Optional[str]:
    """
    Map an ATS interval label ("year", "annual", "1 YEAR", "1 HOUR"...) to
    yearly / monthly / hourly. Unknown labels map to None.
    """
    if not interval:
        return None
    label = interval.strip().lower()
    if "year" in label or "annual" in label:
        return "yearly"
    if "month" in label:
        return "monthly"
    if "hour" in label:
        return "hourly"
    return None


def extract_locations_from_description(description: Optional[str]) -> List[str]:
    """
    Pull locations out of phrases like "Location: ..." or "based in ...".

    Returns:
        Locations from the first phrase that matches, or [] if none does
    """
    if not description:
        return []

    for pattern in LOCATION_PHRASES:
        match = pattern.search(description)
        if not match or not match.group(1):
            continue

        location_text = HTML_TAG.sub("", match.group(1)).replace("&nbsp;", " ").strip()
        if not location_text:
            continue

        for delimiter in PHRASE_DELIMITERS:
            if delimiter in location_text:
                return [loc.strip() for loc in location_text.split(delimiter) if loc.strip()]
        return [location_text]

    return []


def find_known_locations(text: Optional[str]) -> List[str]:
    """Common city/region names that appear verbatim in the text."""
    if not text:
        return []
    return [
        loc for loc in COMMON_LOCATIONS
        if loc in text or loc.upper() in text or loc.lower() in text
    ]
