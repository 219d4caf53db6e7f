"""Pure validators for typography values.

Every parser returns ``None`` on rejection and never raises.
"""

import math
import re

FONT_FAMILY_PATTERN = re.compile(r"^[A-Za-z0-9\s'\",._-]+$")
FONT_FAMILY_MAX_LENGTH = 160

FONT_SIZE_MIN = 8
FONT_SIZE_MAX = 96

LINE_HEIGHT_MIN = 1
LINE_HEIGHT_MAX = 3


def round_two(value: float) -> float:
    """Round half up to two decimals."""
    return math.floor(value * 100 + 0.5) / 100


def format_number(value: float) -> str:
    """Render a number the way it appears in CSS: ``18`` not ``18.0``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def parse_finite_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def parse_rounded_number_in_range(value: object, minimum: float, maximum: float) -> float | None:
    number = parse_finite_number(value)
    if number is None or number < minimum or number > maximum:
        return None
    return round_two(number)


def parse_safe_line_height_value(value: object) -> float | None:
    return parse_rounded_number_in_range(value, LINE_HEIGHT_MIN, LINE_HEIGHT_MAX)


def parse_safe_font_size_value(value: object) -> float | None:
    """Accept ``18``, ``"18"`` or ``"18px"`` within 8-96."""
    if isinstance(value, str):
        value = re.sub(r"px$", "", value.strip(), flags=re.IGNORECASE)
    return parse_rounded_number_in_range(value, FONT_SIZE_MIN, FONT_SIZE_MAX)


def parse_safe_font_family(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = " ".join(value.split())
    if not normalized or len(normalized) > FONT_FAMILY_MAX_LENGTH:
        return None
    if not FONT_FAMILY_PATTERN.match(normalized):
        return None
    return normalized
