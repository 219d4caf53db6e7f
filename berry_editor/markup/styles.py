"""Inline ``style`` attribute parsing and policy reduction."""

import re

from berry_editor.common.utils.style_guards import (
    format_number,
    parse_finite_number,
    parse_rounded_number_in_range,
    parse_safe_font_family,
    parse_safe_font_size_value,
    parse_safe_line_height_value,
)

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
RGB_PATTERN = re.compile(r"^rgba?\((.+)\)$", re.IGNORECASE)

ALIGNMENTS = frozenset({"left", "center", "right", "justify"})
BLACK_VALUES = frozenset({"black", "#000", "#000000"})
TABLE_CELL_BORDER = "1px solid #000000"

IMAGE_WIDTH_PX_RANGE = (24, 4096)
IMAGE_WIDTH_PERCENT_RANGE = (5, 100)
IMAGE_PADDING_RANGE = (0, 96)


def normalize_safe_hex_color(value: object) -> str | None:
    """Return ``#rrggbb`` for hex or opaque rgb()/rgba() input, else ``None``."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if HEX_COLOR_PATTERN.match(text):
        digits = text[1:].lower()
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return f"#{digits}"

    match = RGB_PATTERN.match(text)
    if not match:
        return None
    parts = [part.strip() for part in match.group(1).split(",")]
    if len(parts) not in (3, 4):
        return None
    channels: list[int] = []
    for part in parts[:3]:
        number = parse_finite_number(part)
        if number is None or number < 0 or number > 255:
            return None
        channels.append(int(number + 0.5))
    if len(parts) == 4:
        alpha = parse_finite_number(parts[3])
        if alpha is None or abs(alpha - 1) > 0.001:
            return None
    return "#" + "".join(f"{channel:02x}" for channel in channels)


def parse_style_map(style: str | None) -> dict[str, str]:
    """Split a style attribute into an ordered property map."""
    result: dict[str, str] = {}
    for declaration in (style or "").split(";"):
        prop, sep, value = declaration.partition(":")
        if not sep:
            continue
        prop = prop.strip().lower()
        value = value.strip()
        if prop and value:
            result[prop] = value
    return result


def serialize_style_map(styles: dict[str, str]) -> str:
    return ";".join(f"{prop}:{value}" for prop, value in styles.items())


def parse_safe_width(value: str) -> tuple[float, str] | None:
    """Parse ``N%`` or ``Npx`` image widths into ``(width, unit)``."""
    text = value.strip().lower()
    if text.endswith("%"):
        width = parse_rounded_number_in_range(text[:-1], *IMAGE_WIDTH_PERCENT_RANGE)
        return (width, "percent") if width is not None else None
    if text.endswith("px"):
        text = text[:-2]
    width = parse_rounded_number_in_range(text, *IMAGE_WIDTH_PX_RANGE)
    return (width, "px") if width is not None else None


def format_width(width: float, unit: str) -> str:
    return f"{format_number(width)}{'%' if unit == 'percent' else 'px'}"


def parse_safe_padding(value: str) -> float | None:
    text = value.strip().lower()
    if text.endswith("px"):
        text = text[:-2]
    return parse_rounded_number_in_range(text, *IMAGE_PADDING_RANGE)


def is_safe_table_cell_border(value: str) -> bool:
    parts = value.strip().lower().split()
    return len(parts) == 3 and parts[0] == "1px" and parts[1] == "solid" and parts[2] in BLACK_VALUES


def _sanitize_declaration(prop: str, value: str, tag_name: str | None) -> str | None:
    match prop:
        case "color" | "background-color":
            return normalize_safe_hex_color(value)
        case "text-align":
            align = value.strip().lower()
            return align if align in ALIGNMENTS else None
        case "line-height":
            line_height = parse_safe_line_height_value(value)
            return format_number(line_height) if line_height is not None else None
        case "font-size":
            font_size = parse_safe_font_size_value(value)
            return f"{format_number(font_size)}px" if font_size is not None else None
        case "font-family":
            return parse_safe_font_family(value)
        case "border":
            if tag_name in ("td", "th") and is_safe_table_cell_border(value):
                return TABLE_CELL_BORDER
            return None
        case "border-collapse":
            if tag_name == "table" and value.strip().lower() == "collapse":
                return "collapse"
            return None
        case "width":
            if tag_name not in (None, "img", "figure"):
                return None
            parsed = parse_safe_width(value)
            return format_width(*parsed) if parsed is not None else None
        case "padding":
            if tag_name not in (None, "div"):
                return None
            padding = parse_safe_padding(value)
            return f"{format_number(padding)}px" if padding is not None else None
        case _:
            return None


def sanitize_style_text(style: str | None, tag_name: str | None = None) -> str:
    """Keep only declarations that pass policy for ``tag_name``.

    With no tag context, tag-scoped properties (borders) are dropped and
    width/padding are checked on value alone.
    """
    kept: dict[str, str] = {}
    for prop, value in parse_style_map(style).items():
        safe = _sanitize_declaration(prop, value, tag_name)
        if safe is not None:
            kept[prop] = safe
    return serialize_style_map(kept)
