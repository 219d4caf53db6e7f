import math

import pytest

from berry_editor.common.utils.style_guards import (
    format_number,
    parse_finite_number,
    parse_safe_font_family,
    parse_safe_font_size_value,
    parse_safe_line_height_value,
    round_two,
)
from berry_editor.editor.commands import (
    is_safe_font_family,
    is_safe_font_size,
    is_safe_hex_color,
    is_safe_line_height,
    is_safe_link,
    is_safe_table_dimension,
)
from berry_editor.markup.styles import normalize_safe_hex_color, sanitize_style_text


@pytest.mark.parametrize("value, expected", [(7, False), (8, True), (96, True), (97, False)])
def test_font_size_boundaries(value, expected):
    assert is_safe_font_size(value) is expected
    assert is_safe_font_size(str(value)) is expected


def test_font_size_accepts_px_suffix_and_rounds():
    assert parse_safe_font_size_value("18px") == 18
    assert parse_safe_font_size_value(" 12.3456 ") == 12.35
    assert parse_safe_font_size_value("abc") is None
    assert parse_safe_font_size_value(True) is None


@pytest.mark.parametrize("value, expected", [("0.99", False), ("1", True), ("3", True), ("3.01", False)])
def test_line_height_boundaries(value, expected):
    assert is_safe_line_height(value) is expected


def test_line_height_rejects_non_finite():
    assert parse_safe_line_height_value("nan") is None
    assert parse_safe_line_height_value(math.inf) is None


@pytest.mark.parametrize(
    "color, expected",
    [("#fff", True), ("#A0b1C2", True), ("#ffff", False), ("#12345", False), ("red", False), ("fff", False)],
)
def test_hex_color_accepts_three_or_six_digits(color, expected):
    assert is_safe_hex_color(color) is expected


def test_normalize_color_expands_and_converts_opaque_rgb():
    assert normalize_safe_hex_color("#ABC") == "#aabbcc"
    assert normalize_safe_hex_color("rgb(255, 0, 16)") == "#ff0010"
    assert normalize_safe_hex_color("rgba(255, 0, 16, 1)") == "#ff0010"
    assert normalize_safe_hex_color("rgba(255, 0, 16, 0.5)") is None
    assert normalize_safe_hex_color("rgb(300, 0, 0)") is None


def test_font_family_allows_reset_and_rejects_markup():
    assert is_safe_font_family("")
    assert is_safe_font_family("Georgia, 'Times New Roman', serif")
    assert not is_safe_font_family("Arial; background:url(x)")
    assert parse_safe_font_family("  Courier    New ") == "Courier New"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com", True),
        ("mailto:someone@example.com", True),
        ("/relative/path", True),
        ("javascript:alert(1)", False),
        ("java\tscript:alert(1)", False),
        ("data:text/html,hi", False),
        ("   ", False),
    ],
)
def test_link_scheme_allow_list(url, expected):
    assert is_safe_link(url) is expected


@pytest.mark.parametrize("value, expected", [(1, True), (10, True), (0, False), (11, False), (2.5, False), (True, False)])
def test_table_dimension(value, expected):
    assert is_safe_table_dimension(value) is expected


def test_number_helpers():
    assert round_two(1.236) == 1.24
    assert round_two(1.234) == 1.23
    assert format_number(18.0) == "18"
    assert format_number(1.5) == "1.5"
    assert parse_finite_number(" 4 ") == 4
    assert parse_finite_number(None) is None
    assert parse_finite_number(False) is None


def test_style_text_keeps_only_policy_values():
    style = "color: RGB(0,0,0); position:absolute; text-align:center; font-size: 200px"
    assert sanitize_style_text(style, "p") == "color:#000000;text-align:center"


def test_table_styles_are_tag_scoped():
    assert sanitize_style_text("border:1px solid black", "td") == "border:1px solid #000000"
    assert sanitize_style_text("border:1px solid black", "p") == ""
    assert sanitize_style_text("border-collapse:collapse", "table") == "border-collapse:collapse"
    assert sanitize_style_text("padding:12px", "div") == "padding:12px"
    assert sanitize_style_text("padding:12px", "img") == ""
