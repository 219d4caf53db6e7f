"""HTML sanitizing, parsing and serialization."""

from berry_editor.markup.sanitize import fallback_sanitize_html, sanitize_html
from berry_editor.markup.styles import normalize_safe_hex_color, sanitize_style_text

__all__ = [
    "fallback_sanitize_html",
    "sanitize_html",
    "normalize_safe_hex_color",
    "sanitize_style_text",
]
