"""Legacy formatting commands as a contenteditable host implements them.

The markup mirrors what browsers emit: presentational ``<b>``/``<i>``/
``<strike>`` tags, ``<font color>`` for foreground colors, and rgb() spans
when ``styleWithCSS`` is on. Part of it is deliberately outside the
sanitizer's allow-list, which is what the engine's reconciliation handles.
"""

from bs4 import Tag

from berry_editor.markup.soup import closest
from berry_editor.markup.styles import normalize_safe_hex_color
from berry_editor.surface.core import Surface
from berry_editor.surface.ranges import Range, text_segments, wrap_segment

PRESENTATIONAL_TAGS = {
    "bold": "b",
    "italic": "i",
    "underline": "u",
    "strikeThrough": "strike",
}

# Elements that make query_command_state report true.
ACTIVE_TAGS = {
    "bold": ("b", "strong"),
    "italic": ("i", "em"),
    "underline": ("u",),
    "strikeThrough": ("s", "strike", "del"),
}


def _rgb(color: str) -> str | None:
    normalized = normalize_safe_hex_color(color)
    if normalized is None:
        return None
    red, green, blue = (int(normalized[i : i + 2], 16) for i in (1, 3, 5))
    return f"rgb({red}, {green}, {blue})"


class LegacyFormattingCommands:
    def __init__(self):
        self.style_with_css = False

    def exec_command(self, surface: Surface, name: str, value: str | None = None) -> bool:
        if name == "styleWithCSS":
            self.style_with_css = value == "true"
            return True

        rng = surface.get_range()
        if rng is None:
            return False

        if name in PRESENTATIONAL_TAGS:
            # A collapsed caret only toggles the pending typing style.
            if rng.collapsed:
                return True
            return self._wrap(surface, rng, lambda: surface.new_tag(PRESENTATIONAL_TAGS[name]))

        if name == "foreColor":
            rgb = _rgb(value or "")
            if rgb is None:
                return False
            if self.style_with_css:
                return self._wrap(surface, rng, lambda: surface.new_tag("span", {"style": f"color: {rgb};"}))
            return self._wrap(surface, rng, lambda: surface.new_tag("font", {"color": value or ""}))

        if name in ("hiliteColor", "backColor"):
            rgb = _rgb(value or "")
            if rgb is None:
                return False
            return self._wrap(
                surface, rng, lambda: surface.new_tag("span", {"style": f"background-color: {rgb};"})
            )

        return False

    def query_command_state(self, surface: Surface, name: str) -> bool:
        tags = ACTIVE_TAGS.get(name)
        rng = surface.get_range()
        if tags is None or rng is None:
            return False
        return closest(rng.end_container, lambda tag: tag.name in tags, surface.root) is not None

    def _wrap(self, surface: Surface, rng: Range, factory) -> bool:
        segments = text_segments(surface.root, rng)
        if not segments:
            return False
        wrappers: list[Tag] = []
        for segment in reversed(segments):
            wrappers.append(wrap_segment(segment, factory()))
        first, last = wrappers[-1], wrappers[0]
        surface.select(first, 0, last, len(last.contents))
        return True

