"""Command table: semantic commands, payload validation and the native mapping."""

import re
from enum import Enum
from typing import Protocol
from urllib.parse import urlsplit

from pydantic import ValidationError

from berry_editor.common.utils.config import config
from berry_editor.common.utils.logger import get_logger
from berry_editor.common.utils.style_guards import (
    parse_finite_number,
    parse_safe_font_family,
    parse_safe_font_size_value,
    parse_safe_line_height_value,
)
from berry_editor.editor.models import CommandPayload
from berry_editor.surface.core import Surface

logger = get_logger(__name__)


class EditorCommand(Enum):
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    STRIKE = "strike"
    CODE = "code"
    LINK = "link"
    UNLINK = "unlink"
    PARAGRAPH = "paragraph"
    HEADING1 = "heading1"
    HEADING2 = "heading2"
    HEADING3 = "heading3"
    QUOTE = "quote"
    BULLET = "bullet"
    NUMBER = "number"
    ALIGN_LEFT = "alignLeft"
    ALIGN_CENTER = "alignCenter"
    ALIGN_RIGHT = "alignRight"
    ALIGN_JUSTIFY = "alignJustify"
    FONT_FAMILY = "fontFamily"
    FONT_SIZE = "fontSize"
    TEXT_COLOR = "textColor"
    HIGHLIGHT_COLOR = "highlightColor"
    CLEAR_HIGHLIGHT = "clearHighlight"
    LINE_SPACING = "lineSpacing"
    INSERT_HORIZONTAL_RULE = "insertHorizontalRule"
    INSERT_TABLE = "insertTable"
    TABLE_ADD_ROW_ABOVE = "tableAddRowAbove"
    TABLE_ADD_ROW_BELOW = "tableAddRowBelow"
    TABLE_DELETE_ROW = "tableDeleteRow"
    TABLE_ADD_COLUMN_LEFT = "tableAddColumnLeft"
    TABLE_ADD_COLUMN_RIGHT = "tableAddColumnRight"
    TABLE_DELETE_COLUMN = "tableDeleteColumn"
    TABLE_DELETE = "tableDelete"
    INSERT_TEXT = "insertText"
    INSERT_HTML = "insertHTML"
    REMOVE_FORMAT = "removeFormat"
    UNDO = "undo"
    REDO = "redo"


INLINE_MARK_COMMANDS = frozenset(
    {EditorCommand.BOLD, EditorCommand.ITALIC, EditorCommand.UNDERLINE, EditorCommand.STRIKE}
)
COLOR_COMMANDS = frozenset({EditorCommand.TEXT_COLOR, EditorCommand.HIGHLIGHT_COLOR})

# Tags the inline fallback synthesizes.
INLINE_FALLBACK_TAGS = {
    EditorCommand.BOLD: "strong",
    EditorCommand.ITALIC: "em",
    EditorCommand.UNDERLINE: "u",
    EditorCommand.STRIKE: "s",
    EditorCommand.CODE: "code",
}

# Ancestors that make a mark command report active without a native host.
MARK_ACTIVE_TAGS = {
    EditorCommand.BOLD: ("b", "strong"),
    EditorCommand.ITALIC: ("i", "em"),
    EditorCommand.UNDERLINE: ("u",),
    EditorCommand.STRIKE: ("s", "strike", "del"),
    EditorCommand.CODE: ("code",),
    EditorCommand.LINK: ("a",),
}

NATIVE_COMMAND_NAMES = {
    EditorCommand.BOLD: "bold",
    EditorCommand.ITALIC: "italic",
    EditorCommand.UNDERLINE: "underline",
    EditorCommand.STRIKE: "strikeThrough",
}

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_URL_NOISE = re.compile(r"[\t\n\r]")


def is_safe_link(url: str) -> bool:
    """Allow-listed scheme, or a scheme-less reference resolved against the page."""
    candidate = _URL_NOISE.sub("", url.strip())
    if not candidate:
        return False
    try:
        scheme = urlsplit(candidate).scheme.lower()
    except ValueError:
        return False
    return not scheme or scheme in config.link_schemes


def is_safe_hex_color(color: str) -> bool:
    return bool(_HEX_COLOR.match(color))


def is_safe_line_height(line_height: object) -> bool:
    return parse_safe_line_height_value(line_height) is not None


def is_safe_font_family(font_family: str) -> bool:
    trimmed = font_family.strip()
    if not trimmed:
        return True
    return parse_safe_font_family(trimmed) is not None


def parse_safe_font_size(font_size: object) -> float | None:
    return parse_safe_font_size_value(font_size)


def is_safe_font_size(font_size: object) -> bool:
    return parse_safe_font_size(font_size) is not None


def is_safe_table_dimension(value: object) -> bool:
    if isinstance(value, bool):
        return False
    number = parse_finite_number(value) if isinstance(value, (int, float)) else None
    return number is not None and number.is_integer() and 1 <= number <= config.max_table_dimension


def parse_command(command: "EditorCommand | str") -> EditorCommand | None:
    if isinstance(command, EditorCommand):
        return command
    try:
        return EditorCommand(command)
    except ValueError:
        logger.warning("Ignoring unknown editor command: %r", command)
        return None


def parse_payload(payload: "CommandPayload | dict | None") -> CommandPayload | None:
    if payload is None:
        return CommandPayload()
    if isinstance(payload, CommandPayload):
        return payload
    try:
        return CommandPayload.model_validate(payload)
    except ValidationError as exc:
        logger.debug("Rejected command payload: %s", exc)
        return None


def validate_payload(command: EditorCommand, payload: CommandPayload) -> bool:
    """Check the payload a command needs before anything touches the surface."""
    match command:
        case EditorCommand.LINK:
            return bool(payload.url and payload.url.strip()) and is_safe_link(payload.url)
        case EditorCommand.TEXT_COLOR | EditorCommand.HIGHLIGHT_COLOR:
            return payload.color is not None and is_safe_hex_color(payload.color.strip())
        case EditorCommand.FONT_FAMILY:
            return payload.font_family is not None and is_safe_font_family(payload.font_family)
        case EditorCommand.FONT_SIZE:
            return is_safe_font_size(payload.font_size)
        case EditorCommand.LINE_SPACING:
            return is_safe_line_height(payload.line_height)
        case EditorCommand.INSERT_TABLE:
            return is_safe_table_dimension(payload.rows) and is_safe_table_dimension(payload.cols)
        case EditorCommand.INSERT_TEXT:
            return bool(payload.text)
        case EditorCommand.INSERT_HTML:
            return bool(payload.html)
        case _:
            return True


class NativeCommands(Protocol):
    """The host's legacy formatting-command primitive."""

    def exec_command(self, surface: Surface, name: str, value: str | None = None) -> bool: ...

    def query_command_state(self, surface: Surface, name: str) -> bool: ...


def run_native_command(
    native: NativeCommands | None,
    surface: Surface,
    command: EditorCommand,
    payload: CommandPayload,
) -> bool:
    """Map a semantic command onto native command names. ``False`` means not handled."""
    if native is None:
        return False

    if command in NATIVE_COMMAND_NAMES:
        return native.exec_command(surface, NATIVE_COMMAND_NAMES[command])

    color = (payload.color or "").strip()
    if command is EditorCommand.TEXT_COLOR:
        native.exec_command(surface, "styleWithCSS", "true")
        return native.exec_command(surface, "foreColor", color)
    if command is EditorCommand.HIGHLIGHT_COLOR:
        native.exec_command(surface, "styleWithCSS", "true")
        return native.exec_command(surface, "hiliteColor", color) or native.exec_command(
            surface, "backColor", color
        )
    return False
