import pytest

from berry_editor.editor.commands import (
    EditorCommand,
    parse_command,
    parse_payload,
    run_native_command,
    validate_payload,
)
from berry_editor.editor.models import CommandPayload
from berry_editor.surface import Surface


class RecordingNative:
    """Native command stub that records calls and answers from a table."""

    def __init__(self, results=None):
        self.calls = []
        self.results = results or {}

    def exec_command(self, surface, name, value=None):
        self.calls.append((name, value))
        return self.results.get(name, True)

    def query_command_state(self, surface, name):
        return False


def test_parse_command_accepts_enum_and_wire_names():
    assert parse_command("bold") is EditorCommand.BOLD
    assert parse_command(EditorCommand.INSERT_HTML) is EditorCommand.INSERT_HTML
    assert parse_command("insertHTML") is EditorCommand.INSERT_HTML
    assert parse_command("explode") is None


def test_parse_payload_accepts_camel_case_and_rejects_bad_types():
    payload = parse_payload({"url": "https://x.test", "openInNewTab": True})
    assert payload.open_in_new_tab
    assert parse_payload(None) == CommandPayload()
    assert parse_payload({"rows": "many"}) is None


@pytest.mark.parametrize(
    "command, payload, expected",
    [
        (EditorCommand.LINK, {"url": "https://x.test"}, True),
        (EditorCommand.LINK, {"url": "  "}, False),
        (EditorCommand.LINK, {"url": "javascript:alert(1)"}, False),
        (EditorCommand.TEXT_COLOR, {"color": " #ff0000 "}, True),
        (EditorCommand.HIGHLIGHT_COLOR, {"color": "yellow"}, False),
        (EditorCommand.FONT_SIZE, {"fontSize": "7"}, False),
        (EditorCommand.FONT_SIZE, {"fontSize": "8"}, True),
        (EditorCommand.FONT_SIZE, {"fontSize": 96}, True),
        (EditorCommand.FONT_SIZE, {"fontSize": "97px"}, False),
        (EditorCommand.LINE_SPACING, {"lineHeight": "1.5"}, True),
        (EditorCommand.LINE_SPACING, {"lineHeight": 4}, False),
        (EditorCommand.FONT_FAMILY, {"fontFamily": ""}, True),
        (EditorCommand.FONT_FAMILY, {"fontFamily": "<b>"}, False),
        (EditorCommand.FONT_FAMILY, {}, False),
        (EditorCommand.INSERT_TABLE, {"rows": 3, "cols": 10}, True),
        (EditorCommand.INSERT_TABLE, {"rows": 0, "cols": 2}, False),
        (EditorCommand.INSERT_TABLE, {"rows": 2, "cols": 11}, False),
        (EditorCommand.INSERT_TEXT, {"text": ""}, False),
        (EditorCommand.INSERT_HTML, {"html": "<p>x</p>"}, True),
        (EditorCommand.BOLD, {}, True),
    ],
)
def test_validate_payload(command, payload, expected):
    assert validate_payload(command, parse_payload(payload)) is expected


def test_inline_marks_map_to_native_names():
    native = RecordingNative()
    assert run_native_command(native, Surface(), EditorCommand.STRIKE, CommandPayload())
    assert native.calls == [("strikeThrough", None)]


def test_text_color_enables_css_styling_first():
    native = RecordingNative()
    run_native_command(native, Surface(), EditorCommand.TEXT_COLOR, CommandPayload(color=" #ff0000 "))
    assert native.calls == [("styleWithCSS", "true"), ("foreColor", "#ff0000")]


def test_highlight_falls_back_to_back_color():
    native = RecordingNative(results={"hiliteColor": False})
    assert run_native_command(native, Surface(), EditorCommand.HIGHLIGHT_COLOR, CommandPayload(color="#ff0"))
    assert [name for name, _ in native.calls] == ["styleWithCSS", "hiliteColor", "backColor"]


def test_unmapped_commands_are_not_handled_natively():
    native = RecordingNative()
    assert not run_native_command(native, Surface(), EditorCommand.BULLET, CommandPayload())
    assert not run_native_command(None, Surface(), EditorCommand.BOLD, CommandPayload())
    assert native.calls == []
