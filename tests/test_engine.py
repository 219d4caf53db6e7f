from conftest import make_engine, select

from berry_editor.common.models import SelectionRange
from berry_editor.editor import EditorCommand, EditorEngine
from berry_editor.surface import Surface


def test_bold_without_native_commands_wraps_in_strong(engine, recorder):
    select(engine, 0, 5)
    engine.exec(EditorCommand.BOLD)

    assert engine.get_html() == "<p><strong>Hello</strong> world</p>"
    assert recorder.changes[-1] == engine.get_html()
    assert engine.can_undo()


def test_bold_with_native_commands_keeps_native_markup(native_engine):
    select(native_engine, 0, 5)
    native_engine.exec("bold")
    assert native_engine.get_html() == "<p><b>Hello</b> world</p>"
    assert native_engine.is_command_active(EditorCommand.BOLD)


def test_collapsed_caret_without_prior_selection_changes_nothing(engine, recorder):
    changes = len(recorder.changes)
    engine.exec(EditorCommand.BOLD)
    assert engine.get_html() == "<p>Hello world</p>"
    assert len(recorder.changes) == changes
    assert not engine.can_undo()


def test_command_restores_the_remembered_selection(engine):
    select(engine, 6, 11)
    engine.surface.clear_selection()
    engine.exec(EditorCommand.ITALIC)
    assert engine.get_html() == "<p>Hello <em>world</em></p>"


def test_mark_is_active_inside_synthesized_tag(engine):
    select(engine, 0, 5)
    engine.exec(EditorCommand.UNDERLINE)
    assert engine.is_command_active(EditorCommand.UNDERLINE)
    assert not engine.is_command_active(EditorCommand.ITALIC)


def test_native_text_color_is_normalized_and_reported(native_engine, recorder):
    select(native_engine, 0, 5)
    native_engine.exec(EditorCommand.TEXT_COLOR, {"color": "#FF0000"})

    assert native_engine.get_html() == '<p><span style="color:#ff0000">Hello</span> world</p>'
    assert recorder.notices and recorder.notices[-1].changed


def test_text_color_fallback_uses_styled_span(engine):
    select(engine, 0, 5)
    engine.exec(EditorCommand.TEXT_COLOR, {"color": "#00f"})
    assert engine.get_html() == '<p><span style="color:#0000ff">Hello</span> world</p>'


def test_undo_and_redo_restore_html_and_selection(engine, recorder):
    select(engine, 0, 5)
    engine.exec(EditorCommand.BOLD)

    engine.undo()
    assert engine.get_html() == "<p>Hello world</p>"
    assert recorder.changes[-1] == "<p>Hello world</p>"
    assert recorder.selections[-1] == SelectionRange(anchor=0, focus=5)
    assert engine.can_redo()

    engine.exec("redo")
    assert engine.get_html() == "<p><strong>Hello</strong> world</p>"
    assert not engine.can_redo()


def test_undo_with_empty_history_is_a_no_op(engine, recorder):
    changes = len(recorder.changes)
    engine.undo()
    assert engine.get_html() == "<p>Hello world</p>"
    assert len(recorder.changes) == changes


def test_load_html_clears_history(engine):
    select(engine, 0, 5)
    engine.exec(EditorCommand.BOLD)
    engine.load_html("<p>Fresh</p>")
    assert not engine.can_undo()
    assert engine.get_html() == "<p>Fresh</p>"


def test_set_html_records_history_and_reports_sanitizing(engine, recorder):
    engine.set_html("<p>New</p><script>alert(1)</script>")
    assert engine.get_html() == "<p>New</p>"
    assert recorder.notices[-1].message
    assert engine.can_undo()

    engine.undo()
    assert engine.get_html() == "<p>Hello world</p>"


def test_set_html_without_history(engine):
    engine.set_html("<p>New</p>", add_to_history=False)
    assert not engine.can_undo()


def test_selection_round_trips_through_the_engine(engine, recorder):
    select(engine, 2, 4)
    assert engine.get_selection() == SelectionRange(anchor=2, focus=4)
    assert recorder.selections[-1] == SelectionRange(anchor=2, focus=4)


def test_focus_and_blur_callbacks(engine, recorder):
    engine.focus()
    engine.focus()
    engine.blur()
    assert recorder.focus_events == 1
    assert recorder.blur_events == 1


def test_typing_is_committed_on_input(engine, recorder):
    engine.focus()
    engine.surface.root.p.append("!")
    engine.surface.dispatch("input")

    assert engine.get_html() == "<p>Hello world!</p>"
    assert recorder.changes[-1] == "<p>Hello world!</p>"
    engine.undo()
    assert engine.get_html() == "<p>Hello world</p>"


def test_input_during_composition_waits_for_composition_end(engine):
    surface = engine.surface
    surface.dispatch("compositionstart")
    surface.root.p.append("あ")
    surface.dispatch("input")
    assert engine.get_html() == "<p>Hello world</p>"

    surface.dispatch("compositionend")
    assert engine.get_html() == "<p>Hello worldあ</p>"


def test_unsafe_input_is_stripped_without_a_history_entry(engine, recorder):
    changes = len(recorder.changes)
    engine.surface.root.p["onclick"] = "steal()"
    engine.surface.dispatch("input")

    assert engine.surface.inner_html == "<p>Hello world</p>"
    assert recorder.notices
    assert len(recorder.changes) == changes
    assert not engine.can_undo()


def test_commands_issued_from_callbacks_are_ignored():
    engine = make_engine("<p>Hello world</p>")
    seen = []

    def on_change(html):
        seen.append(html)
        engine.exec(EditorCommand.ITALIC)

    engine.set_callbacks(on_change=on_change)
    select(engine, 0, 5)
    engine.exec(EditorCommand.BOLD)

    assert seen == ["<p><strong>Hello</strong> world</p>"]
    assert "<em>" not in engine.get_html()


def test_invalid_commands_and_payloads_are_ignored(engine, recorder):
    changes = len(recorder.changes)
    select(engine, 0, 5)
    engine.exec("explode")
    engine.exec(EditorCommand.LINK, {"url": "javascript:alert(1)"})
    engine.exec(EditorCommand.FONT_SIZE, {"fontSize": 97})
    assert engine.get_html() == "<p>Hello world</p>"
    assert len(recorder.changes) == changes


def test_unbound_engine_is_inert():
    engine = EditorEngine()
    engine.exec(EditorCommand.BOLD)
    engine.set_html("<p>x</p>")
    assert engine.get_html() == ""
    assert engine.get_selection() is None


def test_unbind_detaches_listeners(engine, recorder):
    surface = engine.surface
    engine.unbind()
    surface.focus()
    assert recorder.focus_events == 0

    other = Surface()
    engine.bind(other)
    engine.load_html("<p>Other</p>")
    assert other.inner_html == "<p>Other</p>"


def test_remove_format_strips_inline_marks(engine):
    engine.load_html('<p><strong>Hello</strong> <span style="color:#ff0000">world</span></p>')
    select(engine, 0, 11)
    engine.exec(EditorCommand.REMOVE_FORMAT)
    assert engine.get_html() == "<p>Hello world</p>"


def test_code_wraps_selection(engine):
    select(engine, 6, 11)
    engine.exec(EditorCommand.CODE)
    assert engine.get_html() == "<p>Hello <code>world</code></p>"


def test_insert_text_replaces_selection(engine):
    select(engine, 6, 11)
    engine.exec(EditorCommand.INSERT_TEXT, {"text": "there"})
    assert engine.get_html() == "<p>Hello there</p>"
    assert engine.get_selection() == SelectionRange(anchor=11, focus=11)
