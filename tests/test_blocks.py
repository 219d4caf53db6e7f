import pytest
from conftest import make_engine, select

from berry_editor.editor import EditorCommand


@pytest.mark.parametrize(
    "command, tag",
    [
        (EditorCommand.HEADING1, "h1"),
        (EditorCommand.HEADING2, "h2"),
        (EditorCommand.HEADING3, "h3"),
        (EditorCommand.QUOTE, "blockquote"),
    ],
)
def test_block_formats_rename_the_current_block(engine, command, tag):
    select(engine, 2)
    engine.exec(command)
    assert engine.get_html() == f"<{tag}>Hello world</{tag}>"

    engine.exec(EditorCommand.PARAGRAPH)
    assert engine.get_html() == "<p>Hello world</p>"


def test_heading_lifts_a_list_item_out_of_its_list():
    engine = make_engine("<ul><li>One</li><li>Two</li></ul>")
    select(engine, 1)
    engine.exec(EditorCommand.HEADING2)
    assert engine.get_html() == "<h2>One</h2><ul><li>Two</li></ul>"


def test_bullet_list_toggles_on_and_off():
    engine = make_engine("<p>One</p><p>Two</p>")
    select(engine, 0, 6)

    engine.exec(EditorCommand.BULLET)
    assert engine.get_html() == "<ul><li>One</li><li>Two</li></ul>"
    assert engine.is_command_active(EditorCommand.BULLET)
    assert not engine.is_command_active(EditorCommand.NUMBER)

    engine.exec(EditorCommand.BULLET)
    assert engine.get_html() == "<p>One</p><p>Two</p>"


def test_numbered_list_converts_a_bullet_list():
    engine = make_engine("<ul><li>One</li><li>Two</li></ul>")
    select(engine, 0, 6)
    engine.exec(EditorCommand.NUMBER)
    assert engine.get_html() == "<ol><li>One</li><li>Two</li></ol>"


def test_alignment_applies_to_every_selected_block():
    engine = make_engine("<p>One</p><p>Two</p>")
    select(engine, 1, 5)
    engine.exec(EditorCommand.ALIGN_RIGHT)
    assert engine.get_html() == '<p style="text-align:right">One</p><p style="text-align:right">Two</p>'


def test_center_alignment_at_caret(engine):
    select(engine, 2)
    engine.exec(EditorCommand.ALIGN_CENTER)
    assert engine.get_html() == '<p style="text-align:center">Hello world</p>'


def test_font_family_sets_and_resets(engine):
    select(engine, 2)
    engine.exec(EditorCommand.FONT_FAMILY, {"fontFamily": "Georgia,  serif"})
    assert engine.get_html() == '<p style="font-family:Georgia, serif">Hello world</p>'

    engine.exec(EditorCommand.FONT_FAMILY, {"fontFamily": ""})
    assert engine.get_html() == "<p>Hello world</p>"


def test_font_size_and_line_spacing(engine):
    select(engine, 2)
    engine.exec(EditorCommand.FONT_SIZE, {"fontSize": "18"})
    engine.exec(EditorCommand.LINE_SPACING, {"lineHeight": 1.5})
    assert engine.get_html() == '<p style="font-size:18px;line-height:1.5">Hello world</p>'


def test_font_size_out_of_range_is_rejected(engine):
    select(engine, 2)
    engine.exec(EditorCommand.FONT_SIZE, {"fontSize": 7})
    assert engine.get_html() == "<p>Hello world</p>"


def test_horizontal_rule_is_followed_by_an_empty_paragraph(engine):
    select(engine, 5)
    engine.exec(EditorCommand.INSERT_HORIZONTAL_RULE)
    assert engine.get_html() == "<p>Hello world</p><hr><p><br></p>"
    assert engine.surface.selection.anchor_node.name == "p"


def test_link_wraps_the_selection(engine):
    select(engine, 0, 5)
    engine.exec(EditorCommand.LINK, {"url": " https://x.test ", "openInNewTab": True})
    assert engine.get_html() == (
        '<p><a href="https://x.test" target="_blank" rel="noopener noreferrer">Hello</a> world</p>'
    )


def test_link_with_text_inserts_at_the_caret(engine):
    select(engine, 11)
    engine.exec(EditorCommand.LINK, {"url": "mailto:me@x.test", "text": "mail"})
    assert engine.get_html() == '<p>Hello world<a href="mailto:me@x.test">mail</a></p>'


def test_unlink_at_caret():
    engine = make_engine('<p><a href="https://x.test">Hello</a> world</p>')
    select(engine, 2)
    assert engine.is_command_active(EditorCommand.LINK)

    engine.exec(EditorCommand.UNLINK)
    assert engine.get_html() == "<p>Hello world</p>"


def test_insert_table_after_the_current_block(engine):
    select(engine, 11)
    engine.exec(EditorCommand.INSERT_TABLE, {"rows": 2, "cols": 2})

    row = "<tr><td><br></td><td><br></td></tr>"
    assert engine.get_html() == f"<p>Hello world</p><table><tbody>{row}{row}</tbody></table><p><br></p>"


def test_insert_bordered_table(engine):
    select(engine, 11)
    engine.exec(EditorCommand.INSERT_TABLE, {"rows": 1, "cols": 1, "bordered": True})
    assert (
        '<table style="border-collapse:collapse"><tbody><tr><td style="border:1px solid #000000"><br></td></tr>'
        in engine.get_html()
    )


def test_insert_html_block_replaces_an_empty_paragraph():
    engine = make_engine("<p>One</p><p><br></p>")
    engine.focus()
    engine.surface.select(engine.surface.root.contents[1], 0)
    engine.exec(EditorCommand.INSERT_HTML, {"html": "<h2>Two</h2>"})
    assert engine.get_html() == "<p>One</p><h2>Two</h2>"
