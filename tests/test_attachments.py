import pytest
from conftest import make_engine, select

from berry_editor.editor import ImageAttachmentPatch, UploadFile
from berry_editor.editor.attachments import (
    clamp_image_width,
    generate_attachment_id,
    is_safe_image_width,
    make_attachment_html,
)

PNG = UploadFile(name="a.png", size=10, content_type="image/png")
PDF = UploadFile(name="r.pdf", size=2048, content_type="application/pdf")
PNG_RESULT = {
    "id": "srv1",
    "url": "https://cdn.test/a.png",
    "filename": "a.png",
    "filesize": 10,
    "contentType": "image/png",
}


@pytest.fixture
def image_engine(recorder):
    engine = make_engine("<p>Hello world</p>", **recorder.callbacks())
    select(engine, 11)
    attachment_id = engine.insert_attachment_placeholder(PNG)
    engine.resolve_attachment(attachment_id, PNG_RESULT)
    return engine, attachment_id


def test_attachment_ids_are_prefixed_and_unique():
    first, second = generate_attachment_id(), generate_attachment_id()
    assert first.startswith("att_")
    assert first != second


def test_width_limits_depend_on_unit():
    assert is_safe_image_width(24, "px") and is_safe_image_width(4096, "px")
    assert not is_safe_image_width(4097, "px")
    assert is_safe_image_width(5, "percent") and not is_safe_image_width(101, "percent")
    assert clamp_image_width(5000, "px") == 4096
    assert clamp_image_width(1, "percent") == 5


def test_finished_image_is_a_bare_img():
    html = make_attachment_html("att_1", filename="a.png", filesize=1, content_type="image/png", url="https://x.test/a.png")
    assert html.startswith('<img class="berry-attachment-image" data-berry-attachment-id="att_1"')
    assert 'alt="a.png"' in html


def test_placeholder_is_inserted_at_the_caret_and_recorded(recorder):
    engine = make_engine("<p>Hello world</p>", **recorder.callbacks())
    select(engine, 11)
    attachment_id = engine.insert_attachment_placeholder(PDF)

    html = engine.get_html()
    assert html.startswith("<p>Hello world<figure")
    assert f'data-berry-attachment-id="{attachment_id}"' in html
    assert "berry-attachment--pending" in html
    assert engine.can_undo()


def test_progress_updates_only_the_surface():
    engine = make_engine("<p>Hello world</p>")
    select(engine, 11)
    attachment_id = engine.insert_attachment_placeholder(PDF)
    depth = len(engine.history)

    engine.set_attachment_progress(attachment_id, 42.4)
    assert 'value="42"' in engine.surface.inner_html
    assert "<span>42%</span>" in engine.surface.inner_html
    assert "42%" not in engine.get_html()
    assert len(engine.history) == depth

    engine.set_attachment_progress(attachment_id, 250)
    assert 'value="100"' in engine.surface.inner_html


def test_failed_upload_is_marked_and_can_be_removed():
    engine = make_engine("<p>Hello world</p>")
    select(engine, 11)
    attachment_id = engine.insert_attachment_placeholder(PDF)

    engine.fail_attachment(attachment_id)
    html = engine.get_html()
    assert "berry-attachment--error" in html
    assert "berry-attachment--pending" not in html
    assert "Upload failed" in html

    engine.remove_attachment(attachment_id)
    assert attachment_id not in engine.get_html()
    assert engine.get_html() == "<p>Hello world</p>"


def test_resolved_document_links_to_the_file():
    engine = make_engine("<p>Hello world</p>")
    select(engine, 11)
    attachment_id = engine.insert_attachment_placeholder(PDF)
    engine.resolve_attachment(
        attachment_id,
        {"id": "srv2", "url": "https://cdn.test/r.pdf", "filename": "r.pdf", "contentType": "application/pdf"},
    )
    html = engine.get_html()
    assert '<a href="https://cdn.test/r.pdf" target="_blank" rel="noopener noreferrer">r.pdf</a>' in html
    assert "berry-attachment--pending" not in html
    assert engine.get_image_attachment_state(attachment_id) is None


def test_unknown_ids_are_ignored(engine, recorder):
    changes = len(recorder.changes)
    engine.set_attachment_progress("missing", 10)
    engine.fail_attachment("missing")
    engine.remove_attachment("missing")
    engine.resolve_attachment("missing", PNG_RESULT)
    assert not engine.update_image_attachment("missing", {"width": 100})
    assert len(recorder.changes) == changes


def test_resolved_image_state_defaults(image_engine):
    engine, attachment_id = image_engine
    assert 'src="https://cdn.test/a.png"' in engine.get_html()

    state = engine.get_image_attachment_state(attachment_id)
    assert state.id == attachment_id
    assert state.width is None and state.width_unit == "px"
    assert state.link_url is None and state.wrap_side == "left"


def test_width_patch_is_validated(image_engine):
    engine, attachment_id = image_engine
    assert not engine.update_image_attachment(attachment_id, {"width": 5000})

    assert engine.update_image_attachment(attachment_id, {"width": 4096})
    assert engine.get_image_attachment_state(attachment_id).width == 4096
    html = engine.get_html()
    assert 'width="4096"' in html and "width:4096px" in html


def test_percent_width_and_reset(image_engine):
    engine, attachment_id = image_engine
    assert engine.update_image_attachment(attachment_id, ImageAttachmentPatch(width=50, width_unit="percent"))
    state = engine.get_image_attachment_state(attachment_id)
    assert (state.width, state.width_unit) == (50, "percent")
    assert "width:50%" in engine.get_html()

    assert engine.update_image_attachment(attachment_id, {"resetSize": True})
    assert engine.get_image_attachment_state(attachment_id).width is None
    assert "width:" not in engine.get_html()


def test_link_patch_wraps_and_unwraps_the_image(image_engine):
    engine, attachment_id = image_engine
    assert not engine.update_image_attachment(attachment_id, {"linkUrl": "javascript:alert(1)"})

    assert engine.update_image_attachment(attachment_id, {"linkUrl": "https://example.com"})
    state = engine.get_image_attachment_state(attachment_id)
    assert state.link_url == "https://example.com"
    assert state.link_open_in_new_tab is True
    assert '<a href="https://example.com" target="_blank" rel="noopener noreferrer"><img' in engine.get_html()

    assert engine.update_image_attachment(attachment_id, {"linkOpenInNewTab": False})
    assert 'target="_blank"' not in engine.get_html()

    assert engine.update_image_attachment(attachment_id, {"linkUrl": ""})
    assert "<a " not in engine.get_html()
    assert engine.get_image_attachment_state(attachment_id).link_url is None


def test_layout_patch(image_engine):
    engine, attachment_id = image_engine
    assert engine.update_image_attachment(
        attachment_id, {"imageAlign": "center", "wrapText": True, "wrapSide": "right", "padding": 12}
    )
    state = engine.get_image_attachment_state(attachment_id)
    assert state.image_align == "center"
    assert state.wrap_text and state.wrap_side == "right"
    assert state.padding == 12

    assert not engine.update_image_attachment(attachment_id, {"padding": 200})
    assert not engine.update_image_attachment(attachment_id, {"imageAlign": "middle"})


def test_patch_is_undoable(image_engine):
    engine, attachment_id = image_engine
    before = engine.get_html()
    engine.update_image_attachment(attachment_id, {"width": 300})
    engine.undo()
    assert engine.get_html() == before


def test_drag_resize_clamps_and_commits_on_release(image_engine):
    engine, attachment_id = image_engine
    depth = len(engine.history)

    assert engine.resize_image_attachment(attachment_id, 5000)
    assert "width:4096px" in engine.surface.inner_html
    assert "width:4096px" not in engine.get_html()
    assert len(engine.history) == depth

    assert engine.resize_image_attachment(attachment_id, 10, final=True)
    assert engine.get_image_attachment_state(attachment_id).width == 24
    assert "width:24px" in engine.get_html()
    assert len(engine.history) == depth + 1

    assert not engine.resize_image_attachment(attachment_id, 100, unit="em")
