"""Attachment markup and image-attachment state on the live surface."""

import random
import string
import time
from html import escape

from bs4 import Tag

from berry_editor.common.models.base import WidthUnit
from berry_editor.common.utils.config import config
from berry_editor.common.utils.style_guards import format_number, parse_finite_number, round_two
from berry_editor.editor.commands import is_safe_link
from berry_editor.editor.models import ImageAttachmentState
from berry_editor.markup.soup import add_class, closest, has_class, set_style_property
from berry_editor.markup.styles import (
    IMAGE_PADDING_RANGE,
    IMAGE_WIDTH_PERCENT_RANGE,
    IMAGE_WIDTH_PX_RANGE,
    parse_style_map,
)
from berry_editor.surface.core import Surface
from berry_editor.surface.ranges import contains

ATTACHMENT_ID_ATTRIBUTE = "data-berry-attachment-id"
CONTENT_TYPE_ATTRIBUTE = "data-berry-content-type"
BODY_CLASS = "berry-attachment__body"
NEW_TAB_ATTRS = ' target="_blank" rel="noopener noreferrer"'

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_attachment_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=8))
    return f"{config.attachment_id_prefix}_{int(time.time() * 1000)}_{suffix}"


def _width_range(unit: WidthUnit) -> tuple[int, int]:
    return IMAGE_WIDTH_PERCENT_RANGE if unit == "percent" else IMAGE_WIDTH_PX_RANGE


def is_safe_image_width(value: float, unit: WidthUnit) -> bool:
    number = parse_finite_number(value)
    if number is None:
        return False
    low, high = _width_range(unit)
    return low <= number <= high


def clamp_image_width(value: float, unit: WidthUnit) -> float:
    low, high = _width_range(unit)
    return max(low, min(high, value))


def is_safe_image_padding(value: float) -> bool:
    number = parse_finite_number(value)
    return number is not None and IMAGE_PADDING_RANGE[0] <= number <= IMAGE_PADDING_RANGE[1]


def _numeric(value: str | None) -> float | None:
    if not value:
        return None
    number = parse_finite_number(value)
    return round_two(number) if number is not None else None


def _width_from_style(style: str | None) -> tuple[float, WidthUnit] | None:
    value = parse_style_map(style).get("width", "").lower()
    if not value:
        return None
    if value.endswith("%"):
        width = _numeric(value[:-1].strip())
        if width is None or not is_safe_image_width(width, "percent"):
            return None
        return width, "percent"
    if value.endswith("px"):
        value = value[:-2].strip()
    width = _numeric(value)
    if width is None or not is_safe_image_width(width, "px"):
        return None
    return width, "px"


def _padding_from_style(style: str | None) -> float | None:
    value = parse_style_map(style).get("padding", "").lower()
    if value.endswith("px"):
        value = value[:-2].strip()
    padding = _numeric(value)
    if padding is None or not is_safe_image_padding(padding):
        return None
    return padding


def make_attachment_html(
    attachment_id: str,
    *,
    filename: str,
    filesize: int,
    content_type: str,
    url: str = "",
    preview_url: str = "",
    caption: str = "",
    pending: bool = False,
    progress: float = 0,
    alt: str | None = None,
    width: float | None = None,
    width_unit: WidthUnit = "px",
    height: float | None = None,
    padding: float | None = None,
    image_align: str | None = None,
    wrap_text: bool = False,
    wrap_side: str | None = None,
    link_url: str | None = None,
    link_open_in_new_tab: bool = True,
) -> str:
    """Markup for an attachment.

    Finished images render as a bare ``img.berry-attachment-image`` (wrapped
    in a link when one is set); pending uploads and documents render as a
    ``figure.berry-attachment``. Every variant carries the ``data-berry-*``
    metadata the parser reads back.
    """
    is_image = content_type.startswith("image/")
    has_image_source = is_image and bool(preview_url or url)
    safe_progress = int(max(0, min(100, progress)))

    safe_width = None
    if width is not None and is_safe_image_width(width, width_unit):
        safe_width = round_two(clamp_image_width(width, width_unit))
    safe_padding = round_two(padding) if padding is not None and is_safe_image_padding(padding) else None
    safe_height = int(height + 0.5) if height is not None and height > 0 else None
    safe_link = link_url if link_url and is_safe_link(link_url) else None

    data_attrs = (
        f'{ATTACHMENT_ID_ATTRIBUTE}="{escape(attachment_id)}" data-berry-url="{escape(url)}" '
        f'data-berry-filename="{escape(filename)}" data-berry-filesize="{filesize}" '
        f'{CONTENT_TYPE_ATTRIBUTE}="{escape(content_type)}" data-berry-preview-url="{escape(preview_url)}" '
        f'data-berry-caption="{escape(caption)}" data-berry-pending="{"true" if pending else "false"}"'
    )
    image_meta = ""
    if is_image:
        if image_align:
            image_meta += f' data-berry-image-align="{image_align}"'
        if wrap_text:
            image_meta += ' data-berry-image-wrap="true"'
        if wrap_side:
            image_meta += f' data-berry-image-wrap-side="{wrap_side}"'
        if safe_padding is not None:
            image_meta += f' data-berry-image-padding="{format_number(safe_padding)}"'
        if safe_width is not None:
            image_meta += f' data-berry-image-width="{format_number(safe_width)}"'
            image_meta += f' data-berry-image-width-unit="{width_unit}"'

    image_html = ""
    if has_image_source:
        extra = ""
        if safe_width is not None and width_unit == "px":
            extra += f' width="{int(safe_width + 0.5)}"'
        if safe_height is not None:
            extra += f' height="{safe_height}"'
        if safe_width is not None:
            extra += f' style="width:{format_number(safe_width)}{"%" if width_unit == "percent" else "px"}"'
        image_html = (
            f'<img class="berry-attachment-image" {data_attrs}{image_meta} '
            f'src="{escape(preview_url or url)}" alt="{escape(alt if alt is not None else filename)}"{extra}>'
        )

    if has_image_source and not pending:
        if safe_link is not None:
            target = NEW_TAB_ATTRS if link_open_in_new_tab else ""
            return f'<a href="{escape(safe_link)}"{target}>{image_html}</a>'
        return image_html

    progress_html = ""
    if pending:
        progress_html = f'<progress max="100" value="{safe_progress}"></progress>'
        if not is_image:
            progress_html = (
                f'<div class="berry-attachment__meta"><span>{escape(filename)}</span>'
                f"<span>{safe_progress}%</span></div>{progress_html}"
            )

    body = image_html if is_image else f'<a href="{escape(url or "#")}"{NEW_TAB_ATTRS}>{escape(filename)}</a>'
    class_name = "berry-attachment"
    if is_image:
        class_name += " berry-attachment--image"
    if pending:
        class_name += " berry-attachment--pending"
    body_style = f' style="padding:{format_number(safe_padding)}px"' if safe_padding is not None else ""
    caption_html = "" if is_image else f'<figcaption contenteditable="true">{escape(caption)}</figcaption>'
    return (
        f'<figure class="{class_name}" {data_attrs}{image_meta}>'
        f'<div class="{BODY_CLASS}"{body_style}>{body}{progress_html}</div>{caption_html}</figure>'
    )


def find_attachment(root: Tag, attachment_id: str) -> Tag | None:
    return root.find(attrs={ATTACHMENT_ID_ATTRIBUTE: attachment_id})


def find_image_attachment_container(root: Tag, attachment_id: str) -> Tag | None:
    return root.find(
        lambda tag: tag.get(ATTACHMENT_ID_ATTRIBUTE) == attachment_id
        and (tag.get(CONTENT_TYPE_ATTRIBUTE) or "").startswith("image/")
    )


def _find_body(container: Tag) -> Tag | None:
    for child in container.find_all(recursive=False):
        if has_class(child, BODY_CLASS):
            return child
    return None


def _ensure_body(surface: Surface, container: Tag) -> Tag:
    existing = _find_body(container)
    if existing is not None:
        return existing
    body = surface.new_tag("div", {"class": BODY_CLASS})
    figcaption = container.find("figcaption", recursive=False)
    for node in [child for child in container.contents if child is not figcaption]:
        body.append(node.extract())
    if figcaption is not None:
        figcaption.insert_before(body)
    else:
        container.append(body)
    return body


def _find_image(container: Tag) -> Tag | None:
    if container.name == "img":
        return container
    return container.find(lambda tag: tag.name == "img" and not has_class(tag, "berry-emoji"))


def _scoped_anchor(root: Tag, container: Tag, image: Tag) -> Tag | None:
    anchor = closest(image, lambda tag: tag.name == "a", root)
    if anchor is None:
        return None
    if container.name == "figure" and not contains(container, anchor):
        return None
    return anchor


def read_image_attachment_state(root: Tag, container: Tag) -> ImageAttachmentState | None:
    attachment_id = container.get(ATTACHMENT_ID_ATTRIBUTE)
    if not attachment_id:
        return None
    image = _find_image(container)
    if image is None:
        return None

    is_figure = container.name == "figure"
    meta = container if is_figure else image
    body = _find_body(container) if is_figure else None

    width: float | None = None
    width_unit: WidthUnit = "px"
    width_attr = _numeric(meta.get("data-berry-image-width"))
    unit_attr = meta.get("data-berry-image-width-unit")
    if width_attr is not None and unit_attr in ("px", "percent"):
        if is_safe_image_width(width_attr, unit_attr):
            width, width_unit = width_attr, unit_attr
    else:
        parsed = _width_from_style(image.get("style"))
        if parsed is not None:
            width, width_unit = parsed
        else:
            width_prop = _numeric(image.get("width"))
            if width_prop is not None and is_safe_image_width(width_prop, "px"):
                width = width_prop

    padding = _numeric(meta.get("data-berry-image-padding"))
    if padding is None or not is_safe_image_padding(padding):
        padding = _padding_from_style((body if body is not None else image).get("style"))

    align = meta.get("data-berry-image-align")
    anchor = _scoped_anchor(root, container, image)
    link_url = anchor.get("href") if anchor is not None else None

    return ImageAttachmentState(
        id=attachment_id,
        width=width,
        width_unit=width_unit,
        padding=padding,
        image_align=align if align in ("left", "center", "right") else None,
        wrap_text=meta.get("data-berry-image-wrap") == "true",
        wrap_side="right" if meta.get("data-berry-image-wrap-side") == "right" else "left",
        link_url=link_url or None,
        link_open_in_new_tab=(anchor.get("target") == "_blank") if link_url else None,
    )


def _set_data(tag: Tag, name: str, value: str | None) -> None:
    if value is None or value == "":
        if name in tag.attrs:
            del tag[name]
        return
    tag[name] = value


def apply_image_attachment_state(surface: Surface, container: Tag, state: ImageAttachmentState) -> None:
    """Write ``state`` back onto the container's data attributes, styles and link."""
    is_figure = container.name == "figure"
    body = _ensure_body(surface, container) if is_figure else None
    image = _find_image(body if body is not None else container) or _find_image(container)
    if image is None:
        return
    if is_figure:
        add_class(container, "berry-attachment--image")
    else:
        add_class(image, "berry-attachment-image")

    meta = container if is_figure else image
    _set_data(meta, "data-berry-image-align", state.image_align)
    _set_data(meta, "data-berry-image-wrap", "true" if state.wrap_text else None)
    _set_data(meta, "data-berry-image-wrap-side", state.wrap_side)

    padding_target = body if body is not None else image
    if state.padding is not None:
        set_style_property(padding_target, "padding", f"{format_number(state.padding)}px")
        _set_data(meta, "data-berry-image-padding", format_number(state.padding))
    else:
        set_style_property(padding_target, "padding", None)
        _set_data(meta, "data-berry-image-padding", None)

    if state.width is not None:
        safe_width = round_two(clamp_image_width(state.width, state.width_unit))
        suffix = "%" if state.width_unit == "percent" else "px"
        set_style_property(image, "width", f"{format_number(safe_width)}{suffix}")
        _set_data(image, "width", str(int(safe_width + 0.5)) if state.width_unit == "px" else None)
        _set_data(meta, "data-berry-image-width", format_number(safe_width))
        _set_data(meta, "data-berry-image-width-unit", state.width_unit)
    else:
        set_style_property(image, "width", None)
        _set_data(image, "width", None)
        _set_data(meta, "data-berry-image-width", None)
        _set_data(meta, "data-berry-image-width-unit", None)

    anchor = _scoped_anchor(surface.root, container, image)
    if state.link_url:
        open_in_new_tab = state.link_open_in_new_tab is not False
        if anchor is None:
            anchor = surface.new_tag("a", {"href": state.link_url})
            image.wrap(anchor)
        anchor["href"] = state.link_url
        _set_data(anchor, "target", "_blank" if open_in_new_tab else None)
        _set_data(anchor, "rel", "noopener noreferrer" if open_in_new_tab else None)
    elif anchor is not None:
        anchor.replace_with(image.extract())
