"""Sanitized HTML -> document model."""

import re

from bs4 import Tag
from bs4.element import PageElement

from berry_editor.common.utils.config import config
from berry_editor.common.utils.style_guards import (
    format_number,
    parse_rounded_number_in_range,
    parse_safe_font_family,
    parse_safe_font_size_value,
    parse_safe_line_height_value,
)
from berry_editor.markup.sanitize import sanitize_html
from berry_editor.markup.soup import has_class, is_text, make_soup, text_content
from berry_editor.markup.styles import (
    ALIGNMENTS,
    IMAGE_PADDING_RANGE,
    IMAGE_WIDTH_PERCENT_RANGE,
    IMAGE_WIDTH_PX_RANGE,
    normalize_safe_hex_color,
    parse_safe_padding,
    parse_safe_width,
    parse_style_map,
)
from berry_editor.model.models import (
    AttachmentNode,
    BlockType,
    EditorDocument,
    HorizontalRuleBlock,
    Marks,
    TableBlock,
    TableCell,
    TableRow,
    TextBlock,
    TextNode,
)

ATTACHMENT_ID_ATTRIBUTE = "data-berry-attachment-id"

HEADING_TYPES = {"h1": BlockType.HEADING1, "h2": BlockType.HEADING2, "h3": BlockType.HEADING3}
CONTAINER_BLOCK_TAGS = frozenset({"p", "h1", "h2", "h3", "blockquote", "pre", "ul", "ol", "table", "hr", "div"})

_LINE_ENDINGS = re.compile(r"\r\n?|\n")


def _typography(style: dict[str, str]) -> dict:
    out: dict = {}
    align = style.get("text-align", "").strip().lower()
    if align in ALIGNMENTS:
        out["align"] = align
    line_height = parse_safe_line_height_value(style.get("line-height"))
    if line_height is not None:
        out["line_height"] = line_height
    font_size = parse_safe_font_size_value(style.get("font-size"))
    if font_size is not None:
        out["font_size"] = font_size
    font_family = parse_safe_font_family(style.get("font-family"))
    if font_family is not None:
        out["font_family"] = font_family
    return out


def _block_style(node: Tag) -> dict:
    return _typography(parse_style_map(node.get("style")))


def _parse_marks(node: Tag, marks: Marks) -> Marks:
    update: dict = {}
    match node.name:
        case "strong" | "b":
            update["bold"] = True
        case "em" | "i":
            update["italic"] = True
        case "u":
            update["underline"] = True
        case "s" | "strike" | "del":
            update["strike"] = True
        case "code":
            update["code"] = True
        case "a":
            if node.get("href"):
                update["link"] = node["href"]
            if node.get("target") == "_blank":
                update["link_target"] = "_blank"
        case "mark":
            update["highlight_color"] = config.mark_highlight_color

    style = parse_style_map(node.get("style"))
    color = normalize_safe_hex_color(style.get("color"))
    if color:
        update["text_color"] = color
    background = normalize_safe_hex_color(style.get("background-color"))
    if background:
        update["highlight_color"] = background
    font_family = parse_safe_font_family(style.get("font-family"))
    if font_family:
        update["font_family"] = font_family
    font_size = parse_safe_font_size_value(style.get("font-size"))
    if font_size is not None:
        update["font_size"] = f"{format_number(font_size)}px"

    return marks.model_copy(update=update) if update else marks


def _attachment_image(node: Tag) -> Tag | None:
    if node.name == "img":
        return node
    return node.find(lambda tag: tag.name == "img" and not has_class(tag, "berry-emoji"))


def _parse_attachment(node: Tag, link: str | None = None, link_target: str | None = None) -> AttachmentNode | None:
    attachment_id = node.get(ATTACHMENT_ID_ATTRIBUTE)
    if not attachment_id:
        return None

    img = _attachment_image(node)
    body = node.find(lambda tag: has_class(tag, "berry-attachment__body")) if node.name != "img" else None
    image_style = parse_style_map(img.get("style")) if img is not None else {}
    body_style = parse_style_map(body.get("style")) if body is not None else {}

    fields: dict = {
        "id": attachment_id,
        "url": node.get("data-berry-url") or "",
        "filename": node.get("data-berry-filename") or "file",
        "content_type": node.get("data-berry-content-type") or "application/octet-stream",
        "pending": node.get("data-berry-pending") == "true",
    }
    filesize = parse_rounded_number_in_range(node.get("data-berry-filesize") or "0", 0, float("inf"))
    fields["filesize"] = int(filesize) if filesize is not None else 0

    if node.get("data-berry-preview-url"):
        fields["preview_url"] = node["data-berry-preview-url"]

    caption = node.get("data-berry-caption")
    if not caption:
        figcaption = node.find("figcaption") if node.name != "img" else None
        caption = text_content(figcaption) if figcaption is not None else None
    if caption:
        fields["caption"] = caption

    width_from_data = parse_rounded_number_in_range(node.get("data-berry-image-width"), 0, IMAGE_WIDTH_PX_RANGE[1])
    unit_from_data = node.get("data-berry-image-width-unit")
    if width_from_data is not None and unit_from_data in ("px", "percent"):
        low, high = IMAGE_WIDTH_PERCENT_RANGE if unit_from_data == "percent" else IMAGE_WIDTH_PX_RANGE
        if low <= width_from_data <= high:
            fields["width"] = width_from_data
            fields["width_unit"] = unit_from_data
    else:
        parsed = parse_safe_width(image_style["width"]) if image_style.get("width") else None
        if parsed is None and img is not None:
            width_attr = parse_rounded_number_in_range(img.get("width"), *IMAGE_WIDTH_PX_RANGE)
            parsed = (width_attr, "px") if width_attr is not None else None
        if parsed is not None:
            fields["width"], fields["width_unit"] = parsed

    if img is not None:
        height = parse_rounded_number_in_range(img.get("height"), *IMAGE_WIDTH_PX_RANGE)
        if height is not None:
            fields["height"] = int(height + 0.5)
        if img.get("alt"):
            fields["alt"] = img["alt"]

    padding = parse_rounded_number_in_range(node.get("data-berry-image-padding"), *IMAGE_PADDING_RANGE)
    if padding is None and body_style.get("padding"):
        padding = parse_safe_padding(body_style["padding"])
    if padding is not None:
        fields["padding"] = padding

    align = (node.get("data-berry-image-align") or "").strip().lower()
    if align in ("left", "center", "right"):
        fields["image_align"] = align
    fields["wrap_text"] = node.get("data-berry-image-wrap") == "true"
    side = (node.get("data-berry-image-wrap-side") or "").strip().lower()
    if side in ("left", "right"):
        fields["wrap_side"] = side

    # document attachments always link to their own file
    is_image = fields["content_type"].startswith("image/")
    anchor = img.find_parent("a", href=True) if img is not None and is_image else None
    if anchor is not None and _contains(node, anchor):
        fields["link_url"] = anchor["href"]
        fields["link_open_in_new_tab"] = anchor.get("target") == "_blank"
    elif link and is_image:
        fields["link_url"] = link
        fields["link_open_in_new_tab"] = link_target == "_blank"

    return AttachmentNode(**fields)


def _contains(ancestor: Tag, node: PageElement) -> bool:
    return any(parent is ancestor for parent in node.parents)


def _parse_inline(node: PageElement, marks: Marks, preformatted: bool = False) -> list:
    if is_text(node):
        text = str(node)
        if not preformatted:
            text = _LINE_ENDINGS.sub(" ", text)
        else:
            text = _LINE_ENDINGS.sub("\n", text)
        return [TextNode(text=text, marks=marks)] if text else []

    if not isinstance(node, Tag):
        return []

    if node.name == "br":
        return [TextNode(text="\n", marks=marks)]

    if node.name == "img" and has_class(node, "berry-emoji"):
        emoji = node.get("data-berry-emoji") or node.get("alt") or ""
        return [TextNode(text=emoji, marks=marks)] if emoji else []

    if node.get(ATTACHMENT_ID_ATTRIBUTE):
        attachment = _parse_attachment(node, marks.link, marks.link_target)
        return [attachment] if attachment is not None else []

    next_marks = _parse_marks(node, marks)
    preformatted = preformatted or node.name == "pre"
    return [item for child in node.contents for item in _parse_inline(child, next_marks, preformatted)]


def _merge_runs(nodes: list) -> list:
    merged: list = []
    for node in nodes:
        previous = merged[-1] if merged else None
        if isinstance(node, TextNode) and isinstance(previous, TextNode) and previous.marks == node.marks:
            merged[-1] = TextNode(text=previous.text + node.text, marks=node.marks)
        else:
            merged.append(node)
    # A lone <br> is the placeholder that keeps an empty block open.
    if len(merged) == 1 and isinstance(merged[0], TextNode) and merged[0].text == "\n":
        return []
    return merged


def _parse_children(node: Tag) -> list:
    preformatted = node.name == "pre"
    nodes = [item for child in node.contents for item in _parse_inline(child, Marks(), preformatted)]
    return _merge_runs(nodes)


def _parse_table_cell(cell: Tag) -> TableCell:
    fields = _block_style(cell)
    for name in ("colspan", "rowspan"):
        span = parse_rounded_number_in_range(cell.get(name) or "1", 1, 1000)
        if span is not None and span > 1:
            fields[name] = int(span)
    return TableCell(header=cell.name == "th", children=_parse_children(cell), **fields)


def _parse_table_row(row: Tag) -> TableRow | None:
    if row.name != "tr":
        return None
    cells = [_parse_table_cell(cell) for cell in row.find_all(["td", "th"], recursive=False)]
    return TableRow(cells=cells) if cells else None


def _parse_table(table: Tag) -> TableBlock:
    rows: list[TableRow] = []
    for child in table.find_all(True, recursive=False):
        if child.name == "tr":
            sections = [child]
        elif child.name in ("thead", "tbody", "tfoot"):
            sections = child.find_all("tr", recursive=False)
        else:
            continue
        for row in sections:
            parsed = _parse_table_row(row)
            if parsed is not None:
                rows.append(parsed)

    bordered = "border-collapse" in parse_style_map(table.get("style")) or any(
        "border" in parse_style_map(cell.get("style")) for cell in table.find_all(["td", "th"])
    )
    return TableBlock(rows=rows, bordered=bordered, **_block_style(table))


def _has_block_children(node: Tag) -> bool:
    return any(isinstance(child, Tag) and _is_block_element(child) for child in node.contents)


def _is_block_element(node: Tag) -> bool:
    if node.get(ATTACHMENT_ID_ATTRIBUTE) and node.name == "figure":
        return True
    return node.name in CONTAINER_BLOCK_TAGS or node.name == "li"


def _parse_block(node: Tag) -> list:
    tag = node.name
    style = _block_style(node)

    if tag == "figure":
        attachment = _parse_attachment(node)
        if attachment is not None:
            return [TextBlock(children=[attachment], **style)]

    if tag == "hr":
        return [HorizontalRuleBlock(**style)]

    if tag == "table":
        return [_parse_table(node)]

    if tag in ("ul", "ol"):
        list_type = "bullet" if tag == "ul" else "numbered"
        return [
            TextBlock(
                type=BlockType.LIST_ITEM,
                list_type=list_type,
                children=_parse_children(li),
                **_block_style(li),
            )
            for li in node.find_all("li", recursive=False)
        ]

    if tag == "div" and _has_block_children(node):
        return _parse_blocks(node)

    children = _parse_children(node)
    if tag in HEADING_TYPES:
        return [TextBlock(type=HEADING_TYPES[tag], children=children, **style)]
    if tag == "blockquote":
        return [TextBlock(type=BlockType.QUOTE, children=children, **style)]
    return [TextBlock(children=children, **style)]


def _flush_inline_run(run: list[PageElement], blocks: list) -> None:
    has_content = any(isinstance(node, Tag) or str(node).strip() for node in run)
    if has_content:
        nodes = [item for node in run for item in _parse_inline(node, Marks())]
        blocks.append(TextBlock(children=_merge_runs(nodes)))
    run.clear()


def _parse_blocks(container: Tag) -> list:
    blocks: list = []
    run: list[PageElement] = []
    for child in container.contents:
        if isinstance(child, Tag) and _is_block_element(child):
            _flush_inline_run(run, blocks)
            blocks.extend(_parse_block(child))
        elif isinstance(child, Tag) or is_text(child):
            run.append(child)
    _flush_inline_run(run, blocks)
    return blocks


def parse_html(raw: str) -> EditorDocument:
    """Parse editor HTML into the document model.

    Input is sanitized first. Inline content sitting directly at the top level
    is gathered into paragraphs, and the result always holds at least one block.
    """
    soup = make_soup(sanitize_html(raw))
    blocks = _parse_blocks(soup)
    if not blocks:
        blocks = [TextBlock()]
    return EditorDocument(blocks=blocks)
