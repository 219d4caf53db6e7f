"""Document model -> editor HTML."""

from html import escape

from berry_editor.common.utils.style_guards import format_number
from berry_editor.markup.styles import TABLE_CELL_BORDER
from berry_editor.model.models import (
    AttachmentNode,
    BlockType,
    EditorDocument,
    HorizontalRuleBlock,
    Marks,
    TableBlock,
    TableCell,
    TextBlock,
    TextNode,
    Typography,
)

NEW_TAB_ATTRS = ' target="_blank" rel="noopener noreferrer"'

BLOCK_TAGS = {
    BlockType.PARAGRAPH: "p",
    BlockType.HEADING1: "h1",
    BlockType.HEADING2: "h2",
    BlockType.HEADING3: "h3",
    BlockType.QUOTE: "blockquote",
    BlockType.LIST_ITEM: "li",
}


def _style_attr(declarations: list[tuple[str, object]]) -> str:
    kept = [f"{name}:{value}" for name, value in declarations if value is not None and value != ""]
    if not kept:
        return ""
    return f' style="{escape(";".join(kept))}"'


def _typography_declarations(node: Typography) -> list[tuple[str, object]]:
    return [
        ("text-align", node.align),
        ("line-height", format_number(node.line_height) if node.line_height is not None else None),
        ("font-size", f"{format_number(node.font_size)}px" if node.font_size is not None else None),
        ("font-family", node.font_family),
    ]


def serialize_attachment(node: AttachmentNode) -> str:
    data_attrs = [
        f'data-berry-attachment-id="{escape(node.id)}"',
        f'data-berry-url="{escape(node.url)}"',
        f'data-berry-filename="{escape(node.filename)}"',
        f'data-berry-filesize="{node.filesize}"',
        f'data-berry-content-type="{escape(node.content_type)}"',
    ]
    if node.preview_url:
        data_attrs.append(f'data-berry-preview-url="{escape(node.preview_url)}"')
    if node.caption:
        data_attrs.append(f'data-berry-caption="{escape(node.caption)}"')
    if node.pending:
        data_attrs.append('data-berry-pending="true"')
    if node.image_align:
        data_attrs.append(f'data-berry-image-align="{node.image_align}"')
    if node.wrap_text:
        data_attrs.append('data-berry-image-wrap="true"')
    if node.wrap_side:
        data_attrs.append(f'data-berry-image-wrap-side="{node.wrap_side}"')
    if node.padding is not None:
        data_attrs.append(f'data-berry-image-padding="{format_number(node.padding)}"')
    if node.width is not None:
        data_attrs.append(f'data-berry-image-width="{format_number(node.width)}"')
    if node.width_unit:
        data_attrs.append(f'data-berry-image-width-unit="{node.width_unit}"')

    class_name = "berry-attachment berry-attachment--image" if node.is_image else "berry-attachment"
    width_unit = node.width_unit or "px"
    width_style = None
    width_attr = ""
    if node.width is not None:
        width_style = f"{format_number(node.width)}{'%' if width_unit == 'percent' else 'px'}"
        if width_unit == "px":
            width_attr = f' width="{int(node.width + 0.5)}"'
    height_attr = f' height="{node.height}"' if node.height else ""
    body_style = _style_attr([("padding", f"{format_number(node.padding)}px" if node.padding is not None else None)])

    image_url = node.preview_url or node.url
    image = (
        f'<img src="{escape(image_url)}" alt="{escape(node.alt or "")}"'
        f'{width_attr}{height_attr}{_style_attr([("width", width_style)])}>'
    )
    if node.is_image and node.link_url:
        link_attrs = "" if node.link_open_in_new_tab is False else NEW_TAB_ATTRS
        body = f'<a href="{escape(node.link_url)}"{link_attrs}>{image}</a>'
    elif node.is_image:
        body = image
    else:
        body = f'<a href="{escape(node.url)}"{NEW_TAB_ATTRS}>{escape(node.filename)}</a>'

    caption = escape(node.caption) if node.caption else ""
    return (
        f'<figure class="{class_name}" {" ".join(data_attrs)}>'
        f'<div class="berry-attachment__body"{body_style}>{body}</div>'
        f"<figcaption>{caption}</figcaption></figure>"
    )


def wrap_marks(content: str, marks: Marks) -> str:
    """Nest mark elements code-first, link outermost."""
    out = content
    if marks.code:
        out = f"<code>{out}</code>"
    if marks.underline:
        out = f"<u>{out}</u>"
    if marks.strike:
        out = f"<s>{out}</s>"
    if marks.italic:
        out = f"<em>{out}</em>"
    if marks.bold:
        out = f"<strong>{out}</strong>"
    if marks.font_size:
        out = f'<span style="font-size:{escape(marks.font_size)}">{out}</span>'
    if marks.font_family:
        out = f'<span style="font-family:{escape(marks.font_family)}">{out}</span>'
    if marks.text_color:
        out = f'<span style="color:{escape(marks.text_color)}">{out}</span>'
    if marks.highlight_color:
        out = f'<span style="background-color:{escape(marks.highlight_color)}">{out}</span>'
    if marks.link:
        attrs = NEW_TAB_ATTRS if marks.link_target == "_blank" else ""
        out = f'<a href="{escape(marks.link)}"{attrs}>{out}</a>'
    return out


def _serialize_inline(node: TextNode | AttachmentNode) -> str:
    if isinstance(node, AttachmentNode):
        return serialize_attachment(node)
    content = "<br>".join(escape(part, quote=False) for part in node.text.split("\n"))
    return wrap_marks(content, node.marks)


def _serialize_children(children: list) -> str:
    return "".join(_serialize_inline(child) for child in children) or "<br>"


def _serialize_text_block(block: TextBlock) -> str:
    tag = BLOCK_TAGS[block.type]
    style = _style_attr(_typography_declarations(block))
    return f"<{tag}{style}>{_serialize_children(block.children)}</{tag}>"


def _serialize_table_cell(cell: TableCell, bordered: bool) -> str:
    tag = "th" if cell.header else "td"
    attrs = ""
    if cell.colspan and cell.colspan > 1:
        attrs += f' colspan="{cell.colspan}"'
    if cell.rowspan and cell.rowspan > 1:
        attrs += f' rowspan="{cell.rowspan}"'
    declarations = _typography_declarations(cell)
    if bordered:
        declarations.append(("border", TABLE_CELL_BORDER))
    return f"<{tag}{attrs}{_style_attr(declarations)}>{_serialize_children(cell.children)}</{tag}>"


def _serialize_table(block: TableBlock) -> str:
    declarations = _typography_declarations(block)
    if block.bordered:
        declarations.append(("border-collapse", "collapse"))
    rows = "".join(
        "<tr>" + "".join(_serialize_table_cell(cell, block.bordered) for cell in row.cells) + "</tr>"
        for row in block.rows
    )
    return f"<table{_style_attr(declarations)}><tbody>{rows}</tbody></table>"


def _serialize_block(block: TextBlock | HorizontalRuleBlock | TableBlock) -> str:
    match block:
        case HorizontalRuleBlock():
            return f"<hr{_style_attr(_typography_declarations(block))}>"
        case TableBlock():
            return _serialize_table(block)
        case TextBlock():
            return _serialize_text_block(block)
    raise TypeError(f"Unknown block: {type(block).__name__}")


def serialize_html(document: EditorDocument) -> str:
    """Serialize a document. Consecutive list items of one type share a list."""
    html: list[str] = []
    list_tag: str | None = None
    items: list[str] = []

    def flush_list() -> None:
        nonlocal list_tag
        if list_tag is not None:
            html.append(f"<{list_tag}>{''.join(items)}</{list_tag}>")
        list_tag = None
        items.clear()

    for block in document.blocks:
        if isinstance(block, TextBlock) and block.type is BlockType.LIST_ITEM:
            tag = "ol" if block.list_type == "numbered" else "ul"
            if tag != list_tag:
                flush_list()
                list_tag = tag
            items.append(_serialize_block(block))
            continue
        flush_list()
        html.append(_serialize_block(block))

    flush_list()
    return "".join(html)
