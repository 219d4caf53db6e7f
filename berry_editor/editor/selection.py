"""Selection <-> character offsets over the surface's flattened text."""

from bs4 import Tag
from bs4.element import PageElement

from berry_editor.common.models.base import SelectionRange
from berry_editor.markup.soup import is_text
from berry_editor.surface.core import Surface
from berry_editor.surface.ranges import TreeOrder


def offset_from_point(root: Tag, node: PageElement, offset: int) -> int:
    order = TreeOrder(root)
    target = order.point(node, offset)
    total = 0
    for text in order.text_nodes:
        if text is node:
            return total + max(0, min(offset, len(str(text))))
        if order.before(text) >= target:
            break
        total += len(str(text))
    return total


def point_from_offset(root: Tag, target: int) -> tuple[PageElement, int]:
    consumed = 0
    for text in TreeOrder(root).text_nodes:
        following = consumed + len(str(text))
        if target <= following:
            return text, max(0, target - consumed)
        consumed = following

    if root.contents:
        last = root.contents[-1]
        if is_text(last):
            return last, len(str(last))
        return root, len(root.contents)
    return root, 0


def get_selection_range(surface: Surface) -> SelectionRange | None:
    selection = surface.selection
    if selection is None:
        return None
    if not (surface.contains(selection.anchor_node) and surface.contains(selection.focus_node)):
        return None
    return SelectionRange(
        anchor=offset_from_point(surface.root, selection.anchor_node, selection.anchor_offset),
        focus=offset_from_point(surface.root, selection.focus_node, selection.focus_offset),
    )


def set_selection_range(surface: Surface, selection: SelectionRange) -> None:
    anchor_node, anchor_offset = point_from_offset(surface.root, selection.anchor)
    focus_node, focus_offset = point_from_offset(surface.root, selection.focus)
    surface.select(anchor_node, anchor_offset, focus_node, focus_offset)
