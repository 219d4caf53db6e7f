"""Boundary points and ranges over a BeautifulSoup tree.

A boundary point is ``(container, offset)``: a character offset when the
container is a text node, a child index when it is an element. Node identity
is always compared with ``is``; bs4 defines ``==`` structurally.
"""

from dataclasses import dataclass

from bs4 import NavigableString, Tag
from bs4.element import PageElement

from berry_editor.markup.soup import is_text

Key = tuple[int, int]


def contains(ancestor: PageElement, node: PageElement | None) -> bool:
    """Inclusive containment."""
    current = node
    while current is not None:
        if current is ancestor:
            return True
        current = current.parent
    return False


def child_index(node: PageElement) -> int:
    return node.parent.index(node)


class TreeOrder:
    """Document-order positions for every node under ``root``."""

    def __init__(self, root: Tag):
        self.root = root
        self.text_nodes: list[NavigableString] = []
        self._open: dict[int, int] = {}
        self._close: dict[int, int] = {}
        self._counter = 0
        self._walk(root)

    def _walk(self, node: PageElement) -> None:
        self._open[id(node)] = self._counter
        self._counter += 1
        if isinstance(node, Tag):
            for child in node.contents:
                self._walk(child)
        elif is_text(node):
            self.text_nodes.append(node)
        self._close[id(node)] = self._counter
        self._counter += 1

    def point(self, container: PageElement, offset: int) -> Key:
        if isinstance(container, Tag):
            contents = container.contents
            if offset < len(contents):
                return (self._open[id(contents[offset])], 0)
            return (self._close[id(container)], 0)
        return (self._open[id(container)], max(0, min(offset, len(str(container)))))

    def before(self, node: PageElement) -> Key:
        return (self._open[id(node)], 0)

    def after(self, node: PageElement) -> Key:
        return self.point(node.parent, child_index(node) + 1)


@dataclass
class Range:
    start_container: PageElement
    start_offset: int
    end_container: PageElement
    end_offset: int

    @classmethod
    def caret(cls, container: PageElement, offset: int) -> "Range":
        return cls(container, offset, container, offset)

    @classmethod
    def before(cls, node: PageElement) -> "Range":
        return cls.caret(node.parent, child_index(node))

    @classmethod
    def after(cls, node: PageElement) -> "Range":
        return cls.caret(node.parent, child_index(node) + 1)

    @property
    def collapsed(self) -> bool:
        return self.start_container is self.end_container and self.start_offset == self.end_offset

    def collapse(self, to_start: bool = False) -> None:
        if to_start:
            self.end_container, self.end_offset = self.start_container, self.start_offset
        else:
            self.start_container, self.start_offset = self.end_container, self.end_offset

    def clone(self) -> "Range":
        return Range(self.start_container, self.start_offset, self.end_container, self.end_offset)

    def is_within(self, root: Tag) -> bool:
        return contains(root, self.start_container) and contains(root, self.end_container)


@dataclass(frozen=True)
class TextSegment:
    node: NavigableString
    start: int
    end: int


def _is_editable(node: PageElement, root: Tag) -> bool:
    current = node.parent
    while current is not None and current is not root:
        if str(current.get("contenteditable", "")).lower() == "false":
            return False
        current = current.parent
    return True


def text_segments(root: Tag, rng: Range) -> list[TextSegment]:
    """Non-empty slices of editable text nodes that ``rng`` covers, in order."""
    order = TreeOrder(root)
    start = order.point(rng.start_container, rng.start_offset)
    end = order.point(rng.end_container, rng.end_offset)
    segments: list[TextSegment] = []
    for text in order.text_nodes:
        length = len(str(text))
        if not length:
            continue
        text_start = order.before(text)
        text_end = (text_start[0], length)
        if text is rng.end_container:
            seg_end = min(rng.end_offset, length)
        elif text_start >= end:
            continue
        else:
            seg_end = length
        if text is rng.start_container:
            seg_start = min(rng.start_offset, length)
        elif text_end <= start:
            continue
        else:
            seg_start = 0
        if seg_start < seg_end and _is_editable(text, root):
            segments.append(TextSegment(text, seg_start, seg_end))
    return segments


def intersecting_nodes(root: Tag, rng: Range, nodes) -> list:
    """The members of ``nodes`` that ``rng`` touches, in the order given."""
    order = TreeOrder(root)
    start = order.point(rng.start_container, rng.start_offset)
    end = order.point(rng.end_container, rng.end_offset)
    return [
        node for node in nodes if node is root or (order.before(node) < end and order.after(node) > start)
    ]


def replace_text(node: NavigableString, value: str) -> NavigableString:
    replacement = NavigableString(value)
    node.replace_with(replacement)
    return replacement


def wrap_segment(segment: TextSegment, wrapper: Tag) -> Tag:
    """Move ``segment`` into ``wrapper``, splitting its text node around it."""
    value = str(segment.node)
    segment.node.replace_with(wrapper)
    wrapper.append(NavigableString(value[segment.start : segment.end]))
    if segment.start > 0:
        wrapper.insert_before(NavigableString(value[: segment.start]))
    if segment.end < len(value):
        wrapper.insert_after(NavigableString(value[segment.end :]))
    return wrapper


def delete_contents(root: Tag, rng: Range) -> Range:
    """Remove what ``rng`` covers and return the collapsed range left behind."""
    if rng.collapsed:
        return rng.clone()

    order = TreeOrder(root)
    start = order.point(rng.start_container, rng.start_offset)
    end = order.point(rng.end_container, rng.end_offset)

    removed: list[PageElement] = []
    for node in root.descendants:
        if node is rng.start_container or node is rng.end_container:
            continue
        if any(contains(done, node) for done in removed):
            continue
        if contains(node, rng.start_container) or contains(node, rng.end_container):
            continue
        if order.before(node) >= start and order.after(node) <= end:
            removed.append(node)

    start_container, start_offset = rng.start_container, rng.start_offset
    if is_text(rng.start_container):
        value = str(rng.start_container)
        tail = value[rng.end_offset :] if rng.end_container is rng.start_container else ""
        start_container = replace_text(rng.start_container, value[: rng.start_offset] + tail)
    if is_text(rng.end_container) and rng.end_container is not rng.start_container:
        replace_text(rng.end_container, str(rng.end_container)[rng.end_offset :])

    for node in removed:
        node.extract()

    if isinstance(start_container, Tag):
        start_offset = min(start_offset, len(start_container.contents))
    return Range.caret(start_container, start_offset)


def insert_node(rng: Range, node: PageElement) -> None:
    """Insert ``node`` at the start of ``rng``, splitting a text container."""
    container, offset = rng.start_container, rng.start_offset
    if isinstance(container, Tag):
        container.insert(min(offset, len(container.contents)), node)
        return
    value = str(container)
    head = replace_text(container, value[:offset])
    head.insert_after(node)
    if value[offset:]:
        node.insert_after(NavigableString(value[offset:]))
