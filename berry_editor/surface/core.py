"""The live editing surface the engine mutates."""

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from bs4 import Tag
from bs4.element import PageElement

from berry_editor.markup.soup import make_soup, render_contents, text_content
from berry_editor.surface.ranges import Range, TreeOrder, contains

SURFACE_EVENTS = ("input", "selectionchange", "focus", "blur", "compositionstart", "compositionend")


@dataclass
class Selection:
    """Directional selection: the anchor stays put while the focus moves."""

    anchor_node: PageElement
    anchor_offset: int
    focus_node: PageElement
    focus_offset: int

    @property
    def is_collapsed(self) -> bool:
        return self.anchor_node is self.focus_node and self.anchor_offset == self.focus_offset


class Surface:
    """A ``contenteditable`` root backed by a BeautifulSoup tree.

    Hosts drive it the way a browser would: mutate the tree, move the
    selection, then ``dispatch`` the matching event. Programmatic selection
    changes never dispatch on their own.
    """

    def __init__(self, html: str = ""):
        self.soup = make_soup()
        self.root: Tag = self.soup.new_tag("div", attrs={"contenteditable": "true"})
        self.soup.append(self.root)
        self.focused = False
        self._selection: Selection | None = None
        self._listeners: dict[str, list[Callable[[], None]]] = defaultdict(list)
        if html:
            self.inner_html = html

    # -- content --------------------------------------------------------

    @property
    def inner_html(self) -> str:
        return render_contents(self.root)

    @inner_html.setter
    def inner_html(self, html: str) -> None:
        self.root.clear()
        for node in self.parse_fragment(html):
            self.root.append(node)
        if self._selection is not None:
            self._selection = Selection(self.root, 0, self.root, 0)

    @property
    def text_content(self) -> str:
        return text_content(self.root)

    def parse_fragment(self, html: str) -> list[PageElement]:
        fragment = make_soup(html)
        return [node.extract() for node in list(fragment.contents)]

    def new_tag(self, name: str, attrs: dict[str, str] | None = None) -> Tag:
        return self.soup.new_tag(name, attrs=attrs or {})

    def contains(self, node: PageElement | None) -> bool:
        return node is not None and contains(self.root, node)

    # -- selection ------------------------------------------------------

    @property
    def selection(self) -> Selection | None:
        return self._selection

    def select(
        self,
        anchor_node: PageElement,
        anchor_offset: int,
        focus_node: PageElement | None = None,
        focus_offset: int | None = None,
    ) -> None:
        if focus_node is None:
            focus_node, focus_offset = anchor_node, anchor_offset
        self._selection = Selection(anchor_node, anchor_offset, focus_node, focus_offset or 0)

    def select_range(self, rng: Range) -> None:
        self._selection = Selection(rng.start_container, rng.start_offset, rng.end_container, rng.end_offset)

    def clear_selection(self) -> None:
        self._selection = None

    def get_range(self) -> Range | None:
        """The selection as an ordered range, or ``None`` when it lies outside."""
        selection = self._selection
        if selection is None:
            return None
        if not (self.contains(selection.anchor_node) and self.contains(selection.focus_node)):
            return None
        order = TreeOrder(self.root)
        anchor = order.point(selection.anchor_node, selection.anchor_offset)
        focus = order.point(selection.focus_node, selection.focus_offset)
        if focus < anchor:
            return Range(selection.focus_node, selection.focus_offset, selection.anchor_node, selection.anchor_offset)
        return Range(selection.anchor_node, selection.anchor_offset, selection.focus_node, selection.focus_offset)

    # -- focus and events -----------------------------------------------

    def focus(self) -> None:
        if self._selection is None or self.get_range() is None:
            self._selection = Selection(self.root, 0, self.root, 0)
        if not self.focused:
            self.focused = True
            self.dispatch("focus")

    def blur(self) -> None:
        if self.focused:
            self.focused = False
            self.dispatch("blur")

    def add_event_listener(self, event: str, handler: Callable[[], None]) -> None:
        if event not in SURFACE_EVENTS:
            raise ValueError(f"Unknown surface event: {event}")
        self._listeners[event].append(handler)

    def remove_event_listener(self, event: str, handler: Callable[[], None]) -> None:
        listeners = self._listeners.get(event, [])
        if handler in listeners:
            listeners.remove(handler)

    def dispatch(self, event: str) -> None:
        for handler in list(self._listeners.get(event, [])):
            handler()
