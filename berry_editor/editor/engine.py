"""The editing engine: command dispatch, reconciliation, history and selection."""

from collections.abc import Callable

from bs4 import NavigableString, Tag
from bs4.element import PageElement
from pydantic import ValidationError

from berry_editor.common.models.base import SelectionRange
from berry_editor.common.models.settings import EditorSettings
from berry_editor.common.utils.config import config
from berry_editor.common.utils.logger import get_logger
from berry_editor.common.utils.style_guards import (
    format_number,
    parse_finite_number,
    parse_safe_font_family,
    parse_safe_line_height_value,
    round_two,
)
from berry_editor.editor.attachments import (
    apply_image_attachment_state,
    clamp_image_width,
    find_attachment,
    find_image_attachment_container,
    generate_attachment_id,
    is_safe_image_padding,
    is_safe_image_width,
    make_attachment_html,
    read_image_attachment_state,
)
from berry_editor.editor.commands import (
    COLOR_COMMANDS,
    INLINE_FALLBACK_TAGS,
    INLINE_MARK_COMMANDS,
    MARK_ACTIVE_TAGS,
    NATIVE_COMMAND_NAMES,
    EditorCommand,
    NativeCommands,
    is_safe_link,
    parse_command,
    parse_payload,
    parse_safe_font_size,
    run_native_command,
    validate_payload,
)
from berry_editor.editor.history import HistoryStack
from berry_editor.editor.models import (
    CommandPayload,
    EngineCallbacks,
    HTMLSanitizeNotice,
    ImageAttachmentPatch,
    ImageAttachmentState,
    Snapshot,
    UploadFile,
    UploadResult,
)
from berry_editor.editor.native import LegacyFormattingCommands
from berry_editor.editor.selection import get_selection_range, set_selection_range
from berry_editor.markup.emoji import (
    EmojiIndexRegistry,
    replace_unicode_emoji_in_html,
    replace_unicode_emoji_in_plain_text_as_html,
)
from berry_editor.markup.parser import CONTAINER_BLOCK_TAGS
from berry_editor.markup.sanitize import sanitize_html
from berry_editor.markup.soup import add_class, closest, has_class, set_style_property, text_content
from berry_editor.markup.styles import TABLE_CELL_BORDER, normalize_safe_hex_color, parse_style_map
from berry_editor.surface.core import Surface
from berry_editor.surface.ranges import (
    Range,
    contains,
    delete_contents,
    insert_node,
    intersecting_nodes,
    text_segments,
    wrap_segment,
)

logger = get_logger(__name__)

BLOCK_TAGS = ("p", "h1", "h2", "h3", "blockquote", "li", "td", "th")
CELL_TAGS = ("td", "th")

BLOCK_FORMAT_TAGS = {
    EditorCommand.PARAGRAPH: "p",
    EditorCommand.HEADING1: "h1",
    EditorCommand.HEADING2: "h2",
    EditorCommand.HEADING3: "h3",
    EditorCommand.QUOTE: "blockquote",
}
LIST_TAGS = {EditorCommand.BULLET: "ul", EditorCommand.NUMBER: "ol"}
ALIGNMENTS = {
    EditorCommand.ALIGN_LEFT: "left",
    EditorCommand.ALIGN_CENTER: "center",
    EditorCommand.ALIGN_RIGHT: "right",
    EditorCommand.ALIGN_JUSTIFY: "justify",
}
TABLE_COMMANDS = frozenset(
    {
        EditorCommand.TABLE_ADD_ROW_ABOVE,
        EditorCommand.TABLE_ADD_ROW_BELOW,
        EditorCommand.TABLE_DELETE_ROW,
        EditorCommand.TABLE_ADD_COLUMN_LEFT,
        EditorCommand.TABLE_ADD_COLUMN_RIGHT,
        EditorCommand.TABLE_DELETE_COLUMN,
        EditorCommand.TABLE_DELETE,
    }
)

# Inline elements removeFormat strips.
FORMAT_TAGS = ("strong", "b", "em", "i", "u", "s", "strike", "mark", "code", "span", "font")
# Elements that keep a block from counting as empty.
CONTENT_TAGS = ("img", "figure", "hr", "table")

ZERO_WIDTH_SPACE = "\u200b"


def _is_block(tag: Tag) -> bool:
    return tag.name in BLOCK_TAGS


def _is_highlight(tag: Tag) -> bool:
    return tag.name == "mark" or "background-color" in parse_style_map(tag.get("style"))


def _innermost(blocks: list[Tag]) -> list[Tag]:
    """Drop blocks that contain another block of the same selection."""
    return [block for block in blocks if not any(other is not block and contains(block, other) for other in blocks)]


def _cells(row: Tag) -> list[Tag]:
    return row.find_all(CELL_TAGS, recursive=False)


def _is_empty_block(block: Tag) -> bool:
    if block.find(CONTENT_TAGS):
        return False
    return not text_content(block).replace(ZERO_WIDTH_SPACE, "").strip()


class EditorEngine:
    """Drives one editing surface.

    Every mutation, native or synthesized, goes through the same
    sanitize-and-commit step so the cached HTML, the surface and the undo
    history never disagree. Selections cross the public API as character
    offsets (:class:`SelectionRange`).
    """

    def __init__(
        self,
        *,
        on_change: Callable[[str], None] | None = None,
        on_selection_change: Callable[[SelectionRange | None], None] | None = None,
        on_focus: Callable[[], None] | None = None,
        on_blur: Callable[[], None] | None = None,
        on_sanitize_notice: Callable[[HTMLSanitizeNotice], None] | None = None,
        native: NativeCommands | None = None,
        settings: EditorSettings | None = None,
        emoji_registry: EmojiIndexRegistry | None = None,
    ):
        self.settings = settings or EditorSettings()
        self.callbacks = EngineCallbacks(
            on_change=on_change,
            on_selection_change=on_selection_change,
            on_focus=on_focus,
            on_blur=on_blur,
            on_sanitize_notice=on_sanitize_notice,
        )
        if not self.settings.native_commands:
            native = None
        elif native is None:
            native = LegacyFormattingCommands()
        self.native = native
        self.emoji_registry = emoji_registry

        self.surface: Surface | None = None
        self.html = ""
        self.history: HistoryStack[Snapshot] = HistoryStack()
        self._composing = False
        self._executing = False
        self._last_selection: SelectionRange | None = None
        self._last_expanded_selection: SelectionRange | None = None
        self._last_dom_selection: Range | None = None
        self._last_expanded_dom_selection: Range | None = None

    # -- binding and callbacks ------------------------------------------

    def set_callbacks(self, **callbacks) -> None:
        self.callbacks = EngineCallbacks(**callbacks)

    def _listeners(self) -> dict[str, Callable[[], None]]:
        return {
            "input": self._handle_input,
            "selectionchange": self._handle_selection_change,
            "compositionstart": self._handle_composition_start,
            "compositionend": self._handle_composition_end,
            "focus": self._handle_focus,
            "blur": self._handle_blur,
        }

    def bind(self, surface: Surface) -> None:
        if self.surface is not None:
            self.unbind()
        self.surface = surface
        for event, handler in self._listeners().items():
            surface.add_event_listener(event, handler)

    def unbind(self) -> None:
        if self.surface is None:
            return
        for event, handler in self._listeners().items():
            self.surface.remove_event_listener(event, handler)
        self.surface = None

    def _emit(self, name: str, *args) -> None:
        callback = getattr(self.callbacks, name)
        if callback is not None:
            callback(*args)

    # -- content --------------------------------------------------------

    def get_html(self) -> str:
        return self.html

    def load_html(self, html: str) -> None:
        """Replace the document and start a fresh history."""
        self.history.clear()
        self._last_selection = None
        self._last_expanded_selection = None
        self._last_dom_selection = None
        self._last_expanded_dom_selection = None
        self.set_html(html, add_to_history=False)

    def set_html(self, html: str, add_to_history: bool = True) -> None:
        if self.surface is None:
            return
        raw = html or ""
        safe = sanitize_html(raw)
        previous = self._snapshot()
        self.surface.inner_html = safe
        self.html = self.surface.inner_html
        if add_to_history:
            self.history.push(previous)
        if safe != raw:
            logger.debug("Sanitizer changed loaded HTML")
            self._notify_sanitized()
        self._emit("on_change", self.html)
        self._report_selection()

    def _notify_sanitized(self) -> None:
        self._emit("on_sanitize_notice", HTMLSanitizeNotice(changed=True, message=config.sanitize_notice_message))

    # -- selection and focus --------------------------------------------

    def get_selection(self) -> SelectionRange | None:
        if self.surface is None:
            return None
        return get_selection_range(self.surface)

    def set_selection(self, selection: SelectionRange) -> None:
        if self.surface is None:
            return
        set_selection_range(self.surface, selection)
        self._remember(selection)
        self._emit("on_selection_change", self.get_selection())

    def _remember(self, selection: SelectionRange) -> None:
        self._last_selection = selection
        if not selection.collapsed:
            self._last_expanded_selection = selection

    def _report_selection(self) -> None:
        rng = self.surface.get_range()
        if rng is not None:
            self._last_dom_selection = rng.clone()
            if not rng.collapsed:
                self._last_expanded_dom_selection = rng.clone()
        selection = self.get_selection()
        if selection is not None:
            self._remember(selection)
        self._emit("on_selection_change", selection)

    def _resolve_selection_for_command(self) -> SelectionRange | None:
        live = self.get_selection()
        if self.surface.focused:
            return live or self._last_selection
        return self._last_selection or live

    def focus(self) -> None:
        if self.surface is not None:
            self.surface.focus()

    def blur(self) -> None:
        if self.surface is not None:
            self.surface.blur()

    def remember_selection_for_command(self) -> None:
        """Capture the selection before a toolbar popover takes focus away."""
        if self.surface is None:
            return
        selection = self._resolve_selection_for_command()
        if selection is not None:
            self._remember(selection)

    def focus_for_command(self) -> None:
        if self.surface is None:
            return
        live_range = self.surface.get_range() if self.surface.focused else None
        selection = self._resolve_selection_for_command()
        self.surface.focus()
        if selection is None:
            return
        # a live selection is kept as-is; offsets cannot express "after a node"
        if live_range is None:
            set_selection_range(self.surface, selection)
        self._remember(selection)

    # -- history --------------------------------------------------------

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def undo(self) -> None:
        if self.surface is None:
            return
        previous = self.history.undo(self._snapshot())
        if previous is not None:
            self._restore(previous)

    def redo(self) -> None:
        if self.surface is None:
            return
        following = self.history.redo(self._snapshot())
        if following is not None:
            self._restore(following)

    def _restore(self, snapshot: Snapshot) -> None:
        self.surface.inner_html = snapshot.html
        self.html = snapshot.html
        if snapshot.selection is not None:
            set_selection_range(self.surface, snapshot.selection)
        self._emit("on_change", self.html)
        self._emit("on_selection_change", snapshot.selection)

    def _snapshot(self) -> Snapshot:
        return Snapshot(html=self.html, selection=self.get_selection())

    # -- command execution ----------------------------------------------

    def exec(self, command: EditorCommand | str, payload: CommandPayload | dict | None = None) -> None:
        """Run one command to completion: validate, focus, attempt, commit."""
        if self.surface is None:
            return
        parsed = parse_command(command)
        if parsed is None:
            return
        if parsed is EditorCommand.UNDO:
            self.undo()
            return
        if parsed is EditorCommand.REDO:
            self.redo()
            return

        data = parse_payload(payload)
        if data is None or not validate_payload(parsed, data):
            logger.debug("Rejected payload for %s", parsed.value)
            return
        if self._executing:
            logger.debug("Ignoring %s issued while another command runs", parsed.value)
            return

        self._executing = True
        try:
            self.focus_for_command()
            before = self._snapshot()
            if not self._run_command(parsed, data):
                logger.debug("%s made no change", parsed.value)
                return
            self._commit(before)
        finally:
            self._executing = False

    def _run_command(self, command: EditorCommand, payload: CommandPayload) -> bool:
        if command in INLINE_MARK_COMMANDS:
            return self._run_inline_mark_command(command)
        if command in COLOR_COMMANDS:
            return self._run_color_command(command, payload)
        if command in BLOCK_FORMAT_TAGS:
            return self._apply_block_format(BLOCK_FORMAT_TAGS[command])
        if command in LIST_TAGS:
            return self._toggle_list(LIST_TAGS[command])
        if command in ALIGNMENTS:
            return self._apply_style_to_selected_blocks("text-align", ALIGNMENTS[command])
        if command in TABLE_COMMANDS:
            return self._run_table_command(command)

        match command:
            case EditorCommand.CODE:
                return self._apply_inline_tag(INLINE_FALLBACK_TAGS[command])
            case EditorCommand.LINK:
                return self._apply_link(payload)
            case EditorCommand.UNLINK:
                return self._unwrap_intersecting(("a",), allow_collapsed=True)
            case EditorCommand.REMOVE_FORMAT:
                return self._unwrap_intersecting(FORMAT_TAGS, allow_collapsed=False)
            case EditorCommand.FONT_FAMILY:
                font_family = (payload.font_family or "").strip()
                return self._apply_style_to_selected_blocks(
                    "font-family", parse_safe_font_family(font_family) if font_family else None
                )
            case EditorCommand.FONT_SIZE:
                size = parse_safe_font_size(payload.font_size)
                return self._apply_style_to_current_block_with_fallback("font-size", f"{format_number(size)}px")
            case EditorCommand.LINE_SPACING:
                line_height = parse_safe_line_height_value(payload.line_height)
                return self._apply_style_to_current_block_with_fallback("line-height", format_number(line_height))
            case EditorCommand.CLEAR_HIGHLIGHT:
                return self._run_clear_highlight()
            case EditorCommand.INSERT_HORIZONTAL_RULE:
                return self._insert_horizontal_rule()
            case EditorCommand.INSERT_TABLE:
                return self._insert_table(int(payload.rows), int(payload.cols), payload.bordered)
            case EditorCommand.INSERT_TEXT:
                return self._insert_text(payload.text)
            case EditorCommand.INSERT_HTML:
                return self._insert_html(payload.html)
            case _:
                return False

    def _capture_fallback(self) -> tuple[Range | None, SelectionRange | None]:
        """The expanded selection an inline fallback should re-apply."""
        live = self.surface.get_range()
        if live is not None and not live.collapsed:
            dom_fallback = live.clone()
        elif self._last_expanded_dom_selection is not None:
            dom_fallback = self._last_expanded_dom_selection.clone()
        else:
            dom_fallback = None
        selection = self.get_selection()
        expanded = selection if selection is not None and not selection.collapsed else None
        return dom_fallback, expanded or self._last_expanded_selection

    def _restore_expanded_selection(self, dom_range: Range | None, selection: SelectionRange | None) -> None:
        if dom_range is not None and dom_range.is_within(self.surface.root):
            self.surface.select_range(dom_range.clone())
            return
        if selection is not None:
            set_selection_range(self.surface, selection)

    def _run_native(self, command: EditorCommand, payload: CommandPayload) -> tuple[bool, bool, bool]:
        """Run the native command.

        Returns ``(executed, markup_changed, kept)`` where ``kept`` means the
        change survives sanitizing.
        """
        before_html = self.surface.inner_html
        before_sanitized = sanitize_html(before_html)
        if not run_native_command(self.native, self.surface, command, payload):
            return False, False, False
        after_html = self.surface.inner_html
        if after_html == before_html:
            return True, False, False
        if sanitize_html(after_html) != before_sanitized:
            return True, True, True
        logger.debug("Native %s output was stripped by the sanitizer", command.value)
        return True, True, False

    def _run_inline_mark_command(self, command: EditorCommand) -> bool:
        dom_fallback, fallback_selection = self._capture_fallback()
        tag_name = INLINE_FALLBACK_TAGS[command]

        def apply_fallback() -> bool:
            self._restore_expanded_selection(dom_fallback, fallback_selection)
            return self._apply_inline_tag(tag_name)

        executed, changed, kept = self._run_native(command, CommandPayload())
        if executed:
            if kept:
                return True
            if changed and apply_fallback():
                return True
            if fallback_selection is not None and apply_fallback():
                return True
            rng = self.surface.get_range()
            if rng is not None and rng.collapsed and self.is_command_active(command):
                return True
        logger.debug("Falling back to <%s> for %s", tag_name, command.value)
        return apply_fallback()

    def _run_color_command(self, command: EditorCommand, payload: CommandPayload) -> bool:
        is_highlight = command is EditorCommand.HIGHLIGHT_COLOR
        color = normalize_safe_hex_color(payload.color.strip())
        dom_fallback, fallback_selection = self._capture_fallback()

        def finalize(applied: bool) -> bool:
            if applied and is_highlight:
                self._move_caret_outside_highlight()
            return applied

        def apply_fallback() -> bool:
            self._restore_expanded_selection(dom_fallback, fallback_selection)
            return self._apply_inline_style(
                "background-color" if is_highlight else "color", color, place_caret_outside=is_highlight
            )

        executed, changed, kept = self._run_native(command, payload)
        if executed:
            if kept:
                return finalize(True)
            if changed:
                # <font color> does not survive sanitizing; rewrite it as a styled span
                if not is_highlight and self._convert_legacy_color_fonts_to_spans():
                    return finalize(True)
                return finalize(apply_fallback())
            if fallback_selection is not None:
                return finalize(apply_fallback())
            rng = self.surface.get_range()
            if rng is not None and rng.collapsed:
                return finalize(True)
        return finalize(apply_fallback())

    def _commit(self, before: Snapshot) -> None:
        selection_before = self.get_selection() or self._last_selection
        current = self.surface.inner_html
        sanitized = sanitize_html(current)
        if sanitized != current:
            logger.debug("Sanitizer rewrote surface markup during commit")
            self.surface.inner_html = sanitized
            if selection_before is not None:
                set_selection_range(self.surface, selection_before)
            self._notify_sanitized()

        html = self.surface.inner_html
        self.html = html
        if before.html != html:
            self.history.push(before)
            self._emit("on_change", html)
        self._report_selection()

    # -- inline synthesis -----------------------------------------------

    def _wrap_selection(self, factory: Callable[[], Tag]) -> Tag | None:
        """Wrap each text segment of the selection, tail first; return the last wrapper."""
        rng = self.surface.get_range()
        if rng is None or rng.collapsed:
            return None
        segments = text_segments(self.surface.root, rng)
        if not segments:
            return None
        last: Tag | None = None
        for segment in reversed(segments):
            wrapper = wrap_segment(segment, factory())
            if last is None:
                last = wrapper
        return last

    def _apply_inline_tag(self, tag_name: str) -> bool:
        last = self._wrap_selection(lambda: self.surface.new_tag(tag_name))
        if last is None:
            return False
        self.surface.select(last, len(last.contents))
        return True

    def _apply_inline_style(self, prop: str, value: str, place_caret_outside: bool = False) -> bool:
        last = self._wrap_selection(lambda: self.surface.new_tag("span", {"style": f"{prop}:{value}"}))
        if last is None:
            return False
        if place_caret_outside:
            self._ensure_whitespace_after(last)
        else:
            self.surface.select(last, len(last.contents))
        return True

    def _convert_legacy_color_fonts_to_spans(self) -> bool:
        changed = False
        for font in self.surface.root.find_all("font", attrs={"color": True}):
            color = normalize_safe_hex_color(font.get("color", "").strip())
            if color is None:
                continue
            font.name = "span"
            font.attrs = {"style": f"color:{color}"}
            changed = True
        return changed

    def _ensure_whitespace_after(self, node: Tag) -> None:
        """Put the caret just past ``node``, adding a zero-width spacer if needed."""
        following = node.next_sibling
        if isinstance(following, NavigableString):
            value = str(following)
            stripped = value.lstrip(f" \t\n\r\f\v\xa0{ZERO_WIDTH_SPACE}")
            if len(stripped) < len(value):
                self.surface.select(following, len(value) - len(stripped))
                return
        spacer = NavigableString(ZERO_WIDTH_SPACE)
        node.insert_after(spacer)
        self.surface.select_range(Range.after(spacer))

    def _move_caret_outside_highlight(self) -> bool:
        escaped: Tag | None = None
        for _ in range(config.highlight_escape_depth):
            rng = self.surface.get_range()
            if rng is None:
                break
            if not rng.collapsed:
                rng.collapse()
                self.surface.select_range(rng)
            highlighted = closest(rng.start_container, _is_highlight, self.surface.root)
            if highlighted is None:
                break
            self.surface.select_range(Range.after(highlighted))
            escaped = highlighted
        if escaped is not None:
            self._ensure_whitespace_after(escaped)
        return escaped is not None

    def _run_clear_highlight(self) -> bool:
        live = self.surface.get_range()
        dom_range = live.clone() if live is not None else None
        if dom_range is None and self._last_dom_selection is not None:
            dom_range = self._last_dom_selection.clone()
        self._restore_expanded_selection(dom_range, self.get_selection() or self._last_selection)

        rng = self.surface.get_range()
        if rng is None:
            return False
        rng.collapse()
        marker = NavigableString(ZERO_WIDTH_SPACE)
        insert_node(rng, marker)
        try:
            highlighted = closest(marker, _is_highlight, self.surface.root)
            if highlighted is None:
                return False
            return self._remove_highlight(highlighted)
        finally:
            if self.surface.contains(marker):
                self.surface.select_range(Range.before(marker))
            marker.extract()

    def _remove_highlight(self, element: Tag) -> bool:
        if element.name == "mark":
            element.unwrap()
            return True
        had_background = "background-color" in parse_style_map(element.get("style"))
        set_style_property(element, "background-color", None)
        if element.name == "span" and not element.attrs:
            element.unwrap()
            return True
        return had_background

    def _new_link(self, url: str, open_in_new_tab: bool) -> Tag:
        anchor = self.surface.new_tag("a", {"href": url})
        if open_in_new_tab:
            anchor["target"] = "_blank"
            anchor["rel"] = "noopener noreferrer"
        return anchor

    def _apply_link(self, payload: CommandPayload) -> bool:
        url = payload.url.strip()
        rng = self.surface.get_range()
        if rng is None:
            return False
        if payload.text:
            anchor = self._new_link(url, payload.open_in_new_tab)
            anchor.append(NavigableString(payload.text))
            insert_node(delete_contents(self.surface.root, rng), anchor)
            self.surface.select_range(Range.after(anchor))
            return True
        last = self._wrap_selection(lambda: self._new_link(url, payload.open_in_new_tab))
        if last is None:
            return False
        self.surface.select_range(Range.after(last))
        return True

    def _unwrap_intersecting(self, tag_names: tuple[str, ...], allow_collapsed: bool) -> bool:
        rng = self.surface.get_range()
        if rng is None or (rng.collapsed and not allow_collapsed):
            return False
        root = self.surface.root
        targets = intersecting_nodes(root, rng, root.find_all(tag_names))
        if not targets:
            return False
        selection = self.get_selection()
        for tag in reversed(targets):
            tag.unwrap()
        if selection is not None:
            set_selection_range(self.surface, selection)
        return True

    # -- block synthesis ------------------------------------------------

    def _caret_node(self, node: PageElement, offset: int) -> PageElement:
        """The node a boundary point sits in or directly before."""
        if isinstance(node, Tag) and offset < len(node.contents):
            return node.contents[offset]
        return node

    def _selected_blocks(self) -> list[Tag]:
        rng = self.surface.get_range()
        if rng is None:
            return []
        root = self.surface.root
        blocks = intersecting_nodes(root, rng, root.find_all(BLOCK_TAGS))
        if blocks:
            return blocks
        nearest = closest(self._caret_node(rng.start_container, rng.start_offset), _is_block, root)
        return [nearest] if nearest is not None else []

    def _current_block(self) -> Tag | None:
        selection = self.surface.selection
        if selection is None or not self.surface.contains(selection.focus_node):
            return None
        node = self._caret_node(selection.focus_node, selection.focus_offset)
        return closest(node, _is_block, self.surface.root)

    def _top_level(self, node: PageElement) -> PageElement | None:
        current = node
        while current is not None and current.parent is not self.surface.root:
            current = current.parent
        return current

    def _apply_style_to_selected_blocks(self, prop: str, value: str | None) -> bool:
        blocks = self._selected_blocks()
        for block in blocks:
            set_style_property(block, prop, value)
        return bool(blocks)

    def _apply_style_to_current_block_with_fallback(self, prop: str, value: str) -> bool:
        block = self._current_block()
        if block is None:
            fallback = self._last_expanded_selection or self._last_selection
            if fallback is None:
                return False
            set_selection_range(self.surface, fallback)
            block = self._current_block()
        if block is None:
            blocks = self._selected_blocks()
            for selected in blocks:
                set_style_property(selected, prop, value)
            return bool(blocks)
        set_style_property(block, prop, value)
        return True

    def _lift_list_item(self, item: Tag) -> Tag:
        """Move ``item`` out of its list, splitting the list around it."""
        parent = item.parent
        if parent is None or parent.name not in ("ul", "ol"):
            return item
        following = list(item.next_siblings)
        if following:
            tail = self.surface.new_tag(parent.name)
            for node in following:
                tail.append(node.extract())
            parent.insert_after(tail)
        parent.insert_after(item.extract())
        if not parent.find("li", recursive=False):
            parent.decompose()
        return item

    def _formattable_blocks(self) -> list[Tag]:
        return [block for block in _innermost(self._selected_blocks()) if block.name not in CELL_TAGS]

    def _apply_block_format(self, tag_name: str) -> bool:
        blocks = self._formattable_blocks()
        if not blocks:
            return False
        selection = self.get_selection()
        for block in blocks:
            if block.name == "li":
                self._lift_list_item(block)
            block.name = tag_name
        if selection is not None:
            set_selection_range(self.surface, selection)
        return True

    def _toggle_list(self, list_tag: str) -> bool:
        blocks = self._formattable_blocks()
        if not blocks:
            return False
        selection = self.get_selection()

        if all(block.name == "li" and block.parent.name == list_tag for block in blocks):
            for block in blocks:
                self._lift_list_item(block).name = "p"
        else:
            for block in blocks:
                if block.name == "li":
                    self._lift_list_item(block)
                block.name = "li"
                previous = block.previous_sibling
                if isinstance(previous, Tag) and previous.name == list_tag:
                    previous.append(block.extract())
                else:
                    block.wrap(self.surface.new_tag(list_tag))
            last_list = blocks[-1].parent
            following = last_list.next_sibling
            if isinstance(following, Tag) and following.name == list_tag:
                for item in list(following.contents):
                    last_list.append(item.extract())
                following.decompose()

        if selection is not None:
            set_selection_range(self.surface, selection)
        return True

    def _insert_horizontal_rule(self) -> bool:
        rng = self.surface.get_range()
        if rng is None:
            return False
        root = self.surface.root
        rule = self.surface.new_tag("hr")
        block = self._top_level(self._caret_node(rng.start_container, rng.start_offset))
        if block is None:
            root.append(rule)
        else:
            block.insert_after(rule)
        following = rule.next_sibling
        if isinstance(following, Tag) and following.name in BLOCK_FORMAT_TAGS.values():
            self.surface.select(following, 0)
            return True
        paragraph = self.surface.new_tag("p")
        paragraph.append(self.surface.new_tag("br"))
        rule.insert_after(paragraph)
        self.surface.select(paragraph, 0)
        return True

    def _insert_text(self, text: str) -> bool:
        rng = self.surface.get_range()
        if rng is None:
            return False
        node = NavigableString(text)
        insert_node(delete_contents(self.surface.root, rng), node)
        self.surface.select_range(Range.after(node))
        return True

    def _insert_html(self, html: str) -> bool:
        nodes = self.surface.parse_fragment(html)
        rng = self.surface.get_range()
        if not nodes or rng is None:
            return False
        root = self.surface.root

        if any(isinstance(node, Tag) and node.name in CONTAINER_BLOCK_TAGS for node in nodes):
            block = self._top_level(self._caret_node(rng.start_container, rng.start_offset))
            if block is None:
                for node in nodes:
                    root.append(node)
            else:
                anchor = block
                for node in nodes:
                    anchor.insert_after(node)
                    anchor = node
                if isinstance(block, Tag) and _is_empty_block(block):
                    block.extract()
        else:
            caret = delete_contents(root, rng)
            insert_node(caret, nodes[0])
            anchor = nodes[0]
            for node in nodes[1:]:
                anchor.insert_after(node)
                anchor = node

        self.surface.select_range(Range.after(nodes[-1]))
        return True

    # -- tables ---------------------------------------------------------

    def _insert_table(self, rows: int, cols: int, bordered: bool = False) -> bool:
        table_style = ' style="border-collapse:collapse"' if bordered else ""
        cell_style = f' style="border:{TABLE_CELL_BORDER}"' if bordered else ""
        row_html = "<tr>" + f"<td{cell_style}><br></td>" * cols + "</tr>"
        return self._insert_html(f"<table{table_style}><tbody>{row_html * rows}</tbody></table><p><br></p>")

    def _current_cell(self) -> Tag | None:
        selection = self.surface.selection
        if selection is None or not self.surface.contains(selection.anchor_node):
            return None
        node = self._caret_node(selection.anchor_node, selection.anchor_offset)
        return closest(node, lambda tag: tag.name in CELL_TAGS, self.surface.root)

    def _run_table_command(self, command: EditorCommand) -> bool:
        cell = self._current_cell()
        table = closest(cell, lambda tag: tag.name == "table", self.surface.root) if cell else None
        row = cell.parent if cell is not None else None
        if table is None or row is None or row.name != "tr":
            return False
        index = next(i for i, candidate in enumerate(_cells(row)) if candidate is cell)

        match command:
            case EditorCommand.TABLE_ADD_ROW_ABOVE:
                return self._insert_table_row(row, index, above=True)
            case EditorCommand.TABLE_ADD_ROW_BELOW:
                return self._insert_table_row(row, index, above=False)
            case EditorCommand.TABLE_DELETE_ROW:
                return self._delete_table_row(row, table)
            case EditorCommand.TABLE_ADD_COLUMN_LEFT:
                return self._insert_table_column(table, row, index, left=True)
            case EditorCommand.TABLE_ADD_COLUMN_RIGHT:
                return self._insert_table_column(table, row, index, left=False)
            case EditorCommand.TABLE_DELETE_COLUMN:
                return self._delete_table_column(table, row, index)
            case EditorCommand.TABLE_DELETE:
                return self._delete_table(table)
            case _:
                return False

    def _create_cell(self, tag_name: str, basis: Tag | None) -> Tag:
        cell = self.surface.new_tag(tag_name)
        border = parse_style_map(basis.get("style")).get("border") if basis is not None else None
        if border:
            cell["style"] = f"border:{border}"
        cell.append(self.surface.new_tag("br"))
        return cell

    def _place_cursor_in_cell(self, cell: Tag) -> None:
        self.surface.select(cell, 0)

    def _insert_table_row(self, row: Tag, active_index: int, above: bool) -> bool:
        cells = _cells(row)
        tag_name = cells[0].name if cells else "td"
        new_row = self.surface.new_tag("tr")
        for i in range(len(cells) or 1):
            basis = cells[min(i, len(cells) - 1)] if cells else None
            new_row.append(self._create_cell(tag_name, basis))
        if above:
            row.insert_before(new_row)
        else:
            row.insert_after(new_row)
        new_cells = _cells(new_row)
        self._place_cursor_in_cell(new_cells[min(active_index, len(new_cells) - 1)])
        return True

    def _delete_table_row(self, row: Tag, table: Tag) -> bool:
        section = row.parent
        siblings = section.find_all("tr", recursive=False)
        index = next(i for i, candidate in enumerate(siblings) if candidate is row)
        row.extract()
        if table.find("tr") is None:
            return self._delete_table(table)

        remaining = section.find_all("tr", recursive=False)
        target_row = remaining[max(0, index - 1)] if remaining else table.find("tr")
        target_cells = _cells(target_row)
        if target_cells:
            self._place_cursor_in_cell(target_cells[0])
        return True

    def _insert_table_column(self, table: Tag, active_row: Tag, index: int, left: bool) -> bool:
        rows = table.find_all("tr")
        if not rows:
            return False
        for row in rows:
            cells = _cells(row)
            reference_index = index if left else index + 1
            basis = cells[min(index, len(cells) - 1)] if cells else None
            new_cell = self._create_cell(basis.name if basis is not None else "td", basis)
            if reference_index < len(cells):
                cells[reference_index].insert_before(new_cell)
            else:
                row.append(new_cell)
        active_cells = _cells(active_row)
        target_index = index if left else index + 1
        self._place_cursor_in_cell(active_cells[min(target_index, len(active_cells) - 1)])
        return True

    def _delete_table_column(self, table: Tag, active_row: Tag, index: int) -> bool:
        rows = table.find_all("tr")
        if not rows:
            return False
        for row in rows:
            cells = _cells(row)
            if index < len(cells):
                cells[index].extract()
        if not any(_cells(row) for row in rows):
            return self._delete_table(table)
        active_cells = _cells(active_row)
        if active_cells:
            self._place_cursor_in_cell(active_cells[min(max(0, index - 1), len(active_cells) - 1)])
        return True

    def _delete_table(self, table: Tag) -> bool:
        paragraph = self.surface.new_tag("p")
        paragraph.append(self.surface.new_tag("br"))
        table.insert_after(paragraph)
        table.extract()
        self.surface.select(paragraph, 0)
        return True

    # -- command state --------------------------------------------------

    def is_command_active(self, command: EditorCommand | str) -> bool:
        """Whether the mark or list ``command`` applies at the caret."""
        parsed = parse_command(command)
        if self.surface is None or parsed is None:
            return False
        if self.native is not None and parsed in NATIVE_COMMAND_NAMES:
            return self.native.query_command_state(self.surface, NATIVE_COMMAND_NAMES[parsed])
        rng = self.surface.get_range()
        if rng is None:
            return False
        node = self._caret_node(rng.end_container, rng.end_offset) if rng.collapsed else rng.end_container
        root = self.surface.root
        if parsed in LIST_TAGS:
            item = closest(node, lambda tag: tag.name == "li", root)
            return item is not None and item.parent is not None and item.parent.name == LIST_TAGS[parsed]
        tags = MARK_ACTIVE_TAGS.get(parsed)
        if tags is None:
            return False
        return closest(node, lambda tag: tag.name in tags, root) is not None

    # -- paste ----------------------------------------------------------

    def paste(self, html: str | None = None, text: str | None = None) -> bool:
        """Insert clipboard content; ``False`` leaves the paste to the host.

        HTML is sanitized before insertion. Plain text is only taken over when
        an emoji registry turns some of it into images.
        """
        index = self.emoji_registry.get(self.settings.twemoji_base_url) if self.emoji_registry else None
        if html:
            if index is not None:
                html = replace_unicode_emoji_in_html(html, index).html
            safe = sanitize_html(html)
            if safe:
                self.exec(EditorCommand.INSERT_HTML, CommandPayload(html=safe))
            return True
        if not text or index is None:
            return False
        result = replace_unicode_emoji_in_plain_text_as_html(text, index)
        if not result.replaced:
            return False
        self.exec(EditorCommand.INSERT_HTML, CommandPayload(html=sanitize_html(result.html)))
        return True

    # -- attachments ----------------------------------------------------

    def insert_attachment_placeholder(self, file: UploadFile, preview_url: str | None = None) -> str:
        attachment_id = generate_attachment_id()
        html = make_attachment_html(
            attachment_id,
            filename=file.name,
            filesize=file.size,
            content_type=file.content_type or "application/octet-stream",
            preview_url=preview_url or "",
            pending=True,
            progress=0,
        )
        self.exec(EditorCommand.INSERT_HTML, CommandPayload(html=html))
        return attachment_id

    def set_attachment_progress(self, attachment_id: str, progress: float) -> None:
        """Update a placeholder's progress in place. Not recorded in history."""
        if self.surface is None:
            return
        figure = find_attachment(self.surface.root, attachment_id)
        number = parse_finite_number(progress)
        if figure is None or number is None:
            return
        safe = int(max(0.0, min(100.0, number)) + 0.5)
        indicator = figure.find("progress")
        if indicator is not None:
            indicator["value"] = str(safe)
        meta = figure.find(lambda tag: has_class(tag, "berry-attachment__meta"))
        labels = meta.find_all("span") if meta is not None else []
        if len(labels) > 1:
            labels[1].string = f"{safe}%"

    def resolve_attachment(self, attachment_id: str, result: UploadResult | dict) -> None:
        if self.surface is None:
            return
        figure = find_attachment(self.surface.root, attachment_id)
        if figure is None:
            return
        if isinstance(result, dict):
            result = UploadResult.model_validate(result)
        html = make_attachment_html(
            attachment_id,
            filename=result.filename,
            filesize=result.filesize,
            content_type=result.content_type,
            url=result.url,
            preview_url=result.preview_url or "",
            alt=result.alt or None,
        )
        before = self._snapshot()
        for node in self.surface.parse_fragment(html):
            figure.insert_before(node)
        figure.extract()
        self._commit(before)

    def fail_attachment(self, attachment_id: str) -> None:
        if self.surface is None:
            return
        figure = find_attachment(self.surface.root, attachment_id)
        if figure is None:
            return
        before = self._snapshot()
        classes = [name for name in (figure.get("class") or "").split() if name != "berry-attachment--pending"]
        figure["class"] = " ".join(classes)
        add_class(figure, "berry-attachment--error")
        body = figure.find(lambda tag: has_class(tag, "berry-attachment__body"))
        if body is not None:
            error = self.surface.new_tag("div", {"class": "berry-attachment__error"})
            error.string = config.upload_failed_label
            body.append(error)
        self._commit(before)

    def remove_attachment(self, attachment_id: str) -> None:
        if self.surface is None:
            return
        figure = find_attachment(self.surface.root, attachment_id)
        if figure is None:
            return
        before = self._snapshot()
        figure.extract()
        self._commit(before)

    def get_image_attachment_state(self, attachment_id: str) -> ImageAttachmentState | None:
        if self.surface is None:
            return None
        container = find_image_attachment_container(self.surface.root, attachment_id)
        if container is None:
            return None
        return read_image_attachment_state(self.surface.root, container)

    def update_image_attachment(self, attachment_id: str, patch: ImageAttachmentPatch | dict) -> bool:
        """Apply a partial layout/link patch to an image attachment as one commit."""
        if self.surface is None:
            return False
        if isinstance(patch, dict):
            try:
                patch = ImageAttachmentPatch.model_validate(patch)
            except ValidationError as exc:
                logger.debug("Rejected image patch: %s", exc)
                return False
        container = find_image_attachment_container(self.surface.root, attachment_id)
        if container is None:
            return False
        current = read_image_attachment_state(self.surface.root, container)
        if current is None:
            return False

        state = current.model_copy()
        if patch.reset_size:
            state.width = None
        if patch.provided("width_unit") and patch.width_unit is not None:
            state.width_unit = patch.width_unit
        if patch.provided("width"):
            if patch.width is None:
                state.width = None
            elif not is_safe_image_width(patch.width, state.width_unit):
                return False
            else:
                state.width = round_two(clamp_image_width(patch.width, state.width_unit))
        if patch.provided("padding"):
            if patch.padding is None:
                state.padding = None
            elif not is_safe_image_padding(patch.padding):
                return False
            else:
                state.padding = round_two(patch.padding)
        if patch.provided("image_align"):
            state.image_align = patch.image_align
        if patch.provided("wrap_text") and patch.wrap_text is not None:
            state.wrap_text = patch.wrap_text
        if patch.provided("wrap_side") and patch.wrap_side is not None:
            state.wrap_side = patch.wrap_side
        if patch.provided("link_url"):
            link_url = (patch.link_url or "").strip()
            if not link_url:
                state.link_url = None
                state.link_open_in_new_tab = None
            elif not is_safe_link(link_url):
                return False
            else:
                state.link_url = link_url
                if not patch.provided("link_open_in_new_tab") and state.link_open_in_new_tab is None:
                    state.link_open_in_new_tab = True
        if patch.provided("link_open_in_new_tab") and patch.link_open_in_new_tab is not None:
            state.link_open_in_new_tab = patch.link_open_in_new_tab

        before = self._snapshot()
        apply_image_attachment_state(self.surface, container, state)
        self._commit(before)
        return True

    def resize_image_attachment(
        self, attachment_id: str, width: float, unit: str = "px", final: bool = False
    ) -> bool:
        """Resize from a drag gesture.

        While dragging the width is clamped into range and written straight to
        the surface; on release (``final=True``) the clamped width is committed.
        """
        if self.surface is None or unit not in ("px", "percent"):
            return False
        number = parse_finite_number(width)
        container = find_image_attachment_container(self.surface.root, attachment_id)
        if number is None or container is None:
            return False
        clamped = round_two(clamp_image_width(number, unit))
        if final:
            return self.update_image_attachment(attachment_id, ImageAttachmentPatch(width=clamped, width_unit=unit))
        current = read_image_attachment_state(self.surface.root, container)
        if current is None:
            return False
        apply_image_attachment_state(
            self.surface, container, current.model_copy(update={"width": clamped, "width_unit": unit})
        )
        return True

    # -- surface events -------------------------------------------------

    def _handle_input(self) -> None:
        if self._composing or self._executing:
            return
        self._commit(self._snapshot())

    def _handle_selection_change(self) -> None:
        if self._executing:
            return
        self._report_selection()

    def _handle_composition_start(self) -> None:
        self._composing = True

    def _handle_composition_end(self) -> None:
        self._composing = False
        if not self._executing:
            self._commit(self._snapshot())

    def _handle_focus(self) -> None:
        self._emit("on_focus")

    def _handle_blur(self) -> None:
        self._emit("on_blur")
