"""BeautifulSoup plumbing shared by the sanitizer, parser and surface."""

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.dammit import EntitySubstitution
from bs4.element import PageElement, PreformattedString
from bs4.formatter import HTMLFormatter

from berry_editor.common.utils.config import config
from berry_editor.markup.styles import parse_style_map, serialize_style_map


class EditorFormatter(HTMLFormatter):
    """Void elements without a slash, attributes in insertion order."""

    def attributes(self, tag: Tag):  # type: ignore[override]
        if not tag.attrs:
            return []
        return list(tag.attrs.items())


FORMATTER = EditorFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def make_soup(markup: str = "") -> BeautifulSoup:
    return BeautifulSoup(markup, config.parser, multi_valued_attributes=None)


def render_contents(node: Tag) -> str:
    return node.decode_contents(formatter=FORMATTER)


def is_text(node: object) -> bool:
    """True for character data, false for comments, doctypes and CDATA."""
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def closest(node: PageElement | None, predicate, stop: Tag | None = None) -> Tag | None:
    """Nearest element at or above ``node`` matching ``predicate``, below ``stop``."""
    current = node if isinstance(node, Tag) else (node.parent if node is not None else None)
    while current is not None and current is not stop:
        if predicate(current):
            return current
        current = current.parent
    return None


def has_class(tag: Tag, name: str) -> bool:
    return name in (tag.get("class") or "").split()


def add_class(tag: Tag, name: str) -> None:
    classes = (tag.get("class") or "").split()
    if name not in classes:
        classes.append(name)
    tag["class"] = " ".join(classes)


def text_content(node: PageElement) -> str:
    if isinstance(node, Tag):
        return "".join(str(t) for t in node.descendants if is_text(t))
    return str(node) if is_text(node) else ""


def set_style_property(tag: Tag, prop: str, value: str | None) -> None:
    """Set or remove one declaration, dropping the attribute once it is empty."""
    styles = parse_style_map(tag.get("style"))
    if value is None or value == "":
        styles.pop(prop, None)
    else:
        styles[prop] = value
    if styles:
        tag["style"] = serialize_style_map(styles)
    elif "style" in tag.attrs:
        del tag["style"]
