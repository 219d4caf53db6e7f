"""Allow-list HTML sanitizer.

The DOM path parses with BeautifulSoup and rebuilds every element against the
allow-lists below. The regex path serves callers that cannot afford a tree
parse: it rebuilds every tag against the same allow-lists and escapes any
``<`` that does not open a tag.
"""

import html
import re

from bs4 import Tag

from berry_editor.common.utils.config import config
from berry_editor.common.utils.logger import get_logger
from berry_editor.markup.soup import is_text, make_soup, render_contents
from berry_editor.markup.styles import sanitize_style_text

logger = get_logger(__name__)

ALLOWED_TAGS = frozenset(
    {
        "p", "br", "strong", "b", "em", "i", "s", "strike", "u", "mark", "code", "pre", "a",
        "blockquote", "h1", "h2", "h3", "hr", "ul", "ol", "li",
        "table", "thead", "tbody", "tfoot", "tr", "th", "td",
        "figure", "figcaption", "img", "span", "div", "progress",
    }
)  # fmt: skip

ATTACHMENT_ATTRIBUTES = (
    "data-berry-attachment-id",
    "data-berry-url",
    "data-berry-filename",
    "data-berry-filesize",
    "data-berry-content-type",
    "data-berry-preview-url",
    "data-berry-caption",
    "data-berry-pending",
    "data-berry-image-align",
    "data-berry-image-wrap",
    "data-berry-image-wrap-side",
    "data-berry-image-padding",
    "data-berry-image-width",
    "data-berry-image-width-unit",
    "data-berry-emoji",
)

ALLOWED_ATTRIBUTES = frozenset(
    {
        "href", "target", "rel", "src", "alt", "width", "height", "class", "style",
        "colspan", "rowspan", "scope", "value", "max", "contenteditable",
        *ATTACHMENT_ATTRIBUTES,
    }
)  # fmt: skip

URI_ATTRIBUTES = frozenset({"href", "src", "data-berry-url", "data-berry-preview-url"})

# Removed together with everything inside them.
DROP_WITH_CONTENT = frozenset(
    {
        "script", "style", "template", "iframe", "object", "embed", "noscript", "noembed",
        "noframes", "frame", "frameset", "textarea", "select", "option", "title", "head",
        "svg", "math", "xmp", "plaintext",
    }
)  # fmt: skip

ATTR_WHITESPACE = re.compile(r"[\u0000-\u0020\u00a0\u1680\u180e\u2000-\u2029\u205f\u3000]")
SCRIPT_OR_DATA = re.compile(r"^(?:\w+script|data):", re.IGNORECASE)


def _uri_pattern() -> re.Pattern[str]:
    schemes = "|".join(re.escape(scheme) for scheme in config.uri_schemes)
    return re.compile(rf"^(?:(?:{schemes}):|[^a-z]|[-a-z+.]+(?:[^-a-z+.:]|$))", re.IGNORECASE)


def is_allowed_uri(value: str) -> bool:
    """Scheme allow-list check; scheme-less and same-document references pass."""
    compact = ATTR_WHITESPACE.sub("", value)
    return bool(_uri_pattern().match(compact)) if compact else True


def _clean_attributes(tag: Tag) -> None:
    for name in list(tag.attrs):
        value = tag.attrs[name]
        value = "" if value is None else str(value)
        lowered = name.lower()
        if lowered not in ALLOWED_ATTRIBUTES:
            del tag.attrs[name]
            continue
        if lowered in URI_ATTRIBUTES:
            if not is_allowed_uri(value):
                del tag.attrs[name]
            continue
        if SCRIPT_OR_DATA.match(ATTR_WHITESPACE.sub("", value)):
            del tag.attrs[name]
            continue
        if lowered == "style":
            safe = sanitize_style_text(value, tag.name)
            if safe:
                tag.attrs[name] = safe
            else:
                del tag.attrs[name]


def _clean_children(node: Tag) -> None:
    for child in list(node.contents):
        if isinstance(child, Tag):
            name = child.name.lower()
            if name in DROP_WITH_CONTENT:
                child.decompose()
                continue
            _clean_children(child)
            if name not in ALLOWED_TAGS:
                child.unwrap()
                continue
            _clean_attributes(child)
        elif not is_text(child):
            child.extract()


def sanitize_html(raw: str, *, dom: bool = True) -> str:
    """Reduce ``raw`` to the editor's allow-listed markup.

    Args:
        raw (str): Untrusted HTML.
        dom (bool): Use the tree sanitizer. ``False`` selects the regex path.

    Returns:
        str: Sanitized HTML. Feeding it back in returns it unchanged.
    """
    if not raw:
        return ""
    if not dom:
        return fallback_sanitize_html(raw)

    soup = make_soup(raw)
    _clean_children(soup)
    return render_contents(soup)


_COMMENT = re.compile(r"<!--[\s\S]*?(?:-->|$)|<![^>]*>|<\?[^>]*>")
_TAG_BODY = r"""(?:"[^"]*"|'[^']*'|[^'">])*"""
_DROPPED_BLOCK = re.compile(
    rf"<\s*({'|'.join(sorted(DROP_WITH_CONTENT))})\b{_TAG_BODY}>[\s\S]*?<\s*/\s*\1\s*>",
    re.IGNORECASE,
)
_DROPPED_UNCLOSED = re.compile(
    rf"<\s*(?:{'|'.join(sorted(DROP_WITH_CONTENT))})\b{_TAG_BODY}>[\s\S]*$", re.IGNORECASE
)
# A lone ``<`` that does not open a tag is escaped, so only rebuilt tags reach the output.
_TAG_OR_BRACKET = re.compile(rf"<(/?)([a-zA-Z][a-zA-Z0-9-]*)({_TAG_BODY})>|<")
_ATTRIBUTE = re.compile(r"""([^\s"'>/=]+)(?:\s*=\s*("[^"]*"|'[^']*'|[^\s"'>]+))?""")


def _clean_attribute(tag_name: str, name: str, raw_value: str | None) -> str | None:
    if name not in ALLOWED_ATTRIBUTES:
        return None
    if raw_value is None:
        return name
    if raw_value[:1] in ("'", '"'):
        raw_value = raw_value[1:-1]
    value = html.unescape(raw_value)
    if name in URI_ATTRIBUTES:
        if not is_allowed_uri(value):
            return None
    elif SCRIPT_OR_DATA.match(ATTR_WHITESPACE.sub("", value)):
        return None
    elif name == "style":
        value = sanitize_style_text(value, tag_name)
        if not value:
            return None
    return f'{name}="{html.escape(value, quote=True)}"'


def _rebuild_tag(match: re.Match[str]) -> str:
    if match.group(2) is None:
        return "&lt;"
    tag_name = match.group(2).lower()
    if tag_name not in ALLOWED_TAGS:
        return ""
    if match.group(1):
        return f"</{tag_name}>"
    attributes = []
    for attribute in _ATTRIBUTE.finditer(match.group(3)):
        cleaned = _clean_attribute(tag_name, attribute.group(1).lower(), attribute.group(2))
        if cleaned is not None:
            attributes.append(cleaned)
    return f"<{' '.join([tag_name, *attributes])}>"


def fallback_sanitize_html(raw: str) -> str:
    """Regex-only sanitizer.

    Every tag is rebuilt from the same allow-lists as the tree path; tags
    outside them are removed and their text kept, except for the elements
    dropped with their content.
    """
    logger.debug("Sanitizing %d characters without a tree parse", len(raw))
    html_text = _COMMENT.sub("", raw)
    previous = None
    while previous != html_text:
        previous = html_text
        html_text = _DROPPED_BLOCK.sub("", html_text)
    html_text = _DROPPED_UNCLOSED.sub("", html_text)
    return _TAG_OR_BRACKET.sub(_rebuild_tag, html_text)
