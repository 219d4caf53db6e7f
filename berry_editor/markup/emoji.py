"""Unicode emoji to Twemoji image replacement for pasted content."""

from collections.abc import Iterable
from html import escape

from bs4 import NavigableString
from pydantic import BaseModel, model_validator

from berry_editor.common.utils.config import config
from berry_editor.markup.soup import closest, is_text, make_soup, render_contents

VARIATION_SELECTOR_16 = "\ufe0f"
ZERO_WIDTH_JOINER = "\u200d"

# Text anywhere inside these elements is left as typed.
SKIP_PARENTS = ("code", "pre")


def normalize_twemoji_base_url(value: str | None = None) -> str:
    base = (value or "").strip() or config.twemoji_base_url
    return base[:-1] if base.endswith("/") else base


def to_codepoints(unicode: str) -> str:
    """Twemoji asset name: lowercase hex code points joined by ``-``.

    VS16 is dropped unless the sequence contains a zero-width joiner.
    """
    keep_vs16 = ZERO_WIDTH_JOINER in unicode
    return "-".join(f"{ord(char):x}" for char in unicode if keep_vs16 or char != VARIATION_SELECTOR_16)


class EmojiCatalogEntry(BaseModel):
    unicode: str
    codepoints: str = ""

    @model_validator(mode="after")
    def derive_codepoints(self) -> "EmojiCatalogEntry":
        if not self.codepoints:
            self.codepoints = to_codepoints(self.unicode)
        return self


class EmojiReplacement(BaseModel):
    unicode: str
    twemoji_url: str

    def to_html(self) -> str:
        unicode = escape(self.unicode)
        return (
            f'<img class="berry-emoji" alt="{unicode}" '
            f'data-berry-emoji="{unicode}" src="{escape(self.twemoji_url)}">'
        )


class EmojiReplacementResult(BaseModel):
    html: str
    replaced: bool


Token = str | EmojiReplacement


class EmojiReplacementIndex:
    """Longest-match lookup of catalog emoji for one Twemoji base URL."""

    def __init__(self, catalog: Iterable[EmojiCatalogEntry], base_url: str | None = None):
        self.base_url = normalize_twemoji_base_url(base_url)
        self.by_unicode: dict[str, EmojiReplacement] = {}
        for entry in catalog:
            replacement = EmojiReplacement(
                unicode=entry.unicode, twemoji_url=f"{self.base_url}/{entry.codepoints}.svg"
            )
            self.by_unicode[entry.unicode] = replacement
            # pasted emoji often omit the variation selector
            bare = entry.unicode.replace(VARIATION_SELECTOR_16, "")
            if bare and bare != entry.unicode and bare not in self.by_unicode:
                self.by_unicode[bare] = EmojiReplacement(unicode=bare, twemoji_url=replacement.twemoji_url)

        self.lengths = sorted({len(unicode) for unicode in self.by_unicode}, reverse=True)
        self.first_chars = {unicode[0] for unicode in self.by_unicode}

    def _match(self, text: str, cursor: int) -> EmojiReplacement | None:
        if text[cursor] not in self.first_chars:
            return None
        for length in self.lengths:
            if cursor + length > len(text):
                continue
            replacement = self.by_unicode.get(text[cursor : cursor + length])
            if replacement is not None:
                return replacement
        return None

    def tokenize(self, text: str) -> tuple[list[Token], bool]:
        """Split ``text`` into plain runs and emoji matches."""
        tokens: list[Token] = []
        pending: list[str] = []
        replaced = False
        cursor = 0
        while cursor < len(text):
            match = self._match(text, cursor)
            if match is None:
                pending.append(text[cursor])
                cursor += 1
                continue
            if pending:
                tokens.append("".join(pending))
                pending = []
            tokens.append(match)
            cursor += len(match.unicode)
            replaced = True
        if pending:
            tokens.append("".join(pending))
        return tokens, replaced


class EmojiIndexRegistry:
    """Builds and caches one index per normalized Twemoji base URL."""

    def __init__(self, catalog: Iterable[EmojiCatalogEntry | dict | str]):
        self.catalog = [self._entry(item) for item in catalog]
        self._indexes: dict[str, EmojiReplacementIndex] = {}

    @staticmethod
    def _entry(item: EmojiCatalogEntry | dict | str) -> EmojiCatalogEntry:
        if isinstance(item, EmojiCatalogEntry):
            return item
        if isinstance(item, str):
            return EmojiCatalogEntry(unicode=item)
        return EmojiCatalogEntry.model_validate(item)

    def get(self, base_url: str | None = None) -> EmojiReplacementIndex:
        key = normalize_twemoji_base_url(base_url)
        index = self._indexes.get(key)
        if index is None:
            index = EmojiReplacementIndex(self.catalog, key)
            self._indexes[key] = index
        return index


def replace_unicode_emoji_in_html(html: str, index: EmojiReplacementIndex) -> EmojiReplacementResult:
    """Swap catalog emoji in text nodes for Twemoji ``<img>`` elements."""
    soup = make_soup(html)
    replaced = False
    for node in [node for node in soup.descendants if is_text(node)]:
        if node.parent is None or closest(node, lambda tag: tag.name in SKIP_PARENTS) is not None:
            continue
        tokens, node_replaced = index.tokenize(str(node))
        if not node_replaced:
            continue
        previous = None
        for token in tokens:
            if isinstance(token, str):
                element = NavigableString(token)
            else:
                element = soup.new_tag(
                    "img",
                    attrs={
                        "class": "berry-emoji",
                        "alt": token.unicode,
                        "data-berry-emoji": token.unicode,
                        "src": token.twemoji_url,
                    },
                )
            if previous is None:
                node.replace_with(element)
            else:
                previous.insert_after(element)
            previous = element
        replaced = True
    if not replaced:
        return EmojiReplacementResult(html=html, replaced=False)
    return EmojiReplacementResult(html=render_contents(soup), replaced=True)


def replace_unicode_emoji_in_plain_text_as_html(text: str, index: EmojiReplacementIndex) -> EmojiReplacementResult:
    """Escape plain text as HTML lines joined by ``<br>``, replacing emoji along the way."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    replaced = False
    rendered = []
    for line in lines:
        tokens, line_replaced = index.tokenize(line)
        replaced = replaced or line_replaced
        rendered.append("".join(escape(t) if isinstance(t, str) else t.to_html() for t in tokens))
    return EmojiReplacementResult(html="<br>".join(rendered), replaced=replaced)
