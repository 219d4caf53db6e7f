"""Canonical document model.

Blocks and inline nodes are closed tagged unions discriminated by
``type`` and ``kind``.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import ConfigDict, Field, field_validator, model_validator

from berry_editor.common.models.base import (
    Alignment,
    CamelModel,
    ImageAlign,
    ListType,
    WidthUnit,
    WrapSide,
)
from berry_editor.common.utils.style_guards import (
    FONT_SIZE_MAX,
    FONT_SIZE_MIN,
    LINE_HEIGHT_MAX,
    LINE_HEIGHT_MIN,
    parse_safe_font_family,
    parse_safe_font_size_value,
)
from berry_editor.markup.styles import (
    IMAGE_PADDING_RANGE,
    IMAGE_WIDTH_PERCENT_RANGE,
    IMAGE_WIDTH_PX_RANGE,
    normalize_safe_hex_color,
)


class BlockType(Enum):
    PARAGRAPH = "paragraph"
    HEADING1 = "heading1"
    HEADING2 = "heading2"
    HEADING3 = "heading3"
    QUOTE = "quote"
    LIST_ITEM = "listItem"
    HORIZONTAL_RULE = "horizontalRule"
    TABLE = "table"


class InlineKind(Enum):
    TEXT = "text"
    ATTACHMENT = "attachment"


def _checked_color(value: str | None) -> str | None:
    if value is None:
        return None
    color = normalize_safe_hex_color(value)
    if color is None:
        raise ValueError(f"Invalid color: {value}")
    return color


def _checked_font_family(value: str | None) -> str | None:
    if value is None:
        return None
    family = parse_safe_font_family(value)
    if family is None:
        raise ValueError(f"Invalid font family: {value}")
    return family


class Marks(CamelModel):
    """Inline formatting carried by a text run."""

    model_config = ConfigDict(frozen=True)

    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    code: bool = False
    link: str | None = None
    link_target: Literal["_blank"] | None = None
    font_family: str | None = None
    font_size: str | None = None  # "18px"
    text_color: str | None = None
    highlight_color: str | None = None

    @field_validator("text_color", "highlight_color")
    def hex_color(cls, value: str | None) -> str | None:
        return _checked_color(value)

    @field_validator("font_family")
    def safe_font_family(cls, value: str | None) -> str | None:
        return _checked_font_family(value)

    @field_validator("font_size")
    def pixel_font_size(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not value.endswith("px") or parse_safe_font_size_value(value) is None:
            raise ValueError(f"Invalid font size: {value}")
        return value


class TextNode(CamelModel):
    kind: Literal[InlineKind.TEXT] = InlineKind.TEXT
    text: str
    marks: Marks = Field(default_factory=Marks)


class AttachmentNode(CamelModel):
    kind: Literal[InlineKind.ATTACHMENT] = InlineKind.ATTACHMENT
    id: str
    url: str = ""
    filename: str = "file"
    filesize: int = Field(default=0, ge=0)
    content_type: str = "application/octet-stream"
    preview_url: str | None = None
    width: float | None = None
    width_unit: WidthUnit | None = None
    height: int | None = None
    alt: str | None = None
    caption: str | None = None
    padding: float | None = Field(default=None, ge=IMAGE_PADDING_RANGE[0], le=IMAGE_PADDING_RANGE[1])
    image_align: ImageAlign | None = None
    wrap_text: bool = False
    wrap_side: WrapSide | None = None
    link_url: str | None = None
    link_open_in_new_tab: bool | None = None
    pending: bool = False

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @model_validator(mode="after")
    def width_in_range(self) -> "AttachmentNode":
        if self.width is None:
            return self
        low, high = IMAGE_WIDTH_PERCENT_RANGE if self.width_unit == "percent" else IMAGE_WIDTH_PX_RANGE
        if not (low <= self.width <= high):
            raise ValueError(f"Image width out of range: {self.width}")
        return self


InlineNode = Annotated[Union[TextNode, AttachmentNode], Field(discriminator="kind")]


class Typography(CamelModel):
    align: Alignment | None = None
    line_height: float | None = Field(default=None, ge=LINE_HEIGHT_MIN, le=LINE_HEIGHT_MAX)
    font_size: float | None = Field(default=None, ge=FONT_SIZE_MIN, le=FONT_SIZE_MAX)
    font_family: str | None = None

    @field_validator("font_family")
    def safe_font_family(cls, value: str | None) -> str | None:
        return _checked_font_family(value)


TextBlockType = Literal[
    BlockType.PARAGRAPH,
    BlockType.HEADING1,
    BlockType.HEADING2,
    BlockType.HEADING3,
    BlockType.QUOTE,
    BlockType.LIST_ITEM,
]


class TextBlock(Typography):
    type: TextBlockType = BlockType.PARAGRAPH
    list_type: ListType | None = None  # only meaningful for list items
    children: list[InlineNode] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(child.text for child in self.children if isinstance(child, TextNode))


class HorizontalRuleBlock(Typography):
    type: Literal[BlockType.HORIZONTAL_RULE] = BlockType.HORIZONTAL_RULE


class TableCell(Typography):
    header: bool = False
    colspan: int | None = Field(default=None, gt=1)
    rowspan: int | None = Field(default=None, gt=1)
    children: list[InlineNode] = Field(default_factory=list)


class TableRow(CamelModel):
    cells: list[TableCell] = Field(default_factory=list)


class TableBlock(Typography):
    type: Literal[BlockType.TABLE] = BlockType.TABLE
    rows: list[TableRow] = Field(default_factory=list)
    bordered: bool = False


BlockNode = Annotated[Union[TextBlock, HorizontalRuleBlock, TableBlock], Field(discriminator="type")]


class EditorDocument(CamelModel):
    """Ordered blocks. Exposes a list-like interface."""

    blocks: list[BlockNode] = Field(default_factory=list)

    def __getitem__(self, index: int) -> TextBlock | HorizontalRuleBlock | TableBlock:
        return self.blocks[index]

    def __iter__(self):  # pyright: ignore[reportIncompatibleMethodOverride]
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)
