"""Engine-facing models: snapshots, payloads, attachments and callbacks."""

from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from berry_editor.common.models.base import (
    CamelModel,
    ImageAlign,
    SelectionRange,
    WidthUnit,
    WrapSide,
)


class Snapshot(BaseModel):
    """One history entry."""

    model_config = ConfigDict(frozen=True)

    html: str
    selection: SelectionRange | None = None


class CommandPayload(CamelModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None
    open_in_new_tab: bool = False
    color: str | None = None
    font_family: str | None = None
    font_size: str | float | None = None
    line_height: str | float | None = None
    rows: int | None = None
    cols: int | None = None
    bordered: bool = False
    text: str | None = None
    html: str | None = None


class UploadFile(CamelModel):
    """A file handed to an upload adapter."""

    name: str
    size: int = Field(default=0, ge=0)
    content_type: str = "application/octet-stream"
    data: bytes = b""


class UploadResult(CamelModel):
    """Attachment metadata returned by an upload adapter."""

    id: str
    url: str
    filename: str
    filesize: int = Field(default=0, ge=0)
    content_type: str = "application/octet-stream"
    preview_url: str | None = None
    width: float | None = None
    height: float | None = None
    alt: str | None = None


class ImageAttachmentState(CamelModel):
    id: str
    width: float | None = None
    width_unit: WidthUnit = "px"
    padding: float | None = None
    image_align: ImageAlign | None = None
    wrap_text: bool = False
    wrap_side: WrapSide = "left"
    link_url: str | None = None
    link_open_in_new_tab: bool | None = None


class ImageAttachmentPatch(CamelModel):
    """Partial update. Only explicitly provided fields are applied."""

    width: float | None = None
    width_unit: WidthUnit | None = None
    padding: float | None = None
    image_align: ImageAlign | None = None
    wrap_text: bool | None = None
    wrap_side: WrapSide | None = None
    link_url: str | None = None
    link_open_in_new_tab: bool | None = None
    reset_size: bool = False

    def provided(self, field: str) -> bool:
        return field in self.model_fields_set


class HTMLSanitizeNotice(BaseModel):
    changed: bool
    message: str


class EngineCallbacks(BaseModel):
    """Host callbacks, fired synchronously inside the triggering call."""

    on_change: Callable[[str], None] | None = None
    on_selection_change: Callable[[SelectionRange | None], None] | None = None
    on_focus: Callable[[], None] | None = None
    on_blur: Callable[[], None] | None = None
    on_sanitize_notice: Callable[[HTMLSanitizeNotice], None] | None = None
