from berry_editor.common.models.base import (
    Alignment,
    CamelModel,
    ImageAlign,
    ListType,
    SelectionRange,
    WidthUnit,
    WrapSide,
)
from berry_editor.common.models.settings import EditorSettings

__all__ = [
    "Alignment",
    "CamelModel",
    "ImageAlign",
    "ListType",
    "SelectionRange",
    "WidthUnit",
    "WrapSide",
    "EditorSettings",
]
