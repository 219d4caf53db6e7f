"""Shared base models for the editor."""

from typing import Literal, TypeAlias

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Alignment: TypeAlias = Literal["left", "center", "right", "justify"]
ListType: TypeAlias = Literal["bullet", "numbered"]
WidthUnit: TypeAlias = Literal["px", "percent"]
ImageAlign: TypeAlias = Literal["left", "center", "right"]
WrapSide: TypeAlias = Literal["left", "right"]


class CamelModel(BaseModel):
    """Base model that also accepts and dumps camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SelectionRange(BaseModel):
    """Selection as character offsets into the surface's flattened text."""

    model_config = ConfigDict(frozen=True)

    anchor: int
    focus: int

    @property
    def collapsed(self) -> bool:
        return self.anchor == self.focus

    @property
    def start(self) -> int:
        return min(self.anchor, self.focus)

    @property
    def end(self) -> int:
        return max(self.anchor, self.focus)
