"""Live editing surface and range primitives."""

from berry_editor.surface.core import Selection, Surface
from berry_editor.surface.ranges import Range, TextSegment, TreeOrder

__all__ = ["Selection", "Surface", "Range", "TextSegment", "TreeOrder"]
