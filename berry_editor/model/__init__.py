"""Canonical document model."""

from berry_editor.model.models import (
    AttachmentNode,
    BlockNode,
    BlockType,
    EditorDocument,
    HorizontalRuleBlock,
    InlineKind,
    InlineNode,
    Marks,
    TableBlock,
    TableCell,
    TableRow,
    TextBlock,
    TextNode,
)

__all__ = [
    "AttachmentNode",
    "BlockNode",
    "BlockType",
    "EditorDocument",
    "HorizontalRuleBlock",
    "InlineKind",
    "InlineNode",
    "Marks",
    "TableBlock",
    "TableCell",
    "TableRow",
    "TextBlock",
    "TextNode",
]
