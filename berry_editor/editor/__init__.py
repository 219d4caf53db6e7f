"""The editing engine, its command table and attachment uploads."""

from berry_editor.editor.commands import EditorCommand, NativeCommands
from berry_editor.editor.engine import EditorEngine
from berry_editor.editor.history import HistoryStack
from berry_editor.editor.models import (
    CommandPayload,
    HTMLSanitizeNotice,
    ImageAttachmentPatch,
    ImageAttachmentState,
    Snapshot,
    UploadFile,
    UploadResult,
)
from berry_editor.editor.native import LegacyFormattingCommands
from berry_editor.editor.selection import get_selection_range, set_selection_range
from berry_editor.editor.uploads import AttachmentUploader, CancellationToken, UploadAdapter, UploadContext

__all__ = [
    "EditorCommand",
    "NativeCommands",
    "EditorEngine",
    "HistoryStack",
    "CommandPayload",
    "HTMLSanitizeNotice",
    "ImageAttachmentPatch",
    "ImageAttachmentState",
    "Snapshot",
    "UploadFile",
    "UploadResult",
    "LegacyFormattingCommands",
    "get_selection_range",
    "set_selection_range",
    "AttachmentUploader",
    "CancellationToken",
    "UploadAdapter",
    "UploadContext",
]
