"""Main entrypoint. Exposes the public API."""

from berry_editor.common.models import EditorSettings, SelectionRange
from berry_editor.editor import (
    AttachmentUploader,
    CommandPayload,
    EditorCommand,
    EditorEngine,
    HTMLSanitizeNotice,
    ImageAttachmentPatch,
    ImageAttachmentState,
    UploadFile,
    UploadResult,
)
from berry_editor.markup import sanitize_html
from berry_editor.markup.emoji import EmojiIndexRegistry
from berry_editor.model import EditorDocument
from berry_editor.model.core import create_empty_document, document_from_html, document_to_html
from berry_editor.surface import Surface

__all__ = [
    "EditorSettings",
    "SelectionRange",
    "AttachmentUploader",
    "CommandPayload",
    "EditorCommand",
    "EditorEngine",
    "HTMLSanitizeNotice",
    "ImageAttachmentPatch",
    "ImageAttachmentState",
    "UploadFile",
    "UploadResult",
    "sanitize_html",
    "EmojiIndexRegistry",
    "EditorDocument",
    "create_empty_document",
    "document_from_html",
    "document_to_html",
    "Surface",
]
