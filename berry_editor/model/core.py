"""Document-model entry points."""

from berry_editor.markup.parser import parse_html
from berry_editor.markup.serializer import serialize_html
from berry_editor.model.models import EditorDocument, TextBlock


def create_empty_document() -> EditorDocument:
    """A document holding one empty paragraph."""
    return EditorDocument(blocks=[TextBlock()])


def document_from_html(html: str) -> EditorDocument:
    document = parse_html(html)
    if not document.blocks:
        return create_empty_document()
    return document


def document_to_html(document: EditorDocument) -> str:
    return serialize_html(document)
