import pytest

from berry_editor.common.models import EditorSettings, SelectionRange
from berry_editor.editor import EditorEngine
from berry_editor.surface import Surface


class Recorder:
    """Collects engine callbacks."""

    def __init__(self):
        self.changes: list[str] = []
        self.selections: list = []
        self.notices: list = []
        self.focus_events = 0
        self.blur_events = 0

    def callbacks(self) -> dict:
        return {
            "on_change": self.changes.append,
            "on_selection_change": self.selections.append,
            "on_sanitize_notice": self.notices.append,
            "on_focus": self._on_focus,
            "on_blur": self._on_blur,
        }

    def _on_focus(self):
        self.focus_events += 1

    def _on_blur(self):
        self.blur_events += 1


def make_engine(html: str = "", native: bool = False, **kwargs) -> EditorEngine:
    engine = EditorEngine(settings=EditorSettings(native_commands=native), **kwargs)
    engine.bind(Surface())
    engine.load_html(html)
    return engine


def select(engine: EditorEngine, anchor: int, focus: int | None = None) -> None:
    engine.set_selection(SelectionRange(anchor=anchor, focus=anchor if focus is None else focus))


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def engine(recorder):
    return make_engine("<p>Hello world</p>", **recorder.callbacks())


@pytest.fixture
def native_engine(recorder):
    return make_engine("<p>Hello world</p>", native=True, **recorder.callbacks())
