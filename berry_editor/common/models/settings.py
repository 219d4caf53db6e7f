"""Settings models for the editor engine."""

from pydantic import BaseModel

from berry_editor.common.utils.config import config


class EditorSettings(BaseModel):
    """Per-engine settings."""

    native_commands: bool = True  # try the host's legacy formatting commands first
    twemoji_base_url: str = config.twemoji_base_url
