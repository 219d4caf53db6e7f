"""
Load configuration from `config.toml`.
"""

import re
from pathlib import Path
from pydantic import BaseModel, field_validator

THIS_DIR = Path(__file__).parent.resolve()

CONFIG_FILE_PATH = THIS_DIR / "config.toml"

_SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*$")


class Config(BaseModel):
    parser: str
    uri_schemes: list[str]
    link_schemes: list[str]
    max_table_dimension: int
    mark_highlight_color: str
    attachment_id_prefix: str
    upload_failed_label: str
    sanitize_notice_message: str
    twemoji_base_url: str
    highlight_escape_depth: int

    @field_validator("uri_schemes", "link_schemes", mode="before")
    def lowercase_schemes(cls, value: list[str]) -> list[str]:
        schemes = [str(scheme).strip().lower() for scheme in value]
        for scheme in schemes:
            if not _SCHEME_PATTERN.match(scheme):
                raise ValueError(f"Invalid URI scheme: {scheme}")
        return schemes

    @field_validator("max_table_dimension", mode="before")
    def between_one_and_ten(cls, value: int) -> int:
        if not (1 <= int(value) <= 10):
            raise ValueError("Table dimension limit must be between 1 and 10.")
        return int(value)

    @field_validator("mark_highlight_color", mode="before")
    def six_digit_hex(cls, value: str) -> str:
        value = str(value).strip().lower()
        if not re.fullmatch(r"#[0-9a-f]{6}", value):
            raise ValueError(f"Invalid highlight color: {value}")
        return value

    @field_validator("highlight_escape_depth", mode="before")
    def positive(cls, value: int) -> int:
        if int(value) < 1:
            raise ValueError("Value must be positive.")
        return int(value)


def load_config() -> Config:
    import tomli

    with open(CONFIG_FILE_PATH, "rb") as f:
        data = tomli.load(f)

    config_data = {k.lower(): v for k, v in data.items()}
    return Config(**config_data)


config = load_config()


def set_config(new_config: Config) -> None:
    global config
    config = new_config


__all__ = ["config", "set_config"]  # allow users to set a new config if needed

if __name__ == "__main__":
    print(config)
