"""Quick CLI for sanitizing and inspecting editor HTML."""

import argparse
import sys

from berry_editor.common.utils.config import config
from berry_editor.common.utils.logger import logger


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def main(argv: list[str] | None = None) -> int:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(description="Berry Editor CLI")
    subparsers = parser.add_subparsers(dest="action", help="Action to perform")

    sanitize_parser = subparsers.add_parser("sanitize", help="Sanitize an HTML file")
    sanitize_parser.add_argument("file", type=str, help="HTML file to read, or '-' for stdin")

    parse_parser = subparsers.add_parser("parse", help="Parse an HTML file into the document model")
    parse_parser.add_argument("file", type=str, help="HTML file to read, or '-' for stdin")
    parse_parser.add_argument("--indent", type=int, default=2, help="JSON indentation")

    roundtrip_parser = subparsers.add_parser("roundtrip", help="Parse then serialize an HTML file")
    roundtrip_parser.add_argument("file", type=str, help="HTML file to read, or '-' for stdin")

    subparsers.add_parser("config", help="Print configuration")

    args = parser.parse_args(argv)

    match args.action:
        case "sanitize":
            from berry_editor.markup import sanitize_html

            print(sanitize_html(_read_input(args.file)))

        case "parse":
            from berry_editor.model.core import document_from_html

            document = document_from_html(_read_input(args.file))
            print(document.model_dump_json(by_alias=True, exclude_none=True, indent=args.indent))

        case "roundtrip":
            from berry_editor.model.core import document_from_html, document_to_html

            print(document_to_html(document_from_html(_read_input(args.file))))

        case "config":
            logger.info("Configuration:\n")
            for key, value in sorted(config.model_dump().items()):
                print(f"{key}={value}")

        case _:
            parser.print_help()
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
