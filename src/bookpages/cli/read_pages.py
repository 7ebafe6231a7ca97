"""CLI command returning a window of sanitized EPUB pages as JSON."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv

from bookpages.config import PagerSettings
from bookpages.service import PageService

logger = logging.getLogger(__name__)


def _non_negative(raw_value: str) -> int:
    value = int(raw_value)
    if value < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return value


def _non_blank(raw_value: str) -> str:
    if not raw_value.strip():
        raise argparse.ArgumentTypeError("path must not be blank")
    return raw_value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Split an EPUB from the library into sanitized HTML pages")
    parser.add_argument("--path", required=True, type=_non_blank, help="EPUB path relative to the library root")
    parser.add_argument("--from", dest="start", type=_non_negative, default=0, help="First page index (inclusive)")
    parser.add_argument("--to", dest="stop", type=_non_negative, default=10, help="Last page index (exclusive)")
    parser.add_argument("--library-dir", help="Override BOOKPAGES_LIBRARY_DIR")
    parser.add_argument("--max-length", type=int, help="Override BOOKPAGES_MAX_LENGTH")
    parser.add_argument("--chunked", action="store_true", help="Emit each page as its list of markup chunks")
    parser.add_argument("--verbose", action="store_true", help="Log progress to stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO if args.verbose else logging.WARNING,
    )

    try:
        settings = PagerSettings.from_env()
        if args.library_dir:
            settings = replace(settings, library_dir=Path(args.library_dir))
        if args.max_length is not None:
            settings = replace(settings, max_length=args.max_length)
        service = PageService(settings)
    except ValueError as error:
        logger.error("Configuration error: %s", error)
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    result = service.get_pages(args.path, args.start, args.stop)
    payload = result.to_dict(chunked=args.chunked)
    if result.failure is not None:
        payload["error"] = {"kind": result.failure.kind.value, "message": result.failure.message}
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
