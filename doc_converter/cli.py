"""Command-line front end: convert URLs straight into a local directory."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .config import ConverterConfig
from .converter import Converter
from .errors import ConverterSetupError
from .models import ConversionRequest


def read_urls(urls: list[str], urls_file: Optional[str] = None) -> list[str]:
    """Combine positional URLs with one-per-line URLs from a file.

    Blank lines and lines starting with ``#`` are skipped.
    """
    combined = list(urls)
    if urls_file:
        for line in Path(urls_file).read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                combined.append(line)
    return combined


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert web pages into Markdown documents with YAML frontmatter"
    )
    parser.add_argument(
        "urls",
        nargs="*",
        help="URLs to convert"
    )
    parser.add_argument(
        "--urls-file",
        help="File with one URL per line"
    )
    parser.add_argument(
        "--selector",
        required=True,
        help="CSS selector of the content to convert"
    )
    parser.add_argument(
        "--output-dir",
        default="output",
        help="Directory for the Markdown files"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds"
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        help="Maximum number of URLs converted concurrently"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results and summary as JSON lines"
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        0 if every URL succeeded, 1 if any failed, 2 on usage or setup errors
    """
    logging.basicConfig(level=logging.INFO)

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        urls = read_urls(args.urls, args.urls_file)
    except OSError as e:
        print(f"error: cannot read {args.urls_file}: {e}", file=sys.stderr)
        return 2
    try:
        request = ConversionRequest(urls=urls, selector=args.selector)
    except ValidationError as e:
        parser.print_usage(sys.stderr)
        print(f"error: {e}", file=sys.stderr)
        return 2

    config = ConverterConfig.from_env()
    overrides = {}
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    if args.max_workers is not None:
        overrides["max_workers"] = args.max_workers
    if overrides:
        try:
            config = ConverterConfig(**{**config.model_dump(), **overrides})
        except ValidationError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2

    try:
        converter = Converter.for_cli(args.output_dir, config=config)
    except ConverterSetupError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    with converter:
        run = converter.convert(request.urls, request.selector)
        for result in run:
            if args.json:
                print(result.model_dump_json())
            elif result.is_success:
                print(f"OK    {result.url} -> {result.filename}")
            else:
                print(f"FAIL  {result.url}: {result.error}")
        summary = run.summary

    if args.json:
        print(summary.model_dump_json())
    else:
        print(
            f"\nConverted {summary.successful}/{summary.total_urls} URLs "
            f"in {summary.processing_time} ({summary.failed} failed)"
        )

    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
