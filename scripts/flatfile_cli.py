#!/usr/bin/env python3
"""
Operator CLI for the flat-file store.

Usage:
    python scripts/flatfile_cli.py list --prefix us_stocks_sip/trades_v1/2024/01/ --limit 5
    python scripts/flatfile_cli.py url us_stocks_sip/trades_v1/2024/01/2024-01-02.csv.gz
    python scripts/flatfile_cli.py sample us_stocks_sip/trades_v1/2024/01/2024-01-02.csv.gz --lines 5
    python scripts/flatfile_cli.py import us_stocks_sip/trades_v1/2024/01/2024-01-02.csv.gz

Exit codes:
    0 = Success
    1 = The store, stream or filesystem operation failed
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv  # noqa: E402

from services import flatfile_service  # noqa: E402
from storage.exceptions import FlatFileError  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and import flat files")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List one page of objects")
    list_cmd.add_argument("--prefix", default="", help="Key prefix (default: all objects)")
    list_cmd.add_argument("--limit", type=int, default=50, help="Page size, 1-1000 (default: 50)")
    list_cmd.add_argument("--token", default=None, help="Continuation token from a previous page")

    url_cmd = sub.add_parser("url", help="Sign a download URL")
    url_cmd.add_argument("object_key")
    url_cmd.add_argument("--expires-in", type=int, default=300, help="Seconds, 60-3600 (default: 300)")

    sample_cmd = sub.add_parser("sample", help="Print the first lines of an object")
    sample_cmd.add_argument("object_key")
    sample_cmd.add_argument("--lines", type=int, default=10, help="Lines to read (default: 10)")

    import_cmd = sub.add_parser("import", help="Download, extract and count rows")
    import_cmd.add_argument("object_key")
    import_cmd.add_argument("--dest", type=Path, default=None, help="Destination directory")

    return parser.parse_args(argv)


async def run(args: argparse.Namespace):
    if args.command == "list":
        return await flatfile_service.list_flat_files(
            prefix=args.prefix, continuation_token=args.token, max_keys=args.limit
        )
    if args.command == "url":
        return await flatfile_service.get_download_url(args.object_key, expires_in=args.expires_in)
    if args.command == "sample":
        return await flatfile_service.preview_flat_file(args.object_key, max_lines=args.lines)
    return await flatfile_service.import_flat_file(args.object_key, destination_dir=args.dest)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    try:
        result = asyncio.run(run(args))
    except FlatFileError as exc:
        print(f"❌ {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
