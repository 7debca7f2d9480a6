#!/usr/bin/env python3
"""Add a text caption to an animated GIF.

Usage:
    python scripts/caption_gif.py in.gif out.gif --text "Hello"

    # Show the caption from 0.5s to 2s at the top, in the subtitle style:
    python scripts/caption_gif.py in.gif out.gif --text "Hello" \\
        --start 500 --end 2000 --y 0.1 --template subtitle
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from addtextgif import DecodeError, EncodeError, GifEditor, default_catalog, format_duration


async def caption(args: argparse.Namespace) -> int:
    """Loads, captions and exports one GIF.

    :param args: The parsed command line
    :return: The exit code
    """
    editor = GifEditor()
    if not await editor.load(args.input.read_bytes()):
        print(f"Error: {editor.error}", file=sys.stderr)
        return 1
    document = editor.document
    print(
        f"Loaded {args.input}: {len(document)} frames, {document.width}x{document.height}, "
        f"{format_duration(document.total_duration)}"
    )

    overlay = editor.add_overlay(args.text, args.template)
    changes = {"x": args.x, "y": args.y}
    if args.start is not None:
        changes["start"] = args.start
    if args.end is not None:
        changes["end"] = args.end
    overlay = editor.update_overlay(overlay.id, **changes)
    print(
        f"Caption \"{overlay.text}\" from {format_duration(overlay.start)} "
        f"to {format_duration(overlay.end)}"
    )

    try:
        result = await editor.export()
    except EncodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if result is None:
        print(f"Error: {editor.error}", file=sys.stderr)
        return 1
    args.output.write_bytes(result.read())
    print(f"Wrote {args.output} ({result.size / 1024:.1f} KB)")
    editor.unmount()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Add a timed text caption to an animated GIF")
    parser.add_argument("input", type=Path, help="GIF to caption")
    parser.add_argument("output", type=Path, help="Where to write the captioned GIF")
    parser.add_argument("--text", "-t", required=True, help="Caption text")
    parser.add_argument("--start", type=float, default=None, help="Start in milliseconds (default: 0)")
    parser.add_argument(
        "--end", type=float, default=None, help="End in milliseconds (default: up to 4s)"
    )
    parser.add_argument("--x", type=float, default=0.5, help="Horizontal center, 0-1 (default: 0.5)")
    parser.add_argument("--y", type=float, default=0.8, help="Top of the text, 0-1 (default: 0.8)")
    parser.add_argument(
        "--template",
        choices=default_catalog.ids,
        default=default_catalog.default.id,
        help=f"Caption style (default: {default_catalog.default.id})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.input.exists():
        print(f"Error: {args.input} does not exist", file=sys.stderr)
        return 1
    try:
        return asyncio.run(caption(args))
    except DecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
