"""Entry point for mdpdf: convert a file or run the HTTP server."""

import argparse
import sys

from mdpdf.logger import logger
from mdpdf.render import ConversionError, LayoutSettings, SettingsError, convert_file


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Markdown to PDF renderer")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", help="Render a Markdown file to PDF")
    convert.add_argument("input", help="Markdown file to read")
    convert.add_argument(
        "output",
        nargs="?",
        default=None,
        help="PDF to write (default: input path with a .pdf extension)",
    )

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")

    args = parser.parse_args(argv)

    if args.command == "serve":
        import uvicorn

        from mdpdf.server import app

        uvicorn.run(app, host=args.host, port=args.port)
        return 0

    try:
        output = convert_file(args.input, args.output, LayoutSettings.from_env())
    except (ConversionError, SettingsError) as e:
        logger.error("conversion failed", error=str(e))
        return 1

    print(f"wrote {output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
