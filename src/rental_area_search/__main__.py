import argparse
import asyncio
import json
from pathlib import Path

from .errors import error_kind
from .logs import configure_logging
from .openrent.client import OpenRentClient
from .region.area import Area
from .search import search


def build_parser():
    parser = argparse.ArgumentParser(
        description="Find live OpenRent listings inside a KML region",
    )

    parser.add_argument(
        "--kml",
        required=True,
        help="Path to a KML file with the search polygon(s)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="HTTP timeout in seconds (default: RAS_HTTP_TIMEOUT_S)",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )

    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit log events as bare JSON lines on stdout",
    )

    parser.add_argument(
        "--indent",
        type=int,
        default=None,
        help="Indent the JSON result",
    )
    return parser


async def _run(area, timeout):
    client = OpenRentClient(timeout=timeout)
    try:
        return await search(area, source=client)
    finally:
        await client.aclose()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        args.log_level or ("INFO" if args.log_json else None),
        json_lines=args.log_json,
    )

    kml_path = Path(args.kml)
    if not kml_path.is_file():
        parser.error(f"--kml file does not exist: {kml_path}")

    area = Area.from_kml_file(kml_path)
    result = asyncio.run(_run(area, args.timeout))
    print(json.dumps(result.to_dict(), indent=args.indent))


def _safe_main(argv=None):
    try:
        main(argv)
    except SystemExit:
        raise
    except Exception as exc:
        print(json.dumps({"error": str(exc), "kind": error_kind(exc)}))
        raise SystemExit(1)


if __name__ == "__main__":
    _safe_main()
