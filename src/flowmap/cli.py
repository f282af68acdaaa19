"""Command-line entry: render a project's sitemap to SVG, or reset its layout."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from flowmap.backends import FileFlowBackend, FlowBackend, HttpFlowBackend
from flowmap.config import DEVICE_PRESETS
from flowmap.exceptions import FlowMapError
from flowmap.log import logger
from flowmap.session import GraphSession

DEFAULT_VIEWPORT = (1400, 800)


def _parse_cli(argv: Sequence[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    source = common.add_mutually_exclusive_group()
    source.add_argument(
        "--root",
        default=".",
        help="directory holding one sub-directory per project (default: current directory)",
    )
    source.add_argument(
        "--url",
        default=None,
        help="base URL of the console API",
    )

    parser = argparse.ArgumentParser(
        prog="flowmap",
        description="Sitemap / flow visualization for captured UI projects",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser(
        "render", parents=[common], help="render the sitemap of a project to SVG"
    )
    render_parser.add_argument("project", help="project name")
    render_parser.add_argument(
        "--device",
        choices=sorted(DEVICE_PRESETS),
        default=None,
        help="device preset (default: the flow's recorded device profile)",
    )
    render_parser.add_argument("--highlight", metavar="KEY", help="highlight the path from the start screen to KEY")
    render_parser.add_argument("--search", metavar="QUERY", help="mark the best title/key match for QUERY")
    render_parser.add_argument(
        "--size",
        metavar="WxH",
        default=f"{DEFAULT_VIEWPORT[0]}x{DEFAULT_VIEWPORT[1]}",
        help="viewport size used for lazy previews (default: %(default)s)",
    )
    render_parser.add_argument("-o", "--output", help="write the SVG here instead of stdout")

    reset_parser = subparsers.add_parser(
        "reset-positions", parents=[common], help="drop every saved node position of a project"
    )
    reset_parser.add_argument("project", help="project name")

    return parser.parse_args(list(argv))


def _parse_size(text: str) -> tuple[int, int]:
    try:
        width, height = (int(part) for part in text.lower().split("x", 1))
    except ValueError:
        raise SystemExit(f"Invalid --size {text!r}, expected WxH") from None
    return width, height


def _backend(args: argparse.Namespace) -> FlowBackend:
    if args.url:
        return HttpFlowBackend(args.url, project=args.project)
    return FileFlowBackend(Path(args.root), project=args.project)


async def _render(args: argparse.Namespace) -> str:
    session = GraphSession(args.project, _backend(args), device=args.device)
    session.resize(*_parse_size(args.size))
    await session.load()
    await session.drain()

    if args.highlight:
        session.click_node(args.highlight)
    if args.search:
        if session.search(args.search) is None:
            logger.warning(f"No screen matches {args.search!r}")
    return session.to_svg()


def _run_render(args: argparse.Namespace) -> int:
    svg = asyncio.run(_render(args))
    if args.output:
        Path(args.output).write_text(svg + "\n", encoding="utf-8")
        logger.info(f"Wrote {args.output}")
    else:
        sys.stdout.write(svg + "\n")
    return 0


def _run_reset(args: argparse.Namespace) -> int:
    asyncio.run(_backend(args).reset_positions(args.project))
    logger.info(f"Cleared saved positions of {args.project!r}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_cli(sys.argv[1:] if argv is None else argv)
    try:
        if args.command == "render":
            return _run_render(args)
        if args.command == "reset-positions":
            return _run_reset(args)
    except FlowMapError as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        return 1
    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
