from __future__ import annotations

import argparse
import sys
from typing import TextIO

from pydantic import ValidationError

from votegate import __version__
from votegate.gateway.server_stdio import serve_stdio
from votegate.settings import config_yaml_path, load_settings
from votegate.util.logging import configure_logging, get_logger

INIT_FLAG = "--init"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="votegate",
        description="Serve newline-delimited JSON commands against membership stored routines",
        add_help=False,
    )
    parser.add_argument(
        INIT_FLAG,
        dest="init",
        action="store_true",
        help="execute the schema script first, then accept only leader commands",
    )
    return parser


def main(
    argv: list[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    args_list = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()
    if args_list and args_list != [INIT_FLAG]:
        parser.print_usage(sys.stderr)
        print(
            f"votegate: error: run with no arguments or with exactly '{INIT_FLAG}', "
            f"got: {' '.join(args_list)}",
            file=sys.stderr,
        )
        return 2
    args = parser.parse_args(args_list)

    try:
        settings = load_settings()
    except ValidationError as exc:
        print(f"invalid configuration ({config_yaml_path()} or VOTEGATE_* env): {exc}", file=sys.stderr)
        return 2
    configure_logging(settings.verbose)
    get_logger(__name__).info("votegate %s starting in %s mode", __version__, "provisioning" if args.init else "serving")

    try:
        return serve_stdio(
            stdin or sys.stdin,
            stdout or sys.stdout,
            settings=settings,
            provision=args.init,
        )
    except KeyboardInterrupt:
        return 130


def _use_utf8(stream: TextIO) -> None:
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(encoding="utf-8", errors="replace")


def app() -> None:
    _use_utf8(sys.stdin)
    _use_utf8(sys.stdout)
    raise SystemExit(main())


if __name__ == "__main__":
    app()
