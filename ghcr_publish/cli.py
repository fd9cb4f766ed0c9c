from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Mapping

from ghcr_publish.common import PublishError


def command_map() -> dict[str, Callable[[], None]]:
    """
    Map CLI command names to step entry functions.

    `build-and-push` is the full action; `delete-tagged-version` only clears
    the old holder of the tag.
    """
    from ghcr_publish.build_and_push import main as build_and_push
    from ghcr_publish.delete_tagged_version import main as delete_tagged_version

    return {
        "build-and-push": build_and_push,
        "delete-tagged-version": delete_tagged_version,
    }


def build_parser(commands: Mapping[str, Callable[[], None]]) -> argparse.ArgumentParser:
    """Parser for `ghcr-publish [command]`; the action runs `build-and-push` when no command is given."""
    parser = argparse.ArgumentParser(
        prog="ghcr-publish",
        description="Build and publish a container image to ghcr.io.",
    )
    parser.add_argument("command", nargs="?", default="build-and-push", choices=sorted(commands.keys()))
    return parser


def run_command(command: str, commands: Mapping[str, Callable[[], None]]) -> None:
    commands[command]()


def main(argv: list[str] | None = None) -> None:
    commands = command_map()
    args = build_parser(commands).parse_args(argv)

    try:
        run_command(args.command, commands)
    except PublishError as exc:
        # The Actions log shows this one line as the step failure.
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
