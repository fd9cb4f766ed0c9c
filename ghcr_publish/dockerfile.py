"""
Script: ghcr_publish/dockerfile.py
What: Picks the Dockerfile used for the build.
Doing: Uses the resolved `dockerfile` path, or writes inline `custom-dockerfile` content to a temp file.
Why: Lets a workflow build from a Dockerfile that only exists in the workflow file.
Goal: Hand the builder one path and remove any temp file afterwards, whatever happens.
"""

from __future__ import annotations

import contextlib
import os
import random
import string
import tempfile
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from ghcr_publish.common import ConfigurationError, PublishError
from ghcr_publish.inputs import BuildConfig


TEMP_PREFIX = "dbp"
BASE36_DIGITS = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    """Format a non-negative integer in base 36, for example `35 -> "z"`."""
    if value < 0:
        raise ValueError("value must be non-negative")
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
        if value == 0:
            break
    return "".join(reversed(digits))


def generate_temp_filename(
    *,
    now: datetime | None = None,
    pid: int | None = None,
    suffix: int | None = None,
    directory: str | None = None,
) -> Path:
    """
    Build a temp file path like `/tmp/dbp20261019-4242-1x2y3z`.

    The name is made of a fixed prefix, the date, the process id, and a random
    base-36 suffix. That is unique enough for one CI job, not a secure name.
    """
    now = now or datetime.now()
    pid = os.getpid() if pid is None else pid
    suffix = random.randint(1, 0x100000000) if suffix is None else suffix
    filename = f"{TEMP_PREFIX}{now.year}{now.month}{now.day}-{pid}-{to_base36(suffix)}"
    return Path(directory or tempfile.gettempdir()).resolve() / filename


def write_dockerfile(lines: tuple[str, ...] | list[str], destination: Path) -> Path:
    """Write inline Dockerfile lines joined with the platform line separator."""
    try:
        destination.write_text(os.linesep.join(lines), encoding="utf-8")
    except OSError as exc:
        raise PublishError(f"Unable to write inline Dockerfile to {destination}: {exc}") from exc
    return destination


@contextlib.contextmanager
def materialized_dockerfile(config: BuildConfig, *, temp_path: Path | None = None) -> Iterator[Path]:
    """
    Yield the Dockerfile path to build with.

    When inline content was given, it is written to a fresh temp file which is
    deleted on exit, including when the write itself fails partway. Deletion
    errors are ignored.
    """
    if not config.dockerfile_content:
        if config.dockerfile_path is None:
            raise ConfigurationError("No Dockerfile path or inline Dockerfile content was provided")
        yield config.dockerfile_path
        return

    dockerfile = temp_path or generate_temp_filename()
    try:
        write_dockerfile(config.dockerfile_content, dockerfile)
        print(f"Wrote inline Dockerfile to {dockerfile}")
        yield dockerfile
    finally:
        with contextlib.suppress(OSError):
            dockerfile.unlink()
