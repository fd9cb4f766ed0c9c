"""
Script: ghcr_publish/docker.py
What: Runs the `docker` commands of the publish step.
Doing: Builds argument lists for `docker build|login|push|logout`, runs them, and turns failures into errors.
Why: Keeps command shapes in one place so they can be checked without a docker daemon.
Goal: Build, authenticate, and push the image with predictable command lines.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from pathlib import Path
from typing import Callable

from ghcr_publish.common import CommandResult, ExternalToolError, run_cmd, warning
from ghcr_publish.inputs import BuildConfig


Runner = Callable[..., CommandResult]

DOCKER = "docker"


def build_args(config: BuildConfig, dockerfile: Path) -> list[str]:
    """
    Return the full `docker build` command.

    User labels keep their input order. The provenance label is always last,
    and input validation already refused any user label with the same name.
    """
    args = [DOCKER, "build", "--no-cache", "--progress", "tty"]
    args.extend(["--file", str(dockerfile), "--tag", config.image_ref])
    for label in config.labels:
        args.extend(["--label", label])
    args.extend(["--label", config.source_label])
    args.append(".")
    return args


def login_args(config: BuildConfig) -> list[str]:
    # The secret is sent on stdin so it never shows up in the process list.
    return [DOCKER, "login", "--username", config.username, "--password-stdin", config.registry_host]


def push_args(config: BuildConfig) -> list[str]:
    return [DOCKER, "push", config.image_ref]


def logout_args(config: BuildConfig) -> list[str]:
    return [DOCKER, "logout", config.registry_host]


def _check(result: CommandResult, action: str) -> CommandResult:
    if result.exit_code != 0:
        details = result.stderr.strip() or result.stdout.strip() or f"exit code {result.exit_code}"
        raise ExternalToolError(f"Unable to complete docker {action} process [{details}]")
    return result


def build_image(config: BuildConfig, dockerfile: Path, *, runner: Runner = run_cmd) -> CommandResult:
    print(f"Building image {config.image_ref}")
    result = runner(build_args(config, dockerfile), cwd=str(config.build_context_path))
    return _check(result, "build image")


def docker_login(config: BuildConfig, *, runner: Runner = run_cmd) -> CommandResult:
    print(f"Logging into {config.registry_host}")
    result = runner(login_args(config), cwd=str(config.build_context_path), input_text=config.password)
    return _check(result, "login")


def docker_logout(config: BuildConfig, *, runner: Runner = run_cmd) -> None:
    """Log out of the registry. Failures only produce a warning."""
    try:
        result = runner(logout_args(config))
    except OSError as exc:
        warning(f"docker logout failed: {exc}")
        return
    if result.exit_code != 0 and result.stderr.strip():
        warning(result.stderr.strip())


def push_image(config: BuildConfig, *, runner: Runner = run_cmd) -> CommandResult:
    print(f"Pushing image {config.image_ref}")
    result = runner(push_args(config), cwd=str(config.build_context_path))
    return _check(result, "push image")


@contextlib.contextmanager
def registry_session(config: BuildConfig, *, runner: Runner = run_cmd) -> Iterator[None]:
    """
    Log in for the duration of the block.

    Logout runs on every exit path, but only when login succeeded.
    """
    docker_login(config, runner=runner)
    try:
        yield
    finally:
        docker_logout(config, runner=runner)
