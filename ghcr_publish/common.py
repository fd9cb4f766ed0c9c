"""
Script: ghcr_publish/common.py
What: Shared helper functions and error types used by all `ghcr_publish` modules.
Doing: Wraps env reads, action input reads, command execution, warnings, and output writes.
Why: Avoids duplicated helper code.
Goal: Keep behavior consistent across all step modules.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence


class PublishError(RuntimeError):
    """Raised when the publish step hits a known error condition."""


class ConfigurationError(PublishError):
    """Bad or missing input, detected before any external action runs."""


class ExternalToolError(PublishError):
    """An external command (build, login, push) exited with a non-zero code."""


class RegistryQueryError(PublishError):
    """Listing package versions failed for a reason other than "not found"."""


class RegistryDeleteError(PublishError):
    """Deleting a package version did not report success."""


class PackageNotFound(PublishError):
    """The package or package version does not exist (HTTP 404)."""


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured output of one external command."""

    exit_code: int
    stdout: str
    stderr: str


def _environ(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if env is None else env


def require_env(name: str, env: Mapping[str, str] | None = None) -> str:
    """Return a required environment variable or raise a clear error."""
    value = _environ(env).get(name)
    if value is None or value == "":
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def optional_env(name: str, default: str = "", env: Mapping[str, str] | None = None) -> str:
    """Return an environment variable with a fallback default."""
    return _environ(env).get(name, default)


def input_env_names(name: str) -> list[str]:
    """
    Return the environment variable names that may carry one action input.

    The Actions runner exports input `foo bar` as `INPUT_FOO_BAR`. Hyphens are
    kept as-is by the runner, but composite actions usually map them with an
    underscore, so both spellings are accepted.
    """
    base = f"INPUT_{name.replace(' ', '_').upper()}"
    names = [base]
    if "-" in base:
        names.append(base.replace("-", "_"))
    return names


def get_input(name: str, env: Mapping[str, str] | None = None) -> str:
    """Return one action input value, stripped, or empty string when unset."""
    environ = _environ(env)
    for env_name in input_env_names(name):
        value = environ.get(env_name)
        if value:
            return value.strip()
    return ""


def get_multiline_input(name: str, env: Mapping[str, str] | None = None) -> list[str]:
    """Return one action input split into stripped, non-empty lines."""
    environ = _environ(env)
    for env_name in input_env_names(name):
        value = environ.get(env_name)
        if value:
            return [line.strip() for line in value.splitlines() if line.strip()]
    return []


def run_cmd(
    args: Sequence[str],
    *,
    cwd: str | None = None,
    input_text: str | None = None,
) -> CommandResult:
    """
    Run a command and return its exit code and captured output.

    A non-zero exit code does not raise; callers decide what a failure means.
    A missing executable is reported as exit code 127, the shell convention.
    """
    try:
        result = subprocess.run(
            list(args),
            check=False,
            text=True,
            capture_output=True,
            cwd=cwd,
            input=input_text,
        )
    except FileNotFoundError as exc:
        return CommandResult(exit_code=127, stdout="", stderr=str(exc))
    return CommandResult(exit_code=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")


def warning(message: str) -> None:
    """Print a warning annotation that GitHub Actions shows in the run summary."""
    print(f"::warning::{message}")


def write_github_outputs(values: Mapping[str, str], env: Mapping[str, str] | None = None) -> bool:
    """
    Write step outputs for GitHub Actions.

    GitHub provides a file path in `GITHUB_OUTPUT`; writing `name=value` lines
    there makes that value available to later steps in the same job.
    Returns False when the variable is unset (for example on a local run).
    """
    output_file = optional_env("GITHUB_OUTPUT", env=env)
    if not output_file:
        return False
    with open(output_file, "a", encoding="utf-8") as handle:
        for key, value in values.items():
            handle.write(f"{key}={value}\n")
    return True


def normalize_owner(owner: str) -> str:
    """
    Normalize a GitHub owner/org for container image paths.

    Here, "normalize" means converting to lowercase.
    Example: `Octo-Org` becomes `octo-org`, so image refs are valid:
    registry references do not allow upper-case repository names.
    """
    return owner.lower()
