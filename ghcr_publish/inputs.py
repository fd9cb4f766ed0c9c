"""
Script: ghcr_publish/inputs.py
What: Resolves and validates every input the publish step needs.
Doing: Reads action inputs and GitHub context from the environment and returns one frozen `BuildConfig`.
Why: All bad input is caught here, before any build, login, or API call happens.
Goal: Give later steps a single trusted value instead of raw strings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from ghcr_publish.common import (
    ConfigurationError,
    get_input,
    get_multiline_input,
    normalize_owner,
    optional_env,
    require_env,
)


REGISTRY_HOST = "ghcr.io"
SOURCE_LABEL = "org.opencontainers.image.source"
DEFAULT_DOCKERFILE = "Dockerfile"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_SERVER_URL = "https://github.com"

FORBIDDEN_LABEL_CHARS = ("'", " ", "\t")


@dataclass(frozen=True)
class BuildConfig:
    owner: str
    repo: str
    tag_name: str
    build_context_path: Path
    dockerfile_path: Path | None
    dockerfile_content: tuple[str, ...]
    labels: tuple[str, ...]
    username: str
    password: str = field(repr=False)
    registry_host: str = REGISTRY_HOST
    api_url: str = DEFAULT_API_URL
    server_url: str = DEFAULT_SERVER_URL

    @property
    def package_name(self) -> str:
        """Container package name; ghcr.io stores package names in lower case."""
        return self.repo.lower()

    @property
    def image_ref(self) -> str:
        """Full image reference, for example `ghcr.io/octo-org/app:v1.2.3`."""
        return f"{self.registry_host}/{normalize_owner(self.owner)}/{self.package_name}:{self.tag_name}"

    @property
    def source_url(self) -> str:
        """Repository URL stored in the provenance label."""
        return f"{self.server_url.rstrip('/')}/{self.owner}/{self.repo}"

    @property
    def source_label(self) -> str:
        return f"{SOURCE_LABEL}={self.source_url}"


@dataclass(frozen=True)
class PackageTarget:
    """The subset of inputs the tag-collision resolver needs on its own."""

    owner: str
    repo: str
    tag_name: str
    token: str = field(repr=False)
    api_url: str = DEFAULT_API_URL

    @property
    def package_name(self) -> str:
        return self.repo.lower()


def validate_label(label: str) -> str:
    """
    Check one `NAME=VALUE` label and return its NAME.

    Rules:
    - no apostrophe, space, or tab anywhere (the value ends up on a command line)
    - both NAME and VALUE are non-empty
    - NAME is not the provenance label, which is always added automatically
    """
    if any(char in label for char in FORBIDDEN_LABEL_CHARS):
        raise ConfigurationError("The apostrophe character, spaces and tabs are not allowed on labels")
    name, sep, value = label.partition("=")
    if not sep or not name or not value:
        raise ConfigurationError(f"Label format must be NAME=VALUE: {label}")
    if name == SOURCE_LABEL:
        raise ConfigurationError(
            f'Label "{SOURCE_LABEL}" will be automatically added and cannot be overridden'
        )
    return name


def validate_labels(labels: list[str]) -> tuple[str, ...]:
    """Validate all labels, keep their order, and reject repeated names."""
    seen: set[str] = set()
    for label in labels:
        name = validate_label(label)
        if name in seen:
            raise ConfigurationError(f"Label {name} is defined more than once")
        seen.add(name)
    return tuple(labels)


def parse_owner_repo(value: str) -> tuple[str, str]:
    """Split an `owner/name` string, rejecting anything else."""
    parts = value.split("/")
    if len(parts) != 2:
        raise ConfigurationError(f"The specified repo is invalid: {value}")
    owner, repo = parts[0].strip(), parts[1].strip()
    if not owner or not repo:
        raise ConfigurationError(f"The specified repo is invalid: {value}")
    return owner, repo


def resolve_inside(workspace: Path, base: Path, value: str, input_name: str) -> Path:
    """
    Resolve a relative input path against `base`.

    Absolute paths are refused, and so are relative paths that climb out of the
    workspace (for example `../../etc`).
    """
    if os.path.isabs(value):
        raise ConfigurationError(f"Input {input_name} cannot be absolute")
    resolved = (base / value).resolve()
    if resolved != workspace and workspace not in resolved.parents:
        raise ConfigurationError(f"Input {input_name} must stay inside the workspace")
    return resolved


def resolve_token(env: Mapping[str, str] | None = None) -> str:
    token = get_input("password", env) or optional_env("GITHUB_TOKEN", env=env)
    if not token:
        raise ConfigurationError("Input password not provided and GITHUB_TOKEN environment variable not found")
    return token


def resolve_tag(env: Mapping[str, str] | None = None) -> str:
    tag_name = get_input("tag", env)
    if not tag_name:
        raise ConfigurationError("Missing tag input")
    return tag_name


def resolve_owner_repo(env: Mapping[str, str] | None = None) -> tuple[str, str]:
    """Use the `repo` input when given, else the repository running the workflow."""
    override = get_input("repo", env)
    if override:
        return parse_owner_repo(override)
    return parse_owner_repo(require_env("GITHUB_REPOSITORY", env))


def resolve_package_target(env: Mapping[str, str] | None = None) -> PackageTarget:
    token = resolve_token(env)
    tag_name = resolve_tag(env)
    owner, repo = resolve_owner_repo(env)
    return PackageTarget(
        owner=owner,
        repo=repo,
        tag_name=tag_name,
        token=token,
        api_url=optional_env("GITHUB_API_URL", env=env) or DEFAULT_API_URL,
    )


def resolve_build_config(env: Mapping[str, str] | None = None) -> BuildConfig:
    """
    Read every input and return a validated `BuildConfig`.

    Checks run in a fixed order so the first problem reported is stable:
    credentials, tag, labels, workspace, paths, then the target repository.
    """
    password = resolve_token(env)

    username = get_input("username", env) or optional_env("GITHUB_ACTOR", env=env)
    if not username:
        raise ConfigurationError("Input username not provided and unable to determine the current actor")

    tag_name = resolve_tag(env)
    labels = validate_labels(get_multiline_input("labels", env))

    workspace_value = optional_env("GITHUB_WORKSPACE", env=env)
    if not workspace_value:
        raise ConfigurationError("GITHUB_WORKSPACE not defined")
    workspace = Path(workspace_value).resolve()

    base_input = get_input("path", env)
    build_context_path = resolve_inside(workspace, workspace, base_input, "path") if base_input else workspace

    # Inline content wins; the dockerfile input is then ignored.
    dockerfile_content = tuple(get_multiline_input("custom-dockerfile", env))
    dockerfile_path: Path | None = None
    if not dockerfile_content:
        dockerfile_input = get_input("dockerfile", env) or DEFAULT_DOCKERFILE
        dockerfile_path = resolve_inside(workspace, build_context_path, dockerfile_input, "dockerfile")

    owner, repo = resolve_owner_repo(env)

    return BuildConfig(
        owner=owner,
        repo=repo,
        tag_name=tag_name,
        build_context_path=build_context_path,
        dockerfile_path=dockerfile_path,
        dockerfile_content=dockerfile_content,
        labels=labels,
        username=username,
        password=password,
        api_url=optional_env("GITHUB_API_URL", env=env) or DEFAULT_API_URL,
        server_url=optional_env("GITHUB_SERVER_URL", env=env) or DEFAULT_SERVER_URL,
    )
