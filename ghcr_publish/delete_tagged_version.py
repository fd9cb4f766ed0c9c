"""
Script: ghcr_publish/delete_tagged_version.py
What: Deletes the container package version that currently holds one tag.
Doing: Resolves token, tag, and repository, then runs only the tag-collision cleanup.
Why: Some workflows build and push with other tools but still need the old tag holder removed first.
Goal: Offer the cleanup step on its own, with the same "not found is fine" behavior.
"""

from __future__ import annotations

from typing import Mapping

from ghcr_publish.common import write_github_outputs
from ghcr_publish.inputs import resolve_package_target
from ghcr_publish.packages import PackagesClient, resolve_tag_collision


def main(env: Mapping[str, str] | None = None) -> None:
    target = resolve_package_target(env)
    client = PackagesClient(target.token, api_url=target.api_url)

    deleted_version_id = resolve_tag_collision(client, target.owner, target.package_name, target.tag_name)

    write_github_outputs(
        {"deleted-version-id": "" if deleted_version_id is None else str(deleted_version_id)},
        env,
    )


if __name__ == "__main__":
    main()
