"""
Script: ghcr_publish/build_and_push.py
What: Runs the whole publish lifecycle for one image tag.
Doing: Resolves inputs, materializes the Dockerfile, then runs build, login, tag cleanup, and push in order.
Why: Keeps the step order and the cleanup guarantees in one place instead of spreading them across workflow YAML.
Goal: Publish `ghcr.io/<owner>/<repo>:<tag>` so that only the new image holds the tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ghcr_publish.common import run_cmd, write_github_outputs
from ghcr_publish.docker import Runner, build_image, push_image, registry_session
from ghcr_publish.dockerfile import materialized_dockerfile
from ghcr_publish.inputs import BuildConfig, resolve_build_config
from ghcr_publish.packages import PackagesClient, resolve_tag_collision


@dataclass(frozen=True)
class PublishResult:
    image_ref: str
    deleted_version_id: int | None


def publish(
    config: BuildConfig,
    *,
    runner: Runner = run_cmd,
    client: PackagesClient | None = None,
) -> PublishResult:
    """
    Build, log in, clear the old tag holder, and push.

    Any failure stops the remaining steps. The temp Dockerfile (if any) is
    removed and the registry session is logged out on every exit path.
    """
    client = client or PackagesClient(config.password, api_url=config.api_url)

    with materialized_dockerfile(config) as dockerfile:
        build_image(config, dockerfile, runner=runner)

        with registry_session(config, runner=runner):
            deleted_version_id = resolve_tag_collision(
                client,
                config.owner,
                config.package_name,
                config.tag_name,
            )
            push_image(config, runner=runner)

    return PublishResult(image_ref=config.image_ref, deleted_version_id=deleted_version_id)


def main(env: Mapping[str, str] | None = None) -> None:
    config = resolve_build_config(env)
    result = publish(config)

    write_github_outputs(
        {
            "image": result.image_ref,
            "deleted-version-id": "" if result.deleted_version_id is None else str(result.deleted_version_id),
        },
        env,
    )
    print(f"Published image: {result.image_ref}")


if __name__ == "__main__":
    main()
