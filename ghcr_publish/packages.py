"""
Script: ghcr_publish/packages.py
What: Removes the old package version that already holds the tag being published.
Doing: Pages through the org's container package versions, stops at the first tagged one, and deletes it.
Why: ghcr.io does not move a tag between versions atomically, so the old holder is cleared before push.
Goal: Leave at most one version with the tag once the new image is pushed.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import quote

import requests

from ghcr_publish.common import PackageNotFound, RegistryDeleteError, RegistryQueryError
from ghcr_publish.inputs import DEFAULT_API_URL


PAGE_SIZE = 100
# 20 pages of 100 is 2,000 versions. Older history is not scanned.
MAX_PAGES = 20
REQUEST_TIMEOUT = 30
API_VERSION = "2022-11-28"


@dataclass(frozen=True)
class PackageVersion:
    id: int
    tags: frozenset[str]

    @classmethod
    def from_api(cls, entry: dict[str, Any]) -> "PackageVersion":
        """Build a version from one entry of the list-versions API response."""
        metadata = entry.get("metadata") or {}
        container = metadata.get("container") or {}
        return cls(id=int(entry["id"]), tags=frozenset(container.get("tags") or []))


class PackagesClient:
    """Thin client for the GitHub Packages REST endpoints used here."""

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
            }
        )

    def _versions_url(self, org: str, package_name: str) -> str:
        return (
            f"{self.api_url}/orgs/{quote(org, safe='')}"
            f"/packages/container/{quote(package_name, safe='')}/versions"
        )

    def list_versions(
        self,
        org: str,
        package_name: str,
        *,
        page: int,
        per_page: int = PAGE_SIZE,
    ) -> list[PackageVersion]:
        """Return one page of active versions. Raises `PackageNotFound` on 404."""
        url = self._versions_url(org, package_name)
        params = {"page": page, "per_page": per_page, "state": "active"}
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RegistryQueryError(f"Failed to retrieve the list of images: {exc}") from exc

        if response.status_code == 404:
            raise PackageNotFound(f"Package {org}/{package_name} not found")
        if response.status_code != 200:
            raise RegistryQueryError(
                f"Failed to retrieve the list of images ({response.status_code}): {response.text}"
            )
        try:
            entries = response.json()
        except ValueError as exc:
            raise RegistryQueryError("Expected JSON from the list package versions API") from exc
        if not isinstance(entries, list):
            raise RegistryQueryError("Expected a JSON list from the list package versions API")
        try:
            return [PackageVersion.from_api(entry) for entry in entries]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise RegistryQueryError(f"Unexpected entry in the list package versions response: {exc!r}") from exc

    def delete_version(self, org: str, package_name: str, version_id: int) -> None:
        """Delete one version. Raises `PackageNotFound` on 404."""
        url = f"{self._versions_url(org, package_name)}/{version_id}"
        try:
            response = self._session.delete(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RegistryDeleteError(f"Failed to delete existing package version {version_id}: {exc}") from exc

        if response.status_code == 404:
            raise PackageNotFound(f"Package version {version_id} of {org}/{package_name} not found")
        if response.status_code != 204:
            raise RegistryDeleteError(
                f"Failed to delete existing package version {version_id} ({response.status_code}): {response.text}"
            )


def iter_version_pages(
    fetch_page: Callable[[int], list[PackageVersion]],
    *,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
) -> Iterator[list[PackageVersion]]:
    """
    Yield version pages in order, starting at page 1.

    Stops after a short page (the last one) or after `max_pages` pages.
    Pages are fetched only when the caller asks for the next one.
    """
    for page in range(1, max_pages + 1):
        versions = fetch_page(page)
        yield versions
        if len(versions) < page_size:
            return


def find_tagged_version_id(pages: Iterable[list[PackageVersion]], tag_name: str) -> int | None:
    """Return the id of the first version carrying `tag_name`, or None."""
    for versions in pages:
        for version in versions:
            if tag_name in version.tags:
                return version.id
    return None


def resolve_tag_collision(
    client: PackagesClient,
    org: str,
    package_name: str,
    tag_name: str,
    *,
    max_pages: int = MAX_PAGES,
) -> int | None:
    """
    Delete the package version that currently holds `tag_name`.

    Returns the deleted version id, or None when nothing was deleted.
    A missing package or version is not an error: there is simply nothing to
    clear. Any other failure propagates and stops the run.
    """
    print("Checking for existing tagged container package")

    def fetch_page(page: int) -> list[PackageVersion]:
        versions = client.list_versions(org, package_name, page=page)
        print(f"Checked page {page}: {len(versions)} version(s)")
        return versions

    try:
        version_id = find_tagged_version_id(iter_version_pages(fetch_page, max_pages=max_pages), tag_name)
    except PackageNotFound:
        print(f"No existing container package {org}/{package_name}; nothing to delete.")
        return None

    if version_id is None:
        print(f"No existing version is tagged {tag_name}; nothing to delete.")
        return None

    print(f"Found tag {tag_name} on package version {version_id}. Deleting...")
    try:
        client.delete_version(org, package_name, version_id)
    except PackageNotFound:
        print(f"Package version {version_id} is already gone.")
        return None
    print(f"Deleted package version {version_id}")
    return version_id
