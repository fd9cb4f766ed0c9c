"""
Script: tests/test_build_and_push.py
What: End-to-end tests for the publish lifecycle in `ghcr_publish/build_and_push.py`.
Doing: Runs `publish()` and `main()` with a fake docker runner and a fake packages client.
Why: Step order and cleanup guarantees are the contract workflows rely on.
Goal: Keep build, login, delete, push, and cleanup happening in the right order.
"""

from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ghcr_publish import build_and_push
from ghcr_publish.build_and_push import publish
from ghcr_publish.common import CommandResult, ExternalToolError, PackageNotFound
from ghcr_publish.inputs import BuildConfig
from ghcr_publish.packages import PackageVersion


OK = CommandResult(exit_code=0, stdout="", stderr="")


class Recorder:
    """Shared event log for the fake runner and the fake client."""

    def __init__(
        self,
        results: dict[str, CommandResult] | None = None,
        pages=None,
        *,
        list_error=None,
        delete_error=None,
    ):
        self.results = results or {}
        self.pages = pages or [[]]
        self.events: list[str] = []
        self.dockerfiles: list[str] = []
        self.list_error = list_error
        self.delete_error = delete_error

    def runner(self, args, *, cwd=None, input_text=None) -> CommandResult:
        self.events.append(args[1])
        if args[1] == "build":
            self.dockerfiles.append(args[args.index("--file") + 1])
        return self.results.get(args[1], OK)

    # Packages client surface.
    def list_versions(self, org, package_name, *, page, per_page=100):
        self.events.append(f"list:{page}")
        if self.list_error:
            raise self.list_error
        return self.pages[page - 1] if page <= len(self.pages) else []

    def delete_version(self, org, package_name, version_id):
        self.events.append(f"delete:{version_id}")
        if self.delete_error:
            raise self.delete_error


def make_config(root: Path, *, content: tuple[str, ...] = ()) -> BuildConfig:
    return BuildConfig(
        owner="octo-org",
        repo="app",
        tag_name="v1.2.3",
        build_context_path=root,
        dockerfile_path=None if content else root / "Dockerfile",
        dockerfile_content=content,
        labels=("team=platform",),
        username="octocat",
        password="token",
    )


class PublishTests(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self._temp_dir.name)

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def run_publish(self, recorder: Recorder, config: BuildConfig):
        with contextlib.redirect_stdout(io.StringIO()):
            return publish(config, runner=recorder.runner, client=recorder)

    def test_no_existing_version_builds_logs_in_and_pushes(self) -> None:
        recorder = Recorder(pages=[[PackageVersion(id=7, tags=frozenset({"v1.2.2"}))]])
        result = self.run_publish(recorder, make_config(self.root))

        self.assertEqual(recorder.events, ["build", "login", "list:1", "push", "logout"])
        self.assertEqual(result.image_ref, "ghcr.io/octo-org/app:v1.2.3")
        self.assertIsNone(result.deleted_version_id)

    def test_existing_version_is_deleted_before_push(self) -> None:
        recorder = Recorder(pages=[[PackageVersion(id=42, tags=frozenset({"v1.2.3"}))]])
        result = self.run_publish(recorder, make_config(self.root))

        self.assertEqual(recorder.events, ["build", "login", "list:1", "delete:42", "push", "logout"])
        self.assertEqual(result.deleted_version_id, 42)

    def test_build_failure_stops_before_login_and_removes_temp_file(self) -> None:
        recorder = Recorder(results={"build": CommandResult(exit_code=1, stdout="", stderr="bad FROM")})
        config = make_config(self.root, content=("FROM nothing",))

        with self.assertRaises(ExternalToolError):
            self.run_publish(recorder, config)

        self.assertEqual(recorder.events, ["build"])
        self.assertEqual(len(recorder.dockerfiles), 1)
        self.assertFalse(Path(recorder.dockerfiles[0]).exists())

    def test_push_failure_still_logs_out(self) -> None:
        recorder = Recorder(results={"push": CommandResult(exit_code=1, stdout="", stderr="denied")})
        with self.assertRaises(ExternalToolError):
            self.run_publish(recorder, make_config(self.root))
        self.assertEqual(recorder.events[-2:], ["push", "logout"])

    def test_missing_package_still_pushes(self) -> None:
        recorder = Recorder(list_error=PackageNotFound("package not found"))
        result = self.run_publish(recorder, make_config(self.root))

        self.assertEqual(recorder.events, ["build", "login", "list:1", "push", "logout"])
        self.assertIsNone(result.deleted_version_id)

    def test_version_gone_before_delete_still_pushes(self) -> None:
        recorder = Recorder(
            pages=[[PackageVersion(id=42, tags=frozenset({"v1.2.3"}))]],
            delete_error=PackageNotFound("version not found"),
        )
        result = self.run_publish(recorder, make_config(self.root))

        self.assertEqual(recorder.events, ["build", "login", "list:1", "delete:42", "push", "logout"])
        self.assertIsNone(result.deleted_version_id)


class MainTests(unittest.TestCase):
    def test_main_writes_step_outputs(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            output_file = root / "github_output"
            env = {
                "GITHUB_WORKSPACE": str(root),
                "GITHUB_TOKEN": "token",
                "GITHUB_ACTOR": "octocat",
                "GITHUB_REPOSITORY": "octo-org/app",
                "GITHUB_OUTPUT": str(output_file),
                "INPUT_TAG": "v1.2.3",
            }
            recorder = Recorder(pages=[[PackageVersion(id=42, tags=frozenset({"v1.2.3"}))]])
            original_publish = build_and_push.publish

            def fake_publish(config):
                return original_publish(config, runner=recorder.runner, client=recorder)

            with mock.patch.object(build_and_push, "publish", side_effect=fake_publish):
                with contextlib.redirect_stdout(io.StringIO()):
                    build_and_push.main(env)

            self.assertEqual(
                output_file.read_text(encoding="utf-8"),
                "image=ghcr.io/octo-org/app:v1.2.3\ndeleted-version-id=42\n",
            )


if __name__ == "__main__":
    unittest.main()
