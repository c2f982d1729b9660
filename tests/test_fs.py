from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from arbor.config.models import FilterSettings
from arbor.fs.filtering import PathFilter, find_worktree_root
from arbor.fs.scanner import ScanOptions, list_entries, scan_dir
from arbor.fs.search import (
    SearchRequest,
    build_find_args,
    find_files,
    glob_term,
    normalize_result_path,
    resolve_find_command,
)
from arbor.fs.watch import NullWatchManager, WatchManager


class FsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(os.path.realpath(tmp.name))
        (self.root / "src" / "pkg").mkdir(parents=True)
        (self.root / "src" / "pkg" / "mod.py").write_text("x", encoding="utf-8")
        (self.root / "build").mkdir()
        (self.root / "build" / "out.bin").write_text("x", encoding="utf-8")
        (self.root / "debug.log").write_text("x", encoding="utf-8")
        (self.root / "README.md").write_text("x", encoding="utf-8")
        (self.root / ".env").write_text("x", encoding="utf-8")


class PathFilterTests(FsTestCase):
    def test_gitignore_patterns_apply_to_files_and_folders(self) -> None:
        (self.root / ".git").mkdir()
        (self.root / ".gitignore").write_text("# comment\n*.log\nbuild/\n", encoding="utf-8")
        path_filter = PathFilter(self.root)

        self.assertFalse(path_filter.include(self.root / "debug.log"))
        self.assertFalse(path_filter.include(self.root / "build", is_dir=True))
        self.assertFalse(path_filter.include(self.root / ".git", is_dir=True))
        self.assertTrue(path_filter.include(self.root / "README.md"))
        self.assertTrue(path_filter.include(self.root / "src", is_dir=True))

    def test_parent_gitignore_governs_nested_folders(self) -> None:
        (self.root / ".git").mkdir()
        (self.root / ".gitignore").write_text("*.py\n", encoding="utf-8")
        (self.root / "src" / ".gitignore").write_text("pkg/\n", encoding="utf-8")

        self.assertEqual(find_worktree_root(self.root / "src" / "pkg"), self.root)
        nested = PathFilter(self.root / "src" / "pkg")
        self.assertFalse(nested.include(self.root / "src" / "pkg" / "mod.py"))
        src = PathFilter(self.root / "src")
        self.assertFalse(src.include(self.root / "src" / "pkg", is_dir=True))


class ScannerTests(FsTestCase):
    def _names(self, options: ScanOptions, path: Path | None = None) -> dict[str, str | None]:
        entries = list_entries(str(path or self.root), options)
        return {os.path.relpath(entry.path, self.root): entry.kind for entry in entries}

    def test_depth_one_lists_direct_children_with_kinds(self) -> None:
        names = self._names(ScanOptions())
        self.assertEqual(
            names,
            {
                "src": "directory",
                "build": "directory",
                "debug.log": "file",
                "README.md": "file",
            },
        )

    def test_hidden_entries_need_show_hidden(self) -> None:
        self.assertIn(".env", self._names(ScanOptions(show_hidden=True)))

    def test_gitignore_filter_can_be_disabled(self) -> None:
        (self.root / ".gitignore").write_text("*.log\n", encoding="utf-8")
        self.assertNotIn("debug.log", self._names(ScanOptions()))
        self.assertIn("debug.log", self._names(ScanOptions(respect_gitignore=False)))

    def test_name_pattern_and_include_dirs(self) -> None:
        names = self._names(ScanOptions(name_pattern=r"\.md$"))
        self.assertEqual(list(names), ["README.md"])
        names = self._names(ScanOptions(include_dirs=False))
        self.assertNotIn("src", names)

    def test_deeper_scans_walk_breadth_first(self) -> None:
        names = self._names(ScanOptions(depth=3))
        self.assertIn(os.path.join("src", "pkg"), names)
        self.assertIn(os.path.join("src", "pkg", "mod.py"), names)

    def test_symlinks_are_reported_as_links(self) -> None:
        try:
            (self.root / "alias").symlink_to(self.root / "src", target_is_directory=True)
        except (OSError, NotImplementedError):
            self.skipTest("symlinks unavailable")
        self.assertEqual(self._names(ScanOptions())["alias"], "link")

    def test_unreadable_folder_yields_nothing(self) -> None:
        self.assertEqual(list_entries(str(self.root / "missing"), ScanOptions()), [])


class ScanDirTests(unittest.IsolatedAsyncioTestCase):
    async def test_async_scan_yields_entries(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "one.txt").write_text("1", encoding="utf-8")
            entries = [entry async for entry in scan_dir(tmp, ScanOptions())]

        self.assertEqual([os.path.basename(entry.path) for entry in entries], ["one.txt"])
        self.assertEqual(entries[0].kind, "file")


class FindArgsTests(unittest.TestCase):
    def test_glob_term(self) -> None:
        self.assertEqual(glob_term("foo"), "*foo*")
        self.assertEqual(glob_term("*.py"), "*.py")

    def test_fd_args(self) -> None:
        request = SearchRequest(
            root_path="/r",
            term="foo",
            filters=FilterSettings(show_hidden=True, respect_gitignore=False),
        )
        self.assertEqual(
            build_find_args("fd", request),
            ["--hidden", "--no-ignore", "--glob", "*foo*", "/r"],
        )
        plain = SearchRequest(root_path="/r", term="foo")
        self.assertEqual(build_find_args("/usr/bin/fdfind", plain), ["--glob", "*foo*", "/r"])

    def test_find_and_where_args(self) -> None:
        request = SearchRequest(root_path="/r", term="foo")
        self.assertEqual(
            build_find_args("find", request),
            ["/r", "-not", "-path", "*/.*", "-iname", "*foo*"],
        )
        self.assertEqual(build_find_args("where", request), ["/r", "/r", "*foo*"])
        self.assertIsNone(build_find_args("grep", request))

    def test_resolve_find_command_prefers_configuration(self) -> None:
        self.assertEqual(resolve_find_command("find"), "find")
        with patch("arbor.fs.search.shutil.which", side_effect=lambda cmd: "/bin/x" if cmd == "fdfind" else None):
            self.assertEqual(resolve_find_command(None), "fdfind")
        with patch("arbor.fs.search.shutil.which", return_value=None):
            self.assertIsNone(resolve_find_command(None))

    def test_normalize_result_path(self) -> None:
        self.assertEqual(normalize_result_path("/r/dir/\n", "/r"), "/r/dir")
        self.assertEqual(normalize_result_path("rel/file.txt", "/r"), os.path.join("/r", "rel/file.txt"))


class FindFilesTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(os.path.realpath(self.tmp.name))
        (self.root / "sub").mkdir()
        (self.root / "alpha.txt").write_text("a", encoding="utf-8")
        (self.root / "beta.txt").write_text("b", encoding="utf-8")
        (self.root / "sub" / "alpha-two.md").write_text("a", encoding="utf-8")
        (self.root / ".alpha-hidden").write_text("a", encoding="utf-8")

    async def asyncTearDown(self) -> None:
        self.tmp.cleanup()

    @unittest.skipUnless(shutil.which("find"), "find not installed")
    async def test_find_streams_matching_paths(self) -> None:
        request = SearchRequest(root_path=str(self.root), term="alpha", find_command="find")
        results = [result async for result in find_files(request)]

        self.assertTrue(all(result.error is None for result in results))
        self.assertEqual(
            sorted(result.path for result in results),
            [str(self.root / "alpha.txt"), str(self.root / "sub" / "alpha-two.md")],
        )

    @unittest.skipUnless(shutil.which("find"), "find not installed")
    async def test_limit_stops_the_stream(self) -> None:
        request = SearchRequest(root_path=str(self.root), term="*", find_command="find", limit=2)
        results = [result async for result in find_files(request)]
        self.assertEqual(len(results), 2)

    async def test_missing_command_is_reported_in_band(self) -> None:
        with patch("arbor.fs.search.shutil.which", return_value=None):
            results = [r async for r in find_files(SearchRequest(root_path=str(self.root), term="a"))]

        self.assertEqual(len(results), 1)
        self.assertIsNone(results[0].path)
        self.assertIn("No search command", results[0].error or "")

    async def test_unstartable_command_is_reported_in_band(self) -> None:
        request = SearchRequest(root_path=str(self.root), term="a", find_command=str(self.root / "nope" / "fd"))
        results = [result async for result in find_files(request)]

        self.assertEqual(len(results), 1)
        self.assertIsNone(results[0].path)
        self.assertTrue(results[0].error)


class FinderExitTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        if os.name != "posix":
            self.skipTest("shell scripts need a POSIX system")
        self.tmp = tempfile.TemporaryDirectory()
        self.base = Path(os.path.realpath(self.tmp.name))
        self.root = self.base / "root"
        self.root.mkdir()

    async def asyncTearDown(self) -> None:
        self.tmp.cleanup()

    def _finder(self, body: str) -> str:
        # Named `find` so the find argument layout is used; $1 is the root.
        script = self.base / "bin" / "find"
        script.parent.mkdir(exist_ok=True)
        script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
        script.chmod(0o755)
        return str(script)

    async def _collect(self, request: SearchRequest) -> list:
        async def drain() -> list:
            return [result async for result in find_files(request)]

        return await asyncio.wait_for(drain(), timeout=20)

    async def test_failed_exit_reports_stderr_after_matches(self) -> None:
        command = self._finder('echo "$1/hit.txt"\necho "find: permission denied" >&2\nexit 1\n')
        results = await self._collect(SearchRequest(root_path=str(self.root), term="hit", find_command=command))

        self.assertEqual(len(results), 2)
        self.assertEqual(results[0].path, str(self.root / "hit.txt"))
        self.assertIsNone(results[1].path)
        self.assertEqual(results[1].error, "find: permission denied")

    async def test_truncated_stream_suppresses_exit_error(self) -> None:
        command = self._finder(
            'echo "$1/one"\necho "$1/two"\necho "$1/three"\necho "find: failed" >&2\nexit 1\n'
        )
        request = SearchRequest(root_path=str(self.root), term="x", find_command=command, limit=2)
        results = await self._collect(request)

        self.assertEqual([result.path for result in results], [str(self.root / "one"), str(self.root / "two")])
        self.assertTrue(all(result.error is None for result in results))

    async def test_large_stderr_output_does_not_stall_the_stream(self) -> None:
        command = self._finder(
            'i=0\nwhile [ $i -lt 40000 ]; do echo "find: cannot read: permission denied" >&2; i=$((i+1)); done\n'
            'echo "$1/late.txt"\n'
        )
        results = await self._collect(SearchRequest(root_path=str(self.root), term="late", find_command=command))

        self.assertEqual([result.path for result in results], [str(self.root / "late.txt")])


class WatchManagerTests(FsTestCase):
    def test_sync_tracks_exactly_the_requested_folders(self) -> None:
        manager = WatchManager(debounce_s=0.05)
        self.addCleanup(manager.close)
        src = self.root / "src"
        build = self.root / "build"

        manager.sync([self.root, src, build], lambda path: None)
        self.assertEqual(manager.watched(), {self.root, src, build})

        manager.sync([src], lambda path: None)
        self.assertEqual(manager.watched(), {src})

        manager.sync([], lambda path: None)
        self.assertEqual(manager.watched(), set())

    def test_null_manager_watches_nothing(self) -> None:
        manager = NullWatchManager()
        manager.sync([self.root], lambda path: None)
        self.assertEqual(manager.watched(), set())


if __name__ == "__main__":
    unittest.main()
