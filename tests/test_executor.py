from __future__ import annotations

import os
import stat
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from mirrorsync.core.folder.executor import ActionExecutor
from mirrorsync.core.models import ErrorKind, FileAction, OutcomeStatus, SyncAction
from mirrorsync.services.file_io import FileIOService, _retry_writable


class ActionExecutorTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.source = root / "source"
        self.replica = root / "replica"
        self.source.mkdir()
        self.replica.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_copy_creates_file_and_replicates_timestamps(self) -> None:
        src = self.source / "a.txt"
        src.write_bytes(b"payload")
        os.utime(src, ns=(1_600_000_000_000_000_000, 1_500_000_000_000_000_000))

        outcomes = ActionExecutor().execute(
            [FileAction("a.txt", SyncAction.COPY)], self.source, self.replica
        )

        dst = self.replica / "a.txt"
        self.assertEqual(outcomes[0].status, OutcomeStatus.DONE)
        self.assertEqual(dst.read_bytes(), b"payload")
        self.assertEqual(dst.stat().st_mtime_ns, src.stat().st_mtime_ns)

    @unittest.skipIf(os.name == "nt", "POSIX mode bits")
    def test_copy_replicates_mode_bits(self) -> None:
        src = self.source / "script.sh"
        src.write_bytes(b"#!/bin/sh\n")
        os.chmod(src, 0o751)

        ActionExecutor().execute([FileAction("script.sh", SyncAction.COPY)], self.source, self.replica)

        self.assertEqual(stat.S_IMODE((self.replica / "script.sh").stat().st_mode), 0o751)

    def test_update_overwrites_read_only_replica(self) -> None:
        (self.source / "a.txt").write_bytes(b"new content")
        dst = self.replica / "a.txt"
        dst.write_bytes(b"old")
        os.chmod(dst, stat.S_IREAD)

        outcomes = ActionExecutor().execute(
            [FileAction("a.txt", SyncAction.UPDATE)], self.source, self.replica
        )

        self.assertEqual(outcomes[0].status, OutcomeStatus.DONE)
        self.assertEqual(dst.read_bytes(), b"new content")

    def test_delete_removes_replica_file(self) -> None:
        (self.replica / "old.txt").write_bytes(b"x")

        outcomes = ActionExecutor().execute(
            [FileAction("old.txt", SyncAction.DELETE)], self.source, self.replica
        )

        self.assertEqual(outcomes[0].status, OutcomeStatus.DONE)
        self.assertFalse((self.replica / "old.txt").exists())

    def test_skip_actions_are_not_executed(self) -> None:
        executor = ActionExecutor()
        with mock.patch.object(executor.file_io, "copy_file") as copy_file:
            outcomes = executor.execute([FileAction("a", SyncAction.SKIP)], self.source, self.replica)

        copy_file.assert_not_called()
        self.assertEqual(outcomes[0].status, OutcomeStatus.DONE)

    def test_dry_run_reports_without_mutation(self) -> None:
        (self.source / "a.txt").write_bytes(b"a")
        (self.replica / "old.txt").write_bytes(b"x")
        (self.replica / "old_dir" / "deep").mkdir(parents=True)
        (self.replica / "old_dir" / "deep" / "f").write_bytes(b"f")

        executor = ActionExecutor(dry_run=True)
        with self.assertLogs("mirrorsync", level="INFO") as logs:
            outcomes = executor.execute(
                [FileAction("a.txt", SyncAction.COPY), FileAction("old.txt", SyncAction.DELETE)],
                self.source, self.replica,
            )
            folder_outcomes = executor.delete_subdirectories(["old_dir"], self.replica)

        self.assertEqual({o.status for o in outcomes + folder_outcomes}, {OutcomeStatus.DRY_RUN})
        self.assertFalse((self.replica / "a.txt").exists())
        self.assertTrue((self.replica / "old.txt").exists())
        self.assertTrue((self.replica / "old_dir" / "deep" / "f").exists())
        dry_lines = [line for line in logs.output if "[DRY RUN]" in line]
        self.assertEqual(len(dry_lines), 3)

    def test_one_failing_action_does_not_stop_the_others(self) -> None:
        for name in ("a.txt", "b.txt", "c.txt"):
            (self.source / name).write_bytes(name.encode())

        executor = ActionExecutor()
        real_copy = executor.file_io.copy_file

        def locked(source, dest):
            if Path(dest).name == "b.txt":
                raise PermissionError(13, "The file is locked", str(dest))
            return real_copy(source, dest)

        actions = [FileAction(n, SyncAction.COPY) for n in ("a.txt", "b.txt", "c.txt")]
        with mock.patch.object(executor.file_io, "copy_file", side_effect=locked):
            with self.assertLogs("mirrorsync", level="ERROR"):
                outcomes = executor.execute(actions, self.source, self.replica)

        self.assertEqual([o.status for o in outcomes],
                         [OutcomeStatus.DONE, OutcomeStatus.FAILED, OutcomeStatus.DONE])
        self.assertTrue((self.replica / "a.txt").exists())
        self.assertTrue((self.replica / "c.txt").exists())
        self.assertIsNotNone(outcomes[1].error)

    def test_delete_subdirectories_removes_whole_subtree(self) -> None:
        nested = self.replica / "old" / "a" / "b"
        nested.mkdir(parents=True)
        (nested / "file.txt").write_bytes(b"x")
        (self.replica / "old" / "top.txt").write_bytes(b"y")

        outcomes = ActionExecutor().delete_subdirectories(["old"], self.replica)

        self.assertEqual(outcomes[0].status, OutcomeStatus.DONE)
        self.assertFalse((self.replica / "old").exists())

    def test_failed_subdirectory_delete_is_isolated(self) -> None:
        (self.replica / "one").mkdir()
        (self.replica / "two").mkdir()

        executor = ActionExecutor()
        real_delete = executor.file_io.delete_tree

        def flaky(path):
            if Path(path).name == "one":
                raise OSError(16, "Device or resource busy", str(path))
            real_delete(path)

        with mock.patch.object(executor.file_io, "delete_tree", side_effect=flaky):
            with self.assertLogs("mirrorsync", level="ERROR"):
                outcomes = executor.delete_subdirectories(["one", "two"], self.replica)

        self.assertEqual([o.status for o in outcomes], [OutcomeStatus.FAILED, OutcomeStatus.DONE])
        self.assertTrue((self.replica / "one").exists())
        self.assertFalse((self.replica / "two").exists())

    @unittest.skipIf(os.name == "nt" or os.geteuid() == 0, "POSIX permissions, non-root")
    def test_unopenable_nested_folder_fails_only_that_subtree(self) -> None:
        locked = self.replica / "old" / "locked"
        locked.mkdir(parents=True)
        (locked / "f.txt").write_bytes(b"x")
        (self.replica / "other").mkdir()
        os.chmod(locked, 0)

        try:
            with self.assertLogs("mirrorsync", level="ERROR"):
                outcomes = ActionExecutor().delete_subdirectories(["old", "other"], self.replica)
        finally:
            os.chmod(locked, stat.S_IRWXU)

        self.assertEqual([o.status for o in outcomes], [OutcomeStatus.FAILED, OutcomeStatus.DONE])
        self.assertEqual(outcomes[0].error.kind, ErrorKind.PERMISSION_DENIED)
        self.assertFalse((self.replica / "other").exists())


class FileIOServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.source = root / "source"
        self.replica = root / "replica"
        self.source.mkdir()
        self.replica.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_copy_reports_bytes_written(self) -> None:
        (self.source / "a.txt").write_bytes(b"new content")

        result = FileIOService(buffer_size=4).copy_file(self.source / "a.txt", self.replica / "a.txt")

        self.assertEqual(result.bytes_copied, 11)
        self.assertEqual(sorted(p.name for p in self.replica.iterdir()), ["a.txt"])

    def test_failed_copy_keeps_previous_replica_content(self) -> None:
        (self.source / "a.txt").write_bytes(b"new content")
        dst = self.replica / "a.txt"
        dst.write_bytes(b"old")
        service = FileIOService()

        with mock.patch.object(service, "copy_metadata", side_effect=OSError(5, "Input/output error")):
            with self.assertRaises(OSError):
                service.copy_file(self.source / "a.txt", dst)

        self.assertEqual(dst.read_bytes(), b"old")
        self.assertEqual(sorted(p.name for p in self.replica.iterdir()), ["a.txt"])

    def test_rmtree_hook_reraises_failures_it_cannot_fix(self) -> None:
        error = PermissionError(13, "Permission denied", "locked")

        with self.assertRaises(PermissionError):
            _retry_writable(os.open, "locked", error)
        with self.assertRaises(PermissionError):
            _retry_writable(os.scandir, "locked", (PermissionError, error, None))
        with self.assertRaises(FileNotFoundError):
            _retry_writable(os.unlink, "gone", FileNotFoundError(2, "No such file", "gone"))

    def test_open_failure_inside_tree_removal_stays_an_os_error(self) -> None:
        def failing_rmtree(path, **kwargs):
            error = PermissionError(13, "Permission denied", str(path))
            if "onexc" in kwargs:
                kwargs["onexc"](os.open, str(path), error)
            else:
                kwargs["onerror"](os.open, str(path), (PermissionError, error, None))

        with mock.patch("mirrorsync.services.file_io.shutil.rmtree", side_effect=failing_rmtree):
            with self.assertRaises(PermissionError):
                FileIOService().delete_tree(self.replica / "old")


if __name__ == "__main__":
    unittest.main()
