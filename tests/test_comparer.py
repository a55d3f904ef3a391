from __future__ import annotations

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from mirrorsync.core.folder.comparer import FolderComparer
from mirrorsync.core.models import ErrorKind, SyncAction


def _quiet_logger() -> logging.Logger:
    logger = logging.getLogger("mirrorsync.tests.comparer")
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger


class FolderComparerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.source = root / "source"
        self.replica = root / "replica"
        self.source.mkdir()
        self.replica.mkdir()
        self.comparer = FolderComparer(logger=_quiet_logger())

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _actions(self, diff) -> dict[str, SyncAction]:
        return {item.name: item.action for item in diff.iter_actions()}

    def test_classifies_copy_update_delete_and_skip(self) -> None:
        (self.source / "new.txt").write_bytes(b"new")
        (self.source / "same.txt").write_bytes(b"same")
        (self.replica / "same.txt").write_bytes(b"same")
        (self.source / "changed.txt").write_bytes(b"abc")
        (self.replica / "changed.txt").write_bytes(b"abd")
        (self.replica / "extra.txt").write_bytes(b"extra")

        diff = self.comparer.diff(self.source, self.replica)

        self.assertEqual(self._actions(diff), {
            "new.txt": SyncAction.COPY,
            "same.txt": SyncAction.SKIP,
            "changed.txt": SyncAction.UPDATE,
            "extra.txt": SyncAction.DELETE,
        })
        self.assertEqual([a.name for a in diff.skipped_files], ["same.txt"])
        self.assertEqual(diff.copy_count, 1)
        self.assertEqual(diff.update_count, 1)
        self.assertEqual(diff.delete_count, 1)

    def test_every_name_gets_exactly_one_action(self) -> None:
        for name in ("a", "b", "c"):
            (self.source / name).write_bytes(name.encode())
        for name in ("b", "c", "d"):
            (self.replica / name).write_bytes(b"zz")

        diff = self.comparer.diff(self.source, self.replica)
        names = [item.name for item in diff.iter_actions()]

        self.assertEqual(sorted(names), ["a", "b", "c", "d"])

    def test_size_mismatch_is_update_without_hashing(self) -> None:
        (self.source / "f.txt").write_bytes(b"0123456789")
        (self.replica / "f.txt").write_bytes(b"01234")

        with mock.patch.object(self.comparer.hashing, "files_identical") as hashed:
            diff = self.comparer.diff(self.source, self.replica)

        hashed.assert_not_called()
        (action,) = diff.files_to_copy_or_update
        self.assertEqual(action.action, SyncAction.UPDATE)
        self.assertEqual((action.source_size, action.replica_size), (10, 5))

    def test_equal_size_uses_content_hash(self) -> None:
        (self.source / "f.txt").write_bytes(b"aaaa")
        (self.replica / "f.txt").write_bytes(b"aaaa")

        with mock.patch.object(
            self.comparer.hashing, "files_identical", wraps=self.comparer.hashing.files_identical
        ) as hashed:
            diff = self.comparer.diff(self.source, self.replica)

        hashed.assert_called_once()
        self.assertEqual(diff.files_to_copy_or_update, [])
        self.assertEqual(len(diff.skipped_files), 1)

    def test_subdirectories_are_split_into_visit_and_delete(self) -> None:
        (self.source / "common").mkdir()
        (self.source / "new_dir").mkdir()
        (self.replica / "common").mkdir()
        (self.replica / "old_dir").mkdir()

        diff = self.comparer.diff(self.source, self.replica)

        self.assertEqual(diff.source_subdirs, ["common", "new_dir"])
        self.assertEqual(diff.replica_only_subdirs, ["old_dir"])

    def test_type_conflict_is_reported_and_skipped_for_both_passes(self) -> None:
        (self.source / "x").write_bytes(b"file in source")
        (self.replica / "x").mkdir()
        (self.source / "y").mkdir()
        (self.replica / "y").write_bytes(b"file in replica")

        diff = self.comparer.diff(self.source, self.replica)

        self.assertEqual(sorted(diff.type_conflicts), ["x", "y"])
        self.assertEqual(list(diff.iter_actions()), [])
        self.assertEqual(diff.source_subdirs, [])
        self.assertEqual(diff.replica_only_subdirs, [])
        self.assertEqual({e.kind for e in diff.errors}, {ErrorKind.TYPE_CONFLICT})

    def test_compare_failure_skips_only_that_file(self) -> None:
        (self.source / "bad.txt").write_bytes(b"1234")
        (self.replica / "bad.txt").write_bytes(b"abcd")
        (self.source / "good.txt").write_bytes(b"1234")
        (self.replica / "good.txt").write_bytes(b"abcd")

        real = self.comparer.hashing.files_identical

        def flaky(a, b, algorithm=None):
            if Path(a).name == "bad.txt":
                raise PermissionError(13, "Permission denied", str(a))
            return real(a, b, algorithm)

        with mock.patch.object(self.comparer.hashing, "files_identical", side_effect=flaky):
            diff = self.comparer.diff(self.source, self.replica)

        self.assertEqual([a.name for a in diff.files_to_copy_or_update], ["good.txt"])
        (error,) = diff.errors
        self.assertEqual(error.kind, ErrorKind.PERMISSION_DENIED)

    def test_missing_replica_is_treated_as_empty(self) -> None:
        (self.source / "a.txt").write_bytes(b"a")
        (self.source / "sub").mkdir()

        diff = self.comparer.diff(self.source, self.replica / "absent", replica_exists=False)

        self.assertEqual([(a.name, a.action) for a in diff.files_to_copy_or_update],
                         [("a.txt", SyncAction.COPY)])
        self.assertEqual(diff.source_subdirs, ["sub"])

    @unittest.skipIf(os.name == "nt", "symlinks need privileges on Windows")
    def test_replica_only_symlink_is_deleted_and_source_symlink_ignored(self) -> None:
        (self.replica / "dangling").symlink_to(self.replica / "missing-target")
        (self.source / "real.txt").write_bytes(b"r")
        (self.source / "link.txt").symlink_to(self.source / "real.txt")

        with self.assertLogs("mirrorsync.tests.comparer", level="WARNING") as logs:
            diff = self.comparer.diff(self.source, self.replica)

        self.assertEqual([(a.name, a.action) for a in diff.files_to_delete],
                         [("dangling", SyncAction.DELETE)])
        self.assertNotIn("link.txt", self._actions(diff))
        self.assertTrue(any("link.txt" in line for line in logs.output))

    def test_unreadable_source_listing_propagates(self) -> None:
        with self.assertRaises(OSError):
            self.comparer.diff(self.source / "gone", self.replica)


if __name__ == "__main__":
    unittest.main()
