"""
Tests for local and remote tree listing.
"""
import tempfile
import threading
import unittest
from pathlib import Path

from fake_device import FakeDevice, MemoryStorage

from xcsync.core.models import Document
from xcsync.errors import Cancelled
from xcsync.operations.listing import list_local_tree, list_remote_tree
from xcsync.utils.file_utils import FileSystemStorage


class TestListLocalTree(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_filesystem_tree(self):
        (self.root / "tasks" / "dir2").mkdir(parents=True)
        (self.root / "map.xcm").write_bytes(b"xcm")
        (self.root / "tasks" / "a.tsk").write_bytes(b"tsk")
        (self.root / "tasks" / "dir2" / "b.tsk").write_bytes(b"tsk")

        tree = list_local_tree(FileSystemStorage(), self.root)
        self.assertEqual(tree, (
            Document("map.xcm", False),
            Document("tasks", True, (
                Document("a.tsk", False),
                Document("dir2", True, (Document("b.tsk", False),)),
            )),
        ))
        self.assertEqual(tree[0].locator, self.root / "map.xcm")

    def test_locator_opens_content(self):
        (self.root / "map.xcm").write_bytes(b"0123456789")
        storage = FileSystemStorage()
        tree = list_local_tree(storage, self.root)
        stream, length = storage.open_read(tree[0].locator)
        with stream:
            self.assertEqual(length, 10)
            self.assertEqual(stream.read(), b"0123456789")

    def test_empty_root_is_empty_not_absent(self):
        self.assertEqual(list_local_tree(FileSystemStorage(), self.root), ())

    def test_missing_root_is_absent(self):
        self.assertIsNone(list_local_tree(FileSystemStorage(), self.root / "nope"))

    def test_unreadable_subtree_is_kept_without_children(self):
        storage = MemoryStorage({"ok.xcm": b"x", "locked": {"a.tsk": b"y"}},
                                fail=[("locked",)])
        tree = list_local_tree(storage, "root")
        self.assertEqual(tree, (Document("ok.xcm", False), Document("locked", True)))

    def test_unreadable_root_is_absent(self):
        storage = MemoryStorage({"ok.xcm": b"x"}, fail=[()])
        self.assertIsNone(list_local_tree(storage, "root"))


class TestListRemoteTree(unittest.TestCase):

    def setUp(self):
        self.device = FakeDevice({".xcsoar": {
            "map.xcm": b"m",
            ".xcsync.staging": b"partial",
            ".hidden": {"x.tsk": b"t"},
            "tasks": {"b.tsk": b"b", "a.tsk": b"a", "sub": {}},
        }})

    def test_lists_without_hidden_entries(self):
        with self.device.session() as session:
            tree = list_remote_tree(session)
        self.assertEqual(tree, (
            Document("map.xcm", False),
            Document("tasks", True, (
                Document("a.tsk", False),
                Document("b.tsk", False),
                Document("sub", True),
            )),
        ))
        self.assertTrue(all(doc.locator is None for doc in tree))

    def test_enter_before_and_leave_after_each_directory(self):
        with self.device.session() as session:
            list_remote_tree(session)
            self.assertEqual(session.cwd, "")
        self.assertEqual(self.device.events, [
            ("enter", ".xcsoar"),
            ("enter", ".xcsoar/tasks"),
            ("enter", ".xcsoar/tasks/sub"),
            ("leave", ".xcsoar/tasks/sub"),
            ("leave", ".xcsoar/tasks"),
            ("leave", ".xcsoar"),
        ])

    def test_empty_remote_root(self):
        device = FakeDevice()
        with device.session() as session:
            self.assertEqual(list_remote_tree(session), ())

    def test_missing_remote_root_is_absent(self):
        device = FakeDevice({})
        with device.session() as session:
            self.assertIsNone(list_remote_tree(session))

    def test_failure_in_subdirectory_is_absent_and_balanced(self):
        with self.device.session(fail_list=".xcsoar/tasks") as session:
            self.assertIsNone(list_remote_tree(session))
            self.assertEqual(session.cwd, "")

    def test_cancellation_propagates(self):
        cancel = threading.Event()
        with self.device.session(cancel=cancel) as session:
            cancel.set()
            with self.assertRaises(Cancelled):
                list_remote_tree(session)


if __name__ == "__main__":
    unittest.main()
