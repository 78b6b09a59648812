"""
Tests for the xcsync command-line shell.

Tests:
  - entry point: `python -m xcsync` usage and exit codes
  - plan rendering
  - `xcsync plan` / `xcsync sync` end to end against an in-memory device
"""
import io
import os
import subprocess
import sys
import unittest
from contextlib import redirect_stdout, redirect_stderr
from pathlib import Path
from unittest import mock

from fake_device import FakeDevice, MemoryStorage

import xcsync.config as cfg
from xcsync import cli
from xcsync.core.controller import SyncController
from xcsync.core.models import Document, SyncAction
from xcsync.operations.planner import make_plan

REPO_ROOT = Path(__file__).parent.parent

LOCAL = {
    "map.xcm": b"map",
    "tasks": {"a.tsk": b"a", "b.tsk": b"b"},
}


def run_xcsync(*args):
    """Run the xcsync CLI in a subprocess and return (returncode, stdout, stderr)."""
    result = subprocess.run(
        [sys.executable, "-m", "xcsync", *args],
        cwd=str(REPO_ROOT),
        capture_output=True,
        text=True,
        env={**os.environ, "PYTHONPATH": str(REPO_ROOT)},
    )
    return result.returncode, result.stdout, result.stderr


class TestEntryPoint(unittest.TestCase):

    def test_no_command_prints_help(self):
        rc, out, _ = run_xcsync()
        self.assertEqual(rc, 1)
        self.assertIn("discover", out)
        self.assertIn("sync", out)

    def test_sync_help(self):
        rc, out, _ = run_xcsync("sync", "--help")
        self.assertEqual(rc, 0)
        self.assertIn("--skip", out)
        self.assertIn("--dry-run", out)


class TestFormatPlan(unittest.TestCase):

    def test_tree_rendering(self):
        local = (Document("map.xcm", False), Document("photo.jpg", False),
                 Document("tasks", True, (Document("a.tsk", False),)))
        plan = make_plan(local, [Document("map.xcm", False)])
        plan = plan.with_action("tasks/a.tsk", SyncAction.SKIP)
        self.assertEqual(cli.format_plan(plan), [
            "  = map.xcm",
            "  + tasks/",
            "  -     a.tsk",
        ])


class TestCommands(unittest.TestCase):

    def setUp(self):
        self.device = FakeDevice()
        self.storage = MemoryStorage(LOCAL)
        self._saved = (cfg.LOCAL_ROOT, cfg.REMOTE_ADDRESS, cfg.INTERFACE)
        patches = [
            mock.patch.object(cfg, "load_settings", return_value=None),
            mock.patch.object(cli, "_make_controller", side_effect=self._controller),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    def tearDown(self):
        cfg.LOCAL_ROOT, cfg.REMOTE_ADDRESS, cfg.INTERFACE = self._saved

    def _controller(self, _cfg):
        return SyncController(local_root="root", address=_cfg.REMOTE_ADDRESS,
                              storage=self.storage,
                              session_factory=lambda host, cancel=None:
                              self.device.session(host, cancel))

    def run_main(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        code = 0
        with mock.patch.object(sys, "argv", ["xcsync", *argv]), \
                redirect_stdout(out), redirect_stderr(err):
            try:
                cli.main()
            except SystemExit as exc:
                code = exc.code or 0
        return code, out.getvalue(), err.getvalue()

    def test_plan(self):
        code, out, _ = self.run_main("plan", "--address", "192.168.1.9")
        self.assertEqual(code, 0)
        self.assertIn("+ map.xcm", out)
        self.assertIn("+ push 3", out)
        self.assertEqual(self.device.files(), {})

    def test_sync_dry_run_uploads_nothing(self):
        code, out, _ = self.run_main("sync", "--address", "192.168.1.9", "-n")
        self.assertEqual(code, 0)
        self.assertIn("DRY-RUN", out)
        self.assertEqual(self.device.files(), {})

    def test_sync_with_skip(self):
        code, out, _ = self.run_main("sync", "--address", "192.168.1.9",
                                     "--skip", "tasks/b.tsk")
        self.assertEqual(code, 0)
        self.assertEqual(set(self.device.files()), {"map.xcm", "tasks/a.tsk"})
        self.assertIn("Still missing     : 1", out)

    def test_sync_unknown_skip_path(self):
        code, _, err = self.run_main("sync", "--address", "192.168.1.9", "--skip", "nope.xcm")
        self.assertEqual(code, 1)
        self.assertIn("not part of the plan", err)

    def test_sync_nothing_to_do(self):
        self.run_main("sync", "--address", "192.168.1.9")
        code, out, _ = self.run_main("sync", "--address", "192.168.1.9")
        self.assertEqual(code, 0)
        self.assertIn("Nothing to do", out)

    def test_connection_failure(self):
        self.device.session = lambda host, cancel=None: FakeDevice().session(host, cancel,
                                                                             refuse=True)
        code, _, err = self.run_main("plan", "--address", "192.168.1.9")
        self.assertEqual(code, 1)
        self.assertIn("refused", err)

    def test_discover_rejects_invalid_base(self):
        code, _, err = self.run_main("discover", "--base", "not-an-ip")
        self.assertEqual(code, 1)
        self.assertIn("not-an-ip", err)
        self.assertNotIn("Not Connected", err)


if __name__ == "__main__":
    unittest.main()
