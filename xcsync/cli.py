#!/usr/bin/env python3
"""
xcsync  —  push XCSoar maps, tasks and waypoints to a flight computer
=====================================================================

Subcommands:
  interfaces  List the IPv4 network interfaces usable for discovery.
  discover    Scan the local /24 subnet for the device.
  plan        Compare the local data directory with the device and show the plan.
  sync        Upload everything the plan marks as missing.

Settings come from the nearest .xcsync file (see xcsync/config.py);
command-line options override them.
Run 'xcsync <subcommand> --help' for more details.
"""
import sys
import argparse
from pathlib import Path

EXIT_CANCELLED = 130


# ── helpers ──────────────────────────────────────────────────────────────────

def _load_config(args):
    """Apply .xcsync settings, then command-line overrides."""
    import xcsync.config as _cfg
    from xcsync.utils.logging import set_verbose

    set_verbose(args.verbose)
    path = _cfg.load_settings(args.profile or "default")
    if args.verbose and path is not None:
        print(f"[config] Using {path}")
    if getattr(args, "local", None):
        _cfg.LOCAL_ROOT = Path(args.local).expanduser().resolve()
    if getattr(args, "address", None):
        _cfg.REMOTE_ADDRESS = args.address
    if getattr(args, "interface", None):
        _cfg.INTERFACE = args.interface
    return _cfg


def _base_address(args, _cfg) -> str:
    from xcsync.utils.network import interface_address

    base = getattr(args, "base", None) or interface_address(_cfg.INTERFACE)
    if base is None:
        print("error: no IPv4 interface found; pass --base or --interface.", file=sys.stderr)
        sys.exit(1)
    return base


def _show_progress(ctl):
    p = ctl.progress
    if p is None or p.fraction is None:
        return
    line = f"  {p.fraction * 100:5.1f}%  {p.message or ''}"
    print("\r" + line.ljust(72), end="", flush=True)


def _wait(ctl) -> bool:
    """Wait for the running job; Ctrl-C requests cancellation. True if interrupted."""
    interrupted = False
    while True:
        try:
            if ctl.wait(0.2):
                break
        except KeyboardInterrupt:
            if interrupted:
                continue
            interrupted = True
            print()
            print("Cancelling — waiting for the current step to finish …")
            ctl.cancel_job()
    print()
    return interrupted


def format_plan(plan) -> list:
    """Indented text rendering of a plan, one planned document per line."""
    from xcsync.core.models import SyncAction

    marks = {SyncAction.PUSH: "+", SyncAction.IGNORE: "=", SyncAction.SKIP: "-"}
    lines = []
    for path, doc, action in plan.iter_entries():
        depth = path.count("/")
        name = doc.name + ("/" if doc.is_dir else "")
        lines.append(f"  {marks[action]} {'    ' * depth}{name}")
    return lines


def _make_controller(_cfg):
    from xcsync.core.controller import SyncController

    ctl = SyncController(local_root=_cfg.LOCAL_ROOT, address=_cfg.REMOTE_ADDRESS,
                         on_change=lambda: _show_progress(ctl))
    return ctl


def _ensure_address(ctl, args, _cfg):
    if ctl.address is not None:
        return
    base = _base_address(args, _cfg)
    print(f"No device address configured — scanning {base}/24 …")
    try:
        ctl.find_address(base)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    if _wait(ctl):
        sys.exit(EXIT_CANCELLED)
    if ctl.address is None:
        print(f"error: {ctl.error_message}", file=sys.stderr)
        sys.exit(1)
    print(f"Device found at {ctl.address}")


def _refresh(ctl):
    ctl.refresh()
    if _wait(ctl):
        sys.exit(EXIT_CANCELLED)
    if ctl.plan is None:
        print(f"error: {ctl.error_message or 'no plan available'}", file=sys.stderr)
        sys.exit(1)


def _print_plan(plan, address, _cfg):
    from xcsync.core.models import SyncAction

    print(f"\nLocal   : {_cfg.LOCAL_ROOT}")
    print(f"Remote  : {_cfg.SSH_USER}@{address}:{_cfg.REMOTE_ROOT}")
    lines = format_plan(plan)
    if not lines:
        print("\nNo map, task or waypoint files found locally.")
        return
    print()
    for line in lines:
        print(line)
    print(f"\n  + push {plan.count(SyncAction.PUSH)}   "
          f"= present {plan.count(SyncAction.IGNORE)}   "
          f"- skipped {plan.count(SyncAction.SKIP)}")


# ── interfaces ───────────────────────────────────────────────────────────────

def cmd_interfaces(args):
    """List IPv4 interfaces."""
    from xcsync.utils.network import list_interfaces

    _load_config(args)
    interfaces = list_interfaces()
    if not interfaces:
        print("No IPv4 interfaces found.")
        return
    for ifc in interfaces:
        print(f"  {ifc.name:<16} {ifc.address}")


# ── discover ─────────────────────────────────────────────────────────────────

def cmd_discover(args):
    """Scan the subnet and print the device address."""
    _cfg = _load_config(args)
    ctl = _make_controller(_cfg)
    ctl.address = None
    _ensure_address(ctl, args, _cfg)


# ── plan ─────────────────────────────────────────────────────────────────────

def cmd_plan(args):
    """Show what a sync would do."""
    _cfg = _load_config(args)
    ctl = _make_controller(_cfg)
    _ensure_address(ctl, args, _cfg)
    _refresh(ctl)
    _print_plan(ctl.plan, ctl.address, _cfg)


# ── sync ─────────────────────────────────────────────────────────────────────

def cmd_sync(args):
    """Plan, apply --skip choices and upload."""
    from xcsync.core.models import SyncAction
    from xcsync.operations.executor import ExecutionOutcome

    _cfg = _load_config(args)
    ctl = _make_controller(_cfg)
    _ensure_address(ctl, args, _cfg)
    _refresh(ctl)

    for path in args.skip or []:
        try:
            ctl.update_plan(path.strip("/"), SyncAction.SKIP)
        except KeyError:
            print(f"error: '{path}' is not part of the plan.", file=sys.stderr)
            sys.exit(1)

    _print_plan(ctl.plan, ctl.address, _cfg)
    n_push = ctl.plan.count(SyncAction.PUSH, files_only=False)
    if n_push == 0:
        print("\nNothing to do — device already up to date ✓")
        return
    if args.dry_run:
        print("\n*** DRY-RUN — nothing uploaded ***")
        return

    print()
    ctl.execute_plan()
    _wait(ctl)

    if ctl.last_outcome == ExecutionOutcome.CANCELLED:
        print("Sync cancelled. Run 'xcsync sync' again to finish.", file=sys.stderr)
        sys.exit(EXIT_CANCELLED)
    if ctl.plan is None or ctl.last_outcome is None:
        print(f"error: {ctl.error_message}", file=sys.stderr)
        sys.exit(1)

    remaining = ctl.plan.count(SyncAction.PUSH)
    print(f"{'─' * 64}")
    print(" SUMMARY")
    print(f"  Present on device : {ctl.plan.count(SyncAction.IGNORE)}")
    print(f"  Still missing     : {remaining}")
    print(f"{'─' * 64}")


# ── main ──────────────────────────────────────────────────────────────────────

def main():
    """CLI entry point for xcsync"""
    parser = argparse.ArgumentParser(
        prog="xcsync",
        description="Push XCSoar maps, tasks and waypoints to a flight computer over SFTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile to use (default: default)")
    common.add_argument("-v", "--verbose", action="store_true",
                        help="Show extra output")

    scan = argparse.ArgumentParser(add_help=False)
    scan.add_argument("--interface", metavar="NAME",
                      help="Network interface whose subnet is scanned (default: first IPv4)")
    scan.add_argument("--base", metavar="ADDR",
                      help="Scan the /24 subnet of this IPv4 address instead")

    remote = argparse.ArgumentParser(add_help=False)
    remote.add_argument("--address", metavar="ADDR",
                        help="Device address (default: from .xcsync, else discover)")
    remote.add_argument("--local", metavar="PATH",
                        help="Local XCSoar data directory (default: from .xcsync)")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    subparsers.add_parser(
        "interfaces", parents=[common],
        help="List IPv4 network interfaces",
    )
    subparsers.add_parser(
        "discover", parents=[common, scan],
        help="Scan the local subnet for the device",
    )
    subparsers.add_parser(
        "plan", parents=[common, scan, remote],
        help="Show which files are missing on the device",
    )
    sync_p = subparsers.add_parser(
        "sync", parents=[common, scan, remote],
        help="Upload missing files to the device",
    )
    sync_p.add_argument("--skip", metavar="PATH", action="append",
                        help="Leave this planned path out of this run (repeatable)")
    sync_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Show the plan without uploading")

    args = parser.parse_args()

    if args.command == "interfaces":
        cmd_interfaces(args)
    elif args.command == "discover":
        cmd_discover(args)
    elif args.command == "plan":
        cmd_plan(args)
    elif args.command == "sync":
        cmd_sync(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
