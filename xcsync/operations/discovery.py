"""
Subnet scan for the device
"""
import ipaddress
import socket
import threading
from typing import Callable, Optional

from .. import config as _cfg
from ..core.models import ProgressState
from ..core.session import probe
from ..utils.logging import log, vlog

LAST_OCTET_MAX = 254


def is_reachable(host: str, timeout: Optional[float] = None) -> bool:
    """Quick TCP connect to the SSH port."""
    try:
        with socket.create_connection((host, _cfg.SSH_PORT),
                                      timeout=_cfg.SCAN_TIMEOUT if timeout is None else timeout):
            return True
    except OSError:
        return False


def candidates(base_address: str) -> list[str]:
    """All x.y.z.1 … x.y.z.254 except *base_address* itself, ascending."""
    base = ipaddress.IPv4Address(base_address)
    prefix = int(base) & 0xFFFFFF00
    own = int(base) & 0xFF
    return [
        str(ipaddress.IPv4Address(prefix | octet))
        for octet in range(1, LAST_OCTET_MAX + 1)
        if octet != own
    ]


def discover(base_address: str,
             on_progress: Optional[Callable[[ProgressState], None]] = None,
             cancel: Optional[threading.Event] = None) -> Optional[str]:
    """
    Find the first host on *base_address*'s /24 that accepts an SSH login.

    Returns None when the range is exhausted or *cancel* gets set; the
    caller's own address is never a candidate.
    """
    log(f"[discover] scanning {base_address}/24 …")
    for host in candidates(base_address):
        if cancel is not None and cancel.is_set():
            log("[discover] cancelled")
            return None
        found = False
        if is_reachable(host):
            vlog(f"[discover] {host} reachable, probing SSH …")
            found = probe(host, _cfg.PROBE_TIMEOUT)
        if on_progress:
            octet = int(ipaddress.IPv4Address(host)) & 0xFF
            on_progress(ProgressState(octet / LAST_OCTET_MAX, host))
        if found:
            log(f"[discover] found device at {host} ✓")
            return host
    log("[discover] no device found")
    return None
