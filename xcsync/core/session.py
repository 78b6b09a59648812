"""
Scoped SSH + SFTP session to the device
"""
import socket
import stat
import threading
from typing import BinaryIO, Callable, Optional

import paramiko

from .. import config as _cfg
from ..errors import Cancelled, ConnectError, TransferError
from ..utils.logging import log, vlog, warn

# (bytes_sent_for_this_file) -> keep going?
ChunkCallback = Callable[[int], bool]

_CONNECT_ERRORS = (paramiko.SSHException, socket.error, socket.timeout, EOFError)
_SFTP_ERRORS = (IOError, OSError, paramiko.SFTPError, paramiko.SSHException, EOFError)


def _host_key_policy() -> paramiko.MissingHostKeyPolicy:
    if _cfg.VERIFY_HOST_KEYS:
        return paramiko.RejectPolicy()
    return paramiko.AutoAddPolicy()


def open_client(host: str, timeout: float) -> paramiko.SSHClient:
    """
    Connect and authenticate as the configured privileged account.
    Raises ConnectError on timeout, refusal or rejected authentication.
    """
    client = paramiko.SSHClient()
    if _cfg.VERIFY_HOST_KEYS:
        client.load_system_host_keys()
    client.set_missing_host_key_policy(_host_key_policy())
    kw: dict = dict(hostname=host, port=_cfg.SSH_PORT, username=_cfg.SSH_USER,
                    timeout=timeout, banner_timeout=timeout, auth_timeout=timeout,
                    allow_agent=False, look_for_keys=False)
    if _cfg.SSH_KEY_PATH:
        kw["key_filename"] = _cfg.SSH_KEY_PATH
    if _cfg.SSH_PASSWORD is not None:
        kw["password"] = _cfg.SSH_PASSWORD
    try:
        client.connect(**kw)
    except _CONNECT_ERRORS as exc:
        client.close()
        raise ConnectError(f"cannot connect to {_cfg.SSH_USER}@{host}:{_cfg.SSH_PORT}: {exc}",
                           cause=exc) from exc
    return client


def probe(host: str, timeout: Optional[float] = None) -> bool:
    """True if *host* completes an SSH handshake + login within *timeout*."""
    try:
        client = open_client(host, _cfg.PROBE_TIMEOUT if timeout is None else timeout)
    except ConnectError as exc:
        vlog(f"[probe] {host}: {exc.cause}")
        return False
    client.close()
    return True


class TransferSession:
    """
    One authenticated SSH connection plus one SFTP channel to a single host.

    Use as a context manager; both are released on every exit path. Paths
    handed to the methods are relative to the current directory, which only
    moves through enter()/leave().

    *cancel* is checked at every suspension point (connect, list, each upload
    chunk); once set, the next checkpoint raises Cancelled.
    """

    def __init__(self, host: str, timeout: Optional[float] = None,
                 cancel: Optional[threading.Event] = None):
        self.host = host
        self.timeout = _cfg.DEFAULT_TIMEOUT if timeout is None else timeout
        self.cancel = cancel
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        self._path: list[str] = []

    # ── connection ─────────────────────────────────────────────────────────

    def __enter__(self) -> "TransferSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def connect(self):
        self.checkpoint()
        if not _cfg.VERIFY_HOST_KEYS:
            vlog("[SSH] host key verification disabled (VERIFY_HOST_KEYS = False)")
        log(f"[SSH] connecting to {_cfg.SSH_USER}@{self.host}:{_cfg.SSH_PORT} …")
        self._ssh = open_client(self.host, self.timeout)
        try:
            self._sftp = self._ssh.open_sftp()
            self._sftp.get_channel().settimeout(self.timeout)
        except (paramiko.SFTPError,) + _CONNECT_ERRORS as exc:
            self.close()
            raise ConnectError(f"cannot open SFTP channel on {self.host}: {exc}", cause=exc) from exc
        self._path = []
        log("[SSH] connected ✓")

    def close(self):
        try:
            if self._sftp:
                self._sftp.close()
        except Exception as exc:
            vlog(f"[SSH] closing SFTP channel: {exc}")
        try:
            if self._ssh:
                self._ssh.close()
        except Exception as exc:
            vlog(f"[SSH] closing connection: {exc}")
        if self._ssh:
            log("[SSH] disconnected.")
        self._ssh = None
        self._sftp = None

    def checkpoint(self):
        """Raise Cancelled if cancellation has been requested."""
        if self.cancel is not None and self.cancel.is_set():
            raise Cancelled()

    @property
    def sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise TransferError(f"session to {self.host} is not open")
        return self._sftp

    @property
    def cwd(self) -> str:
        """Current directory relative to the login directory."""
        return "/".join(self._path)

    def _call(self, what: str, fn, *args):
        self.checkpoint()
        try:
            return fn(*args)
        except _SFTP_ERRORS as exc:
            raise TransferError(f"{what} failed in '{self.cwd or '.'}': {exc}", cause=exc) from exc

    # ── navigation ─────────────────────────────────────────────────────────

    def list(self, directory: str = ".") -> list[paramiko.SFTPAttributes]:
        """Raw entries of *directory*, without '.' and '..'."""
        return self._call(f"list {directory}", self.sftp.listdir_attr, directory)

    def enter(self, name: str):
        self._call(f"cd {name}", self.sftp.chdir, name)
        self._path.append(name)
        vlog(f"  [cd] {self.cwd}")

    def leave(self):
        if not self._path:
            raise TransferError("leave() without a matching enter()")
        # No checkpoint: leaving must happen even after cancellation
        try:
            self.sftp.chdir("..")
        except _SFTP_ERRORS as exc:
            raise TransferError(f"cd .. failed in '{self.cwd}': {exc}", cause=exc) from exc
        self._path.pop()

    def make_directory(self, name: str):
        self._call(f"mkdir {name}", self.sftp.mkdir, name)

    def stat(self, name: str) -> paramiko.SFTPAttributes:
        return self._call(f"stat {name}", self.sftp.stat, name)

    # ── transfer ───────────────────────────────────────────────────────────

    def upload(self, stream: BinaryIO, target: str,
               callback: Optional[ChunkCallback] = None) -> bool:
        """
        Copy *stream* into *target* in the current directory, chunk by chunk.

        After every chunk *callback(bytes_so_far)* is called; a False return
        (or a set cancel event) stops the transfer. Returns True only if the
        stream was fully consumed.
        """
        self.checkpoint()
        sent = 0
        try:
            with self.sftp.open(target, "wb") as remote:
                remote.set_pipelined(True)
                for chunk in iter(lambda: stream.read(_cfg.CHUNK_SIZE), b""):
                    remote.write(chunk)
                    sent += len(chunk)
                    keep_going = callback(sent) if callback else True
                    if not keep_going or (self.cancel is not None and self.cancel.is_set()):
                        warn(f"upload of {target} stopped after {sent} byte(s)")
                        return False
        except _SFTP_ERRORS as exc:
            raise TransferError(f"upload to '{self.cwd}/{target}' failed: {exc}", cause=exc) from exc
        return True

    def rename(self, src: str, dst: str):
        """Atomically replace *dst* with *src* (posix-rename@openssh.com)."""
        self._call(f"rename {src} -> {dst}", self.sftp.posix_rename, src, dst)


def is_dir(entry: paramiko.SFTPAttributes) -> bool:
    return stat.S_ISDIR(entry.st_mode or 0)
