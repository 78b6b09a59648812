"""Utilities (logging, local storage, network interfaces)"""
from .logging import log, vlog, warn, set_verbose
from .file_utils import LocalEntry, LocalStorage, FileSystemStorage, has_synced_extension
from .network import NetworkInterface, list_interfaces, interface_address

__all__ = [
    "log", "vlog", "warn", "set_verbose",
    "LocalEntry", "LocalStorage", "FileSystemStorage", "has_synced_extension",
    "NetworkInterface", "list_interfaces", "interface_address",
]
