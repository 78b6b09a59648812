"""
IPv4 interface enumeration (discovery base address)
"""
import socket
from dataclasses import dataclass
from typing import Optional

import psutil


@dataclass(frozen=True)
class NetworkInterface:
    name: str
    address: str


def list_interfaces() -> list[NetworkInterface]:
    """Non-loopback interfaces that carry an IPv4 address."""
    result = []
    for name, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family != socket.AF_INET or addr.address.startswith("127."):
                continue
            result.append(NetworkInterface(name, addr.address))
            break
    return result


def interface_address(name: Optional[str] = None) -> Optional[str]:
    """IPv4 address of the interface called *name*, or of the first one."""
    for ifc in list_interfaces():
        if name is None or ifc.name == name:
            return ifc.address
    return None
