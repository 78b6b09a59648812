"""
Configuration constants for xcsync
"""
import os
from pathlib import Path
from typing import Optional

# ══════════════════════════════════════════════════════════════════════════════
#  PROTOCOL CONSTANTS  ── fixed by the device layout, not user-configurable
# ══════════════════════════════════════════════════════════════════════════════

# Directory on the device that holds XCSoar data, relative to the login dir
REMOTE_ROOT = ".xcsoar"

# Uploads land here first and are renamed into place once complete
STAGING_NAME = ".xcsync.staging"

# Files we care about: maps, tasks and waypoint files (matched case-insensitively)
SYNCED_EXTENSIONS = ("xcm", "tsk", "cup")

# Bytes per SFTP write; also the progress/cancellation granularity
CHUNK_SIZE = 32 * 1024

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by YAML config or apply_profile()
# ══════════════════════════════════════════════════════════════════════════════

SSH_PORT = 22
SSH_USER = "root"
# The devices ship with an empty root password
SSH_PASSWORD: Optional[str] = ""
SSH_KEY_PATH: Optional[str] = None

# Host keys are NOT verified by default: the device is assumed to live on a
# trusted local network and regenerates its key on reflash.
VERIFY_HOST_KEYS = False

# Seconds
DEFAULT_TIMEOUT = 2.0   # normal sessions
PROBE_TIMEOUT = 0.5     # discovery handshake
SCAN_TIMEOUT = 0.05     # discovery reachability test

LOCAL_ROOT = Path(".")
REMOTE_ADDRESS: Optional[str] = None
INTERFACE: Optional[str] = None

CONFIG_FILE = ".xcsync"


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/xcsync/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for xcsync."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "xcsync"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "xcsync"
    return Path.home() / ".config" / "xcsync"


def load_global_config() -> dict:
    """Load global config from the xcsync config directory, {} if absent."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    return load_config_file(cfg_path)


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .xcsync (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .xcsync YAML file.
    Returns the Path if found, or None if no .xcsync exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config_file(path: Path) -> dict:
    """Parse a .xcsync / config.yaml file and return its contents as a dict."""
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a config data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {})
    profiles = data.get("profiles", [])
    if not profiles:
        return defaults.copy()
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = defaults.copy()
    merged.update(profile)
    return merged


# ══════════════════════════════════════════════════════════════════════════════
#  APPLY PROFILE  ── mutates module-level variables
# ══════════════════════════════════════════════════════════════════════════════

def apply_profile(profile: dict):
    """
    Apply a profile dict to the module-level config variables.
    Supports keys: address, port, user, password, ssh_key, local_root,
                   remote_root, timeout, verify_host_keys, interface.
    """
    global SSH_PORT, SSH_USER, SSH_PASSWORD, SSH_KEY_PATH, VERIFY_HOST_KEYS
    global DEFAULT_TIMEOUT, LOCAL_ROOT, REMOTE_ROOT, REMOTE_ADDRESS, INTERFACE

    if "address" in profile:
        REMOTE_ADDRESS = str(profile["address"]) if profile["address"] else None
    if "port" in profile:
        SSH_PORT = int(profile["port"])
    if "user" in profile:
        SSH_USER = str(profile["user"])
    if "password" in profile:
        SSH_PASSWORD = "" if profile["password"] is None else str(profile["password"])
    if "ssh_key" in profile:
        SSH_KEY_PATH = str(profile["ssh_key"]) if profile["ssh_key"] else None
    if "verify_host_keys" in profile:
        VERIFY_HOST_KEYS = bool(profile["verify_host_keys"])
    if "timeout" in profile:
        DEFAULT_TIMEOUT = float(profile["timeout"])
    if "local_root" in profile:
        LOCAL_ROOT = Path(profile["local_root"]).expanduser().resolve()
    if "remote_root" in profile:
        REMOTE_ROOT = str(profile["remote_root"])
    if "interface" in profile:
        INTERFACE = str(profile["interface"]) if profile["interface"] else None


def load_settings(profile_name: str = "default", start: Optional[Path] = None) -> Optional[Path]:
    """
    Apply the global config, then the nearest project .xcsync on top of it.
    Returns the project file used, or None when only global/defaults apply.
    """
    global_cfg = load_global_config()
    if global_cfg:
        apply_profile(get_profile(global_cfg, profile_name))
    path = find_config(start)
    if path is not None:
        apply_profile(get_profile(load_config_file(path), profile_name))
    return path
