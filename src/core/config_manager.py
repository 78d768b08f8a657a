import os
import json
import logging
from typing import Dict, Any

from src.core.models import CameraConstraint, ScanOptions

logger = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.getcwd(), "data")
CONFIG_FILE = os.path.join(DATA_DIR, "config.json")

DEFAULT_CONFIG: Dict[str, Any] = {
    "lookup_host": "world.openfoodfacts.org",
    "user_agent": "BarcodeProductScanner/1.0 (nicegui)",
    "lookup_timeout": None, # Seconds, None waits indefinitely
    "rescan_cooldown": 3.0, # Seconds before the same code is looked up again
    "scan_rate": 15,
    "decode_region_size": 350,
    "facing_mode": "environment",
    "port": 8080,
}

def load_config() -> Dict[str, Any]:
    """Loads data/config.json merged over the defaults. Missing or broken files yield defaults."""
    config = dict(DEFAULT_CONFIG)
    if not os.path.exists(CONFIG_FILE):
        return config

    try:
        with open(CONFIG_FILE, 'r', encoding='utf-8') as f:
            stored = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading config from {CONFIG_FILE}: {e}")
        return config

    if not isinstance(stored, dict):
        logger.error(f"Ignoring config file {CONFIG_FILE}: expected a JSON object")
        return config

    config.update(stored)
    return config

def save_config(config: Dict[str, Any]):
    os.makedirs(os.path.dirname(CONFIG_FILE), exist_ok=True)
    try:
        with open(CONFIG_FILE, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2)
    except OSError as e:
        logger.error(f"Error saving config: {e}")

def get_lookup_host() -> str:
    return load_config().get("lookup_host") or DEFAULT_CONFIG["lookup_host"]

def get_scan_options() -> ScanOptions:
    config = load_config()
    return ScanOptions(
        scan_rate=config.get("scan_rate", DEFAULT_CONFIG["scan_rate"]),
        decode_region_size=config.get("decode_region_size", DEFAULT_CONFIG["decode_region_size"]),
    )

def get_camera_constraint() -> CameraConstraint:
    return CameraConstraint(facing_mode=load_config().get("facing_mode") or DEFAULT_CONFIG["facing_mode"])

def get_rescan_cooldown() -> float:
    value = load_config().get("rescan_cooldown", DEFAULT_CONFIG["rescan_cooldown"])
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        logger.error(f"Invalid rescan_cooldown {value!r}, using default")
        return DEFAULT_CONFIG["rescan_cooldown"]
