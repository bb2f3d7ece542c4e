"""Configuration for the telemetry relay."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent
LOGS_DIR = Path(os.getenv("LOGS_DIR", str(BASE_DIR / "logs")))
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
BETTERSTACK_SOURCE_TOKEN = os.getenv("BETTERSTACK_SOURCE_TOKEN")
BETTERSTACK_INGEST_HOST = os.getenv("BETTERSTACK_INGEST_HOST")

# Collector endpoint
COLLECTOR_URL = os.getenv("COLLECTOR_URL", "https://dms.lat/api/postNewInfo")
DELIVERY_CONNECT_TIMEOUT = float(os.getenv("DELIVERY_CONNECT_TIMEOUT", "5"))
DELIVERY_READ_TIMEOUT = float(os.getenv("DELIVERY_READ_TIMEOUT", "10"))

# Offline queue storage
STATE_DIR = Path(os.getenv("STATE_DIR", str(BASE_DIR / "state")))
QUEUE_STORAGE_KEY = os.getenv("QUEUE_STORAGE_KEY", "@offline_reports")

# Connectivity
CONNECTIVITY_PROBE_URL = os.getenv("CONNECTIVITY_PROBE_URL", "https://clients3.google.com/generate_204")
CONNECTIVITY_PROBE_TIMEOUT = float(os.getenv("CONNECTIVITY_PROBE_TIMEOUT", "3"))
CONNECTIVITY_POLL_INTERVAL = int(os.getenv("CONNECTIVITY_POLL_INTERVAL", "5"))  # seconds between probes

# Peripheral
DEVICE_NAME = os.getenv("DEVICE_NAME", "AMB82")


def validate_config():
    """Validate required configuration."""
    errors = []

    if not COLLECTOR_URL.startswith(("http://", "https://")):
        errors.append(f"COLLECTOR_URL must be an http(s) URL: {COLLECTOR_URL}")

    if DELIVERY_CONNECT_TIMEOUT <= 0 or DELIVERY_READ_TIMEOUT <= 0:
        errors.append("DELIVERY_CONNECT_TIMEOUT and DELIVERY_READ_TIMEOUT must be positive")

    if CONNECTIVITY_POLL_INTERVAL <= 0:
        errors.append("CONNECTIVITY_POLL_INTERVAL must be positive")

    if not QUEUE_STORAGE_KEY:
        errors.append("QUEUE_STORAGE_KEY is required")

    try:
        STATE_DIR.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        errors.append(f"Cannot create STATE_DIR: {e}")

    if errors:
        raise ValueError("Config errors:\n  " + "\n  ".join(errors))
