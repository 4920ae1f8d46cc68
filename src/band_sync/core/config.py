from __future__ import annotations

from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "Band Sync"
APP_AUTHOR = "BandSync"
DATA_DIR = Path(user_data_dir(APP_NAME, APP_AUTHOR))
STORE_FILE = DATA_DIR / "band_sync_store.json"
CACHE_FILE = DATA_DIR / "read_cache.json"
IDENTITY_FILE = DATA_DIR / "identity.json"


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
