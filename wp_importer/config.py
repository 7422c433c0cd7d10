"""
Configuration loading for the importer.

Configuration is supplied via a JSON file path or directly as a
dictionary.  Missing keys are filled with defaults, secrets and paths
are taken from the environment when present:

``store``
    Where entities are created: ``base_url``, ``access_token``, ``rpm``
    and ``timeout`` for the REST content store.
``import``
    ``upload_root`` (media lands under ``<upload_root>/<media_subdir>``),
    ``public_prefix`` for asset URLs, ``report_dir`` for the JSON Lines
    reports, ``dry_run`` and ``stable_post_keys``.
``media``
    Download ``timeout``, ``max_attempts``, ``base_delay``, ``rpm`` and
    the size of the download pool (``max_workers``).
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

CONFIG_FILE = "config/import_config.json"


def load_config(config: Optional[Dict[str, Any]] = None, *, config_file: Optional[str] = None) -> Dict[str, Any]:
    if config_file and os.path.exists(config_file):
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
    elif config is None:
        # Default configuration
        config = {}

    # Ensure essential keys exist to prevent KeyErrors
    config.setdefault("store", {})
    config["store"].setdefault("base_url", os.getenv("CONTENT_STORE_URL", "http://localhost:5000/api/v1"))
    config["store"].setdefault("access_token", os.getenv("CONTENT_STORE_TOKEN", ""))
    config["store"].setdefault("rpm", 200)
    config["store"].setdefault("timeout", 10)

    config.setdefault("import", {})
    config["import"].setdefault("upload_root", os.getenv("FILE_UPLOAD_PATH", "public/uploads"))
    config["import"].setdefault("media_subdir", "wp-import")
    config["import"].setdefault("public_prefix", "/uploads")
    config["import"].setdefault("report_dir", os.path.join("reports", "import"))
    config["import"].setdefault("dry_run", False)
    config["import"].setdefault("stable_post_keys", False)

    config.setdefault("media", {})
    config["media"].setdefault("timeout", 30)
    config["media"].setdefault("max_attempts", 3)
    config["media"].setdefault("base_delay", 0.7)
    config["media"].setdefault("max_workers", 4)
    config["media"].setdefault("rpm", 120)

    return config
