import os

from .errors import PreFlightCheckError


def run_pre_flight_checks(config: dict, file_path: str):
    """
    Verifies that an import can start for ``file_path``.

    Args:
        config: The application configuration dictionary.
        file_path: The uploaded WXR file.

    Raises:
        PreFlightCheckError: If any check fails.
    """
    # Check 1: the uploaded file is still there
    if not file_path or not os.path.isfile(file_path):
        raise PreFlightCheckError(f"WordPress export file not found: {file_path}")
    if not os.access(file_path, os.R_OK):
        raise PreFlightCheckError(f"WordPress export file is not readable: {file_path}")

    # Check 2: media can be written under the upload root
    import_cfg = config.get("import", {})
    media_dir = os.path.join(import_cfg.get("upload_root", "public/uploads"), import_cfg.get("media_subdir", "wp-import"))
    try:
        os.makedirs(media_dir, exist_ok=True)
    except OSError as e:
        raise PreFlightCheckError(f"Could not create media directory {media_dir}: {e}")
    if not os.access(media_dir, os.W_OK):
        raise PreFlightCheckError(f"Media directory is not writable: {media_dir}")
