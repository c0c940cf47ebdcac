# util/functions.py
import os


def normalize_extension(filename_or_ext: str) -> str:
    """
    - Accepts "report.PDF", ".pdf" or "pdf" and returns "pdf".
    - A value without a dot is taken as a bare extension; use extension_of() for filenames.
    """
    value = filename_or_ext.strip()
    if "." in value:
        value = os.path.splitext(value)[1] or value.rsplit(".", 1)[-1]
    return value.lstrip(".").lower()


def extension_of(filename: str) -> str:
    """Lower-cased extension of an uploaded or stored filename, "" when it has none."""
    name = filename.strip().replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def download_filename(client_name: str | None, display_name: str, stored_filename: str) -> str:
    # "<client name> - <document display name>.<ext>", as offered on download
    ext = extension_of(stored_filename)
    base = f"{client_name} - {display_name}" if client_name else display_name
    return f"{base}.{ext}" if ext else base
