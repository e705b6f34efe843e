# src/drive_auth/utils/secure_io.py
"""
Permission-restricted file writes for the credential store.

The store holds long-lived secrets, so it stays owner-read-only (0o400)
except for the instant it is being rewritten:

1. The existing file is made owner-writable
2. The new content goes to a temp file in the same directory
3. The temp file replaces the store (tempfile + move)
4. The store is restricted back to owner-read-only

Unlike log writes, a failed store write is fatal for the credential
check, so failures raise StoreIOError instead of being buffered.
"""

import os
import shutil
import stat
import tempfile
import logging
from pathlib import Path
from typing import Union

from ..errors import StoreIOError

READ_ONLY_MODE = 0o400
WRITABLE_MODE = 0o600


def _make_owner_writable(path: Path) -> None:
    current = stat.S_IMODE(path.stat().st_mode)
    os.chmod(path, current | stat.S_IWUSR | stat.S_IRUSR)


def write_restricted_text(
    path: Union[str, Path],
    content: str,
    logger: logging.Logger,
    final_mode: int = READ_ONLY_MODE,
) -> None:
    """
    Replace a file's content and leave it with restrictive permissions.

    Args:
        path: File to rewrite (created if missing)
        content: Full new content
        logger: Logger for debug output
        final_mode: Permissions applied after the write (default: owner read-only)

    Raises:
        StoreIOError: On any filesystem failure. A partially written temp
            file is removed; the original store is left as it was.
    """
    path = Path(path)
    tmp_fd = None
    tmp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            _make_owner_writable(path)

        try:
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, prefix=".tmp_", suffix=".conf", text=True
            )
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                f.write(content)
                tmp_fd = None

            os.chmod(tmp_path, WRITABLE_MODE)
            shutil.move(tmp_path, path)
            tmp_path = None
        finally:
            if tmp_fd is not None:
                try:
                    os.close(tmp_fd)
                except OSError:
                    pass
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass

        os.chmod(path, final_mode)
        logger.debug(f"Rewrote {path.name} ({len(content)} bytes)")

    except (OSError, PermissionError, IOError) as e:
        raise StoreIOError(str(path), f"Failed to write '{path}': {e}") from e


def ensure_restricted_file(
    path: Union[str, Path], logger: logging.Logger
) -> bool:
    """
    Create an empty owner-read-only file if it does not exist yet.

    Returns:
        True if the file was created, False if it already existed
    """
    path = Path(path)
    if path.exists():
        return False
    write_restricted_text(path, "", logger)
    logger.info(f"Created empty credential store at {path}")
    return True


def read_text(path: Union[str, Path]) -> str:
    """
    Read a file that may be owner-read-only. Missing files read as empty.

    Raises:
        StoreIOError: If the file exists but cannot be read
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return ""
    except (OSError, PermissionError, IOError) as e:
        raise StoreIOError(str(path), f"Failed to read '{path}': {e}") from e
    except UnicodeDecodeError as e:
        raise StoreIOError(
            str(path), f"'{path}' is not valid UTF-8 (byte offset {e.start}): {e.reason}"
        ) from e
