"""Optional gzip post-processing of closed backups."""
import gzip
import os
import shutil

from .errors import RotationError


def compress_backup(path: str) -> str:
    """Gzip ``path`` into ``path + '.gz'`` and remove the original.

    The partial archive is removed if compression fails.
    """
    target = path + ".gz"
    try:
        with open(path, "rb") as src, gzip.open(target, "wb") as dst:
            shutil.copyfileobj(src, dst)
        os.remove(path)
    except OSError as e:
        if os.path.exists(target):
            try:
                os.remove(target)
            except OSError:
                pass
        raise RotationError(
            f"cannot compress backup {path}", path=path, cause=e
        ) from e
    return target
