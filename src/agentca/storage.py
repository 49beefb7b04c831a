import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Optional


def atomic_write_text(path: Path, text: str, mode: Optional[int] = None):
    """
    Write `text` to `path` so that readers (and a process restarted after a
    crash) only ever see the old or the new content, never a torn file.
    """
    path = Path(path)
    with NamedTemporaryFile("w", dir=path.parent, prefix=f".{path.name}.", delete=False) as f:
        tmp_path = Path(f.name)
        try:
            if mode is not None:
                os.chmod(f.name, mode)
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        except BaseException:
            f.close()
            tmp_path.unlink()
            raise

    try:
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink()
        raise
    _fsync_dir(path.parent)


def atomic_write_json(path: Path, data: Any):
    atomic_write_text(path, json.dumps(data, indent=2, default=str) + "\n")


def _fsync_dir(dir_path: Path):
    fd = os.open(dir_path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)
