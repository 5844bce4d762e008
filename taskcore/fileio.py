from __future__ import annotations

import os
import pickle
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Union


PathLike = Union[str, Path]


def ensure_directory(path: PathLike) -> Path:
    folder = Path(path or ".").expanduser()
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def build_timestamped_path(folder: PathLike, prefix: str, dt: datetime | None = None, suffix: str = "pkl") -> Path:
    stamp = (dt or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return ensure_directory(folder) / "{}_{}.{}".format(prefix, stamp, suffix.lstrip("."))


def save_pickle(data: object, path: PathLike) -> Path:
    """Write ``data`` to ``path`` through a sibling temp file so readers never see a partial file."""
    target = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=target.name, suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            pickle.dump(data, f)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target


def load_pickle(path: PathLike) -> Any:
    with open(Path(path), "rb") as f:
        return pickle.load(f)
