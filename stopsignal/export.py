from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from taskcore.config import SSTConfig
from taskcore.fileio import PathLike, build_timestamped_path, save_pickle

from .models import Results, SessionMeta, Trial


DEFAULT_PREFIX = "FireFlySST"


def build_session_package(
    meta: SessionMeta,
    results: Results,
    trials: Iterable[Trial],
    config: Optional[SSTConfig] = None,
) -> Dict[str, Any]:
    """Bundle one finished session into the record handed to the upload side.

    The package is built in one step so a consumer never sees results
    without their trials.
    """
    package: Dict[str, Any] = {
        "package_id": str(uuid.uuid4()),
        "session": meta.to_dict(),
        "results": results.to_dict(),
        "trials": [trial.to_dict() for trial in trials],
    }
    if config is not None:
        package["config"] = config.to_dict()
    return package


def save_session_package(
    package: Dict[str, Any],
    folder: PathLike = ".",
    prefix: str = DEFAULT_PREFIX,
    dt: Optional[datetime] = None,
) -> Path:
    path = build_timestamped_path(folder=folder, prefix=prefix, dt=dt, suffix="pkl")
    return save_pickle(package, path)
