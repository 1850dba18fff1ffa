"""Runtime settings for splitwrangler, read from ``SPLITWRANGLER_*`` variables."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

ENV_PREFIX = "SPLITWRANGLER_"


def _read(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(f"{ENV_PREFIX}{name}")
    if value is None:
        return None
    value = value.strip()
    return value or None


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _read(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {value}")
    return value


def _positive_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = _read(env, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {value}")
    return value


@dataclass
class SplitSettings:
    """
    Process-wide configuration for the split service.

    Attributes:
        max_workers: Size of the thread pool running asynchronous jobs
        job_retention_seconds: How long terminal jobs and their files are kept
        job_timeout_seconds: Optional per-job time budget
        temp_dir: Root directory for job workspaces (system temp if unset)
        max_upload_mb: Largest accepted source document
        default_threshold_mb: Threshold used by ``fileSize`` when none is given
        failure_policy: ``abort`` or ``continue``
        log_level: Level applied to the ``splitwrangler`` logger
        sweep_interval_seconds: Period of the background expiry sweeper
    """

    max_workers: int = 4
    job_retention_seconds: float = 3600.0
    job_timeout_seconds: Optional[float] = None
    temp_dir: Optional[Path] = None
    max_upload_mb: int = 100
    default_threshold_mb: float = 10.0
    failure_policy: str = "abort"
    log_level: str = "INFO"
    sweep_interval_seconds: float = 300.0

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def workspace_root(self) -> Path:
        return self.temp_dir or Path(tempfile.gettempdir()) / "splitwrangler"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "SplitSettings":
        """Build settings from the environment, raising ``ValueError`` on bad values."""

        env = os.environ if env is None else env

        failure_policy = (_read(env, "FAILURE_POLICY") or "abort").lower()
        if failure_policy not in {"abort", "continue"}:
            raise ValueError(
                f"{ENV_PREFIX}FAILURE_POLICY must be 'abort' or 'continue', got {failure_policy!r}"
            )

        log_level = (_read(env, "LOG_LEVEL") or "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"{ENV_PREFIX}LOG_LEVEL is not a valid level: {log_level!r}")

        temp_dir = _read(env, "TEMP_DIR")

        return cls(
            max_workers=_positive_int(env, "MAX_WORKERS", 4),
            job_retention_seconds=_positive_float(env, "JOB_RETENTION_SECONDS", 3600.0),
            job_timeout_seconds=_positive_float(env, "JOB_TIMEOUT_SECONDS", None),
            temp_dir=Path(temp_dir) if temp_dir else None,
            max_upload_mb=_positive_int(env, "MAX_UPLOAD_MB", 100),
            default_threshold_mb=_positive_float(env, "DEFAULT_THRESHOLD_MB", 10.0),
            failure_policy=failure_policy,
            log_level=log_level,
            sweep_interval_seconds=_positive_float(env, "SWEEP_INTERVAL_SECONDS", 300.0),
        )


__all__ = ["ENV_PREFIX", "SplitSettings"]
