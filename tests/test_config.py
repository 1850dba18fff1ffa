from __future__ import annotations

from pathlib import Path

import pytest

from splitwrangler.config import SplitSettings


def test_defaults_without_environment() -> None:
    settings = SplitSettings.from_env({})

    assert settings.max_workers == 4
    assert settings.job_retention_seconds == 3600.0
    assert settings.job_timeout_seconds is None
    assert settings.temp_dir is None
    assert settings.max_upload_bytes == 100 * 1024 * 1024
    assert settings.default_threshold_mb == 10.0
    assert settings.failure_policy == "abort"
    assert settings.log_level == "INFO"
    assert settings.workspace_root.name == "splitwrangler"


def test_environment_overrides(tmp_path: Path) -> None:
    settings = SplitSettings.from_env(
        {
            "SPLITWRANGLER_MAX_WORKERS": "2",
            "SPLITWRANGLER_JOB_TIMEOUT_SECONDS": "30",
            "SPLITWRANGLER_TEMP_DIR": str(tmp_path),
            "SPLITWRANGLER_MAX_UPLOAD_MB": "5",
            "SPLITWRANGLER_FAILURE_POLICY": "Continue",
            "SPLITWRANGLER_LOG_LEVEL": "debug",
            "SPLITWRANGLER_DEFAULT_THRESHOLD_MB": " ",
        }
    )

    assert settings.max_workers == 2
    assert settings.job_timeout_seconds == 30.0
    assert settings.workspace_root == tmp_path
    assert settings.max_upload_bytes == 5 * 1024 * 1024
    assert settings.failure_policy == "continue"
    assert settings.log_level == "DEBUG"
    assert settings.default_threshold_mb == 10.0


@pytest.mark.parametrize(
    "name, value",
    [
        ("MAX_WORKERS", "zero"),
        ("MAX_WORKERS", "0"),
        ("JOB_RETENTION_SECONDS", "-5"),
        ("FAILURE_POLICY", "retry"),
        ("LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_values_raise(name: str, value: str) -> None:
    with pytest.raises(ValueError):
        SplitSettings.from_env({f"SPLITWRANGLER_{name}": value})
