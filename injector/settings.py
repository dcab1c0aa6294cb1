from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return tuple(raw.split())


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("INJECTOR_DB_PATH", "injector.db")
    # Empty string watches every namespace.
    namespace: str = os.getenv("INJECTOR_NAMESPACE", "")
    enable_watch: bool = _env_bool("INJECTOR_ENABLE_WATCH", True)
    watch_timeout_s: int = _env_int("INJECTOR_WATCH_TIMEOUT_S", 300)
    requeue_delay_s: float = _env_float("INJECTOR_REQUEUE_DELAY_S", 1.0)

    # Sidecar policy
    sidecar_suffix: str = os.getenv("INJECTOR_SIDECAR_SUFFIX", "-sidecar")
    sidecar_image: str = os.getenv("INJECTOR_SIDECAR_IMAGE", "busybox")
    sidecar_command: tuple[str, ...] = _env_list("INJECTOR_SIDECAR_COMMAND", ("sleep",))
    sidecar_args: tuple[str, ...] = _env_list("INJECTOR_SIDECAR_ARGS", ("36000",))


settings = Settings()
