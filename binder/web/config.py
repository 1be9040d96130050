"""
Configuration and startup security checks for Binder.

Why: Prevent accidental insecure deployments without burdening local
development. The guard only reads environment variables and raises
`SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os

from binder.storage.config import storage_dir_is_explicit


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod-like envs only):
    - DATABASE_URL / BINDER_DATABASE_URL must not explicitly disable TLS.
    - ATTACHMENTS_STORAGE_DIR must be set; the relative default depends on the
      working directory of the process.
    """
    env = os.getenv("BINDER_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    for key in ("BINDER_DATABASE_URL", "DATABASE_URL"):
        if "sslmode=disable" in os.getenv(key, ""):
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require."
            )

    if not storage_dir_is_explicit():
        raise SystemExit(
            "Refusing to start: ATTACHMENTS_STORAGE_DIR must be set to an absolute path in production."
        )
