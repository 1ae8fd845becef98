# Passgen: Core Module - Configuration
#
# Explicit settings passed into every lifecycle call: key root, legacy
# directory layout, environment name and backend options.
# Values come from environment variables (optionally a .env file) with
# the defaults below.

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULT_KEY_ROOT_DIR = "gen_passwd"
DEFAULT_VARDIR = "/var/lib/passgen"
DEFAULT_ENVIRONMENT = "production"
DEFAULT_APP_ID = "passgen"

MIN_PASSWORD_LENGTH = 8
DEFAULT_PASSWORD_LENGTH = 32
SALT_LENGTH = 16
DEFAULT_GEN_TIMEOUT_SECONDS = 30

# Modular crypt algorithm codes
CRYPT_MAP = {
    "md5": "1",
    "sha256": "5",
    "sha512": "6",
}


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def default_kv_options(vardir: str, environment: str) -> Dict[str, Any]:
    """Build libkv-style backend options from environment variables."""
    backend_type = os.environ.get("PASSGEN_KV_BACKEND", "file").lower()
    backend: Dict[str, Any] = {"type": backend_type, "id": "default"}
    if backend_type in ("file", "sqlite"):
        default_path = str(Path(vardir) / "kv")
        if backend_type == "sqlite":
            default_path = str(Path(vardir) / "kv.db")
        backend["path"] = os.environ.get("PASSGEN_KV_PATH", default_path)
    elif backend_type == "http":
        backend["url"] = os.environ.get("PASSGEN_KV_URL", "http://127.0.0.1:8000")
        token = os.environ.get("PASSGEN_API_TOKEN")
        if token:
            backend["token"] = token

    encryption_key = os.environ.get("PASSGEN_KV_ENCRYPTION_KEY")
    if encryption_key and backend_type == "file":
        backend["encryption_key"] = encryption_key

    return {
        "app_id": DEFAULT_APP_ID,
        "environment": environment,
        "softfail": False,
        "backend": "default",
        "backends": {"default": backend},
    }


@dataclass
class PassgenSettings:
    """Settings shared by every passgen operation."""

    key_root_dir: str = DEFAULT_KEY_ROOT_DIR
    vardir: str = DEFAULT_VARDIR
    environment: str = DEFAULT_ENVIRONMENT
    use_kv: bool = True
    min_password_length: int = MIN_PASSWORD_LENGTH
    default_password_length: int = DEFAULT_PASSWORD_LENGTH
    crypt_map: Dict[str, str] = field(default_factory=lambda: dict(CRYPT_MAP))
    kv_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.kv_options:
            self.kv_options = default_kv_options(self.vardir, self.environment)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "PassgenSettings":
        """Build settings from PASSGEN_* environment variables."""
        load_dotenv(env_file)
        vardir = os.environ.get("PASSGEN_VARDIR", DEFAULT_VARDIR)
        environment = os.environ.get("PASSGEN_ENVIRONMENT", DEFAULT_ENVIRONMENT)
        return cls(
            key_root_dir=os.environ.get("PASSGEN_KEY_ROOT", DEFAULT_KEY_ROOT_DIR),
            vardir=vardir,
            environment=environment,
            use_kv=_env_bool("PASSGEN_USE_KV", True),
            kv_options=default_kv_options(vardir, environment),
        )

    def with_environment(self, environment: str) -> "PassgenSettings":
        """Copy of these settings bound to another environment."""
        kv_options = dict(self.kv_options)
        kv_options["environment"] = environment
        return replace(self, environment=environment, kv_options=kv_options)

    def legacy_environments_dir(self) -> Path:
        return Path(self.vardir) / "simp" / "environments"

    def legacy_key_dir(self, environment: Optional[str] = None) -> Path:
        """Directory holding legacy password files for an environment."""
        env = environment or self.environment
        return self.legacy_environments_dir() / env / "simp_autofiles" / "gen_passwd"

    def current_key(self, identifier: str) -> str:
        return f"{self.key_root_dir}/{identifier}"

    def last_key(self, identifier: str) -> str:
        return f"{self.key_root_dir}/{identifier}.last"


_settings: Optional[PassgenSettings] = None


def get_settings() -> PassgenSettings:
    """Get global settings (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = PassgenSettings.from_env()
    return _settings


def set_settings(settings: Optional[PassgenSettings]) -> None:
    """Replace the global settings (None resets to environment defaults)."""
    global _settings
    _settings = settings
