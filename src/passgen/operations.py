"""
Public entry points.

``passgen()`` is the main call: it validates the options, migrates any
legacy files for the identifier, then returns the current (or last)
password, optionally as a modular crypt hash.

The remaining functions operate on whichever store is active
(``settings.use_kv``): the KV backend or the legacy directory.
"""

import logging
from typing import Any, Dict, List, Optional

from .core.config import PassgenSettings, get_settings
from .core.exceptions import GenerationTimeout, ValidationError
from .crypt import crypt_password
from .generator import RandomPasswordGenerator
from .kv.base import KVStore
from .kv.factory import build_store
from .legacy.file_store import legacy_environments, open_legacy_store
from .legacy.migrator import LegacyMigrator
from .lifecycle import PasswordLifecycleManager
from .options import build_options, validate_identifier

logger = logging.getLogger(__name__)

ENVIRONMENT_KINDS = ("all", "kv_only", "legacy_only")


def _settings(settings: Optional[PassgenSettings]) -> PassgenSettings:
    return settings or get_settings()


def _store(settings: PassgenSettings, kv_options: Optional[Dict[str, Any]],
           store: Optional[KVStore]) -> KVStore:
    if store is not None:
        return store
    return build_store(kv_options if kv_options is not None else settings.kv_options)


def passgen(
    identifier: str,
    password_options: Optional[Dict[str, Any]] = None,
    kv_options: Optional[Dict[str, Any]] = None,
    settings: Optional[PassgenSettings] = None,
    store: Optional[KVStore] = None,
    generator: Optional[RandomPasswordGenerator] = None,
) -> str:
    """Generate or retrieve the password for ``identifier``.

    Args:
        identifier: Password slot name (``[A-Za-z0-9._:/-]``).
        password_options: ``last``, ``length``, ``hash``, ``complexity``,
            ``complex_only``, ``gen_timeout_seconds``.
        kv_options: Backend options (default: ``settings.kv_options``).
        settings: Key root, legacy layout and defaults.
        store: Explicit backend, bypassing ``kv_options``.
        generator: Random string generator override.

    Returns:
        The password, or its modular crypt hash when ``hash`` is set.

    Raises:
        ValidationError: Bad identifier or options (before any side effect).
        GenerationTimeout: Generation timed out.
        LockTimeout: The legacy migration lock was not acquired in time.
        BackendError: A backend call failed.
    """
    settings = _settings(settings)
    validate_identifier(identifier)
    options = build_options(password_options, settings)
    store = _store(settings, kv_options, store)

    manager = PasswordLifecycleManager(store, generator=generator, settings=settings)
    migrator = LegacyMigrator(open_legacy_store(settings), manager)

    try:
        migrator.migrate(identifier, options)
        if options.last:
            password, salt = manager.get_last(identifier, options)
        else:
            password, salt = manager.get_current(identifier, options)
    except GenerationTimeout as e:
        raise type(e)(
            f"passgen timed out for '{identifier}'!", identifier=identifier
        ) from e

    if options.hash:
        return crypt_password(password, salt, options.hash, settings.crypt_map)
    return password


def get_password(
    identifier: str,
    kv_options: Optional[Dict[str, Any]] = None,
    settings: Optional[PassgenSettings] = None,
    store: Optional[KVStore] = None,
) -> Dict[str, Any]:
    """Stored password info ``{"value": {...}, "metadata": {...}}`` or ``{}``."""
    settings = _settings(settings)
    validate_identifier(identifier)
    if not settings.use_kv:
        return open_legacy_store(settings).get(identifier)

    record = _store(settings, kv_options, store).get(settings.current_key(identifier))
    return record.to_dict() if record else {}


def set_password(
    identifier: str,
    password: str,
    salt: str,
    password_options: Optional[Dict[str, Any]] = None,
    backup: bool = True,
    kv_options: Optional[Dict[str, Any]] = None,
    settings: Optional[PassgenSettings] = None,
    store: Optional[KVStore] = None,
) -> None:
    """Store an externally supplied password and salt as current."""
    settings = _settings(settings)
    validate_identifier(identifier)
    if not password or not salt:
        raise ValidationError("Password and salt must be non-empty strings")
    options = build_options(password_options, settings)

    if not settings.use_kv:
        open_legacy_store(settings).set(identifier, password, salt, backup=backup)
        return

    manager = PasswordLifecycleManager(_store(settings, kv_options, store), settings=settings)
    manager.set(identifier, password, salt, options, backup=backup)


def remove_password(
    identifier: str,
    kv_options: Optional[Dict[str, Any]] = None,
    settings: Optional[PassgenSettings] = None,
    store: Optional[KVStore] = None,
) -> None:
    """Delete the current and last passwords for ``identifier``."""
    settings = _settings(settings)
    validate_identifier(identifier)
    if not settings.use_kv:
        open_legacy_store(settings).remove(identifier)
        return

    manager = PasswordLifecycleManager(_store(settings, kv_options, store), settings=settings)
    manager.remove(identifier)


def list_passwords(
    folder: Optional[str] = None,
    kv_options: Optional[Dict[str, Any]] = None,
    settings: Optional[PassgenSettings] = None,
    store: Optional[KVStore] = None,
) -> Dict[str, Any]:
    """Current passwords under ``folder`` (``*.last`` entries are dropped).

    Returns ``{"keys": {name: info}, "folders": [...]}`` or ``{}``.
    """
    settings = _settings(settings)
    if not settings.use_kv:
        results = open_legacy_store(settings).list()
    else:
        key_dir = settings.key_root_dir
        if folder:
            validate_identifier(folder)
            key_dir = f"{key_dir}/{folder}"
        kv_store = _store(settings, kv_options, store)
        listing = kv_store.list(key_dir) if kv_store.exists(key_dir) else None
        results = listing.to_dict() if listing else {}

    if results.get("keys"):
        results["keys"] = {
            name: info for name, info in results["keys"].items()
            if not name.endswith(".last")
        }
    return results


def environments(
    kind: str = "all",
    kv_options: Optional[Dict[str, Any]] = None,
    settings: Optional[PassgenSettings] = None,
    store: Optional[KVStore] = None,
) -> List[str]:
    """Environments holding passwords, sorted and unique.

    Args:
        kind: ``all``, ``kv_only`` or ``legacy_only``.
    """
    if kind not in ENVIRONMENT_KINDS:
        raise ValidationError(
            f"Environment kind '{kind}' must be one of {', '.join(ENVIRONMENT_KINDS)}"
        )
    settings = _settings(settings)
    found = []
    if kind in ("all", "legacy_only"):
        found.extend(legacy_environments(settings.legacy_environments_dir()))
    if kind in ("all", "kv_only"):
        found.extend(_kv_environments(settings, kv_options, store))
    return sorted(set(found))


def _kv_environments(settings, kv_options, store) -> List[str]:
    top = _store(settings, kv_options, store).bind(environment="", softfail=True)
    found = []
    for env in top.list("").folders:
        listing = top.bind(environment=env).list(settings.key_root_dir)
        if listing.keys:
            found.append(env)
    return found
