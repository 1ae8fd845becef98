# Passgen: Legacy Module - Flat-file password store
#
# Layout, one directory per environment:
#   <vardir>/simp/environments/<env>/simp_autofiles/gen_passwd/
#       <identifier>            current password
#       <identifier>.salt       current salt
#       <identifier>.last       previous password
#       <identifier>.salt.last  previous salt
#
# Each file holds one value on its first line. Reads never repair
# anything; salt repair is the migrator's job.

import glob
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

SALT_FILE_RE = re.compile(r'\.salt(\.last)?$')
FILE_MODE = 0o660


def read_first_line(path: Union[str, Path]) -> str:
    """First line of ``path`` without its newline ('' if the file is empty).

    Lines that are not valid UTF-8 are decoded as Latin-1, which maps every
    byte to a character.
    """
    with open(path, "rb") as handle:
        line = handle.readline().rstrip(b"\r\n")
    try:
        return line.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("%s is not valid UTF-8, reading it as Latin-1", path)
        return line.decode("latin-1")


def write_value(path: Union[str, Path], value: str, mode: int = FILE_MODE) -> None:
    """Write ``value`` as the single line of ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(f"{value}\n")
        handle.flush()
    os.chmod(path, mode)


def salt_file_for(password_file: Union[str, Path]) -> Path:
    """Salt file paired with a password file (``x.last`` -> ``x.salt.last``)."""
    password_file = Path(password_file)
    name = password_file.name
    if name.endswith(".last"):
        return password_file.with_name(f"{name[:-len('.last')]}.salt.last")
    return password_file.with_name(f"{name}.salt")


class LegacyFileStore:
    """Read adapter for one environment's legacy password directory."""

    def __init__(self, key_dir: Union[str, Path]):
        self.key_dir = Path(key_dir)

    def password_file(self, identifier: str, last: bool = False) -> Path:
        name = f"{identifier}.last" if last else identifier
        return self.key_dir / name

    def salt_file(self, identifier: str, last: bool = False) -> Path:
        return salt_file_for(self.password_file(identifier, last))

    def lock_file(self) -> Path:
        return self.key_dir / ".migrate"

    def has_files(self, identifier: str) -> bool:
        """True when any regular file name in the directory starts with ``identifier``."""
        if not self.key_dir.is_dir():
            return False
        pattern = os.path.join(glob.escape(str(self.key_dir)), glob.escape(identifier) + "*")
        return any(os.path.isfile(path) for path in glob.glob(pattern))

    def read_pair(self, password_file: Path) -> Dict[str, str]:
        value = {"password": read_first_line(password_file)}
        salt_file = salt_file_for(password_file)
        value["salt"] = read_first_line(salt_file) if salt_file.is_file() else ""
        return value

    def get(self, identifier: str) -> Dict[str, Any]:
        """Password info for ``identifier`` (``identifier.last`` reads last).

        Returns ``{"value": {"password", "salt"}, "metadata": {}}`` or ``{}``
        when the password file does not exist.
        """
        password_file = self.key_dir / identifier
        if not password_file.is_file():
            return {}
        return {"value": self.read_pair(password_file), "metadata": {}}

    def names(self) -> List[str]:
        """Password file names, excluding salt files and directories."""
        if not self.key_dir.is_dir():
            return []
        return sorted(
            entry.name for entry in self.key_dir.iterdir()
            if entry.is_file()
            and not entry.name.startswith(".")
            and not SALT_FILE_RE.search(entry.name)
        )

    def list(self) -> Dict[str, Any]:
        """All password infos in the directory, or ``{}`` when there are none."""
        keys = {}
        for name in self.names():
            keys[name] = {"value": self.read_pair(self.key_dir / name), "metadata": {}}
        if not keys:
            return {}
        return {"keys": keys, "folders": []}

    def set(self, identifier: str, password: str, salt: str, backup: bool = True) -> None:
        """Write a password pair, moving the current pair to last first."""
        current = self.get(identifier)
        if backup and current:
            write_value(self.password_file(identifier, last=True), current["value"]["password"])
            write_value(self.salt_file(identifier, last=True), current["value"]["salt"])
        write_value(self.password_file(identifier), password)
        write_value(self.salt_file(identifier), salt)

    def remove_pair(self, password_file: Path) -> List[Path]:
        """Delete a password file and its salt file, returning what was removed.

        Directories sharing either name are left alone.
        """
        removed = []
        for path in (password_file, salt_file_for(password_file)):
            if path.is_file():
                path.unlink()
                removed.append(path)
        return removed

    def remove(self, identifier: str) -> List[Path]:
        """Delete current and last pairs for ``identifier``."""
        removed = self.remove_pair(self.password_file(identifier))
        removed.extend(self.remove_pair(self.password_file(identifier, last=True)))
        return removed


def legacy_environments(environments_dir: Union[str, Path]) -> List[str]:
    """Environments whose legacy directory holds at least one password file."""
    environments_dir = Path(environments_dir)
    if not environments_dir.is_dir():
        return []
    found = []
    for env_dir in sorted(environments_dir.iterdir()):
        if not env_dir.is_dir():
            continue
        store = LegacyFileStore(env_dir / "simp_autofiles" / "gen_passwd")
        if store.names():
            found.append(env_dir.name)
    return found


def open_legacy_store(settings, environment: Optional[str] = None) -> LegacyFileStore:
    """LegacyFileStore for ``environment`` (default: the settings' environment)."""
    return LegacyFileStore(settings.legacy_key_dir(environment))
