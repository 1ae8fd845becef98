# Passgen: KV Backend - Local Filesystem
#
# One JSON document per key under a root directory:
#   <root>/<environment>/<key>.json
# Folders are plain directories, so a key and a folder of the same name
# can coexist ("gen_passwd/app" and "gen_passwd/app/db").
#
# Writes go to a temp file in the target directory and are moved into
# place with os.replace, so readers never see a partial record.
# With an encryption key, documents are sealed with Fernet at rest.

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from ..core.exceptions import BackendError
from .base import KVListing, KVRecord, KVStore

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"
FILE_MODE = 0o640


class FileStore(KVStore):
    """Filesystem-backed key/value store."""

    type_name = "file"

    def __init__(
        self,
        root: Union[str, Path],
        store_id: str = "default",
        environment: str = "",
        softfail: bool = False,
        encryption_key: Optional[Union[str, bytes]] = None,
    ):
        super().__init__(store_id, environment, softfail)
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._cipher = Fernet(encryption_key) if encryption_key else None

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _record_path(self, full_key: str) -> Path:
        return self.root / f"{full_key}{RECORD_SUFFIX}"

    def _folder_path(self, full_key: str) -> Path:
        return self.root / full_key if full_key else self.root

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _encode(self, record: KVRecord) -> bytes:
        data = json.dumps(record.to_dict(), sort_keys=True).encode("utf-8")
        if self._cipher:
            return self._cipher.encrypt(data)
        return data

    def _decode(self, path: Path) -> KVRecord:
        data = path.read_bytes()
        if self._cipher:
            try:
                data = self._cipher.decrypt(data)
            except InvalidToken as e:
                raise BackendError(f"Cannot decrypt record {path}") from e
        return KVRecord.from_dict(json.loads(data.decode("utf-8"))) or KVRecord()

    def _atomic_write(self, path: Path, payload: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as tmp_handle:
                tmp_handle.write(payload)
                tmp_handle.flush()
                os.fsync(tmp_handle.fileno())
            os.chmod(tmp_path, FILE_MODE)
            os.replace(tmp_path, str(path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    def _exists(self, full_key: str) -> bool:
        return self._record_path(full_key).is_file() or self._folder_path(full_key).is_dir()

    def _get(self, full_key: str) -> Optional[KVRecord]:
        path = self._record_path(full_key)
        if not path.is_file():
            return None
        return self._decode(path)

    def _put(self, full_key: str, record: KVRecord) -> bool:
        self._atomic_write(self._record_path(full_key), self._encode(record))
        return True

    def _list(self, full_key: str) -> KVListing:
        folder = self._folder_path(full_key)
        listing = KVListing()
        if not folder.is_dir():
            return listing
        for entry in sorted(folder.iterdir()):
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                listing.folders.append(entry.name)
            elif entry.name.endswith(RECORD_SUFFIX):
                name = entry.name[:-len(RECORD_SUFFIX)]
                listing.keys[name] = self._decode(entry)
        return listing

    def _delete(self, full_key: str) -> bool:
        path = self._record_path(full_key)
        if path.is_file():
            path.unlink()
        return True

    def _delete_tree(self, full_key: str) -> bool:
        self._delete(full_key)
        folder = self._folder_path(full_key)
        if full_key and folder.is_dir():
            shutil.rmtree(folder)
        elif not full_key and folder.is_dir():
            for entry in folder.iterdir():
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
        return True
