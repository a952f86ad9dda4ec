"""Reading and writing the persisted store document."""

import json
import os
import tempfile
from pathlib import Path

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.exceptions import ErrorCode, PersistenceError
from src.vectorstore.models import SNAPSHOT_VERSION, StoreSnapshot, VectorEntry

_LEGACY_ENTRIES = TypeAdapter(list[VectorEntry])


class SnapshotFile:
    """One JSON document holding every entry of a store.

    Layout: `{"version": 1, "entries": [...]}`. A bare JSON array of
    entries (the unversioned layout) is read as version 0.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        """Whether a document has been written."""
        return self.path.is_file()

    def read(self) -> list[VectorEntry]:
        """Decode all entries.

        Raises:
            PersistenceError: If the file cannot be read, is not valid
                JSON, does not match the entry schema, or was written by
                a newer format version.
        """
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise PersistenceError(
                f"Cannot read store document: {e}",
                code=ErrorCode.PERSISTENCE_READ_ERROR,
                details={"path": str(self.path)},
            ) from e

        try:
            document = json.loads(raw)
            if isinstance(document, list):
                return _LEGACY_ENTRIES.validate_python(document)

            snapshot = StoreSnapshot.model_validate(document)
        except (ValueError, PydanticValidationError) as e:
            raise PersistenceError(
                f"Malformed store document: {e}",
                code=ErrorCode.SNAPSHOT_DECODE_ERROR,
                details={"path": str(self.path)},
            ) from e

        if snapshot.version > SNAPSHOT_VERSION:
            raise PersistenceError(
                f"Unsupported store document version {snapshot.version}",
                code=ErrorCode.SNAPSHOT_VERSION_UNSUPPORTED,
                details={"path": str(self.path), "version": snapshot.version},
            )
        return snapshot.entries

    def write(self, entries: list[VectorEntry]) -> None:
        """Replace the document atomically.

        The snapshot is written to a temporary file next to the target
        and renamed over it, so readers never see a partial document.

        Raises:
            PersistenceError: If the document cannot be written.
        """
        payload = StoreSnapshot(entries=entries).model_dump_json()
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(
                f"Cannot write store document: {e}",
                code=ErrorCode.PERSISTENCE_WRITE_ERROR,
                details={"path": str(self.path)},
            ) from e

    def delete(self) -> None:
        """Remove the document if present.

        Raises:
            PersistenceError: If an existing document cannot be removed.
        """
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Cannot delete store document: {e}",
                code=ErrorCode.PERSISTENCE_WRITE_ERROR,
                details={"path": str(self.path)},
            ) from e
