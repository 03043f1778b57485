from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import MoleculeImportError


def file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass(frozen=True)
class ImportRecord:
    file_name: str
    path: str
    file_sha256: str
    imported_at: str
    counts: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def for_source(cls, source_path: Path, counts: Mapping[str, int]) -> "ImportRecord":
        return cls(
            file_name=source_path.name,
            path=str(source_path.resolve()),
            file_sha256=file_sha256(source_path),
            imported_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            counts=dict(counts),
        )


class ImportManifest:
    """Remembers the last export that was imported successfully.

    The file holds a single ``{"last_import": {...}}`` object; a missing file
    means nothing has been imported yet.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.record: Optional[ImportRecord] = self._read()

    def _read(self) -> Optional[ImportRecord]:
        if not self.path.exists():
            return None
        try:
            entry = json.loads(self.path.read_text(encoding="utf-8")).get("last_import")
            return ImportRecord(**entry) if entry else None
        except (json.JSONDecodeError, AttributeError, TypeError) as exc:
            raise MoleculeImportError(f"Unreadable import manifest {self.path}: {exc}") from exc

    def last_import(self) -> Optional[Dict[str, Any]]:
        return asdict(self.record) if self.record else None

    def is_last_import(self, source_path: Path) -> bool:
        """True when ``source_path`` has the same content as the last imported export."""
        return self.record is not None and self.record.file_sha256 == file_sha256(source_path)

    def record_import(self, source_path: Path, counts: Mapping[str, int]) -> Dict[str, Any]:
        self.record = ImportRecord.for_source(source_path, counts)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"last_import": asdict(self.record)}, indent=2), encoding="utf-8")
        return asdict(self.record)
