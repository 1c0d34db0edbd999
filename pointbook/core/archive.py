# pointbook/core/archive.py
"""
In-memory archive container and its zip encoding.

Layout:
    manifest.json
    points.json
    points.xlsx
    documents/<name>            original drawing binaries
    photos/<ordinal>_<title>_<document>.<ext>
    drawings/<document>-p<page>.png   (optional, rendered pages with markers)
"""
from __future__ import annotations

import json
import zipfile
import zlib
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Union

from pointbook.core.errors import FormatError

MANIFEST = "manifest.json"
POINTS = "points.json"
SPREADSHEET = "points.xlsx"
DOCUMENTS_DIR = "documents/"
PHOTOS_DIR = "photos/"
DRAWINGS_DIR = "drawings/"


def dump_json(obj: Any) -> bytes:
    return json.dumps(obj, indent=2, ensure_ascii=False).encode("utf-8")


@dataclass
class Archive:
    """Ordered mapping of entry name -> bytes."""

    entries: Dict[str, bytes] = field(default_factory=dict)

    def add(self, name: str, data: bytes) -> None:
        self.entries[name] = data

    def names(self, prefix: str = "") -> List[str]:
        return [n for n in self.entries if n.startswith(prefix)]

    def read_json(self, name: str) -> Any:
        """
        Parse a JSON entry.

        Raises:
            FormatError: entry missing or not valid JSON
        """
        if name not in self.entries:
            raise FormatError(f"Archive has no {name}")
        try:
            return json.loads(self.entries[name].decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FormatError(f"{name} is not valid JSON: {e}") from e

    # --------------------
    # Zip encoding
    # --------------------
    def to_bytes(self) -> bytes:
        buf = BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in self.entries.items():
                zf.writestr(name, data)
        return buf.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Archive":
        try:
            with zipfile.ZipFile(BytesIO(data)) as zf:
                entries = {
                    info.filename: zf.read(info)
                    for info in zf.infolist()
                    if not info.is_dir()
                }
        except (
            zipfile.BadZipFile,
            zipfile.LargeZipFile,
            zlib.error,
            EOFError,
            OSError,
            # encrypted or unsupported compression
            RuntimeError,
            NotImplementedError,
        ) as e:
            raise FormatError(f"Not a readable zip archive: {e}") from e
        return cls(entries=entries)

    def save(self, path: Union[str, Path]) -> Path:
        """Write atomically: temp file first, then rename over the target."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = target.with_suffix(target.suffix + ".tmp")
        tmp_file.write_bytes(self.to_bytes())
        tmp_file.replace(target)
        return target

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Archive":
        return cls.from_bytes(Path(path).read_bytes())
