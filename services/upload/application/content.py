from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable, Dict

_UTF8_BOM = b"\xef\xbb\xbf"


def _strip_utf8_bom(path: Path) -> None:
    with path.open("rb") as file_obj:
        prefix = file_obj.read(len(_UTF8_BOM))
    if prefix != _UTF8_BOM:
        return
    stripped = path.with_name(f".{path.name}.nobom")
    with path.open("rb") as src, stripped.open("wb") as dest:
        src.seek(len(_UTF8_BOM))
        shutil.copyfileobj(src, dest)
    os.replace(stripped, path)


_PROCESSORS: Dict[str, Callable[[Path], None]] = {
    "text/csv": _strip_utf8_bom,
}


def normalize_artifact(path: Path, content_type: str) -> int:
    """Apply per content type fixups in place and return the resulting size."""
    processor = _PROCESSORS.get(content_type.split(";")[0].strip().lower())
    if processor is not None:
        processor(path)
    return path.stat().st_size
