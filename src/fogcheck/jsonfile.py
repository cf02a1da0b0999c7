"""JSON record files — 2-space indent, trailing newline, replaced atomically."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_json(path: Path, record: Any) -> None:
    """Write ``record`` to ``path`` via a sibling temp file and ``os.replace``.

    Readers never see a half-written file; on failure the previous content
    stays in place.
    """
    payload = json.dumps(record, indent=2) + "\n"
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
