"""
Cache entry envelopes and invalidation dependencies.

Backends store every value inside a small JSON envelope so that an entry can
carry a dependency which is re-checked on read. The only dependency kind is a
file fingerprint (modification time and size), which drops a cached
hierarchy as soon as the file on disk changes.
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class FileDependency:
    """Invalidates a cache entry when the file at ``path`` changes."""
    path: str
    fingerprint: Optional[str] = None

    @classmethod
    def for_file(cls, path: str) -> "FileDependency":
        """Capture the current fingerprint of ``path``."""
        return cls(path=path, fingerprint=cls.current_fingerprint(path))

    @staticmethod
    def current_fingerprint(path: str) -> Optional[str]:
        try:
            stat = os.stat(path)
        except OSError:
            return None
        return f"{stat.st_mtime_ns}:{stat.st_size}"

    def has_changed(self) -> bool:
        return self.current_fingerprint(self.path) != self.fingerprint

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "file", "path": self.path, "fingerprint": self.fingerprint}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileDependency":
        if not isinstance(data, dict) or data.get("type") != "file" or "path" not in data:
            raise ValueError(f"Unknown cache dependency: {data!r}")
        return cls(path=data["path"], fingerprint=data.get("fingerprint"))


def encode_entry(value: Any, dependency: Optional[FileDependency] = None) -> str:
    """Serialize a cache value and its dependency."""
    return json.dumps({
        "value": value,
        "dependency": dependency.to_dict() if dependency else None,
    })


def decode_entry(raw: Any) -> Tuple[Any, Optional[FileDependency]]:
    """Deserialize an entry written by :func:`encode_entry`.

    Raises ``ValueError`` for anything that is not a well-formed envelope.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    envelope = json.loads(raw)
    if not isinstance(envelope, dict) or "value" not in envelope:
        raise ValueError("Cache entry is not an envelope")

    dependency = envelope.get("dependency")
    return envelope["value"], FileDependency.from_dict(dependency) if dependency else None
