from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class File:
    """Named file content sent to the services as a multipart part."""

    name: str
    content: bytes

    @classmethod
    def from_path(cls, path: str | Path) -> File:
        source = Path(path)
        return cls(name=source.name, content=source.read_bytes())

    @classmethod
    def from_content_with_name(cls, content: bytes, name: str) -> File:
        return cls(name=name, content=bytes(content))
