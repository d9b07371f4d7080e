"""In-memory compilation output handed to the artifact consumer."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List

from .errors import CompilationError, SpriteError


@dataclass
class Artifact:
    path: str
    dest_path: Path
    contents: str

    def write(self) -> Path:
        self.dest_path.parent.mkdir(parents=True, exist_ok=True)
        self.dest_path.write_text(self.contents, encoding="utf-8")
        return self.dest_path


@dataclass
class CompileResult:
    artifacts: Dict[str, Dict[str, Artifact]] = field(default_factory=dict)
    errors: List[SpriteError] = field(default_factory=list)
    shapes: List = field(default_factory=list)

    @property
    def status(self) -> str:
        if not self.errors:
            return "ok"
        if any(self.artifacts.values()):
            return "partial"
        return "failed"

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def __iter__(self) -> Iterator[Artifact]:
        for group in self.artifacts.values():
            yield from group.values()

    def raise_for_status(self) -> None:
        if self.status != "failed":
            return
        details = "; ".join(str(err) for err in self.errors)
        raise CompilationError(f"sprite compilation produced no output: {details}")

    def write(self) -> List[Path]:
        return [artifact.write() for artifact in self]
