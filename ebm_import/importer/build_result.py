"""Tagged outcomes for the per-item builders.

Every builder returns a BuildResult instead of raising: ``ok`` for a clean
build, ``degraded`` when a stand-in (fallback texture, placeholder mesh,
static mesh instead of skinned, root bone instead of child) was substituted.
The reason string says what went wrong.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class BuildResult(Generic[T]):
    artifact: T
    reason: Optional[str] = None

    @classmethod
    def ok(cls, artifact):
        return cls(artifact)

    @classmethod
    def degraded(cls, artifact, reason):
        return cls(artifact, reason)

    @property
    def is_ok(self) -> bool:
        return self.reason is None

    @property
    def is_degraded(self) -> bool:
        return self.reason is not None


@dataclass
class ImportReport:
    """Summary of one reconstruction, attached to the scene as ``report``."""
    format_tag: int = 0
    profile_id: str = ""
    bones: int = 0
    materials: int = 0
    fallback_textures: int = 0
    meshes: int = 0
    skinned_meshes: int = 0
    placeholders: int = 0
    clips: int = 0
    elapsed: float = 0.0
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def status(self) -> str:
        """"success" | "partial" | "error"."""
        if self.error is not None:
            return "error"
        if self.warnings:
            return "partial"
        return "success"


def artifacts(results: List[BuildResult[Any]]) -> List[Any]:
    """Unwrap a list of results into their artifacts, preserving order."""
    return [r.artifact for r in results]
