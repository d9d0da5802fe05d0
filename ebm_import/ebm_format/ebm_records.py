"""Typed records for one decoded EBM container.

The byte-level reader lives outside this package; it fills these records
and hands a Container to ``importer.import_ebm.reconstruct``. Nothing here
parses bytes.

Conventions (as stored in the container):
    Matrices:     16 floats, column-major (translation in elements 12..14).
    Colors:       (c0, c1, c2, c3) in file order. Diffuse is stored B, G, R, A.
    Quaternions:  (x, y, z, w).
    Times:        seconds.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .ebm_constants import ROOT_PARENT_INDEX


IDENTITY_MATRIX = (
    1.0, 0.0, 0.0, 0.0,
    0.0, 1.0, 0.0, 0.0,
    0.0, 0.0, 1.0, 0.0,
    0.0, 0.0, 0.0, 1.0,
)


@dataclass
class BoneRecord:
    """A single bone as stored in the skeleton table."""
    name: str
    parent_index: int = ROOT_PARENT_INDEX
    bone_space_matrix: Tuple[float, ...] = IDENTITY_MATRIX          # world -> bone (inverse bind)
    parent_bone_space_matrix: Tuple[float, ...] = IDENTITY_MATRIX   # parent's bone -> world (bind)

    @property
    def is_root(self) -> bool:
        return self.parent_index == ROOT_PARENT_INDEX


@dataclass
class SkeletonRecord:
    bones: List[BoneRecord] = field(default_factory=list)


@dataclass
class InfluenceRecord:
    """Vertices deformed by one bone (parallel arrays)."""
    vertex_indices: List[int] = field(default_factory=list)
    weights: List[float] = field(default_factory=list)


@dataclass
class MeshRecord:
    """One submesh from the geometry table."""
    name: str
    vertex_count: int
    positions: List[float] = field(default_factory=list)
    normals: Optional[List[float]] = None
    uvs: Optional[List[float]] = None
    face_indices: List[int] = field(default_factory=list)
    influence_count: int = 0
    influences: List[InfluenceRecord] = field(default_factory=list)   # indexed by bone
    material_index: int = 0


@dataclass
class MaterialRecord:
    diffuse: Tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)   # B, G, R, A
    specular: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    texture_id: str = ""
    texture_blob: bytes = b""


@dataclass
class TranslationKey:
    time: float
    position: Tuple[float, float, float]


@dataclass
class RotationKey:
    time: float
    quaternion: Tuple[float, float, float, float]   # x, y, z, w


@dataclass
class BoneTrackRecord:
    """Keyframes for one bone within an animation."""
    bone_name: str
    translations: List[TranslationKey] = field(default_factory=list)
    rotations: List[RotationKey] = field(default_factory=list)


@dataclass
class AnimationRecord:
    name: str
    tracks: List[BoneTrackRecord] = field(default_factory=list)


@dataclass
class Container:
    """One decoded EBM asset."""
    format_tag: int
    skeleton: SkeletonRecord = field(default_factory=SkeletonRecord)
    meshes: List[MeshRecord] = field(default_factory=list)
    materials: List[MaterialRecord] = field(default_factory=list)
    animations: List[AnimationRecord] = field(default_factory=list)
