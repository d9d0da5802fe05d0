"""EBM scene reconstruction.

Rebuilds skeletons, skinned/static meshes, materials with decoded DDS
textures and animation clips from a decoded EBM container.

    from ebm_import import reconstruct
    scene = reconstruct(container)
"""

__version__ = "0.1.0"

from .ebm_format.ebm_records import (
    AnimationRecord, BoneRecord, BoneTrackRecord, Container, InfluenceRecord,
    MaterialRecord, MeshRecord, RotationKey, SkeletonRecord, TranslationKey,
)
from .format_profiles import FormatProfile, detect_profile, get_profile, register_profile
from .importer.import_ebm import reconstruct
from .scene_graph.sg_classes import SceneRoot
