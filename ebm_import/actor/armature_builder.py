"""Build the bone forest from EBM skeleton records.

Each BoneRecord stores its bind pose as a bone-space (world -> bone)
matrix, so the bone's world bind transform is its inverse. Local
transforms are relative to the parent bone:

    root:   local = world
    child:  local = parent_bone_space^{-1} @ world

where parent_bone_space is the record's parent matrix, the parent bone's
bone -> world bind transform. The local matrix is decomposed into the
bone's position / rotation / scale.

Bones live in an arena indexed by record position. Parents are resolved
in a separate pass, so a child may come before its parent in the table as
long as the index is valid. Broken links (out of range, self, cycles) and
singular matrices are data-integrity faults: the bone is kept, made a root
or given identity, and the result is reported as degraded.
"""

import logging
from typing import List, Optional

from mathutils import Matrix

from ..importer.build_result import BuildResult
from ..scene_graph.sg_classes import Bone, Skeleton


_log = logging.getLogger("ebm_skeleton")


def build_skeleton(bone_records) -> BuildResult[Skeleton]:
    """Build a Skeleton whose bones are index-aligned with bone_records.

    Args:
        bone_records: ordered list of BoneRecord.

    Returns:
        BuildResult[Skeleton]; degraded if any bone had to be repaired.
    """
    problems = []

    # Pass 1: arena of bones with world bind transforms
    bones = []
    for i, rec in enumerate(bone_records):
        bone = Bone(rec.name, index=i)
        try:
            bone.world_bind = _tuple_to_matrix(rec.bone_space_matrix).inverted()
        except ValueError as e:
            problems.append(f"bone {i} '{rec.name}': unusable bone-space matrix ({e}), using identity")
            bone.world_bind = Matrix.Identity(4)
        bones.append(bone)

    # Pass 2: parent links
    parents = _resolve_parents(bone_records, problems)

    # Pass 3: local transforms, attach children in record order
    for i, rec in enumerate(bone_records):
        bone = bones[i]
        parent_idx = parents[i]
        bone.parent_index = parent_idx

        if parent_idx is None:
            local = bone.world_bind
        else:
            parent = bones[parent_idx]
            try:
                to_parent = _tuple_to_matrix(rec.parent_bone_space_matrix).inverted()
            except ValueError as e:
                problems.append(
                    f"bone {i} '{rec.name}': unusable parent bone-space matrix ({e}), "
                    f"using parent's bind pose")
                to_parent = parent.world_bind.inverted_safe()
            local = to_parent @ bone.world_bind
            parent.add(bone)

        bone.set_matrix(local)

    for message in problems:
        _log.warning("Skeleton: %s", message)

    skeleton = Skeleton(bones)
    if problems:
        return BuildResult.degraded(skeleton, "; ".join(problems))
    return BuildResult.ok(skeleton)


def _resolve_parents(bone_records, problems) -> List[Optional[int]]:
    """Map each record's parent_index to a valid arena index or None.

    Out-of-range and self references become roots. Cycles are broken at
    their lowest-indexed member, which becomes a root.
    """
    count = len(bone_records)
    resolved: List[Optional[int]] = []

    for i, rec in enumerate(bone_records):
        p = rec.parent_index
        if rec.is_root:
            resolved.append(None)
        elif not 0 <= p < count or p == i:
            problems.append(f"bone {i} '{rec.name}': invalid parent index {p}, treated as root")
            resolved.append(None)
        else:
            resolved.append(p)

    for i in range(count):
        seen = {i}
        p = resolved[i]
        while p is not None:
            if p == i:
                problems.append(
                    f"bone {i} '{bone_records[i].name}': parent chain loops back to itself, "
                    f"treated as root")
                resolved[i] = None
                break
            if p in seen:
                # Leads into a cycle that does not include i
                break
            seen.add(p)
            p = resolved[p]

    return resolved


def _tuple_to_matrix(t):
    """Convert a column-major 16-float EBM matrix to a mathutils Matrix.

    EBM stores matrices column by column (translation in elements 12..14):
        [m0  m4  m8   m12]
        [m1  m5  m9   m13]
        [m2  m6  m10  m14]
        [m3  m7  m11  m15]

    Raises:
        ValueError: if t does not hold 16 values
    """
    if t is None or len(t) != 16:
        raise ValueError(f"expected 16 matrix values, got {0 if t is None else len(t)}")
    return Matrix((
        (t[0], t[4], t[8],  t[12]),
        (t[1], t[5], t[9],  t[13]),
        (t[2], t[6], t[10], t[14]),
        (t[3], t[7], t[11], t[15]),
    ))
