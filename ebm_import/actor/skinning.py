"""Assign skin weights from EBM influence records and bind to a skeleton.

EBM stores influences bone-major: for each bone, a list of vertices it
moves and by how much. The renderer wants them vertex-major with a fixed
number of slots per vertex. assemble_skin_weights() inverts the layout,
keeping the first max_influences (bone, weight) pairs seen per vertex and
zero-padding the rest.
"""

import operator
from typing import List, Tuple

from ..ebm_format.ebm_constants import MAX_VERTEX_INFLUENCES
from ..scene_graph.sg_geometry import BufferAttribute


def assemble_skin_weights(influences, vertex_count, bone_count,
                          max_influences=MAX_VERTEX_INFLUENCES
                          ) -> Tuple[List[List[int]], List[List[float]]]:
    """Invert bone-major influences into per-vertex index/weight slots.

    Args:
        influences: list of InfluenceRecord; position in the list is the
                    bone index.
        vertex_count: number of vertices in the mesh.
        bone_count: number of bones in the skeleton.
        max_influences: slots per vertex. Influences past this for a vertex
                        are dropped in encounter order.

    Returns:
        (skin_indices, skin_weights): one list of exactly max_influences
        entries per vertex. Unused slots are bone 0 with weight 0.

    Raises:
        ValueError: on influence data that cannot be bound (more influence
        lists than bones, mismatched parallel arrays, non-numeric entries,
        vertex index out of range).
    """
    if len(influences) > bone_count:
        raise ValueError(
            f"{len(influences)} influence lists for a skeleton of {bone_count} bones")

    skin_indices: List[List[int]] = [[] for _ in range(vertex_count)]
    skin_weights: List[List[float]] = [[] for _ in range(vertex_count)]

    for bone_idx, influence in enumerate(influences):
        vert_ids = influence.vertex_indices or []
        weights = influence.weights or []
        if len(vert_ids) != len(weights):
            raise ValueError(
                f"bone {bone_idx}: {len(vert_ids)} vertex indices but {len(weights)} weights")

        for raw_vi, raw_w in zip(vert_ids, weights):
            try:
                vi = operator.index(raw_vi)
                w = float(raw_w)
            except (TypeError, ValueError) as e:
                raise ValueError(
                    f"bone {bone_idx}: unusable influence ({raw_vi!r}, {raw_w!r})") from e
            if not 0 <= vi < vertex_count:
                raise ValueError(
                    f"bone {bone_idx}: vertex index {vi} out of range (0..{vertex_count - 1})")
            slots = skin_indices[vi]
            if len(slots) < max_influences:
                slots.append(bone_idx)
                skin_weights[vi].append(w)

    for vi in range(vertex_count):
        missing = max_influences - len(skin_indices[vi])
        if missing:
            skin_indices[vi].extend([0] * missing)
            skin_weights[vi].extend([0.0] * missing)

    return skin_indices, skin_weights


def setup_skinned_mesh(mesh, influences, skeleton, max_influences=MAX_VERTEX_INFLUENCES):
    """Attach skin attributes to a SkinnedMesh and bind it to skeleton.

    Weights are assembled before anything is attached, so a ValueError
    leaves both the mesh and the skeleton untouched. On success the
    skeleton's root bones are moved under the mesh so its skinning
    hierarchy is self-contained.

    Args:
        mesh: SkinnedMesh with a geometry that has a "position" attribute.
        influences: list of InfluenceRecord (indexed by bone).
        skeleton: Skeleton to bind.
        max_influences: slots per vertex.

    Raises:
        ValueError: on unusable influence data.
    """
    geometry = mesh.geometry
    vertex_count = geometry.vertex_count

    skin_indices, skin_weights = assemble_skin_weights(
        influences, vertex_count, len(skeleton.bones), max_influences)

    geometry.set_attribute(
        "skinIndex", BufferAttribute([i for slots in skin_indices for i in slots], max_influences))
    geometry.set_attribute(
        "skinWeight", BufferAttribute([w for slots in skin_weights for w in slots], max_influences))

    mesh.add(*skeleton.root_bones())
    mesh.bind(skeleton)
