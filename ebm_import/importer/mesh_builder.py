"""Build scene meshes from EBM submesh records.

Each MeshRecord becomes one of:
- Mesh:         static geometry + material
- SkinnedMesh:  geometry with skinIndex/skinWeight bound to the skeleton
- placeholder:  small red wireframe box standing in for a submesh whose
                data could not be used

Geometry follows the record: positions always, normals when their length
matches the vertex count (computed otherwise), UVs when present and the
right length, and face indices as the index buffer (unindexed triangle list
when there are none). Triangles referencing vertices outside the buffer
are dropped.
"""

import logging
from typing import List

from ..actor.skinning import setup_skinned_mesh
from ..format_profiles import MeshConfig
from ..scene_graph.sg_classes import Mesh, SkinnedMesh
from ..scene_graph.sg_geometry import BufferAttribute, Geometry, box_geometry
from ..scene_graph.sg_materials import Material, SIDE_DOUBLE
from .build_result import BuildResult


_log = logging.getLogger("ebm_mesh")


def build_meshes(records, materials, skeleton, config=None) -> List[BuildResult[Mesh]]:
    """Build one mesh (or placeholder) per record, in record order.

    Args:
        records: list of MeshRecord.
        materials: index-aligned list of Material.
        skeleton: Skeleton (may have no bones).
        config: MeshConfig; defaults apply when None.

    Returns:
        List of BuildResult[Mesh]. Placeholders and static fallbacks for
        skinned meshes are degraded results.
    """
    if config is None:
        config = MeshConfig()

    results = []
    for i, rec in enumerate(records):
        try:
            result = build_mesh(rec, i, materials, skeleton, config)
        except Exception as e:
            name = getattr(rec, "name", "")
            reason = f"mesh {i} '{name}': {type(e).__name__}: {e}"
            _log.warning("Mesh: %s, using placeholder", reason)
            result = BuildResult.degraded(build_placeholder_mesh(i, rec, reason, config), reason)
        results.append(result)
    return results


def build_mesh(record, index, materials, skeleton, config) -> BuildResult[Mesh]:
    """Build a single submesh.

    Returns:
        BuildResult[Mesh]; degraded with a placeholder when the position
        data is unusable, degraded with a static mesh when skinning fails,
        degraded with the mesh itself for recoverable attribute problems.
    """
    vertex_count = record.vertex_count
    positions = record.positions

    if not positions or vertex_count <= 0 or len(positions) != vertex_count * 3:
        reason = (f"mesh {index} '{record.name}': {len(positions or ())} position values "
                  f"for {vertex_count} vertices")
        _log.warning("Mesh: %s, using placeholder", reason)
        return BuildResult.degraded(build_placeholder_mesh(index, record, reason, config), reason)

    problems = []
    geometry = _build_geometry(record, config, problems)
    material = _resolve_material(record, index, materials, problems)
    name = record.name or f"mesh_{index}"

    mesh = None
    if record.influence_count > 0 and len(skeleton) > 0:
        skinned = SkinnedMesh(geometry, material, name)
        try:
            setup_skinned_mesh(skinned, record.influences, skeleton, config.max_influences)
            mesh = skinned
        except (ValueError, TypeError, IndexError) as e:
            problems.append(f"skinning failed ({e}), built as static mesh")

    if mesh is None:
        mesh = Mesh(geometry, material, name)

    mesh.user_data["original_mesh_index"] = index
    mesh.user_data["vertex_count"] = vertex_count

    if problems:
        reason = f"mesh {index} '{record.name}': " + "; ".join(problems)
        _log.warning("Mesh: %s", reason)
        return BuildResult.degraded(mesh, reason)
    return BuildResult.ok(mesh)


def build_placeholder_mesh(index, record, error, config=None) -> Mesh:
    """Small wireframe box marking a submesh that could not be built."""
    if config is None:
        config = MeshConfig()

    original_name = getattr(record, "name", "") or ""
    name = f"error_{original_name}" if original_name else f"error_mesh_{index}"

    size = config.placeholder_size
    material = Material(name)
    material.color = _hex_to_rgb(config.placeholder_color)
    material.wireframe = True
    material.transparent = True
    material.opacity = config.placeholder_opacity
    material.side = SIDE_DOUBLE

    mesh = Mesh(box_geometry(size, size, size), material, name)
    mesh.user_data.update({
        "is_placeholder": True,
        "error": error,
        "original_name": original_name,
        "original_mesh_index": index,
        "vertex_count": getattr(record, "vertex_count", 0),
    })
    return mesh


def _build_geometry(record, config, problems):
    vertex_count = record.vertex_count
    geometry = Geometry()
    geometry.set_attribute("position", BufferAttribute(record.positions, 3))

    if record.uvs:
        if len(record.uvs) == vertex_count * 2:
            geometry.set_attribute("uv", BufferAttribute(record.uvs, 2))
        else:
            problems.append(f"{len(record.uvs)} UV values for {vertex_count} vertices, UVs dropped")

    if record.face_indices:
        geometry.set_index(_clean_indices(record.face_indices, vertex_count, config, problems))

    if record.normals and len(record.normals) == vertex_count * 3:
        geometry.set_attribute("normal", BufferAttribute(record.normals, 3))
    else:
        geometry.compute_vertex_normals()

    return geometry


def _clean_indices(indices, vertex_count, config, problems):
    """Return indices as whole triangles, dropping out-of-range ones."""
    num_tris = len(indices) // 3
    if len(indices) % 3:
        problems.append(f"{len(indices) % 3} trailing face indices ignored")

    clean = []
    dropped = 0
    for t in range(num_tris):
        i0, i1, i2 = indices[t * 3], indices[t * 3 + 1], indices[t * 3 + 2]
        if config.drop_invalid_triangles and not (
                0 <= i0 < vertex_count and 0 <= i1 < vertex_count and 0 <= i2 < vertex_count):
            dropped += 1
            continue
        clean.extend((i0, i1, i2))

    if dropped:
        problems.append(f"{dropped} triangle(s) with out-of-range indices dropped")
    return clean


def _resolve_material(record, index, materials, problems):
    if not materials:
        return None
    mat_idx = record.material_index
    if 0 <= mat_idx < len(materials):
        return materials[mat_idx]
    problems.append(f"material index {mat_idx} out of range, using material 0")
    return materials[0]


def _hex_to_rgb(value):
    return (
        ((value >> 16) & 0xFF) / 255.0,
        ((value >> 8) & 0xFF) / 255.0,
        (value & 0xFF) / 255.0,
    )
