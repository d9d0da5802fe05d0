"""Build materials from EBM material records.

Each record becomes one unlit, double-sided Material:
- color from the diffuse term, stored B, G, R in the container
- opacity from diffuse alpha (transparent when below 1.0)
- reflectivity from specular alpha, mixed with the surface color
- texture decoded from the embedded DDS blob

Texture decode problems never abort a material: the decoder returns a
fallback texture and the material result is reported as degraded.
"""

import logging
from typing import List

from ..scene_graph.sg_materials import Material, COMBINE_MIX, SIDE_DOUBLE
from ..utils.dds_decode import make_fallback_texture
from .build_result import BuildResult


_log = logging.getLogger("ebm_material")


def build_materials(records, decoder) -> List[BuildResult[Material]]:
    """Build materials index-aligned with records.

    Args:
        records: list of MaterialRecord.
        decoder: TextureDecoder for this load.

    Returns:
        List of BuildResult[Material], one per record.
    """
    results = []
    for i, rec in enumerate(records):
        try:
            results.append(build_material(rec, decoder, i))
        except Exception as e:
            reason = f"material {i}: unusable record ({e}), using defaults"
            _log.warning("Material %d: %s", i, reason)
            material = Material(getattr(rec, "texture_id", "") or "")
            material.side = SIDE_DOUBLE
            material.map = make_fallback_texture(config=decoder.config, name=material.name)
            results.append(BuildResult.degraded(material, reason))
    return results


def build_material(record, decoder, index=0) -> BuildResult[Material]:
    name = record.texture_id
    material = Material(name)

    b, g, r, a = record.diffuse
    material.color = (float(r), float(g), float(b))
    material.opacity = float(a)
    material.transparent = material.opacity < 1.0

    material.reflectivity = float(record.specular[3])
    material.combine = COMBINE_MIX
    material.side = SIDE_DOUBLE
    material.alpha_test = 0.0

    tex_result = decoder.decode(record.texture_blob, name or f"material_{index}")
    material.map = tex_result.artifact

    if tex_result.is_degraded:
        _log.warning("Material %d '%s': texture degraded (%s)", index, name, tex_result.reason)
        return BuildResult.degraded(material, tex_result.reason)
    return BuildResult.ok(material)
