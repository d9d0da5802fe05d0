"""Main EBM reconstruction orchestrator.

Turns one decoded Container into a SceneRoot:
1. Resolve format profile (explicit or auto-detected from the format tag)
2. Build materials (decoding embedded DDS textures)
3. Build the skeleton
4. Build meshes (static, skinned or placeholder) and attach them
5. Build animation clips

Every builder degrades instead of raising. Anything they did not
anticipate is caught here once and logged; the caller still gets the scene
built so far, with ``scene.report.error`` set.
"""

import logging
import time

from ..actor.animation_builder import build_animations
from ..actor.armature_builder import build_skeleton
from ..format_profiles import FormatProfile, detect_profile, get_profile
from ..scene_graph.sg_classes import SceneRoot
from ..utils.dds_decode import TextureDecoder
from .build_result import ImportReport, artifacts
from .material_builder import build_materials
from .mesh_builder import build_meshes


_log = logging.getLogger("ebm_import")


def reconstruct(container, profile=None, name="EBM") -> SceneRoot:
    """Reconstruct a renderable scene from a decoded EBM container.

    Args:
        container: Container holding the decoded records.
        profile: FormatProfile, a registered profile id, or None / "auto"
                 to pick the profile from container.format_tag.
        name: name of the returned root node.

    Returns:
        SceneRoot with the built meshes as children, plus ``animations``,
        ``skeleton``, ``materials`` and ``report``. Never raises for bad
        container data.
    """
    t_start = time.time()
    scene = SceneRoot(name)
    report = ImportReport()
    scene.report = report

    try:
        format_tag = container.format_tag
        report.format_tag = format_tag
        profile = _resolve_profile(profile, format_tag)
        report.profile_id = profile.profile_id

        # One decoder (and texture cache) per load
        decoder = TextureDecoder(profile.texture)

        # Materials
        material_results = build_materials(container.materials, decoder)
        _collect(report, material_results)
        scene.materials = artifacts(material_results)
        report.materials = len(scene.materials)
        report.fallback_textures = sum(
            1 for m in scene.materials if m.map is not None and m.map.is_fallback)

        # Skeleton
        skeleton_result = build_skeleton(container.skeleton.bones)
        _collect(report, [skeleton_result])
        scene.skeleton = skeleton_result.artifact
        report.bones = len(scene.skeleton)

        # Meshes
        mesh_results = build_meshes(
            container.meshes, scene.materials, scene.skeleton, profile.mesh)
        _collect(report, mesh_results)
        for mesh in artifacts(mesh_results):
            scene.add(mesh)
            report.meshes += 1
            if mesh.is_placeholder:
                report.placeholders += 1
            elif mesh.is_skinned:
                report.skinned_meshes += 1

        # Animations
        clip_results = build_animations(container.animations, scene.skeleton, profile)
        _collect(report, clip_results)
        scene.animations = artifacts(clip_results)
        report.clips = len(scene.animations)

    except Exception as e:
        _log.exception("EBM reconstruction failed: %s", e)
        report.error = f"{type(e).__name__}: {e}"

    report.elapsed = time.time() - t_start

    _log.info(
        "Reconstructed %d meshes (%d skinned, %d placeholders), %d bones, "
        "%d materials (%d fallback textures), %d clips [%s] (%.2fs) %s",
        report.meshes, report.skinned_meshes, report.placeholders, report.bones,
        report.materials, report.fallback_textures, report.clips,
        report.profile_id or "?", report.elapsed, report.status)

    return scene


def _resolve_profile(profile, format_tag) -> FormatProfile:
    if isinstance(profile, FormatProfile):
        return profile
    if profile is None or profile == "auto":
        return detect_profile(format_tag)

    resolved = get_profile(profile)
    if resolved is None:
        _log.warning("Unknown format profile '%s', auto-detecting", profile)
        return detect_profile(format_tag)
    return resolved


def _collect(report, results):
    for result in results:
        if result.is_degraded:
            report.add_warning(result.reason)
