"""Build keyframe clips from EBM animation records.

EBM rotation keys use the conjugate quaternion convention, so every stored
key is conjugated first:

    q = conjugate(anim_q)

What happens next depends on the container variant (see format_profiles):

  local space (native tag):
      keys are already relative to the parent bone and are used as-is.

  world space (any other tag):
      keys are re-expressed in the parent bone's frame using its world
      bind transform:

          pos = parent_world_bind^{-1} @ anim_pos
          rot = conjugate(parent_world_rot) @ q

      Root bones have no parent, so the transform is identity.

Track names follow "<bone>.position" / "<bone>.quaternion". Quaternion
values are flattened as (w, x, y, z).
"""

import logging
from typing import List

from mathutils import Matrix, Quaternion, Vector

from ..importer.build_result import BuildResult
from ..scene_graph.sg_animation import (
    AnimationClip, QuaternionKeyframeTrack, VectorKeyframeTrack,
)
from ..scene_graph.sg_classes import Bone


_log = logging.getLogger("ebm_anim")


def build_animations(records, skeleton, profile) -> List[BuildResult[AnimationClip]]:
    """Build one AnimationClip per AnimationRecord, in record order.

    Args:
        records: list of AnimationRecord.
        skeleton: Skeleton the tracks are resolved against.
        profile: FormatProfile selecting the key reference frame.

    Returns:
        List of BuildResult[AnimationClip]. A clip is degraded only when
        none of its tracks resolved to a bone.
    """
    local_space = profile.uses_local_animation_space
    results = []
    for rec in records:
        results.append(build_clip(rec, skeleton, local_space))
    return results


def build_clip(record, skeleton, local_space) -> BuildResult[AnimationClip]:
    tracks = []
    skipped = []

    for bone_track in record.tracks:
        bone = skeleton.get_bone_by_name(bone_track.bone_name)
        if bone is None:
            _log.debug("Clip '%s': no bone named '%s', track skipped",
                       record.name, bone_track.bone_name)
            skipped.append(bone_track.bone_name)
            continue

        parent_world = _parent_world_bind(bone)

        if bone_track.translations:
            tracks.append(_position_track(bone_track, parent_world, local_space))
        if bone_track.rotations:
            tracks.append(_rotation_track(bone_track, parent_world, local_space))

    clip = AnimationClip(record.name, -1.0, tracks)

    if skipped and not tracks and record.tracks:
        reason = f"clip '{record.name}': no track matched a bone ({', '.join(skipped)})"
        _log.warning("Animation: %s", reason)
        return BuildResult.degraded(clip, reason)
    return BuildResult.ok(clip)


def _parent_world_bind(bone):
    parent = bone.parent
    if isinstance(parent, Bone):
        return parent.world_bind
    return Matrix.Identity(4)


def _position_track(bone_track, parent_world, local_space):
    times = []
    values = []

    to_parent = None if local_space else parent_world.inverted_safe()

    for key in bone_track.translations:
        pos = Vector(key.position)
        if to_parent is not None:
            pos = to_parent @ pos
        times.append(float(key.time))
        values.extend((pos.x, pos.y, pos.z))

    return VectorKeyframeTrack(f"{bone_track.bone_name}.position", times, values)


def _rotation_track(bone_track, parent_world, local_space):
    times = []
    values = []

    parent_rot_inv = None
    if not local_space:
        parent_rot_inv = parent_world.to_quaternion().conjugated()

    for key in bone_track.rotations:
        x, y, z, w = key.quaternion
        q = Quaternion((w, x, y, z)).conjugated()
        if parent_rot_inv is not None:
            q = parent_rot_inv @ q
        times.append(float(key.time))
        values.extend((q.w, q.x, q.y, q.z))

    return QuaternionKeyframeTrack(f"{bone_track.bone_name}.quaternion", times, values)
