"""Keyframe tracks and clips for the reconstructed scene.

Track names follow "<bone name>.<property>", e.g. "Bip01.position" or
"Bip01.quaternion". Values are flattened per key: 3 floats for positions,
4 floats (w, x, y, z) for quaternions.
"""

from typing import List


class KeyframeTrack:
    value_size = 1

    def __init__(self, name, times, values):
        self.name = name
        self.times = list(times)
        self.values = list(values)

    @property
    def bone_name(self):
        return self.name.rsplit(".", 1)[0]

    @property
    def property_name(self):
        return self.name.rsplit(".", 1)[-1]

    @property
    def key_count(self):
        return len(self.times)

    def get_value(self, key_index):
        start = key_index * self.value_size
        return tuple(self.values[start:start + self.value_size])

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, keys={self.key_count})"


class VectorKeyframeTrack(KeyframeTrack):
    value_size = 3


class QuaternionKeyframeTrack(KeyframeTrack):
    value_size = 4


class AnimationClip:
    """A named set of tracks. A negative duration is derived from the tracks."""

    def __init__(self, name, duration=-1.0, tracks=None):
        self.name = name
        self.tracks: List[KeyframeTrack] = list(tracks) if tracks else []
        self.duration = duration
        if self.duration < 0:
            self.reset_duration()

    def reset_duration(self):
        duration = 0.0
        for track in self.tracks:
            if track.times:
                duration = max(duration, max(track.times))
        self.duration = duration
        return self

    def find_track(self, name):
        for track in self.tracks:
            if track.name == name:
                return track
        return None

    def __repr__(self):
        return f"AnimationClip({self.name!r}, tracks={len(self.tracks)}, duration={self.duration})"
