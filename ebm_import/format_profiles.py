"""Format profiles for EBM scene reconstruction.

Two container variants are known. They share the record layout but store
animation translations and rotations in different reference frames, and the
only way to tell them apart is the container's format tag. Each variant has
a FormatProfile describing how to interpret it, plus the fallback/placeholder
parameters used when data cannot be reconstructed faithfully.

Profiles are registered in a global dict and can be passed explicitly to
``reconstruct`` or auto-detected from the container's format tag.

Adding a new variant:
    1. Work out which frame its animation keys are stored in
    2. Create a FormatProfile with its format tag
    3. Call register_profile() to add it to the registry
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .ebm_format.ebm_constants import EBM_NATIVE_FORMAT_TAG, MAX_VERTEX_INFLUENCES


_log = logging.getLogger("ebm_import")


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass
class TextureConfig:
    """Configuration for DDS decoding and fallback textures."""

    # Fallback image edge length when the header gives no usable size.
    fallback_size: int = 256

    # Fallback fill and marker text colors (CSS hex strings).
    fallback_color: str = "#ff6b6b"
    fallback_text_color: str = "#ffffff"

    # Draw "DDS Load Failed" plus the requested size onto fallback images.
    draw_fallback_marker: bool = True

    # Header dimensions above this are treated as a corrupt header.
    max_dimension: int = 8192


@dataclass
class MeshConfig:
    """Configuration for submesh construction."""

    # Skin influences kept per vertex; extra influences are dropped.
    max_influences: int = MAX_VERTEX_INFLUENCES

    # Error placeholder: a small wireframe box.
    placeholder_size: float = 0.1
    placeholder_color: int = 0xFF0000
    placeholder_opacity: float = 0.5

    # Drop triangles whose indices fall outside the vertex range.
    drop_invalid_triangles: bool = True


@dataclass
class CoordinateConfig:
    """Configuration for animation key reference frames.

    animation_space:
        "local" = keys are already parent-relative, used as stored.
        "world" = keys are re-expressed through the parent bone's world
                  bind transform.
    """
    animation_space: str = "world"


@dataclass
class FormatProfile:
    """Complete profile for one EBM container variant."""

    profile_id: str = "ebm_legacy"
    name: str = "EBM (legacy)"

    # Container format tag this profile matches, or None for the catch-all.
    format_tag: Optional[int] = None

    texture: TextureConfig = field(default_factory=TextureConfig)
    mesh: MeshConfig = field(default_factory=MeshConfig)
    coordinate: CoordinateConfig = field(default_factory=CoordinateConfig)

    notes: str = ""

    @property
    def uses_local_animation_space(self) -> bool:
        return self.coordinate.animation_space == "local"


# ---------------------------------------------------------------------------
# Profile registry
# ---------------------------------------------------------------------------

FORMAT_PROFILES: Dict[str, FormatProfile] = {}

DEFAULT_PROFILE_ID = "ebm_legacy"


def register_profile(profile: FormatProfile) -> None:
    """Register a format profile in the global registry."""
    FORMAT_PROFILES[profile.profile_id] = profile


def get_profile(profile_id: str) -> Optional[FormatProfile]:
    """Look up a profile by its profile_id string."""
    return FORMAT_PROFILES.get(profile_id)


# ---------------------------------------------------------------------------
# Auto-detection
# ---------------------------------------------------------------------------

def detect_profile(format_tag: int) -> FormatProfile:
    """Pick the FormatProfile for a container's format tag.

    Only an exact tag match selects a tagged profile. Any other tag falls
    back to the catch-all legacy profile; new tags are not assumed to imply
    new behavior, so the fallback is logged as a compatibility risk.

    Args:
        format_tag: the container's format tag.

    Returns:
        The matching FormatProfile.
    """
    for profile in FORMAT_PROFILES.values():
        if profile.format_tag is not None and profile.format_tag == format_tag:
            return profile

    fallback = FORMAT_PROFILES[DEFAULT_PROFILE_ID]
    _log.warning(
        "Unrecognized EBM format tag 0x%X, assuming '%s' conventions",
        format_tag, fallback.profile_id)
    return fallback


# ---------------------------------------------------------------------------
# Built-in profiles
# ---------------------------------------------------------------------------

register_profile(FormatProfile(
    profile_id="ebm_native",
    name="EBM (native)",
    format_tag=EBM_NATIVE_FORMAT_TAG,
    coordinate=CoordinateConfig(animation_space="local"),
    notes="Tag 0x03ED03, animation keys stored parent-relative",
))

register_profile(FormatProfile(
    profile_id="ebm_legacy",
    name="EBM (legacy)",
    format_tag=None,
    coordinate=CoordinateConfig(animation_space="world"),
    notes="Any other tag, animation keys re-expressed through the parent bind pose",
))
