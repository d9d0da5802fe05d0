"""Record and DDS blob builders shared by the test modules."""

import struct

from ebm_import.ebm_format.ebm_constants import (
    DDS_HEADER_SIZE, DDS_MAGIC, DDPF_ALPHAPIXELS, DDPF_FOURCC, DDPF_RGB,
)
from ebm_import.ebm_format.ebm_records import (
    BoneRecord, Container, MaterialRecord, MeshRecord, SkeletonRecord,
)


def make_dds(width, height, pf_flags, fourcc=b"\x00\x00\x00\x00", bit_count=0,
             masks=(0, 0, 0, 0), payload=b""):
    header = bytearray(DDS_HEADER_SIZE)
    struct.pack_into("<I", header, 0, DDS_MAGIC)
    struct.pack_into("<I", header, 4, 124)
    struct.pack_into("<I", header, 12, height)
    struct.pack_into("<I", header, 16, width)
    struct.pack_into("<I", header, 76, 32)
    struct.pack_into("<I", header, 80, pf_flags)
    header[84:88] = fourcc
    struct.pack_into("<I", header, 88, bit_count)
    struct.pack_into("<4I", header, 92, *masks)
    return bytes(header) + bytes(payload)


def make_rgb24_dds(width, height, rows_bgr):
    """rows_bgr: stored rows (first = bottom of the image) of (b, g, r) pixels."""
    payload = b"".join(bytes(c for px in row for c in px) for row in rows_bgr)
    return make_dds(width, height, DDPF_RGB, bit_count=24, payload=payload)


def make_argb32_dds(width, height, stored_pixels):
    """stored_pixels: uint32 A8R8G8B8 values in stored (bottom-up) order."""
    payload = struct.pack("<%dI" % len(stored_pixels), *stored_pixels)
    return make_dds(width, height, DDPF_RGB | DDPF_ALPHAPIXELS, bit_count=32,
                    masks=(0x00FF0000, 0x0000FF00, 0x000000FF, 0xFF000000),
                    payload=payload)


def make_dxt1_dds(width, height, blocks):
    return make_dds(width, height, DDPF_FOURCC, fourcc=b"DXT1", payload=b"".join(blocks))


def translation(x, y, z):
    """Column-major 16-float translation matrix."""
    return (
        1.0, 0.0, 0.0, 0.0,
        0.0, 1.0, 0.0, 0.0,
        0.0, 0.0, 1.0, 0.0,
        x, y, z, 1.0,
    )


def bone(name, parent_index, world_pos, parent_world_pos=(0.0, 0.0, 0.0)):
    """Bone record whose bind pose is a pure translation to world_pos."""
    wx, wy, wz = world_pos
    px, py, pz = parent_world_pos
    return BoneRecord(
        name=name,
        parent_index=parent_index,
        bone_space_matrix=translation(-wx, -wy, -wz),
        parent_bone_space_matrix=translation(px, py, pz),
    )


def triangle_mesh(name="tri", **kwargs):
    fields = dict(
        name=name,
        vertex_count=3,
        positions=[0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0],
        face_indices=[0, 1, 2],
    )
    fields.update(kwargs)
    return MeshRecord(**fields)


def opaque_material(texture_id="tex0", blob=None):
    if blob is None:
        blob = make_rgb24_dds(1, 1, [[(0, 0, 255)]])
    return MaterialRecord(
        diffuse=(0.25, 0.5, 0.75, 1.0),
        specular=(0.0, 0.0, 0.0, 0.3),
        texture_id=texture_id,
        texture_blob=blob,
    )


def two_bone_container(format_tag=0x03ED03, **kwargs):
    fields = dict(
        format_tag=format_tag,
        skeleton=SkeletonRecord(bones=[
            bone("root", -1, (0.0, 0.0, 0.0)),
            bone("child", 0, (0.0, 1.0, 0.0)),
        ]),
        meshes=[triangle_mesh()],
        materials=[opaque_material()],
    )
    fields.update(kwargs)
    return Container(**fields)
