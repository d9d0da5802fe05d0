"""Vertex buffers for reconstructed meshes.

Geometry holds named BufferAttributes ("position", "normal", "uv",
"skinIndex", "skinWeight") and an optional triangle index buffer. Without an
index, consecutive vertex triples form triangles.
"""

from typing import Dict, List, Optional

from mathutils import Vector


class BufferAttribute:
    """Flat value list interpreted in groups of item_size."""

    __slots__ = ('array', 'item_size')

    def __init__(self, array, item_size):
        self.array = list(array)
        self.item_size = item_size

    @property
    def count(self):
        return len(self.array) // self.item_size

    def get_item(self, i):
        start = i * self.item_size
        return tuple(self.array[start:start + self.item_size])

    def __len__(self):
        return len(self.array)


class Geometry:
    """Attribute buffers plus an optional index buffer."""

    def __init__(self):
        self.attributes: Dict[str, BufferAttribute] = {}
        self.index: Optional[List[int]] = None
        self.bounding_box = None

    def set_attribute(self, name, attribute):
        self.attributes[name] = attribute
        return self

    def get_attribute(self, name) -> Optional[BufferAttribute]:
        return self.attributes.get(name)

    def has_attribute(self, name):
        return name in self.attributes

    def set_index(self, indices):
        self.index = list(indices)
        return self

    @property
    def vertex_count(self):
        pos = self.attributes.get("position")
        return pos.count if pos is not None else 0

    def triangles(self):
        """Yield (i0, i1, i2) vertex index triples."""
        if self.index is not None:
            idx = self.index
            for t in range(len(idx) // 3):
                yield idx[t * 3], idx[t * 3 + 1], idx[t * 3 + 2]
        else:
            for t in range(self.vertex_count // 3):
                yield t * 3, t * 3 + 1, t * 3 + 2

    def compute_vertex_normals(self):
        """Replace the "normal" attribute with area-weighted face normals.

        Indexed geometry accumulates every adjacent face per vertex;
        unindexed geometry gives each vertex its own face's normal.
        """
        pos = self.attributes.get("position")
        if pos is None:
            return
        num_verts = pos.count
        accum = [Vector((0.0, 0.0, 0.0)) for _ in range(num_verts)]

        for i0, i1, i2 in self.triangles():
            if i0 >= num_verts or i1 >= num_verts or i2 >= num_verts:
                continue
            a = Vector(pos.get_item(i0))
            b = Vector(pos.get_item(i1))
            c = Vector(pos.get_item(i2))
            face_n = (c - b).cross(a - b)
            accum[i0] += face_n
            accum[i1] += face_n
            accum[i2] += face_n

        normals = []
        for n in accum:
            if n.length > 0.0:
                n.normalize()
            normals.extend((n.x, n.y, n.z))
        self.set_attribute("normal", BufferAttribute(normals, 3))

    def compute_bounding_box(self):
        """Return (min, max) Vectors over "position", or None when empty."""
        pos = self.attributes.get("position")
        if pos is None or pos.count == 0:
            self.bounding_box = None
            return None
        xs = pos.array[0::3]
        ys = pos.array[1::3]
        zs = pos.array[2::3]
        self.bounding_box = (
            Vector((min(xs), min(ys), min(zs))),
            Vector((max(xs), max(ys), max(zs))),
        )
        return self.bounding_box

    def dispose(self):
        self.attributes = {}
        self.index = None
        self.bounding_box = None


def box_geometry(width=1.0, height=1.0, depth=1.0):
    """Build an indexed axis-aligned box centred on the origin.

    Each face has its own 4 vertices so normals and UVs stay per-face
    (24 vertices, 12 triangles).
    """
    hx, hy, hz = width * 0.5, height * 0.5, depth * 0.5

    # (normal, u axis, v axis) per face; corners are n +/- u +/- v
    faces = (
        ((1, 0, 0), (0, 0, -1), (0, 1, 0)),
        ((-1, 0, 0), (0, 0, 1), (0, 1, 0)),
        ((0, 1, 0), (1, 0, 0), (0, 0, -1)),
        ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
        ((0, 0, 1), (1, 0, 0), (0, 1, 0)),
        ((0, 0, -1), (-1, 0, 0), (0, 1, 0)),
    )
    half = (hx, hy, hz)

    positions = []
    normals = []
    uvs = []
    indices = []
    for face_idx, (n, u, v) in enumerate(faces):
        base = face_idx * 4
        for su, sv in ((-1, 1), (1, 1), (-1, -1), (1, -1)):
            for axis in range(3):
                positions.append((n[axis] + su * u[axis] + sv * v[axis]) * half[axis])
            normals.extend(float(c) for c in n)
            uvs.extend(((su + 1) * 0.5, (sv + 1) * 0.5))
        indices.extend((base, base + 2, base + 1, base + 2, base + 3, base + 1))

    geom = Geometry()
    geom.set_attribute("position", BufferAttribute(positions, 3))
    geom.set_attribute("normal", BufferAttribute(normals, 3))
    geom.set_attribute("uv", BufferAttribute(uvs, 2))
    geom.set_index(indices)
    return geom
