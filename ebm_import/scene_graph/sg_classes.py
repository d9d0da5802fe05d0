"""Scene graph node classes for the reconstructed EBM scene.

Provides the output hierarchy handed back to the caller:
- SceneNode: transform + parent/children links
- Group / SceneRoot: containers (SceneRoot also carries clips, skeleton,
  materials and the import report)
- Bone / Skeleton: bind-pose bone forest
- Mesh / SkinnedMesh: geometry + material, optionally bound to a skeleton

Transforms use mathutils types. A node has at most one parent: adding a
node that already has one moves it.
"""

from typing import Callable, Iterator, List, Optional

from mathutils import Matrix, Quaternion, Vector


def compose_matrix(position, rotation, scale):
    """Build a 4x4 matrix from translation, rotation and scale."""
    mat_loc = Matrix.Translation(position)
    mat_rot = rotation.to_matrix().to_4x4()
    mat_scale = Matrix.Diagonal(Vector((scale[0], scale[1], scale[2], 1.0)))
    return mat_loc @ mat_rot @ mat_scale


class SceneNode:
    """Base node: name, local TRS, parent/children and free-form user data."""

    node_type = "Object"

    def __init__(self, name=""):
        self.name = name
        self.parent = None
        self.children = []
        self.position = Vector((0.0, 0.0, 0.0))
        self.rotation = Quaternion()
        self.scale = Vector((1.0, 1.0, 1.0))
        self.user_data = {}

    def add(self, *nodes):
        for node in nodes:
            if node is self:
                continue
            if node.parent is not None:
                node.parent.remove(node)
            node.parent = self
            self.children.append(node)
        return self

    def remove(self, *nodes):
        for node in nodes:
            if node in self.children:
                self.children.remove(node)
                node.parent = None
        return self

    def set_matrix(self, matrix):
        """Decompose a 4x4 matrix into this node's position/rotation/scale."""
        loc, rot, scale = matrix.decompose()
        self.position = loc
        self.rotation = rot
        self.scale = scale

    @property
    def matrix_local(self):
        return compose_matrix(self.position, self.rotation, self.scale)

    @property
    def matrix_world(self):
        if self.parent is None:
            return self.matrix_local
        return self.parent.matrix_world @ self.matrix_local

    def iter_nodes(self) -> Iterator["SceneNode"]:
        """Depth-first iteration over this node and all descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def traverse(self, callback: Callable[["SceneNode"], None]) -> None:
        for node in self.iter_nodes():
            callback(node)

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, children={len(self.children)})"


class Group(SceneNode):
    node_type = "Group"


class Bone(SceneNode):
    """A skeleton bone.

    index / parent_index refer to positions in the owning Skeleton's bone
    list (parent_index is None for roots). world_bind is the bone's rest
    transform in model space, i.e. the inverse of its bone-space matrix.
    """

    node_type = "Bone"

    def __init__(self, name="", index=0, parent_index=None):
        super().__init__(name)
        self.index = index
        self.parent_index = parent_index
        self.world_bind = Matrix.Identity(4)

    @property
    def is_root(self):
        return not isinstance(self.parent, Bone)


class Skeleton:
    """Index-aligned bone arena plus inverse bind matrices."""

    def __init__(self, bones=None):
        self.bones: List[Bone] = list(bones) if bones else []
        self.bone_inverses: List[Matrix] = []
        self.calculate_inverses()

    def calculate_inverses(self):
        self.bone_inverses = []
        for bone in self.bones:
            try:
                self.bone_inverses.append(bone.world_bind.inverted())
            except ValueError:
                self.bone_inverses.append(Matrix.Identity(4))

    def get_bone_by_name(self, name) -> Optional[Bone]:
        for bone in self.bones:
            if bone.name == name:
                return bone
        return None

    def root_bones(self) -> List[Bone]:
        """Bones without a bone-type parent."""
        return [b for b in self.bones if b.is_root]

    def __len__(self):
        return len(self.bones)


class Mesh(SceneNode):
    node_type = "Mesh"
    is_skinned = False

    def __init__(self, geometry=None, material=None, name=""):
        super().__init__(name)
        self.geometry = geometry
        self.material = material

    @property
    def is_placeholder(self):
        return bool(self.user_data.get("is_placeholder", False))


class SkinnedMesh(Mesh):
    """Mesh deformed by a skeleton through skinIndex/skinWeight attributes."""

    node_type = "SkinnedMesh"
    is_skinned = True

    def __init__(self, geometry=None, material=None, name=""):
        super().__init__(geometry, material, name)
        self.skeleton = None
        self.bind_matrix = Matrix.Identity(4)
        self.bind_matrix_inverse = Matrix.Identity(4)

    def bind(self, skeleton, bind_matrix=None):
        self.skeleton = skeleton
        if bind_matrix is None:
            bind_matrix = self.matrix_world
        self.bind_matrix = bind_matrix.copy()
        self.bind_matrix_inverse = bind_matrix.inverted_safe()


class SceneRoot(Group):
    """The single output of a reconstruction.

    Children are the built meshes (static, skinned or placeholder) in
    submesh order. The bone hierarchy hangs under skinned meshes; the full
    skeleton is also reachable through ``skeleton``.
    """

    def __init__(self, name="EBM"):
        super().__init__(name)
        self.animations = []
        self.skeleton = Skeleton()
        self.materials = []
        self.report = None

    @property
    def meshes(self) -> List[Mesh]:
        return [c for c in self.children if isinstance(c, Mesh)]

    def animation_names(self) -> List[str]:
        return [clip.name or "(unnamed)" for clip in self.animations]

    def compute_bounding_box(self):
        """Model-space (min, max) corners over all mesh geometry, or None."""
        bb_min = None
        bb_max = None
        for node in self.iter_nodes():
            if not isinstance(node, Mesh) or node.geometry is None:
                continue
            box = node.geometry.compute_bounding_box()
            if box is None:
                continue
            mat = node.matrix_world
            lo, hi = box
            for corner in _box_corners(lo, hi):
                p = mat @ corner
                if bb_min is None:
                    bb_min = p.copy()
                    bb_max = p.copy()
                    continue
                for axis in range(3):
                    bb_min[axis] = min(bb_min[axis], p[axis])
                    bb_max[axis] = max(bb_max[axis], p[axis])
        if bb_min is None:
            return None
        return bb_min, bb_max

    def center(self):
        box = self.compute_bounding_box()
        if box is None:
            return Vector((0.0, 0.0, 0.0))
        return (box[0] + box[1]) * 0.5

    def dispose(self):
        """Release everything built for this scene.

        Geometry buffers and textures are dropped, nodes are detached and the
        clip list is cleared. The scene is empty afterwards.
        """
        seen = set()
        for node in list(self.iter_nodes()):
            if isinstance(node, Mesh):
                if node.geometry is not None and id(node.geometry) not in seen:
                    seen.add(id(node.geometry))
                    node.geometry.dispose()
                if node.material is not None and id(node.material) not in seen:
                    seen.add(id(node.material))
                    node.material.dispose()
        for material in self.materials:
            if id(material) not in seen:
                material.dispose()
        for node in list(self.iter_nodes()):
            for child in list(node.children):
                node.remove(child)
        self.animations = []
        self.materials = []
        self.skeleton = Skeleton()


def _box_corners(lo, hi):
    for x in (lo[0], hi[0]):
        for y in (lo[1], hi[1]):
            for z in (lo[2], hi[2]):
                yield Vector((x, y, z))
