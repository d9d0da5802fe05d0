"""Materials and decoded textures for the reconstructed scene."""

from PIL import Image


# Texture wrap modes
WRAP_CLAMP = 0
WRAP_REPEAT = 1

# Face culling
SIDE_FRONT = "front"
SIDE_DOUBLE = "double"

# How the environment/reflection term combines with the surface color
COMBINE_MULTIPLY = "multiply"
COMBINE_MIX = "mix"


class Texture:
    """Decoded RGBA8888 image, rows top to bottom."""

    __slots__ = (
        'name', 'width', 'height', 'pixels', 'wrap_s', 'wrap_t',
        'source_format', 'is_fallback',
    )

    def __init__(self, width=0, height=0, pixels=None, name=""):
        self.name = name
        self.width = width
        self.height = height
        self.pixels = pixels            # bytearray of width*height*4, or None once disposed
        self.wrap_s = WRAP_REPEAT
        self.wrap_t = WRAP_REPEAT
        self.source_format = ""         # "RGB24", "RGBA32", FourCC, or "" for fallbacks
        self.is_fallback = False

    def get_pixel(self, x, y):
        """Return (R, G, B, A) at column x, row y (row 0 = top)."""
        off = (y * self.width + x) * 4
        return tuple(self.pixels[off:off + 4])

    def to_image(self):
        """Return the pixels as a Pillow RGBA image."""
        return Image.frombytes("RGBA", (self.width, self.height), bytes(self.pixels))

    def dispose(self):
        self.pixels = None

    def __repr__(self):
        kind = "fallback" if self.is_fallback else self.source_format
        return f"Texture({self.width}x{self.height}, {kind})"


class Material:
    """Unlit surface description consumed by the renderer."""

    def __init__(self, name=""):
        self.name = name
        self.color = (1.0, 1.0, 1.0)
        self.opacity = 1.0
        self.transparent = False
        self.reflectivity = 1.0
        self.combine = COMBINE_MULTIPLY
        self.side = SIDE_FRONT
        self.alpha_test = 0.0
        self.wireframe = False
        self.map = None                 # Texture or None

    @property
    def double_sided(self):
        return self.side == SIDE_DOUBLE

    def dispose(self):
        if self.map is not None:
            self.map.dispose()

    def __repr__(self):
        return (f"Material(name={self.name!r}, color={self.color}, "
                f"opacity={self.opacity}, transparent={self.transparent})")
