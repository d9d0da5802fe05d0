"""Decode the DDS blobs embedded in EBM materials.

Handles:
- Uncompressed 24-bit BGR and 32-bit mask-described pixels (rows stored
  bottom-up, flipped to top-down on decode)
- Block-compressed DXT1/DXT3/DXT5/ATI1/ATI2 via utils.image_convert
- Fallback placeholder images for anything that cannot be decoded

Decoding never raises to the caller. TextureDecoder.decode() returns a
BuildResult whose artifact is always a usable Texture; structural problems
(short blob, bad magic, unknown pixel format) produce a solid fallback image
with a "DDS Load Failed" marker drawn on it.
"""

import logging
import os
import struct

from PIL import Image, ImageColor, ImageDraw, ImageFont

from ..ebm_format.ebm_constants import (
    DDS_HEADER_SIZE, DDS_MAGIC,
    DDS_OFF_HEIGHT, DDS_OFF_WIDTH, DDS_OFF_PF_FLAGS, DDS_OFF_FOURCC,
    DDS_OFF_RGB_BIT_COUNT, DDS_OFF_R_MASK, DDS_OFF_G_MASK, DDS_OFF_B_MASK,
    DDS_OFF_A_MASK,
    DDPF_FOURCC, DDPF_RGB,
    SUPPORTED_FOURCCS,
)
from ..format_profiles import TextureConfig
from ..importer.build_result import BuildResult
from ..scene_graph.sg_materials import Texture, WRAP_REPEAT
from .image_convert import decompress_blocks


# Verbose per-texture diagnostics, activate with EBM_DEBUG_DDS=1
_dds_debug = os.environ.get('EBM_DEBUG_DDS', '') == '1'
_log = logging.getLogger("ebm_dds")


class DDSHeader:
    """The fields of the 128-byte DDS header this decoder needs."""

    def __init__(self):
        self.width = 0
        self.height = 0
        self.pf_flags = 0
        self.fourcc_raw = b"\x00\x00\x00\x00"
        self.rgb_bit_count = 0
        self.r_mask = 0
        self.g_mask = 0
        self.b_mask = 0
        self.a_mask = 0

    @property
    def fourcc(self):
        return self.fourcc_raw.decode("latin-1")

    @property
    def has_fourcc(self):
        return self.fourcc_raw.strip(b"\x00 ") != b""

    @property
    def is_uncompressed(self):
        return not self.has_fourcc and bool(self.pf_flags & DDPF_RGB)

    @property
    def is_compressed(self):
        return bool(self.pf_flags & DDPF_FOURCC) and self.has_fourcc

    @classmethod
    def read(cls, data):
        """Parse the DDS header at the start of data.

        Raises:
            ValueError: if data is shorter than the header or the magic is wrong
        """
        if len(data) < DDS_HEADER_SIZE:
            raise ValueError(f"Data too small for DDS header: {len(data)} < {DDS_HEADER_SIZE}")

        magic = struct.unpack_from("<I", data, 0)[0]
        if magic != DDS_MAGIC:
            raise ValueError(f"Invalid DDS magic: 0x{magic:08x}")

        header = cls()
        header.height = struct.unpack_from("<I", data, DDS_OFF_HEIGHT)[0]
        header.width = struct.unpack_from("<I", data, DDS_OFF_WIDTH)[0]
        header.pf_flags = struct.unpack_from("<I", data, DDS_OFF_PF_FLAGS)[0]
        header.fourcc_raw = bytes(data[DDS_OFF_FOURCC:DDS_OFF_FOURCC + 4])
        header.rgb_bit_count = struct.unpack_from("<I", data, DDS_OFF_RGB_BIT_COUNT)[0]
        header.r_mask = struct.unpack_from("<I", data, DDS_OFF_R_MASK)[0]
        header.g_mask = struct.unpack_from("<I", data, DDS_OFF_G_MASK)[0]
        header.b_mask = struct.unpack_from("<I", data, DDS_OFF_B_MASK)[0]
        header.a_mask = struct.unpack_from("<I", data, DDS_OFF_A_MASK)[0]
        return header

    def __repr__(self):
        return (
            f"DDSHeader({self.width}x{self.height}, flags=0x{self.pf_flags:x}, "
            f"fourcc={self.fourcc!r}, bits={self.rgb_bit_count}, "
            f"masks=({self.r_mask:#010x}, {self.g_mask:#010x}, "
            f"{self.b_mask:#010x}, {self.a_mask:#010x}))"
        )


# ---------------------------------------------------------------------------
# Uncompressed pixels
# ---------------------------------------------------------------------------

def decode_uncompressed(data, header):
    """Decode an uncompressed 24/32-bit payload to top-down RGBA8888.

    24-bit pixels are B, G, R bytes with implicit opaque alpha. 32-bit
    pixels are little-endian uint32 values split by the header's channel
    masks; a zero alpha mask means fully opaque.

    Raises:
        ValueError: unsupported bit count or truncated payload
    """
    w = header.width
    h = header.height
    bpp = header.rgb_bit_count
    if bpp not in (24, 32):
        raise ValueError(f"Unsupported uncompressed bit count: {bpp}")

    bytes_pp = bpp // 8
    row_bytes = w * bytes_pp
    needed = row_bytes * h
    if len(data) - DDS_HEADER_SIZE < needed:
        raise ValueError(
            f"Truncated pixel data: {len(data) - DDS_HEADER_SIZE} < {needed} bytes")

    output = bytearray(w * h * 4)
    out_row_bytes = w * 4

    if bpp == 24:
        opaque = b"\xff" * w
        for y in range(h):
            # First stored row is the bottom of the image
            src = DDS_HEADER_SIZE + (h - 1 - y) * row_bytes
            row = data[src:src + row_bytes]
            out_row = bytearray(out_row_bytes)
            out_row[0::4] = row[2::3]
            out_row[1::4] = row[1::3]
            out_row[2::4] = row[0::3]
            out_row[3::4] = opaque
            output[y * out_row_bytes:(y + 1) * out_row_bytes] = out_row
        return output

    channels = [
        (header.r_mask, _trailing_zero_bits(header.r_mask)),
        (header.g_mask, _trailing_zero_bits(header.g_mask)),
        (header.b_mask, _trailing_zero_bits(header.b_mask)),
    ]
    a_mask = header.a_mask
    a_shift = _trailing_zero_bits(a_mask)
    row_fmt = "<%dI" % w

    for y in range(h):
        src = DDS_HEADER_SIZE + (h - 1 - y) * row_bytes
        dst = y * out_row_bytes
        for pixel in struct.unpack_from(row_fmt, data, src):
            for mask, shift in channels:
                output[dst] = ((pixel & mask) >> shift) & 0xFF
                dst += 1
            output[dst] = ((pixel & a_mask) >> a_shift) & 0xFF if a_mask else 255
            dst += 1

    return output


def _trailing_zero_bits(mask):
    """Number of trailing zero bits in mask (0 for an empty mask)."""
    if mask == 0:
        return 0
    return (mask & -mask).bit_length() - 1


# ---------------------------------------------------------------------------
# Fallback images
# ---------------------------------------------------------------------------

def make_fallback_texture(width=0, height=0, config=None, name=""):
    """Build the solid "DDS Load Failed" placeholder texture.

    width/height are the dimensions the blob asked for; zero means unknown
    and falls back to config.fallback_size. The resulting size is printed
    under the marker text.
    """
    if config is None:
        config = TextureConfig()

    out_w = width or config.fallback_size
    out_h = height or config.fallback_size

    image = Image.new("RGBA", (out_w, out_h), ImageColor.getcolor(config.fallback_color, "RGBA"))
    if config.draw_fallback_marker:
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default()
        text_color = ImageColor.getrgb(config.fallback_text_color)
        draw.text((10, 16), "DDS Load Failed", fill=text_color, font=font)
        draw.text((10, 36), f"{out_w}x{out_h}", fill=text_color, font=font)

    texture = Texture(out_w, out_h, bytearray(image.tobytes()), name=name)
    texture.is_fallback = True
    texture.wrap_s = WRAP_REPEAT
    texture.wrap_t = WRAP_REPEAT
    return texture


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------

class TextureDecoder:
    """Decodes material texture blobs for one reconstruction.

    Construct one per load. Identical blobs within the load share one
    Texture; nothing is cached across loads.
    """

    def __init__(self, config=None):
        self.config = config if config is not None else TextureConfig()
        self._cache = {}

    def decode(self, blob, name=""):
        """Decode a texture blob.

        Args:
            blob: raw DDS bytes (may be empty or malformed)
            name: texture id, used for naming and log messages

        Returns:
            BuildResult[Texture]; degraded when a fallback or best-effort
            texture was produced.
        """
        key = bytes(blob) if blob else b""
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            result = self._decode(key, name)
        except Exception as e:
            # Anything the checks above did not anticipate still fails closed
            _log.warning("Texture '%s': unexpected decode failure: %s", name, e)
            result = BuildResult.degraded(
                make_fallback_texture(config=self.config, name=name),
                f"texture '{name}': unexpected decode failure: {e}")

        self._cache[key] = result
        return result

    def _decode(self, data, name):
        cfg = self.config

        try:
            header = DDSHeader.read(data)
        except ValueError as e:
            return self._fallback(name, str(e))

        if _dds_debug:
            _log.debug("Texture '%s': %r (%d bytes)", name, header, len(data))

        if (header.width == 0 or header.height == 0
                or header.width > cfg.max_dimension or header.height > cfg.max_dimension):
            return self._fallback(
                name, f"unusable dimensions {header.width}x{header.height}")

        if header.is_uncompressed:
            try:
                pixels = decode_uncompressed(data, header)
            except ValueError as e:
                return self._fallback(name, str(e), header.width, header.height)
            fmt = "RGB24" if header.rgb_bit_count == 24 else "RGBA32"
            return BuildResult.ok(self._texture(header, pixels, fmt, name))

        if header.is_compressed:
            return self._decode_compressed(data, header, name)

        return self._fallback(
            name,
            f"unrecognized DDS format: FourCC={header.fourcc!r}, flags=0x{header.pf_flags:x}")

    def _decode_compressed(self, data, header, name):
        fourcc = header.fourcc
        supported = fourcc in SUPPORTED_FOURCCS
        if not supported:
            _log.warning("Texture '%s': unsupported compressed format %r, attempting decode anyway",
                         name, fourcc)

        pixels = decompress_blocks(data, header.width, header.height, fourcc,
                                   offset=DDS_HEADER_SIZE)
        if pixels is not None:
            return BuildResult.ok(self._texture(header, pixels, fourcc, name))

        if supported:
            return self._fallback(
                name, f"truncated {fourcc} payload", header.width, header.height)

        # No decoder for this code: hand back a blank texture of the right size
        blank = self._texture(header, bytearray(header.width * header.height * 4), fourcc, name)
        return BuildResult.degraded(
            blank, f"texture '{name}': no decoder for FourCC {fourcc!r}, texture left blank")

    def _texture(self, header, pixels, fmt, name):
        texture = Texture(header.width, header.height, pixels, name=name)
        texture.source_format = fmt
        texture.wrap_s = WRAP_REPEAT
        texture.wrap_t = WRAP_REPEAT
        return texture

    def _fallback(self, name, reason, width=0, height=0):
        _log.warning("Texture '%s': DDS load failed (%s), using fallback", name, reason)
        texture = make_fallback_texture(width, height, self.config, name=name)
        return BuildResult.degraded(texture, f"texture '{name}': {reason}")
