"""Block-compressed texture decoding for embedded DDS payloads.

Decodes 4x4 block formats to RGBA8888, keyed by the DDS FourCC:
- DXT1 (BC1): RGB565 endpoints, 1-bit punch-through alpha
- DXT3 (BC2): DXT1 color + explicit 4-bit alpha
- DXT5 (BC3): DXT1 color + interpolated 3-bit alpha
- ATI1 (BC4): single channel, written to R (G = B = 0, A = 255)
- ATI2 (BC5): two channels (normal map X/Y), Z reconstructed into B

Block rows are top to bottom, matching the DDS payload order.
"""

import math
import struct


def decode_dxt1_block(data, offset=0, punch_through=True):
    """Decode a single DXT1 4x4 pixel block (8 bytes) to 16 RGBA pixels.

    DXT1 block format:
        2 bytes: RGB565 color0
        2 bytes: RGB565 color1
        4 bytes: 4x4 2-bit index table

    When color0 <= color1 the block is in 3-color mode and index 3 is
    transparent black. DXT3/DXT5 color blocks always use 4-color mode,
    so they pass punch_through=False.

    Returns:
        list of 16 tuples (R, G, B, A) as 0-255 integers, row by row
    """
    c0_raw, c1_raw, indices = struct.unpack_from("<HHI", data, offset)

    c0 = _rgb565_to_rgba(c0_raw)
    c1 = _rgb565_to_rgba(c1_raw)

    if c0_raw > c1_raw or not punch_through:
        c2 = tuple((2 * a + b + 1) // 3 for a, b in zip(c0, c1))
        c3 = tuple((a + 2 * b + 1) // 3 for a, b in zip(c0, c1))
    else:
        c2 = tuple((a + b) // 2 for a, b in zip(c0, c1))
        c3 = (0, 0, 0, 0)

    palette = (c0, c1, c2, c3)
    return [palette[(indices >> (i * 2)) & 0x03] for i in range(16)]


def decode_dxt3_block(data, offset=0):
    """Decode a single DXT3 4x4 pixel block (16 bytes) to 16 RGBA pixels.

    DXT3 block format:
        8 bytes: 4-bit alpha per pixel, low nibble first
        8 bytes: DXT1 color block
    """
    alpha_bytes = data[offset:offset + 8]
    color_pixels = decode_dxt1_block(data, offset + 8, punch_through=False)

    pixels = []
    for i in range(16):
        r, g, b, _ = color_pixels[i]
        nibble = (alpha_bytes[i // 2] >> ((i % 2) * 4)) & 0x0F
        pixels.append((r, g, b, nibble * 17))
    return pixels


def decode_dxt5_block(data, offset=0):
    """Decode a single DXT5 4x4 pixel block (16 bytes) to 16 RGBA pixels.

    DXT5 block format:
        8 bytes: BC4-style alpha block (2 endpoints + 48-bit index table)
        8 bytes: DXT1 color block
    """
    alphas = _decode_bc4_block(data, offset)
    color_pixels = decode_dxt1_block(data, offset + 8, punch_through=False)
    return [(r, g, b, alphas[i]) for i, (r, g, b, _) in enumerate(color_pixels)]


def decode_ati1_block(data, offset=0):
    """Decode a single ATI1/BC4 block (8 bytes) into red-only pixels."""
    return [(v, 0, 0, 255) for v in _decode_bc4_block(data, offset)]


def decode_ati2_block(data, offset=0):
    """Decode a single ATI2/BC5 block (16 bytes) into normal-map pixels.

    R = channel 0 (X), G = channel 1 (Y),
    B = derived Z = sqrt(1 - X^2 - Y^2) mapped to 0-255, A = 255
    """
    red_values = _decode_bc4_block(data, offset)
    green_values = _decode_bc4_block(data, offset + 8)

    pixels = []
    for r, g in zip(red_values, green_values):
        nx = (r / 255.0) * 2.0 - 1.0
        ny = (g / 255.0) * 2.0 - 1.0
        nz = math.sqrt(max(0.0, 1.0 - nx * nx - ny * ny))
        b = max(0, min(255, int(((nz + 1.0) * 0.5) * 255.0 + 0.5)))
        pixels.append((r, g, b, 255))
    return pixels


# FourCC -> (bytes per 4x4 block, block decoder)
BLOCK_DECODERS = {
    "DXT1": (8, decode_dxt1_block),
    "DXT3": (16, decode_dxt3_block),
    "DXT5": (16, decode_dxt5_block),
    "ATI1": (8, decode_ati1_block),
    "ATI2": (16, decode_ati2_block),
}


def compressed_size(width, height, fourcc):
    """Bytes needed for the top mip level, or None for unknown codes."""
    entry = BLOCK_DECODERS.get(fourcc)
    if entry is None:
        return None
    blocks_x = max(1, (width + 3) // 4)
    blocks_y = max(1, (height + 3) // 4)
    return blocks_x * blocks_y * entry[0]


def decompress_blocks(pixel_data, width, height, fourcc, offset=0):
    """Decompress the top mip level of a block-compressed image to RGBA8888.

    Args:
        pixel_data: bytes holding the compressed payload
        width: image width in pixels
        height: image height in pixels
        fourcc: DDS FourCC string, e.g. "DXT5"
        offset: byte offset of the first block in pixel_data

    Returns:
        bytearray of width*height*4 RGBA bytes, or None when the code is not
        handled or the payload is too short
    """
    entry = BLOCK_DECODERS.get(fourcc)
    if entry is None or width <= 0 or height <= 0:
        return None
    block_size, decode_fn = entry

    blocks_x = max(1, (width + 3) // 4)
    blocks_y = max(1, (height + 3) // 4)

    if len(pixel_data) - offset < blocks_x * blocks_y * block_size:
        return None

    output = bytearray(width * height * 4)

    for by in range(blocks_y):
        for bx in range(blocks_x):
            block_offset = offset + (by * blocks_x + bx) * block_size
            pixels = decode_fn(pixel_data, block_offset)

            # Write the 4x4 block, clipping at the image edge
            for row in range(4):
                py = by * 4 + row
                if py >= height:
                    break
                for col in range(4):
                    px = bx * 4 + col
                    if px >= width:
                        continue
                    out_offset = (py * width + px) * 4
                    output[out_offset:out_offset + 4] = bytes(pixels[row * 4 + col])

    return output


def _rgb565_to_rgba(val):
    """Convert an RGB565 value to (R, G, B, A) tuple with 8-bit components."""
    r = ((val >> 11) & 0x1F) * 255 // 31
    g = ((val >> 5) & 0x3F) * 255 // 63
    b = (val & 0x1F) * 255 // 31
    return (r, g, b, 255)


def _decode_bc4_block(data, offset):
    """Decode a single BC4 block (8 bytes) to 16 uint8 values.

    BC4 layout (also the DXT5 alpha block):
        1 byte: endpoint0
        1 byte: endpoint1
        6 bytes: 4x4 3-bit index table
    """
    a0 = data[offset]
    a1 = data[offset + 1]

    if a0 > a1:
        palette = [
            a0, a1,
            (6 * a0 + 1 * a1 + 3) // 7,
            (5 * a0 + 2 * a1 + 3) // 7,
            (4 * a0 + 3 * a1 + 3) // 7,
            (3 * a0 + 4 * a1 + 3) // 7,
            (2 * a0 + 5 * a1 + 3) // 7,
            (1 * a0 + 6 * a1 + 3) // 7,
        ]
    else:
        palette = [
            a0, a1,
            (4 * a0 + 1 * a1 + 2) // 5,
            (3 * a0 + 2 * a1 + 2) // 5,
            (2 * a0 + 3 * a1 + 2) // 5,
            (1 * a0 + 4 * a1 + 2) // 5,
            0, 255,
        ]

    # 48-bit index table follows the two endpoint bytes
    bits = int.from_bytes(data[offset + 2:offset + 8], "little")
    return [palette[(bits >> (i * 3)) & 0x07] for i in range(16)]
