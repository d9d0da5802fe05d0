import struct
import unittest

from ebm_import.ebm_format.ebm_constants import DDPF_FOURCC, DDPF_RGB
from ebm_import.format_profiles import TextureConfig
from ebm_import.scene_graph.sg_materials import WRAP_REPEAT
from ebm_import.utils.dds_decode import DDSHeader, TextureDecoder, make_fallback_texture
from ebm_import.utils.image_convert import (
    compressed_size, decode_ati1_block, decode_ati2_block, decode_dxt1_block,
    decode_dxt3_block, decode_dxt5_block, decompress_blocks,
)

from ebm_fixtures import make_argb32_dds, make_dds, make_dxt1_dds, make_rgb24_dds


RED_565 = 0xF800
BLUE_565 = 0x001F
FALLBACK_RGBA = (0xFF, 0x6B, 0x6B, 0xFF)

# 4-bit alpha per pixel, low nibble first: 0, 15, 5, 8, then zeros
DXT3_ALPHA = bytes((0xF0, 0x85)) + bytes(6)


class DDSHeaderTest(unittest.TestCase):

    def test_reads_dimensions_and_format(self):
        header = DDSHeader.read(make_dds(8, 4, DDPF_FOURCC, fourcc=b"DXT5"))
        self.assertEqual((header.width, header.height), (8, 4))
        self.assertEqual(header.fourcc, "DXT5")
        self.assertTrue(header.is_compressed)
        self.assertFalse(header.is_uncompressed)

    def test_uncompressed_needs_rgb_flag_and_empty_fourcc(self):
        header = DDSHeader.read(make_dds(2, 2, DDPF_RGB, bit_count=24))
        self.assertTrue(header.is_uncompressed)
        self.assertFalse(header.is_compressed)

    def test_short_data_raises(self):
        with self.assertRaises(ValueError):
            DDSHeader.read(b"DDS ")

    def test_bad_magic_raises(self):
        with self.assertRaises(ValueError):
            DDSHeader.read(bytes(128))


class TextureDecoderFallbackTest(unittest.TestCase):

    def setUp(self):
        self.decoder = TextureDecoder()

    def assertFallback(self, result, width, height):
        self.assertTrue(result.is_degraded)
        texture = result.artifact
        self.assertTrue(texture.is_fallback)
        self.assertEqual((texture.width, texture.height), (width, height))
        self.assertEqual(len(texture.pixels), width * height * 4)
        self.assertEqual(texture.get_pixel(0, 0), FALLBACK_RGBA)

    def test_blob_shorter_than_header(self):
        self.assertFallback(self.decoder.decode(b"abc", "short"), 256, 256)

    def test_empty_blob(self):
        self.assertFallback(self.decoder.decode(b"", "empty"), 256, 256)

    def test_wrong_magic(self):
        self.assertFallback(self.decoder.decode(bytes(200), "magic"), 256, 256)

    def test_unrecognized_pixel_format(self):
        self.assertFallback(self.decoder.decode(make_dds(4, 4, 0), "neither"), 256, 256)

    def test_zero_dimensions(self):
        blob = make_dds(0, 0, DDPF_RGB, bit_count=24)
        self.assertFallback(self.decoder.decode(blob, "zero"), 256, 256)

    def test_oversized_dimensions(self):
        blob = make_dds(100000, 4, DDPF_RGB, bit_count=24)
        self.assertFallback(self.decoder.decode(blob, "huge"), 256, 256)

    def test_unsupported_bit_count_keeps_header_size(self):
        blob = make_dds(4, 2, DDPF_RGB, bit_count=16, payload=bytes(16))
        self.assertFallback(self.decoder.decode(blob, "rgb16"), 4, 2)

    def test_truncated_uncompressed_payload(self):
        blob = make_dds(4, 4, DDPF_RGB, bit_count=24, payload=bytes(10))
        self.assertFallback(self.decoder.decode(blob, "trunc"), 4, 4)

    def test_truncated_compressed_payload(self):
        blob = make_dds(8, 8, DDPF_FOURCC, fourcc=b"DXT1", payload=bytes(8))
        self.assertFallback(self.decoder.decode(blob, "trunc"), 8, 8)

    def test_fallback_uses_repeat_wrapping(self):
        texture = self.decoder.decode(b"", "wrap").artifact
        self.assertEqual((texture.wrap_s, texture.wrap_t), (WRAP_REPEAT, WRAP_REPEAT))

    def test_fallback_size_follows_config(self):
        decoder = TextureDecoder(TextureConfig(fallback_size=32, draw_fallback_marker=False))
        texture = decoder.decode(b"", "small").artifact
        self.assertEqual((texture.width, texture.height), (32, 32))
        self.assertEqual(set(texture.pixels[0::4]), {0xFF})
        self.assertEqual(set(texture.pixels[1::4]), {0x6B})

    def test_fallback_marker_is_drawn(self):
        texture = make_fallback_texture()
        self.assertTrue(any(texture.get_pixel(x, y) != FALLBACK_RGBA
                            for y in range(10, 60) for x in range(10, 120)))


class TextureDecoderUncompressedTest(unittest.TestCase):

    def setUp(self):
        self.decoder = TextureDecoder()

    def test_rgb24_is_swizzled_and_flipped(self):
        # Stored bottom row red, top row blue
        blob = make_rgb24_dds(1, 2, [[(0, 0, 255)], [(255, 0, 0)]])
        result = self.decoder.decode(blob, "rgb24")
        self.assertTrue(result.is_ok)
        texture = result.artifact
        self.assertFalse(texture.is_fallback)
        self.assertEqual(texture.source_format, "RGB24")
        self.assertEqual(texture.get_pixel(0, 0), (0, 0, 255, 255))
        self.assertEqual(texture.get_pixel(0, 1), (255, 0, 0, 255))

    def test_rgba32_uses_channel_masks(self):
        blob = make_argb32_dds(2, 1, [0xFF112233, 0x80AABBCC])
        texture = self.decoder.decode(blob, "argb").artifact
        self.assertEqual(texture.get_pixel(0, 0), (0x11, 0x22, 0x33, 0xFF))
        self.assertEqual(texture.get_pixel(1, 0), (0xAA, 0xBB, 0xCC, 0x80))

    def test_rgba32_rows_are_flipped(self):
        blob = make_argb32_dds(1, 2, [0xFF0000FF, 0xFFFF0000])
        texture = self.decoder.decode(blob, "flip").artifact
        self.assertEqual(texture.get_pixel(0, 0), (0xFF, 0x00, 0x00, 0xFF))
        self.assertEqual(texture.get_pixel(0, 1), (0x00, 0x00, 0xFF, 0xFF))

    def test_rgb32_without_alpha_mask_is_opaque(self):
        payload = struct.pack("<I", 0x00102030)
        blob = make_dds(1, 1, DDPF_RGB, bit_count=32,
                        masks=(0x00FF0000, 0x0000FF00, 0x000000FF, 0), payload=payload)
        texture = self.decoder.decode(blob, "xrgb").artifact
        self.assertEqual(texture.get_pixel(0, 0), (0x10, 0x20, 0x30, 0xFF))

    def test_identical_blobs_share_a_texture(self):
        blob = make_rgb24_dds(1, 1, [[(1, 2, 3)]])
        first = self.decoder.decode(blob, "a").artifact
        second = self.decoder.decode(bytes(blob), "b").artifact
        self.assertIs(first, second)

    def test_decoders_do_not_share_cache(self):
        blob = make_rgb24_dds(1, 1, [[(1, 2, 3)]])
        first = TextureDecoder().decode(blob, "a").artifact
        second = TextureDecoder().decode(blob, "a").artifact
        self.assertIsNot(first, second)

    def test_to_image(self):
        blob = make_rgb24_dds(2, 1, [[(0, 0, 255), (0, 255, 0)]])
        image = self.decoder.decode(blob, "img").artifact.to_image()
        self.assertEqual(image.size, (2, 1))
        self.assertEqual(image.getpixel((1, 0)), (0, 255, 0, 255))


class TextureDecoderCompressedTest(unittest.TestCase):

    def setUp(self):
        self.decoder = TextureDecoder()

    def test_dxt1_solid_block(self):
        block = struct.pack("<HHI", RED_565, BLUE_565, 0)
        result = self.decoder.decode(make_dxt1_dds(4, 4, [block]), "dxt1")
        self.assertTrue(result.is_ok)
        texture = result.artifact
        self.assertEqual(texture.source_format, "DXT1")
        self.assertEqual(texture.get_pixel(3, 3), (255, 0, 0, 255))

    def test_dxt1_smaller_than_block_is_clipped(self):
        block = struct.pack("<HHI", RED_565, BLUE_565, 0x55555555)
        texture = self.decoder.decode(make_dxt1_dds(2, 2, [block]), "tiny").artifact
        self.assertEqual(len(texture.pixels), 2 * 2 * 4)
        self.assertEqual(texture.get_pixel(1, 1), (0, 0, 255, 255))

    def test_dxt3_explicit_alpha(self):
        block = DXT3_ALPHA + struct.pack("<HHI", RED_565, BLUE_565, 0)
        blob = make_dds(4, 4, DDPF_FOURCC, fourcc=b"DXT3", payload=block)
        result = self.decoder.decode(blob, "dxt3")
        self.assertTrue(result.is_ok)
        texture = result.artifact
        self.assertEqual(texture.source_format, "DXT3")
        self.assertEqual(texture.get_pixel(0, 0), (255, 0, 0, 0))
        self.assertEqual(texture.get_pixel(1, 0), (255, 0, 0, 255))
        self.assertEqual(texture.get_pixel(2, 0), (255, 0, 0, 85))
        self.assertEqual(texture.get_pixel(3, 0), (255, 0, 0, 136))
        self.assertEqual(texture.get_pixel(0, 1), (255, 0, 0, 0))

    def test_unsupported_fourcc_gives_blank_texture(self):
        blob = make_dds(4, 4, DDPF_FOURCC, fourcc=b"DXT2", payload=bytes(16))
        result = self.decoder.decode(blob, "dxt2")
        self.assertTrue(result.is_degraded)
        texture = result.artifact
        self.assertFalse(texture.is_fallback)
        self.assertEqual((texture.width, texture.height), (4, 4))
        self.assertEqual(set(texture.pixels), {0})


class BlockDecoderTest(unittest.TestCase):

    def test_dxt1_punch_through_alpha(self):
        # color0 <= color1 selects 3-color mode; index 3 is transparent
        block = struct.pack("<HHI", BLUE_565, RED_565, 0xFFFFFFFF)
        self.assertEqual(decode_dxt1_block(block)[0], (0, 0, 0, 0))

    def test_dxt1_four_color_mode_for_dxt3_dxt5(self):
        block = struct.pack("<HHI", BLUE_565, RED_565, 0xFFFFFFFF)
        self.assertEqual(decode_dxt1_block(block, punch_through=False)[0][3], 255)

    def test_dxt3_alpha_nibbles_low_first(self):
        color = struct.pack("<HHI", RED_565, BLUE_565, 0)
        alphas = [p[3] for p in decode_dxt3_block(DXT3_ALPHA + color)]
        self.assertEqual(alphas[:4], [0, 255, 85, 136])
        self.assertEqual(set(alphas[4:]), {0})

    def test_dxt3_color_always_four_color_mode(self):
        # color0 < color1 would be punch-through in DXT1; DXT3 keeps index 3 opaque
        color = struct.pack("<HHI", BLUE_565, RED_565, 0xFFFFFFFF)
        r, g, b, a = decode_dxt3_block(DXT3_ALPHA + color)[1]
        self.assertEqual((r, g, b, a), (170, 0, 85, 255))

    def test_dxt5_alpha_endpoints(self):
        alpha = bytes((255, 0)) + bytes(6)
        color = struct.pack("<HHI", RED_565, BLUE_565, 0)
        pixels = decode_dxt5_block(alpha + color)
        self.assertEqual(pixels[0], (255, 0, 0, 255))

    def test_ati1_writes_red_channel(self):
        block = bytes((200, 0)) + bytes(6)
        self.assertEqual(decode_ati1_block(block)[5], (200, 0, 0, 255))

    def test_ati2_reconstructs_z(self):
        block = bytes((128, 128)) + bytes(6) + bytes((128, 128)) + bytes(6)
        r, g, b, a = decode_ati2_block(block)[0]
        self.assertEqual((r, g, a), (128, 128, 255))
        self.assertEqual(b, 255)

    def test_compressed_size(self):
        self.assertEqual(compressed_size(8, 8, "DXT1"), 32)
        self.assertEqual(compressed_size(5, 5, "DXT5"), 64)
        self.assertIsNone(compressed_size(4, 4, "BC7 "))

    def test_decompress_unknown_code(self):
        self.assertIsNone(decompress_blocks(bytes(16), 4, 4, "XXXX"))


if __name__ == "__main__":
    unittest.main()
