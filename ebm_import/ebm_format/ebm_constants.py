"""Constants for the EBM container and its embedded DDS textures."""

# Container header magic of the variant whose animation keys are already
# expressed in parent-bone space.
EBM_NATIVE_FORMAT_TAG = 0x03ED03

# Parent index marking a root bone
ROOT_PARENT_INDEX = -1

# DDS header (magic + DDS_HEADER) size in bytes
DDS_HEADER_SIZE = 128

# "DDS " read as a little-endian uint32
DDS_MAGIC = 0x20534444

# Byte offsets into the DDS blob (relative to the magic)
DDS_OFF_HEIGHT = 12
DDS_OFF_WIDTH = 16
DDS_OFF_PF_FLAGS = 80
DDS_OFF_FOURCC = 84
DDS_OFF_RGB_BIT_COUNT = 88
DDS_OFF_R_MASK = 92
DDS_OFF_G_MASK = 96
DDS_OFF_B_MASK = 100
DDS_OFF_A_MASK = 104

# DDS_PIXELFORMAT.dwFlags
DDPF_ALPHAPIXELS = 0x1
DDPF_FOURCC = 0x4
DDPF_RGB = 0x40

# Block-compressed FourCC codes with a decoder in utils.image_convert
FOURCC_DXT1 = "DXT1"
FOURCC_DXT3 = "DXT3"
FOURCC_DXT5 = "DXT5"
FOURCC_ATI1 = "ATI1"
FOURCC_ATI2 = "ATI2"

SUPPORTED_FOURCCS = (FOURCC_DXT1, FOURCC_DXT3, FOURCC_DXT5, FOURCC_ATI1, FOURCC_ATI2)

# Maximum skin influences kept per vertex
MAX_VERTEX_INFLUENCES = 4
