"""
Limits, magic numbers and tags shared by the cell, BOC and stack codecs.
"""

# Cell limits (ordinary cells)
MAX_CELL_BITS = 1023
MAX_CELL_REFS = 4
MAX_CELL_DEPTH = 1024

# Bag-of-cells magics
BOC_MAGIC = 0xB5EE9C72              # generic, flags byte follows
BOC_MAGIC_INDEXED = 0x68FF65F3      # legacy, always indexed
BOC_MAGIC_INDEXED_CRC = 0xACC3A728  # legacy, indexed + CRC32C

# Stack integers are 257-bit signed TVM integers
TVM_INT_BITS = 257
TVM_INT_MIN = -(1 << (TVM_INT_BITS - 1))
TVM_INT_MAX = (1 << (TVM_INT_BITS - 1)) - 1

# Nesting limit for JSON stack tuples
MAX_STACK_DEPTH = 256

# JSON stack entry type tags
TYPE_CELL = "cell"
TYPE_SLICE = "cell_slice"
TYPE_NUMBER = "number"
TYPE_TUPLE = "tuple"
TYPE_NULL = "null"
TYPE_UNSUPPORTED = "UNSUPPORTED STACK ENTRY TYPE"

# User-friendly address tags
ADDR_TAG_BOUNCEABLE = 0x11
ADDR_TAG_NON_BOUNCEABLE = 0x51
ADDR_TAG_TESTNET = 0x80
