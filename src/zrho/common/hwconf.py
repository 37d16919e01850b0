DEFAULT_DIGITS = 4          # [-9999, 9999]
MAXIMUM_DIGITS = 8

GENERAL_REGISTERS = 'XYZWUV'
INDEX_REGISTERS = 'IJKLM'
STORAGE_REGISTERS = 'DEFGH'

# Storage register -> its index register
DEFAULT_INDEX = {
    'D': 'I',
    'E': 'J',
    'F': 'K',
    'G': 'L',
    'H': 'M',
}

BLOCK_TICKS = 16            # Length of a block
BLOCK_MIN_CHANGE = 2        # Index change that triggers a block

# Non-ASCII and ASCII-safe spellings
SOURCE_SUFFIXES = ('.zρ', '.zrho')


def range_of_digits(digits: int) -> int:
    return 10 ** digits - 1
