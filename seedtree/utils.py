"""
Generic helpers shared by the seedtree parsers and commands.
"""

import hashlib
from pathlib import Path

# Size of the first buffered read of a seed file. Only these bytes take part
# in the content hash, matching what the buffered reader holds after one fill.
READ_BUFFER_SIZE = 8 * 1024


def calc_file_hash(path: Path) -> str:
    """
    Return the lowercase hex SHA-1 of the first buffered read of `path`.

    Files larger than READ_BUFFER_SIZE are NOT hashed in full.
    """
    with open(path, "rb") as f:
        buf = f.read(READ_BUFFER_SIZE)
    return hashlib.sha1(buf).hexdigest()
