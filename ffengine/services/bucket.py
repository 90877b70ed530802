import struct

import xxhash

SEPARATOR = b"\x1f"
BUCKETS = 100


def bucket(flag_key: str, subject_key: str, salt: int = 0) -> int:
    """Map (flag, subject, salt) to a sticky bucket in [0, 100).

    XXH64 (seed 0) over ``flag_key || 0x1F || subject_key || salt``, with the
    salt as 8 little-endian bytes and omitted when zero, reduced modulo 100.
    The value is stable across processes and matches other XXH64 ports.
    """
    h = xxhash.xxh64()
    h.update(flag_key.encode("utf-8", "surrogatepass"))
    h.update(SEPARATOR)
    h.update(subject_key.encode("utf-8", "surrogatepass"))
    if salt:
        h.update(struct.pack("<Q", salt & 0xFFFFFFFFFFFFFFFF))
    return h.intdigest() % BUCKETS
