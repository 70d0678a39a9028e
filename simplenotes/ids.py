from __future__ import annotations
import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_ALPHABET[rem])
    return "".join(reversed(out))


def new_id() -> str:
    """Millisecond clock in base 36 plus a random base-36 suffix, e.g. ``lzq3k1a2-4f9x0c``."""
    stamp = _base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{stamp}-{suffix}"
