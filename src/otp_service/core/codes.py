"""Numeric passcode generation."""

import secrets


def generate_code(length: int = 6) -> str:
    """Return a zero-padded numeric code of *length* digits from a CSPRNG."""
    if length < 1:
        raise ValueError("length must be positive")
    return f"{secrets.randbelow(10**length):0{length}d}"
