from __future__ import annotations

from typing import Optional


def clamp(v: int, lo: int, hi: int) -> int:
    if hi < lo:
        return lo
    return max(lo, min(hi, v))


def mask_secret(secret: str, *, char: str = "*") -> str:
    # Same length as the secret, so the table still hints at it.
    return char * len(secret)


def bool_text(v: bool) -> str:
    return "true" if v else "false"


def or_dash(v: Optional[str]) -> str:
    return v if v else "-"
