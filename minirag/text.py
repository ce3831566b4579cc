"""Small text helpers shared by the pipeline and the embedding layer."""

from __future__ import annotations


def truncate(text: str, length: int, omission: str = "...") -> str:
    """
    Clip ``text`` to at most ``length`` characters.

    When clipping happens the result ends with ``omission``, which counts
    toward ``length``. Text already within the bound is returned unchanged.
    """
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    if len(text) <= length:
        return text
    keep = max(length - len(omission), 0)
    return f"{text[:keep]}{omission}"[:length]
