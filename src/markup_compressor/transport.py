"""Gzip transport wrapper and Accept-Encoding negotiation."""

from __future__ import annotations

import gzip
import logging

logger = logging.getLogger(__name__)

GZIP_LEVEL = 9
GZIP_MAGIC = b"\x1f\x8b"


def parse_q_list(accept_encoding: str) -> dict[str, float]:
    """Map each coding in an Accept-Encoding header to its q-value.

    Malformed q-values count as 0.
    """
    values: dict[str, float] = {}
    for item in accept_encoding.split(","):
        coding, _, params = item.partition(";")
        coding = coding.strip().lower()
        if not coding:
            continue
        q = 1.0
        for param in params.split(";"):
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(value.strip())
                except ValueError:
                    q = 0.0
        values[coding] = q
    return values


def accepts_gzip(accept_encoding: str | None) -> bool:
    """Whether a client sending *accept_encoding* can take a gzip body.

    An explicit ``gzip`` (or ``x-gzip``) entry wins over ``*``; ``q=0``
    refuses. A missing header means no compression.
    """
    if not accept_encoding:
        return False

    values = parse_q_list(accept_encoding)
    for coding in ("gzip", "x-gzip"):
        if coding in values:
            return values[coding] > 0
    return values.get("*", 0.0) > 0


def wrap(data: bytes, gzip_allowed: bool) -> bytes:
    """Gzip *data* when allowed, otherwise return it unchanged.

    The header timestamp is zeroed so equal input gives equal output.
    """
    if not gzip_allowed:
        return data
    compressed = gzip.compress(data, compresslevel=GZIP_LEVEL, mtime=0)
    logger.debug("gzip: %d -> %d bytes", len(data), len(compressed))
    return compressed
