# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Client or server address wrapper.

Workers report the peer as loopback; ``HttpRequest.client`` returns the
address derived from ``REMOTE_ADDR``/``REMOTE_PORT`` metadata.
"""

from __future__ import annotations

__all__ = ["Address"]


class Address:
    """
    Client or server address.

    Example:
        >>> addr = Address("127.0.0.1", 0)
        >>> addr == ("127.0.0.1", 0)
        True
    """

    __slots__ = ("host", "port")

    def __init__(self, host: str, port: int | None = None) -> None:
        self.host = host
        self.port = port

    def __repr__(self) -> str:
        return f"Address(host={self.host!r}, port={self.port})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.host == other.host and self.port == other.port
        if isinstance(other, tuple) and len(other) == 2:
            return bool(self.host == other[0] and self.port == other[1])
        return False
