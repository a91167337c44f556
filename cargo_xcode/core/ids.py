# SPDX-License-Identifier: MIT
"""Deterministic identifiers for generated Xcode objects.

Xcode uses 24-hex-digit object identifiers. Deriving them from a
canonical key instead of generating random ones means regenerating an
unchanged workspace gives every object the same identifier, so Xcode
sees the same objects and version control shows minimal diffs.
"""

from __future__ import annotations

import hashlib

from cargo_xcode.core.errors import IdentifierCollisionError

ID_PREFIX = "CA60"
ID_LENGTH = 24


class Identifier(str):
    """An Xcode object identifier.

    A plain string, typed so that references to other objects can be
    told apart from ordinary string values inside object fields.
    """

    __slots__ = ()


def canonical_key(*parts: str) -> str:
    """Join key parts (package, target, kind, role...) into a canonical key."""
    return "/".join(parts)


def derive_identifier(key: str) -> Identifier:
    """Compute the identifier for a canonical key.

    This is a pure function: the same key always gives the same result.
    """
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest().upper()
    return Identifier(ID_PREFIX + digest[: ID_LENGTH - len(ID_PREFIX)])


class IdentifierAllocator:
    """Allocates identifiers for one generation run.

    Each run owns its own allocator, so identifiers never leak between
    runs. The allocator remembers which key produced each identifier and
    refuses to hand out the same identifier for two different keys.

    Example:
        ids = IdentifierAllocator()
        target_id = ids.allocate(canonical_key("mylib", "mylib", "staticlib", "target"))
    """

    def __init__(self) -> None:
        self._keys: dict[Identifier, str] = {}

    def allocate(self, key: str) -> Identifier:
        """Return the identifier for a canonical key.

        Raises:
            IdentifierCollisionError: If a different key already owns
                the derived identifier.
        """
        identifier = derive_identifier(key)
        existing = self._keys.get(identifier)
        if existing is None:
            self._keys[identifier] = key
        elif existing != key:
            raise IdentifierCollisionError(identifier, existing, key)
        return identifier

    def key_for(self, identifier: str) -> str | None:
        """Canonical key an identifier was allocated for, if any."""
        return self._keys.get(Identifier(identifier))

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._keys

    def __len__(self) -> int:
        return len(self._keys)
