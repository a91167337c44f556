# SPDX-License-Identifier: MIT
"""Arena of generated Xcode objects.

Objects are plain dictionaries stored by Identifier. Objects never hold
each other directly; every link is an Identifier value, so the graph
can be checked for dangling references and turned into the flat object
table of a project.pbxproj without any traversal of owned structure.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from cargo_xcode.core.errors import DanglingReferenceError, SerializationError
from cargo_xcode.core.ids import Identifier, IdentifierAllocator

ARCHIVE_VERSION = "1"
OBJECT_VERSION = "56"


def iter_references(value: Any) -> Iterator[Identifier]:
    """Yield every Identifier found in a field value, depth first."""
    if isinstance(value, Identifier):
        yield value
    elif isinstance(value, dict):
        for key, item in value.items():
            if isinstance(key, Identifier):
                yield key
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def _plain(value: Any) -> Any:
    """Convert a field value to builtin str/list/dict types."""
    if isinstance(value, str):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    raise SerializationError(f"unsupported field value {value!r}")


class ObjectGraph:
    """Identifier-indexed arena of generated objects.

    Example:
        ids = IdentifierAllocator()
        graph = ObjectGraph(ids)
        group_id = ids.allocate("<workspace>/group/products")
        graph.add(group_id, "PBXGroup", children=[], name="Products")

    Attributes:
        ids: The allocator every identifier in this graph came from.
        root: Identifier of the PBXProject object once set.
    """

    def __init__(self, ids: IdentifierAllocator) -> None:
        self.ids = ids
        self.root: Identifier | None = None
        self._objects: dict[Identifier, dict[str, Any]] = {}

    def add(self, identifier: Identifier, isa: str, **fields: Any) -> Identifier:
        """Store a new object.

        Args:
            identifier: Identifier obtained from the allocator.
            isa: Xcode object type (e.g. "PBXNativeTarget").
            **fields: Object fields. References must be Identifiers.

        Returns:
            The identifier, for chaining.

        Raises:
            SerializationError: If the identifier was not allocated by
                this graph's allocator, or is already in use.
        """
        if identifier not in self.ids:
            raise SerializationError(f"identifier {identifier} was not allocated")
        if identifier in self._objects:
            key = self.ids.key_for(identifier)
            raise SerializationError(f"object {identifier} ({key}) defined twice")
        self._objects[identifier] = {"isa": isa, **fields}
        return identifier

    def get(self, identifier: Identifier) -> dict[str, Any]:
        """Return the object stored under an identifier."""
        return self._objects[identifier]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[Identifier]:
        return iter(sorted(self._objects))

    def objects_of_type(self, isa: str) -> list[tuple[Identifier, dict[str, Any]]]:
        """All objects of one type, sorted by identifier."""
        return [(i, self._objects[i]) for i in self if self._objects[i]["isa"] == isa]

    def find(self, isa: str, **fields: Any) -> list[dict[str, Any]]:
        """Objects of a type whose fields equal the given values."""
        return [
            obj
            for _, obj in self.objects_of_type(isa)
            if all(obj.get(k) == v for k, v in fields.items())
        ]

    def validate(self) -> None:
        """Check that the graph is complete.

        Raises:
            SerializationError: If no root object is set.
            DanglingReferenceError: If any object references an
                identifier that is not in the graph.
        """
        if self.root is None or self.root not in self._objects:
            raise SerializationError("project graph has no root object")
        for identifier in self:
            for ref in iter_references(self._objects[identifier]):
                if ref not in self._objects:
                    raise DanglingReferenceError(identifier, ref)

    def to_tree(self) -> dict[str, Any]:
        """Convert the validated graph into a project.pbxproj tree."""
        self.validate()
        return {
            "archiveVersion": ARCHIVE_VERSION,
            "classes": {},
            "objectVersion": OBJECT_VERSION,
            "objects": {str(i): _plain(self._objects[i]) for i in self},
            "rootObject": str(self.root),
        }
