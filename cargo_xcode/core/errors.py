# SPDX-License-Identifier: MIT
"""Custom exceptions for cargo-xcode.

All cargo-xcode exceptions inherit from CargoXcodeError, which can carry
the package and target the error relates to for better diagnostics.
"""

from __future__ import annotations


class CargoXcodeError(Exception):
    """Base class for all cargo-xcode exceptions.

    Attributes:
        message: The error message.
        package: Optional name of the package the error relates to.
        target: Optional name of the target the error relates to.
    """

    def __init__(
        self,
        message: str,
        *,
        package: str | None = None,
        target: str | None = None,
    ) -> None:
        self.message = message
        self.package = package
        self.target = target
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.package and self.target:
            return f"{self.package}/{self.target}: {self.message}"
        if self.package:
            return f"{self.package}: {self.message}"
        return self.message


class ManifestError(CargoXcodeError):
    """Cargo metadata could not be obtained or is malformed.

    Raised when `cargo metadata` fails, returns something that is not
    the expected JSON structure, or when xcode metadata tables in the
    manifest hold invalid values.

    Attributes:
        stderr: Output captured from cargo, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        package: str | None = None,
        target: str | None = None,
        stderr: str | None = None,
    ) -> None:
        self.stderr = stderr
        super().__init__(message, package=package, target=target)

    def _format_message(self) -> str:
        message = super()._format_message()
        if self.stderr:
            return f"{message}\n{self.stderr.rstrip()}"
        return message


class CycleError(CargoXcodeError):
    """Circular dependency detected between workspace targets.

    Attributes:
        cycle: The targets forming the cycle, first element repeated last.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"dependency cycle: {cycle_str}")


class UnsupportedTargetError(CargoXcodeError):
    """A target kind cannot be mapped to an Xcode product.

    Not fatal: the target filter logs it and skips the target.

    Attributes:
        kind: The cargo target kind that could not be mapped.
    """

    def __init__(self, kind: str, *, package: str, target: str) -> None:
        self.kind = kind
        super().__init__(
            f"unsupported target kind {kind!r}", package=package, target=target
        )


class IdentifierCollisionError(CargoXcodeError):
    """Two distinct canonical keys produced the same object identifier.

    Attributes:
        identifier: The colliding identifier.
        keys: The two canonical keys that collided.
    """

    def __init__(self, identifier: str, first_key: str, second_key: str) -> None:
        self.identifier = identifier
        self.keys = (first_key, second_key)
        super().__init__(
            f"identifier {identifier} allocated for both {first_key!r} "
            f"and {second_key!r}"
        )


class SerializationError(CargoXcodeError):
    """The generated object graph is internally inconsistent.

    This always indicates a bug in the generator, not a problem with
    the user's workspace.
    """


class DanglingReferenceError(SerializationError):
    """An object references an identifier that is not in the graph.

    Attributes:
        owner: Identifier of the referencing object.
        reference: The identifier that could not be resolved.
    """

    def __init__(self, owner: str, reference: str) -> None:
        self.owner = owner
        self.reference = reference
        super().__init__(f"object {owner} references missing object {reference}")


class ArchitectureMismatchError(SerializationError):
    """A universal product lists architectures that cannot be merged."""
