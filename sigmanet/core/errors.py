"""Error taxonomy shared by the numeric engine and the checkpoint codec."""

from __future__ import annotations


class SigmanetError(Exception):
    """Base class for engine errors."""


class ShapeMismatch(SigmanetError, ValueError):
    """Operand dimensions disagree for an algebra kernel or a network pass."""

    def __init__(self, op: str, expected: object, actual: object) -> None:
        super().__init__(f"{op}: expected shape {expected}, got {actual}")
        self.op = op
        self.expected = expected
        self.actual = actual


class CorruptCheckpoint(SigmanetError, ValueError):
    """A checkpoint body does not match the topology encoded in its name."""


class AllocationFailure(SigmanetError, MemoryError):
    """A vector or matrix buffer could not be allocated."""


__all__ = ["AllocationFailure", "CorruptCheckpoint", "ShapeMismatch", "SigmanetError"]
