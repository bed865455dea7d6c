"""Error type shared by every stage of the conversion."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """The kinds of failure a conversion can hit."""

    MALFORMED_DOCUMENT = "malformed-document"
    MALFORMED_NUMBER = "malformed-number"
    MALFORMED_REFERENCE = "malformed-reference"
    UNRESOLVED_ID = "unresolved-id"
    UNEXPECTED_ELEMENT = "unexpected-element"
    DUPLICATE_ID = "duplicate-id"
    MISSING_ATTRIBUTE = "missing-required-attribute"
    MISSING_CHILD_ELEMENT = "missing-required-child-element"
    ARRAY_COUNT_MISMATCH = "array-count-mismatch"
    INDEX_OUT_OF_RANGE = "index-out-of-range"
    UNSUPPORTED_COMPONENT_TYPE = "unsupported-component-type"
    UNEXPECTED_COMPONENT_SHAPE = "unexpected-component-shape"
    MULTIPLE_TRANSFORMS = "multiple-transforms-per-node"
    MISSING_VERTEX_SEMANTIC = "missing-vertex-semantic"
    CYCLIC_REFERENCE = "cyclic-reference"
    NON_INVERTIBLE_MATRIX = "non-invertible-matrix"
    DIMENSION_MISMATCH = "dimension-mismatch"
    ZERO_HOMOGENEOUS_WEIGHT = "zero-homogeneous-weight"
    ZERO_LENGTH_VECTOR = "zero-length-vector"


class ColladaError(Exception):
    """Raised when a document can't be converted.

    The ``kind`` tells callers what went wrong without parsing the message.
    Only ZERO_LENGTH_VECTOR is ever recovered from, and only where a
    transformed normal is renormalized.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"ColladaError({self.kind.name}, {self.message!r})"
