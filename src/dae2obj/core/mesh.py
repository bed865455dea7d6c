"""Mesh class for flattened triangle geometry."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Iterator

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import ColladaError, ErrorKind
from . import linalg

if TYPE_CHECKING:
    import trimesh

logger = logging.getLogger(__name__)


class VertexFormat(Enum):
    """Which attributes each vertex carries besides its position."""

    POS = "pos"
    POS_NORM = "pos_norm"
    POS_TEX = "pos_tex"
    POS_NORM_TEX = "pos_norm_tex"

    @classmethod
    def from_flags(cls, has_normals: bool, has_texcoords: bool) -> VertexFormat:
        if has_normals and has_texcoords:
            return cls.POS_NORM_TEX
        if has_normals:
            return cls.POS_NORM
        if has_texcoords:
            return cls.POS_TEX
        return cls.POS

    @property
    def has_normals(self) -> bool:
        return self in (VertexFormat.POS_NORM, VertexFormat.POS_NORM_TEX)

    @property
    def has_texcoords(self) -> bool:
        return self in (VertexFormat.POS_TEX, VertexFormat.POS_NORM_TEX)


class Mesh:
    """Container for unified triangle geometry.

    Stores positions, a flat triangle index list and optional normals and
    texture coordinates as numpy arrays. Every vertex owns exactly one
    position, one normal and one texcoord (when present), so a single index
    addresses all of them.
    """

    def __init__(
        self,
        positions: ArrayLike,
        indices: ArrayLike,
        normals: ArrayLike | None = None,
        texcoords: ArrayLike | None = None,
    ) -> None:
        """Create a mesh from geometry data.

        Args:
            positions: Nx3 array of vertex positions
            indices: Flat array of vertex indices, three per triangle
            normals: Optional Nx3 array of vertex normals
            texcoords: Optional Nx2 array of texture coordinates
        """
        self.positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        self.indices = np.asarray(indices, dtype=np.int64).reshape(-1)
        self.normals = (
            np.asarray(normals, dtype=np.float64).reshape(-1, 3)
            if normals is not None else None
        )
        self.texcoords = (
            np.asarray(texcoords, dtype=np.float64).reshape(-1, 2)
            if texcoords is not None else None
        )

        if len(self.indices) % 3 != 0:
            raise ColladaError(
                ErrorKind.ARRAY_COUNT_MISMATCH,
                f"{len(self.indices)} indices don't make whole triangles",
            )
        for name, attr in (("normals", self.normals), ("texcoords", self.texcoords)):
            if attr is not None and len(attr) != len(self.positions):
                raise ColladaError(
                    ErrorKind.ARRAY_COUNT_MISMATCH,
                    f"mesh has {len(self.positions)} positions but {len(attr)} {name}",
                )

    @property
    def vertex_format(self) -> VertexFormat:
        return VertexFormat.from_flags(self.normals is not None, self.texcoords is not None)

    @property
    def vertex_count(self) -> int:
        """Number of unified vertices in the mesh."""
        return len(self.positions)

    @property
    def face_count(self) -> int:
        """Number of triangles in the mesh."""
        return len(self.indices) // 3

    @property
    def faces(self) -> NDArray[np.int64]:
        """Mx3 view of the index list."""
        return self.indices.reshape(-1, 3)

    @property
    def vertices(self) -> list[tuple[tuple[float, ...], ...]]:
        """Vertex records in vertex order.

        Each record is ``(position,)`` followed by the normal and/or texcoord
        when the format has them.
        """
        return list(self.iter_vertices())

    def iter_vertices(self) -> Iterator[tuple[tuple[float, ...], ...]]:
        for i in range(self.vertex_count):
            record = [tuple(self.positions[i].tolist())]
            if self.normals is not None:
                record.append(tuple(self.normals[i].tolist()))
            if self.texcoords is not None:
                record.append(tuple(self.texcoords[i].tolist()))
            yield tuple(record)

    def pretransform(
        self,
        matrix: ArrayLike,
        tolerance: float = linalg.DEFAULT_TOLERANCE,
    ) -> Mesh:
        """Apply a 4x4 transformation matrix, returning a new mesh.

        Positions go through the full homogeneous transform followed by a
        divide by w; a vertex sent to w = 0 is an error. Normals use the
        inverse transpose of the matrix as directions (w = 0) and are
        renormalized; a normal that collapses to zero length is written as
        the zero vector.

        Args:
            matrix: 4x4 transformation matrix
            tolerance: Shortest normal length that can still be normalized

        Returns:
            New Mesh with the same format and indices
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ColladaError(
                ErrorKind.DIMENSION_MISMATCH,
                f"mesh transforms must be 4x4, got shape {matrix.shape}",
            )

        # Transform positions (homogeneous coordinates)
        ones = np.ones((self.vertex_count, 1))
        homogeneous = np.hstack([self.positions, ones])
        transformed = linalg.multiply(matrix, homogeneous.T).T
        zero_w = np.flatnonzero(transformed[:, 3] == 0.0)
        if len(zero_w):
            raise ColladaError(
                ErrorKind.ZERO_HOMOGENEOUS_WEIGHT,
                f"transform sends vertex {zero_w[0]} to w = 0, it has no finite position",
            )
        new_positions = transformed[:, :3] / transformed[:, 3:4]

        new_normals = None
        if self.normals is not None:
            normal_matrix = linalg.transpose(linalg.inverse(matrix))
            directions = np.hstack([self.normals, np.zeros((len(self.normals), 1))])
            rotated = linalg.multiply(normal_matrix, directions.T).T[:, :3]
            new_normals = np.empty_like(rotated)
            for i, normal in enumerate(rotated):
                try:
                    new_normals[i] = linalg.vector_normalize(normal, tolerance)
                except ColladaError as exc:
                    if exc.kind is not ErrorKind.ZERO_LENGTH_VECTOR:
                        raise
                    logger.debug(f"Normal {i} collapsed under transform, writing zero vector")
                    new_normals[i] = 0.0

        return Mesh(
            positions=new_positions,
            indices=self.indices.copy(),
            normals=new_normals,
            texcoords=self.texcoords.copy() if self.texcoords is not None else None,
        )

    def to_trimesh(self) -> trimesh.Trimesh:
        """Convert to a trimesh.Trimesh object for inspection."""
        import trimesh as tm

        mesh = tm.Trimesh(
            vertices=self.positions,
            faces=self.faces,
            process=False,  # Don't modify our geometry
        )
        if self.normals is not None:
            mesh.vertex_normals = self.normals
        return mesh

    def copy(self) -> Mesh:
        """Create a deep copy of this mesh."""
        return Mesh(
            positions=self.positions.copy(),
            indices=self.indices.copy(),
            normals=self.normals.copy() if self.normals is not None else None,
            texcoords=self.texcoords.copy() if self.texcoords is not None else None,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mesh):
            return NotImplemented
        return (
            self.vertex_format == other.vertex_format
            and np.array_equal(self.positions, other.positions)
            and np.array_equal(self.indices, other.indices)
            and _optional_equal(self.normals, other.normals)
            and _optional_equal(self.texcoords, other.texcoords)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Mesh({self.vertex_format.value}, vertices={self.vertex_count}, "
            f"faces={self.face_count})"
        )

    @staticmethod
    def merge(meshes: list[Mesh]) -> Mesh:
        """Merge multiple meshes into a single mesh.

        Normals and texcoords are kept only when every mesh has them.

        Args:
            meshes: List of Mesh objects to merge

        Returns:
            New Mesh containing all geometry
        """
        if not meshes:
            return Mesh(
                positions=np.empty((0, 3)),
                indices=np.empty(0, dtype=np.int64),
            )

        all_positions = []
        all_indices = []
        all_normals = []
        all_texcoords = []
        vertex_offset = 0
        has_normals = all(m.normals is not None for m in meshes)
        has_texcoords = all(m.texcoords is not None for m in meshes)

        for mesh in meshes:
            all_positions.append(mesh.positions)
            all_indices.append(mesh.indices + vertex_offset)
            if has_normals:
                all_normals.append(mesh.normals)
            if has_texcoords:
                all_texcoords.append(mesh.texcoords)
            vertex_offset += mesh.vertex_count

        return Mesh(
            positions=np.vstack(all_positions),
            indices=np.concatenate(all_indices),
            normals=np.vstack(all_normals) if has_normals else None,
            texcoords=np.vstack(all_texcoords) if has_texcoords else None,
        )


def _optional_equal(a: NDArray[np.float64] | None, b: NDArray[np.float64] | None) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return np.array_equal(a, b)
