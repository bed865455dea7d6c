"""Decode ``<triangles>`` primitives into unified meshes.

A ``<triangles>`` element stores one index per input for every triangle
corner, interleaved in the ``<p>`` stream. Positions, normals and texcoords
therefore each have their own index. Renderers and the OBJ writer want a
single index per vertex, so every distinct (position, normal, texcoord)
combination becomes one unified vertex.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from ..core.mesh import Mesh
from ..errors import ColladaError, ErrorKind
from .document import (
    ColladaDocument,
    get_attr_int,
    get_attr_str,
    get_child_elem,
    read_int_array,
    read_url,
    to_int,
)
from .sources import read_source

logger = logging.getLogger(__name__)

CompositeKey = tuple[int, ...]
VertexRecord = tuple[tuple[float, ...], ...]


@dataclass(frozen=True)
class InputBinding:
    """Where one semantic's data lives: a source id and its offset in ``<p>``."""

    source: str
    offset: int


@dataclass(frozen=True)
class TriangleInputs:
    """The inputs of one ``<triangles>`` element.

    ``vertex`` is mandatory; ``normal`` and ``texcoord`` (set 0 only) are
    present only when the element declares them. Until
    ``resolve_position_source`` is applied, ``vertex.source`` names the
    ``<vertices>`` element rather than the position ``<source>``.
    """

    vertex: InputBinding
    normal: InputBinding | None = None
    texcoord: InputBinding | None = None

    @property
    def has_normals(self) -> bool:
        return self.normal is not None

    @property
    def has_texcoords(self) -> bool:
        return self.texcoord is not None


def read_triangles_inputs(triangles_elem: ET.Element) -> TriangleInputs:
    """Collect the VERTEX, NORMAL and TEXCOORD (set 0) inputs.

    The first input of each semantic wins; later duplicates are ignored.

    Raises:
        ColladaError: MISSING_VERTEX_SEMANTIC if there is no VERTEX input.
    """
    vertex = normal = texcoord = None
    for input_elem in triangles_elem.findall("input"):
        semantic = get_attr_str(input_elem, "semantic").upper()
        binding = InputBinding(
            source=read_url(input_elem, "source"),
            offset=get_attr_int(input_elem, "offset"),
        )
        if binding.offset < 0:
            raise ColladaError(
                ErrorKind.INDEX_OUT_OF_RANGE,
                f"<input semantic={semantic}> has a negative offset {binding.offset}",
            )
        set_str = input_elem.get("set")
        input_set = 0 if set_str is None else to_int(set_str)

        if semantic == "VERTEX" and vertex is None:
            vertex = binding
        elif semantic == "NORMAL" and normal is None:
            normal = binding
        elif semantic == "TEXCOORD" and input_set == 0 and texcoord is None:
            texcoord = binding

    if vertex is None:
        raise ColladaError(ErrorKind.MISSING_VERTEX_SEMANTIC, "missing <input> with semantic=VERTEX")
    return TriangleInputs(vertex=vertex, normal=normal, texcoord=texcoord)


def get_vertices_position_source(document: ColladaDocument, vertices_id: str) -> str:
    """Id of the position ``<source>`` behind a ``<vertices>`` element."""
    vertices_elem = document.lookup(vertices_id, "vertices")
    for input_elem in vertices_elem.findall("input"):
        if get_attr_str(input_elem, "semantic").upper() == "POSITION":
            return read_url(input_elem, "source")
    raise ColladaError(
        ErrorKind.MISSING_VERTEX_SEMANTIC,
        f"couldn't read <input> with semantic=POSITION from <vertices id={vertices_id}>",
    )


def resolve_position_source(document: ColladaDocument, inputs: TriangleInputs) -> TriangleInputs:
    """Point ``inputs.vertex`` at the position source instead of ``<vertices>``."""
    position_source = get_vertices_position_source(document, inputs.vertex.source)
    return replace(inputs, vertex=replace(inputs.vertex, source=position_source))


def get_triangles_index_stride(triangles_elem: ET.Element) -> int:
    """Number of integers per corner in ``<p>``: one more than the largest offset.

    Every input counts, including semantics that are otherwise ignored.
    """
    max_offset = -1
    for input_elem in triangles_elem.findall("input"):
        offset_str = input_elem.get("offset")
        if offset_str is not None:
            max_offset = max(max_offset, to_int(offset_str))
    return max_offset + 1


def decode_index_stream(
    index_stream: Sequence[int] | NDArray[np.int64],
    index_stride: int,
    inputs: TriangleInputs,
) -> list[CompositeKey]:
    """Split ``<p>`` into per-corner composite keys.

    Each key is ``(position_index[, normal_index][, texcoord_index])``, in
    that order, regardless of the offsets in the document.

    Raises:
        ColladaError: ARRAY_COUNT_MISMATCH if the stream doesn't divide into
            whole corners, or the corners into whole triangles.
    """
    stream = np.asarray(index_stream, dtype=np.int64).reshape(-1)
    if index_stride < 1 or len(stream) % index_stride != 0:
        raise ColladaError(
            ErrorKind.ARRAY_COUNT_MISMATCH,
            f"<p> has {len(stream)} indices, not a multiple of the index stride {index_stride}",
        )
    corners = stream.reshape(-1, index_stride)
    if len(corners) % 3 != 0:
        raise ColladaError(
            ErrorKind.ARRAY_COUNT_MISMATCH,
            f"<p> describes {len(corners)} corners, which is not a whole number of triangles",
        )

    columns = [inputs.vertex.offset]
    if inputs.normal is not None:
        columns.append(inputs.normal.offset)
    if inputs.texcoord is not None:
        columns.append(inputs.texcoord.offset)
    if max(columns) >= index_stride:
        raise ColladaError(
            ErrorKind.INDEX_OUT_OF_RANGE,
            f"input offset {max(columns)} is outside the index stride {index_stride}",
        )

    return [tuple(int(i) for i in row) for row in corners[:, columns]]


def _gather(attribute: NDArray[np.float64], index: int, name: str) -> tuple[float, ...]:
    if not 0 <= index < len(attribute):
        raise ColladaError(
            ErrorKind.INDEX_OUT_OF_RANGE,
            f"{name} index {index} is outside the {len(attribute)} available {name}s",
        )
    return tuple(float(v) for v in attribute[index])


def unify_vertices(
    keys: Sequence[CompositeKey],
    positions: NDArray[np.float64],
    normals: NDArray[np.float64] | None = None,
    texcoords: NDArray[np.float64] | None = None,
) -> tuple[list[int], list[VertexRecord]]:
    """Deduplicate composite keys into one index per corner.

    Unified indices are handed out in order of first appearance, so the
    output never references a vertex that hasn't been emitted yet.

    Args:
        keys: Composite keys from ``decode_index_stream``
        positions: Position tuples addressed by ``key[0]``
        normals: Normal tuples addressed by ``key[1]``, if the keys have them
        texcoords: Texcoord tuples addressed by ``key[-1]``, if the keys have them

    Returns:
        ``(indices, vertices)`` where ``vertices[i]`` is the record for
        unified index ``i``
    """
    indices: list[int] = []
    vertices: list[VertexRecord] = []
    index_of: dict[CompositeKey, int] = {}

    for key in keys:
        unified = index_of.get(key)
        if unified is None:
            unified = len(vertices)
            index_of[key] = unified
            record = [_gather(positions, key[0], "position")]
            if normals is not None:
                record.append(_gather(normals, key[1], "normal"))
            if texcoords is not None:
                record.append(_gather(texcoords, key[-1], "texcoord"))
            vertices.append(tuple(record))
        indices.append(unified)

    return indices, vertices


def read_triangles(document: ColladaDocument, triangles_elem: ET.Element) -> Mesh:
    """Decode one ``<triangles>`` element into a Mesh."""
    inputs = resolve_position_source(document, read_triangles_inputs(triangles_elem))

    positions = read_source(document, inputs.vertex.source, "X", "Y", "Z")
    normals = (
        read_source(document, inputs.normal.source, "X", "Y", "Z")
        if inputs.normal is not None else None
    )
    texcoords = (
        read_source(document, inputs.texcoord.source, "S", "T")
        if inputs.texcoord is not None else None
    )

    index_stride = get_triangles_index_stride(triangles_elem)
    p_elem = get_child_elem(triangles_elem, "p")
    keys = decode_index_stream(read_int_array(p_elem), index_stride, inputs)
    indices, vertices = unify_vertices(keys, positions, normals, texcoords)

    slot = 1
    mesh_normals = None
    if inputs.has_normals:
        mesh_normals = [record[slot] for record in vertices]
        slot += 1
    mesh_texcoords = [record[slot] for record in vertices] if inputs.has_texcoords else None

    return Mesh(
        positions=[record[0] for record in vertices] if vertices else np.empty((0, 3)),
        indices=indices,
        normals=mesh_normals,
        texcoords=mesh_texcoords,
    )


def read_geometry(document: ColladaDocument, geom_elem: ET.Element) -> list[Mesh]:
    """Decode every ``<triangles>`` of a geometry's ``<mesh>``."""
    mesh_elem = get_child_elem(geom_elem, "mesh")
    meshes = [read_triangles(document, triangles_elem) for triangles_elem in mesh_elem.findall("triangles")]
    logger.debug(
        f"Geometry {geom_elem.get('id')!r}: {len(meshes)} triangle set(s), "
        f"{sum(m.face_count for m in meshes)} triangles"
    )
    return meshes
