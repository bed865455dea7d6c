"""Wavefront OBJ writer.

Every vertex gets a ``v``, ``vn`` and ``vt`` line so that one OBJ index
addresses all three; meshes without normals or texcoords get zero
placeholders. Face indices are 1-based and continue across meshes.
"""

from __future__ import annotations

import io
from typing import Iterable, Iterator, TextIO

from ..core.mesh import Mesh, VertexFormat

# Face corner layouts per vertex format; {0} is the 1-based index
CORNER_FORMATS = {
    VertexFormat.POS: "{0}",
    VertexFormat.POS_NORM: "{0}//{0}",
    VertexFormat.POS_TEX: "{0}/{0}",
    VertexFormat.POS_NORM_TEX: "{0}/{0}/{0}",
}


def _fmt(value: float) -> str:
    return repr(float(value))


def iter_obj_lines(meshes: Iterable[Mesh]) -> Iterator[str]:
    """Yield OBJ lines (without newlines) for the meshes in order."""
    vertex_offset = 0
    for mesh in meshes:
        for i in range(mesh.vertex_count):
            x, y, z = mesh.positions[i]
            yield f"v {_fmt(x)} {_fmt(y)} {_fmt(z)}"
            if mesh.normals is not None:
                nx, ny, nz = mesh.normals[i]
                yield f"vn {_fmt(nx)} {_fmt(ny)} {_fmt(nz)}"
            else:
                yield "vn 0 0 0"
            if mesh.texcoords is not None:
                u, v = mesh.texcoords[i]
                yield f"vt {_fmt(u)} {_fmt(v)}"
            else:
                yield "vt 0 0"

        corner = CORNER_FORMATS[mesh.vertex_format]
        for face in mesh.faces:
            yield "f " + " ".join(corner.format(int(i) + 1 + vertex_offset) for i in face)

        vertex_offset += mesh.vertex_count


def write_obj(meshes: Iterable[Mesh], stream: TextIO) -> None:
    """Write the meshes to an open text stream."""
    for line in iter_obj_lines(meshes):
        stream.write(line)
        stream.write("\n")


def meshes_to_obj(meshes: Iterable[Mesh]) -> str:
    """The meshes as OBJ text."""
    buffer = io.StringIO()
    write_obj(meshes, buffer)
    return buffer.getvalue()
