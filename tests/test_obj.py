"""Tests for the OBJ writer."""

import io

import pytest

from dae2obj.core.mesh import Mesh
from dae2obj.export.obj import iter_obj_lines, meshes_to_obj, write_obj

POSITIONS = [[0, 0, 0], [1, 0, 0], [0, 1, 0]]
NORMALS = [[0, 0, 1]] * 3
TEXCOORDS = [[0, 0], [1, 0], [0.5, 1]]


@pytest.mark.parametrize("normals,texcoords,face", [
    (None, None, "f 1 2 3"),
    (NORMALS, None, "f 1//1 2//2 3//3"),
    (None, TEXCOORDS, "f 1/1 2/2 3/3"),
    (NORMALS, TEXCOORDS, "f 1/1/1 2/2/2 3/3/3"),
])
def test_face_grammar(normals, texcoords, face):
    lines = list(iter_obj_lines([Mesh(POSITIONS, [0, 1, 2], normals=normals, texcoords=texcoords)]))
    assert lines[-1] == face
    assert len(lines) == 3 * 3 + 1


def test_vertex_lines():
    mesh = Mesh(POSITIONS, [0, 1, 2], normals=NORMALS, texcoords=TEXCOORDS)
    lines = list(iter_obj_lines([mesh]))
    assert lines[6:9] == ["v 0.0 1.0 0.0", "vn 0.0 0.0 1.0", "vt 0.5 1.0"]


def test_placeholders_for_missing_attributes():
    lines = list(iter_obj_lines([Mesh(POSITIONS, [0, 1, 2])]))
    assert lines[:3] == ["v 0.0 0.0 0.0", "vn 0 0 0", "vt 0 0"]


def test_indices_continue_across_meshes():
    first = Mesh(POSITIONS, [0, 1, 2, 2, 1, 0], normals=NORMALS)
    second = Mesh(POSITIONS, [2, 0, 1])
    faces = [line for line in iter_obj_lines([first, second]) if line.startswith("f ")]
    assert faces == ["f 1//1 2//2 3//3", "f 3//3 2//2 1//1", "f 6 4 5"]


def test_write_obj_matches_text():
    meshes = [Mesh(POSITIONS, [0, 1, 2], texcoords=TEXCOORDS)]
    stream = io.StringIO()
    write_obj(meshes, stream)
    assert stream.getvalue() == meshes_to_obj(meshes)
    assert stream.getvalue().endswith("f 1/1 2/2 3/3\n")


def test_no_meshes():
    assert meshes_to_obj([]) == ""
