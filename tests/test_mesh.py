"""Tests for the Mesh container and pre-transforming meshes."""

import math

import numpy as np
import pytest

from dae2obj.core import linalg
from dae2obj.core.mesh import Mesh, VertexFormat
from dae2obj.errors import ColladaError, ErrorKind


@pytest.fixture
def triangle() -> Mesh:
    """One triangle with normals and texcoords."""
    return Mesh(
        positions=[[0, 1, 2], [1, 0, 0], [0, 0, 1]],
        indices=[0, 1, 2],
        normals=[[0, 1, 1], [0, 0, 1], [1, 0, 0]],
        texcoords=[[0, 0], [1, 0], [0, 1]],
    )


class TestVertexFormat:

    @pytest.mark.parametrize("has_normals,has_texcoords,expected", [
        (False, False, VertexFormat.POS),
        (True, False, VertexFormat.POS_NORM),
        (False, True, VertexFormat.POS_TEX),
        (True, True, VertexFormat.POS_NORM_TEX),
    ])
    def test_from_flags(self, has_normals, has_texcoords, expected):
        fmt = VertexFormat.from_flags(has_normals, has_texcoords)
        assert fmt is expected
        assert fmt.has_normals == has_normals
        assert fmt.has_texcoords == has_texcoords


class TestMesh:

    def test_format_follows_attributes(self, triangle):
        assert triangle.vertex_format is VertexFormat.POS_NORM_TEX
        assert Mesh([[0, 0, 0]] * 3, [0, 1, 2]).vertex_format is VertexFormat.POS

    def test_counts(self, triangle):
        assert triangle.vertex_count == 3
        assert triangle.face_count == 1
        np.testing.assert_array_equal(triangle.faces, [[0, 1, 2]])

    def test_vertex_records(self, triangle):
        assert triangle.vertices[1] == ((1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (1.0, 0.0))

    def test_records_without_normals(self):
        mesh = Mesh([[1, 2, 3]] * 3, [0, 0, 0], texcoords=[[0.5, 0.25]] * 3)
        assert mesh.vertices[0] == ((1.0, 2.0, 3.0), (0.5, 0.25))

    def test_partial_triangles_rejected(self):
        with pytest.raises(ColladaError) as excinfo:
            Mesh([[0, 0, 0]], [0, 0])
        assert excinfo.value.kind is ErrorKind.ARRAY_COUNT_MISMATCH

    def test_attribute_counts_must_match(self):
        with pytest.raises(ColladaError) as excinfo:
            Mesh([[0, 0, 0]] * 3, [0, 1, 2], normals=[[0, 0, 1]])
        assert excinfo.value.kind is ErrorKind.ARRAY_COUNT_MISMATCH

    def test_equality(self, triangle):
        assert triangle == triangle.copy()
        other = triangle.copy()
        other.texcoords = None
        assert triangle != other

    def test_merge_offsets_indices(self, triangle):
        merged = Mesh.merge([triangle, triangle])
        assert merged.vertex_count == 6
        np.testing.assert_array_equal(merged.indices, [0, 1, 2, 3, 4, 5])
        assert merged.vertex_format is VertexFormat.POS_NORM_TEX

    def test_merge_drops_attributes_not_everywhere(self, triangle):
        plain = Mesh([[0, 0, 0]] * 3, [0, 1, 2])
        assert Mesh.merge([triangle, plain]).vertex_format is VertexFormat.POS

    def test_merge_nothing(self):
        assert Mesh.merge([]).vertex_count == 0

    def test_to_trimesh(self, triangle):
        tm = triangle.to_trimesh()
        np.testing.assert_array_equal(tm.vertices, triangle.positions)
        np.testing.assert_array_equal(tm.faces, [[0, 1, 2]])


class TestPretransform:
    """Tests for applying a world transform to a mesh."""

    def test_translate_scale_rotate(self, triangle):
        transform = linalg.multiply_chain(
            linalg.translation(3, 4, 5),
            linalg.scale(1, 2, 3),
            linalg.x_rotation(math.pi),
        )
        result = triangle.pretransform(transform)

        np.testing.assert_allclose(result.positions[0], [3, 2, -1], atol=1e-2)
        # Inverse transpose of diag(1, -2, -3) maps (0, 1, 1) to (0, -1/2, -1/3)
        expected = np.array([0, -1 / 2, -1 / 3])
        expected /= np.linalg.norm(expected)
        np.testing.assert_allclose(result.normals[0], expected, atol=1e-9)
        np.testing.assert_allclose(np.linalg.norm(result.normals, axis=1), 1.0)

    def test_topology_is_preserved(self, triangle):
        result = triangle.pretransform(linalg.translation(1, 1, 1))
        assert result is not triangle
        assert result.vertex_format is triangle.vertex_format
        np.testing.assert_array_equal(result.indices, triangle.indices)
        np.testing.assert_array_equal(result.texcoords, triangle.texcoords)

    def test_input_mesh_is_untouched(self, triangle):
        before = triangle.copy()
        triangle.pretransform(linalg.uniform_scale(5))
        assert triangle == before

    def test_identity(self, triangle):
        result = triangle.pretransform(linalg.identity(4))
        np.testing.assert_allclose(result.positions, triangle.positions)
        expected = triangle.normals / np.linalg.norm(triangle.normals, axis=1, keepdims=True)
        np.testing.assert_allclose(result.normals, expected)

    def test_non_uniform_scale_uses_inverse_transpose(self):
        # A 45 degree slope squashed along X tilts its normal towards X
        mesh = Mesh([[0, 0, 0]] * 3, [0, 1, 2], normals=[[1, 1, 0]] * 3)
        result = mesh.pretransform(linalg.scale(0.5, 1, 1))
        expected = np.array([2.0, 1.0, 0.0]) / math.sqrt(5)
        np.testing.assert_allclose(result.normals[0], expected)

    def test_normals_ignore_translation(self):
        mesh = Mesh([[0, 0, 0]] * 3, [0, 1, 2], normals=[[0, 0, 1]] * 3)
        result = mesh.pretransform(linalg.translation(10, 20, 30))
        np.testing.assert_allclose(result.normals, [[0, 0, 1]] * 3)

    def test_zero_normal_becomes_zero_vector(self):
        mesh = Mesh([[0, 0, 0]] * 3, [0, 1, 2], normals=[[0, 0, 0], [0, 0, 1], [0, 0, 1]])
        result = mesh.pretransform(linalg.uniform_scale(2))
        np.testing.assert_array_equal(result.normals[0], [0, 0, 0])
        np.testing.assert_allclose(result.normals[1], [0, 0, 1])

    def test_singular_transform_with_normals(self, triangle):
        with pytest.raises(ColladaError) as excinfo:
            triangle.pretransform(linalg.scale(1, 1, 0))
        assert excinfo.value.kind is ErrorKind.NON_INVERTIBLE_MATRIX

    def test_singular_transform_without_normals(self):
        mesh = Mesh([[1, 2, 3]] * 3, [0, 1, 2])
        result = mesh.pretransform(linalg.scale(1, 1, 0))
        np.testing.assert_allclose(result.positions[0], [1, 2, 0])

    def test_perspective_divide(self):
        transform = linalg.identity(4)
        transform[3, 3] = 2.0
        mesh = Mesh([[2, 4, 6]] * 3, [0, 1, 2])
        np.testing.assert_allclose(mesh.pretransform(transform).positions[0], [1, 2, 3])

    def test_zero_w_is_an_error(self):
        # Bottom row [1, 0, 0, -1] gives w = 0 for every point with x = 1
        transform = linalg.identity(4)
        transform[3] = [1, 0, 0, -1]
        mesh = Mesh([[0, 0, 0], [1, 0, 0], [0, 1, 0]], [0, 1, 2])
        with pytest.raises(ColladaError) as excinfo:
            mesh.pretransform(transform)
        assert excinfo.value.kind is ErrorKind.ZERO_HOMOGENEOUS_WEIGHT
        assert "vertex 1" in excinfo.value.message

    def test_requires_4x4(self, triangle):
        with pytest.raises(ColladaError) as excinfo:
            triangle.pretransform(np.eye(3))
        assert excinfo.value.kind is ErrorKind.DIMENSION_MISMATCH

    def test_empty_mesh(self):
        mesh = Mesh(np.empty((0, 3)), [], normals=np.empty((0, 3)))
        result = mesh.pretransform(linalg.translation(1, 2, 3))
        assert result.vertex_count == 0
        assert result.vertex_format is VertexFormat.POS_NORM
