"""COLLADA document reading: sources, triangles and the scene graph."""

from .document import ColladaDocument
from .scene import SceneWalker, convert_document, read_node, read_nodes
from .sources import read_source
from .triangles import read_geometry, read_triangles, unify_vertices

__all__ = [
    "ColladaDocument",
    "SceneWalker",
    "convert_document",
    "read_node",
    "read_nodes",
    "read_source",
    "read_geometry",
    "read_triangles",
    "unify_vertices",
]
