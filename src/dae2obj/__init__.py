"""dae2obj - flatten COLLADA scenes into pre-transformed OBJ meshes."""

from .collada import ColladaDocument, convert_document
from .config import ConversionConfig
from .core import Mesh, Node, VertexFormat
from .errors import ColladaError, ErrorKind
from .export import meshes_to_obj, write_obj

__all__ = [
    "ColladaDocument",
    "convert_document",
    "ConversionConfig",
    "Mesh",
    "Node",
    "VertexFormat",
    "ColladaError",
    "ErrorKind",
    "meshes_to_obj",
    "write_obj",
]
