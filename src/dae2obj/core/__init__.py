"""Core geometry system components."""

from .mesh import Mesh, VertexFormat
from .node import Node
from . import linalg

__all__ = ["Mesh", "VertexFormat", "Node", "linalg"]
