"""Writers for flattened meshes."""

from .obj import meshes_to_obj, write_obj

__all__ = ["meshes_to_obj", "write_obj"]
