"""Node class for the scene hierarchy read from a document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import numpy as np
from numpy.typing import NDArray

from . import linalg


@dataclass(eq=False)
class Node:
    """A node in the scene hierarchy.

    Each node has an optional local transform, literal child nodes, and
    references (by id) to nodes and geometries declared elsewhere in the
    document. Child transforms are relative to their parent.

    Nodes are built once while reading a visual scene and never mutated
    afterwards.

    Example:
        root = Node(
            id="root",
            transform=linalg.translation(3, 4, 5),
            child_nodes=[Node(id="wheel", instance_geometry_refs=["wheel-mesh"])],
            instance_node_refs=["spare-wheel"],
        )
    """

    id: str | None = None
    transform: NDArray[np.float64] | None = None
    child_nodes: list[Node] = field(default_factory=list)
    instance_node_refs: list[str] = field(default_factory=list)
    instance_geometry_refs: list[str] = field(default_factory=list)

    def local_matrix(self) -> NDArray[np.float64]:
        """The local 4x4 transform, identity when the node has none."""
        if self.transform is None:
            return linalg.identity(4)
        return self.transform

    def iter_nodes(self, include_self: bool = True) -> Iterator[Node]:
        """Iterate over this node and all literal descendants (depth-first).

        Referenced nodes are not followed.
        """
        if include_self:
            yield self
        for child in self.child_nodes:
            yield from child.iter_nodes(include_self=True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        if (self.transform is None) != (other.transform is None):
            return False
        if self.transform is not None and not np.array_equal(self.transform, other.transform):
            return False
        return (
            self.id == other.id
            and self.child_nodes == other.child_nodes
            and self.instance_node_refs == other.instance_node_refs
            and self.instance_geometry_refs == other.instance_geometry_refs
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        transform_str = ", transform" if self.transform is not None else ""
        children_str = f", children={len(self.child_nodes)}" if self.child_nodes else ""
        nodes_str = f", instance_nodes={self.instance_node_refs}" if self.instance_node_refs else ""
        geoms_str = (
            f", instance_geometries={self.instance_geometry_refs}"
            if self.instance_geometry_refs else ""
        )
        return f"Node({self.id!r}{transform_str}{children_str}{nodes_str}{geoms_str})"
