"""Read the node hierarchy and flatten it into pre-transformed meshes."""

from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET

import numpy as np
from numpy.typing import NDArray

from ..config import ConversionConfig
from ..core import linalg
from ..core.mesh import Mesh
from ..core.node import Node
from ..errors import ColladaError, ErrorKind
from .document import ColladaDocument, get_child_elem, read_float_array, read_url
from .triangles import read_geometry

logger = logging.getLogger(__name__)

# Local transform elements a node may carry (at most one of them)
TRANSFORM_ELEMENTS = ("matrix", "translate", "rotate", "scale")


def _read_floats(elem: ET.Element, count: int) -> NDArray[np.float64]:
    values = read_float_array(elem)
    if len(values) != count:
        raise ColladaError(
            ErrorKind.ARRAY_COUNT_MISMATCH,
            f"incorrectly formatted <{elem.tag}> element: expected {count} values, got {len(values)}",
        )
    return values


def read_matrix(matrix_elem: ET.Element) -> NDArray[np.float64]:
    """4x4 matrix from a ``<matrix>`` element's 16 row-major floats."""
    return linalg.matrix_from_rows(_read_floats(matrix_elem, 16), 4, 4)


def read_transform(
    transform_elem: ET.Element,
    tolerance: float = linalg.DEFAULT_TOLERANCE,
) -> NDArray[np.float64]:
    """4x4 matrix for one of the TRANSFORM_ELEMENTS."""
    if transform_elem.tag == "matrix":
        return read_matrix(transform_elem)
    if transform_elem.tag == "translate":
        return linalg.translation(*_read_floats(transform_elem, 3))
    if transform_elem.tag == "scale":
        return linalg.scale(*_read_floats(transform_elem, 3))
    if transform_elem.tag == "rotate":
        x, y, z, angle_degrees = _read_floats(transform_elem, 4)
        return linalg.promote_3x3_to_4x4(
            linalg.rotation(math.radians(angle_degrees), (x, y, z), tolerance)
        )
    raise ValueError(f"<{transform_elem.tag}> is not a transform element")


def read_node(node_elem: ET.Element, tolerance: float = linalg.DEFAULT_TOLERANCE) -> Node:
    """Build a Node from a ``<node>`` element and its nested ``<node>``s."""
    child_nodes = [read_node(child_elem, tolerance) for child_elem in node_elem.findall("node")]
    instance_node_refs = [read_url(elem, "url") for elem in node_elem.findall("instance_node")]
    instance_geometry_refs = [read_url(elem, "url") for elem in node_elem.findall("instance_geometry")]

    transform_elems = [child for child in node_elem if child.tag in TRANSFORM_ELEMENTS]
    if len(transform_elems) > 1:
        tags = ", ".join(f"<{elem.tag}>" for elem in transform_elems)
        raise ColladaError(
            ErrorKind.MULTIPLE_TRANSFORMS,
            f"node {node_elem.get('id')!r} has more than one transform ({tags}); "
            f"only a single local transform is supported",
        )
    transform = read_transform(transform_elems[0], tolerance) if transform_elems else None

    return Node(
        id=node_elem.get("id"),
        transform=transform,
        child_nodes=child_nodes,
        instance_node_refs=instance_node_refs,
        instance_geometry_refs=instance_geometry_refs,
    )


def read_nodes(elem: ET.Element | None, tolerance: float = linalg.DEFAULT_TOLERANCE) -> list[Node]:
    """Top-level ``<node>`` children of ``elem`` (e.g. a ``<visual_scene>``)."""
    if elem is None:
        return []
    return [read_node(node_elem, tolerance) for node_elem in elem.findall("node")]


def axis_correction_matrix(config: ConversionConfig) -> NDArray[np.float64]:
    """Rotation about X followed by a uniform scale, as one 4x4 matrix."""
    return linalg.multiply_chain(
        linalg.uniform_scale(config.axis_correction_scale),
        linalg.x_rotation(math.radians(config.axis_correction_angle_degrees)),
    )


class SceneWalker:
    """Flattens a document's node graph into world-space meshes.

    Transforms compose parent first, then child:
    ``world = parent_world @ local``. For each node the output holds its own
    geometry, then the meshes of its literal children, then those of the
    nodes it instances, each in document order.

    ``<instance_node>`` references can form cycles. The ids of the nodes on
    the current path are tracked; a reference to one of them either raises
    CYCLIC_REFERENCE or, with ``on_cycle="skip"``, is dropped.
    """

    def __init__(self, document: ColladaDocument, config: ConversionConfig | None = None) -> None:
        self.document = document
        self.config = config or ConversionConfig()
        self._nodes: dict[str, Node] = {}
        self._geometries: dict[str, list[Mesh]] = {}
        # Ids of the nodes on the current traversal path
        self._path: list[str] = []

    def referenced_node(self, node_id: str) -> Node:
        """Node declared elsewhere in the document, read once and reused."""
        node = self._nodes.get(node_id)
        if node is None:
            node = read_node(self.document.lookup(node_id, "node"), self.config.tolerance)
            self._nodes[node_id] = node
        return node

    def geometry_meshes(self, geometry_id: str) -> list[Mesh]:
        """Untransformed meshes of a ``<geometry>``, decoded once and reused."""
        meshes = self._geometries.get(geometry_id)
        if meshes is None:
            meshes = read_geometry(self.document, self.document.lookup(geometry_id, "geometry"))
            self._geometries[geometry_id] = meshes
        return meshes

    def traverse(self, node: Node, parent_transform: NDArray[np.float64]) -> list[Mesh]:
        """World-space meshes of ``node`` and everything below it."""
        if node.id is None:
            return self._traverse(node, parent_transform)
        self._path.append(node.id)
        try:
            return self._traverse(node, parent_transform)
        finally:
            self._path.pop()

    def _traverse(self, node: Node, parent_transform: NDArray[np.float64]) -> list[Mesh]:
        current = linalg.multiply_chain(parent_transform, node.local_matrix())

        meshes = []
        for geometry_id in node.instance_geometry_refs:
            for mesh in self.geometry_meshes(geometry_id):
                meshes.append(mesh.pretransform(current, self.config.tolerance))

        for child in node.child_nodes:
            meshes.extend(self.traverse(child, current))

        for node_id in node.instance_node_refs:
            if node_id in self._path:
                cycle = " -> ".join([*self._path, node_id])
                if self.config.on_cycle == "skip":
                    logger.warning(f"Skipping cyclic <instance_node> reference: {cycle}")
                    continue
                raise ColladaError(
                    ErrorKind.CYCLIC_REFERENCE,
                    f"<instance_node> references form a cycle: {cycle}",
                )
            meshes.extend(self.traverse(self.referenced_node(node_id), current))

        return meshes

    def walk(self, nodes: list[Node]) -> list[Mesh]:
        """Traverse top-level nodes from the identity transform."""
        meshes = []
        for node in nodes:
            node_meshes = self.traverse(node, linalg.identity(4))
            logger.debug(f"Node {node.id!r}: {len(node_meshes)} mesh(es)")
            meshes.extend(node_meshes)
        return meshes


def get_visual_scene(document: ColladaDocument) -> ET.Element:
    """The ``<visual_scene>`` instanced by the document's ``<scene>``."""
    scene_elem = get_child_elem(document.root, "scene")
    instance_elem = get_child_elem(scene_elem, "instance_visual_scene")
    return document.resolve_url(instance_elem, "url", "visual_scene")


def convert_document(
    document: ColladaDocument,
    config: ConversionConfig | None = None,
) -> list[Mesh]:
    """Flatten a document's scene into pre-transformed meshes.

    Args:
        document: Parsed document
        config: Conversion settings; defaults apply when omitted

    Returns:
        Meshes in output order, already in world space

    Raises:
        ColladaError: On any problem in the document. Nothing is returned
            for partially converted scenes.
    """
    config = config or ConversionConfig()
    visual_scene = get_visual_scene(document)
    nodes = read_nodes(visual_scene, config.tolerance)
    logger.info(f"Visual scene {visual_scene.get('id')!r} has {len(nodes)} top-level node(s)")
    logger.debug(f"Visual scene holds {sum(1 for node in nodes for _ in node.iter_nodes())} node(s) in total")

    meshes = SceneWalker(document, config).walk(nodes)

    if config.axis_correction:
        correction = axis_correction_matrix(config)
        meshes = [mesh.pretransform(correction, config.tolerance) for mesh in meshes]
        logger.info("Applied axis correction to all meshes")

    logger.info(
        f"Converted {len(meshes)} mesh(es), {sum(m.vertex_count for m in meshes)} vertices, "
        f"{sum(m.face_count for m in meshes)} triangles"
    )
    return meshes
