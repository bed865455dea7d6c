"""Read typed tuples out of ``<source>`` elements."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from ..errors import ColladaError, ErrorKind
from .document import (
    ColladaDocument,
    get_attr_int,
    get_attr_str,
    get_child_elem,
    read_float_array,
)


def read_source(
    document: ColladaDocument,
    source_id: str,
    *expected_param_names: str,
) -> NDArray[np.float64]:
    """Read a source as an array of ``count`` tuples.

    The accessor's ``<param>`` names must match ``expected_param_names``
    exactly (compared case-insensitively, same order and count) and every
    param must be a float. Floats beyond the named params in each stride are
    padding and are skipped.

    Args:
        document: Document holding the source
        source_id: Id of the ``<source>`` element
        expected_param_names: Component names such as ``"X", "Y", "Z"``

    Returns:
        count x len(expected_param_names) array

    Raises:
        ColladaError: on unresolved ids, non-float params, unexpected param
            names, or array counts that disagree with the accessor.
    """
    source_elem = document.lookup(source_id, "source")
    technique_common_elem = get_child_elem(source_elem, "technique_common")
    accessor_elem = get_child_elem(technique_common_elem, "accessor")

    param_names = []
    for param_elem in accessor_elem.findall("param"):
        param_name = get_attr_str(param_elem, "name")
        param_type = get_attr_str(param_elem, "type")
        if param_type != "float":
            raise ColladaError(
                ErrorKind.UNSUPPORTED_COMPONENT_TYPE,
                f"<param>s with type={param_type} are not supported (source {source_id})",
            )
        param_names.append(param_name.upper())

    expected = [name.upper() for name in expected_param_names]
    if param_names != expected:
        raise ColladaError(
            ErrorKind.UNEXPECTED_COMPONENT_SHAPE,
            f"got params {param_names} in <accessor> of source {source_id}, expected {expected}",
        )

    accessor_count = get_attr_int(accessor_elem, "count")
    if accessor_elem.get("stride") is None:
        accessor_stride = len(param_names)
    else:
        accessor_stride = get_attr_int(accessor_elem, "stride")
    if accessor_stride < len(param_names) or accessor_stride < 1:
        raise ColladaError(
            ErrorKind.UNEXPECTED_COMPONENT_SHAPE,
            f"<accessor> stride {accessor_stride} is smaller than its {len(param_names)} params "
            f"(source {source_id})",
        )
    if accessor_count < 0:
        raise ColladaError(
            ErrorKind.ARRAY_COUNT_MISMATCH,
            f"<accessor> of source {source_id} has a negative count {accessor_count}",
        )

    array_elem = document.resolve_url(accessor_elem, "source")
    array_count = get_attr_int(array_elem, "count")
    if array_count != accessor_count * accessor_stride:
        raise ColladaError(
            ErrorKind.ARRAY_COUNT_MISMATCH,
            f"<{array_elem.tag}> count {array_count} doesn't match <accessor> "
            f"count {accessor_count} x stride {accessor_stride} (source {source_id})",
        )

    values = read_float_array(array_elem)
    if len(values) != array_count:
        raise ColladaError(
            ErrorKind.ARRAY_COUNT_MISMATCH,
            f"<{array_elem.tag}> holds {len(values)} values but its count attribute says "
            f"{array_count} (source {source_id})",
        )

    # Drop the padding floats at the end of every stride
    return values.reshape(accessor_count, accessor_stride)[:, :len(param_names)].copy()
