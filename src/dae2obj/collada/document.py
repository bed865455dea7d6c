"""Id-indexed access to a parsed COLLADA document."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from ..errors import ColladaError, ErrorKind

logger = logging.getLogger(__name__)


def to_int(text: str) -> int:
    """Parse a whole integer token such as ``"3"``; ``"3.2"`` is rejected."""
    try:
        return int(text)
    except (TypeError, ValueError):
        raise ColladaError(ErrorKind.MALFORMED_NUMBER, f"{text!r} isn't a valid integer") from None


def to_float(text: str) -> float:
    """Parse a float token such as ``"3"`` or ``"-1.5e3"``."""
    try:
        return float(text)
    except (TypeError, ValueError):
        raise ColladaError(ErrorKind.MALFORMED_NUMBER, f"{text!r} isn't a valid float") from None


def read_int_array(elem: ET.Element) -> NDArray[np.int64]:
    """Whitespace separated integers in the element's text."""
    return np.array([to_int(token) for token in (elem.text or "").split()], dtype=np.int64)


def read_float_array(elem: ET.Element) -> NDArray[np.float64]:
    """Whitespace separated floats in the element's text."""
    return np.array([to_float(token) for token in (elem.text or "").split()], dtype=np.float64)


def get_attr_str(elem: ET.Element, attr_name: str) -> str:
    value = elem.get(attr_name)
    if value is None:
        raise ColladaError(
            ErrorKind.MISSING_ATTRIBUTE,
            f"<{elem.tag}> element missing '{attr_name}' attribute",
        )
    return value


def get_attr_int(elem: ET.Element, attr_name: str) -> int:
    return to_int(get_attr_str(elem, attr_name))


def read_url(elem: ET.Element, attr_name: str) -> str:
    """Read a local ``#id`` reference and return the id without the ``#``.

    Raises:
        ColladaError: MALFORMED_REFERENCE if the attribute is missing, empty,
            doesn't start with ``#`` or has nothing after it.
    """
    url = elem.get(attr_name)
    if not url or not url.startswith("#") or len(url) == 1:
        raise ColladaError(
            ErrorKind.MALFORMED_REFERENCE,
            f"<{elem.tag}> has a missing or incorrectly formatted '{attr_name}' attribute: {url!r}",
        )
    return url[1:]


def get_child_elem(elem: ET.Element, child_name: str) -> ET.Element:
    """First child with the given name."""
    child = elem.find(child_name)
    if child is None:
        raise ColladaError(
            ErrorKind.MISSING_CHILD_ELEMENT,
            f"couldn't find <{child_name}> child of <{elem.tag}> element",
        )
    return child


def _strip_namespaces(root: ET.Element) -> None:
    """Rename ``{namespace}tag`` elements to plain ``tag`` in place."""
    for elem in root.iter():
        if isinstance(elem.tag, str) and elem.tag.startswith("{"):
            elem.tag = elem.tag.split("}", 1)[1]


class ColladaDocument:
    """A parsed document plus an index from ``id`` attribute to element.

    The index is built by one scan in document order. When several elements
    share an id the last one wins, unless ``strict_ids`` is set, in which case
    the duplicate is an error.

    Element names are matched without their XML namespace, so both
    ``<COLLADA xmlns="http://www.collada.org/2005/11/COLLADASchema">`` and a
    bare ``<COLLADA>`` root work.
    """

    def __init__(self, root: ET.Element, strict_ids: bool = False) -> None:
        _strip_namespaces(root)
        self.root = root
        self._id_index = self._build_id_index(root, strict_ids)

    @classmethod
    def from_string(cls, text: str | bytes, strict_ids: bool = False) -> ColladaDocument:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ColladaError(ErrorKind.MALFORMED_DOCUMENT, f"couldn't parse document: {exc}") from exc
        return cls(root, strict_ids=strict_ids)

    @classmethod
    def from_file(cls, path: str | Path, strict_ids: bool = False) -> ColladaDocument:
        path = Path(path)
        logger.info(f"Reading document: {path}")
        try:
            root = ET.parse(path).getroot()
        except ET.ParseError as exc:
            raise ColladaError(ErrorKind.MALFORMED_DOCUMENT, f"couldn't parse {path}: {exc}") from exc
        except OSError as exc:
            raise ColladaError(ErrorKind.MALFORMED_DOCUMENT, f"couldn't read {path}: {exc}") from exc
        return cls(root, strict_ids=strict_ids)

    @staticmethod
    def _build_id_index(root: ET.Element, strict_ids: bool) -> dict[str, ET.Element]:
        index: dict[str, ET.Element] = {}
        for elem in root.iter():
            elem_id = elem.get("id")
            if elem_id is None:
                continue
            if elem_id in index:
                if strict_ids:
                    raise ColladaError(ErrorKind.DUPLICATE_ID, f"id {elem_id!r} is used more than once")
                logger.debug(f"Duplicate id {elem_id!r}, keeping the later <{elem.tag}>")
            index[elem_id] = elem
        return index

    def __contains__(self, elem_id: str) -> bool:
        return elem_id in self._id_index

    def lookup(self, elem_id: str, tag: str | None = None) -> ET.Element:
        """Element with the given id.

        Args:
            elem_id: Id without the leading ``#``
            tag: When given, the element must have this name

        Raises:
            ColladaError: UNRESOLVED_ID if nothing has that id,
                UNEXPECTED_ELEMENT if the element isn't a ``<tag>``.
        """
        elem = self._id_index.get(elem_id)
        if elem is None:
            raise ColladaError(ErrorKind.UNRESOLVED_ID, f"couldn't find element with id={elem_id}")
        if tag is not None and elem.tag != tag:
            raise ColladaError(
                ErrorKind.UNEXPECTED_ELEMENT,
                f"id={elem_id} refers to a <{elem.tag}> element, expected <{tag}>",
            )
        return elem

    def resolve_url(self, elem: ET.Element, attr_name: str, tag: str | None = None) -> ET.Element:
        """Follow the ``#id`` reference stored in ``elem``'s attribute."""
        return self.lookup(read_url(elem, attr_name), tag)
