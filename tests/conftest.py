"""Pytest fixtures for dae2obj tests."""

import logging
from pathlib import Path
from typing import Callable

import pytest

from dae2obj.collada import ColladaDocument


def source_xml(
    source_id: str,
    values: list[float],
    names: tuple[str, ...] = ("X", "Y", "Z"),
    stride: int | None = None,
    count: int | None = None,
    array_count: int | None = None,
    param_type: str = "float",
) -> str:
    """Markup for a <source> with a <float_array> and its accessor."""
    stride = len(names) if stride is None else stride
    count = len(values) // stride if count is None else count
    array_count = len(values) if array_count is None else array_count
    params = "".join(f'<param name="{name}" type="{param_type}"/>' for name in names)
    text = " ".join(str(v) for v in values)
    return (
        f'<source id="{source_id}">'
        f'<float_array id="{source_id}-array" count="{array_count}">{text}</float_array>'
        f'<technique_common>'
        f'<accessor source="#{source_id}-array" count="{count}" stride="{stride}">{params}</accessor>'
        f'</technique_common>'
        f'</source>'
    )


# One triangle with a shared +Z normal and texcoords, instanced three times:
# by "root" (translated by 1 2 3), by its child "child" (scaled by 2), and
# through <instance_node> by "library-node" (translated by 0 0 10).
SAMPLE_DAE = f"""<?xml version="1.0" encoding="utf-8"?>
<COLLADA xmlns="http://www.collada.org/2005/11/COLLADASchema" version="1.4.1">
  <library_geometries>
    <geometry id="tri-geom" name="tri">
      <mesh>
        {source_xml('tri-pos', [0, 0, 0, 1, 0, 0, 0, 1, 0])}
        {source_xml('tri-norm', [0, 0, 1])}
        {source_xml('tri-uv', [0, 0, 1, 0, 0, 1], names=('S', 'T'))}
        <vertices id="tri-verts">
          <input semantic="POSITION" source="#tri-pos"/>
        </vertices>
        <triangles count="1">
          <input semantic="VERTEX" source="#tri-verts" offset="0"/>
          <input semantic="NORMAL" source="#tri-norm" offset="1"/>
          <input semantic="TEXCOORD" source="#tri-uv" offset="2" set="0"/>
          <p>0 0 0 1 0 1 2 0 2</p>
        </triangles>
      </mesh>
    </geometry>
  </library_geometries>
  <library_nodes>
    <node id="library-node">
      <translate>0 0 10</translate>
      <instance_geometry url="#tri-geom"/>
    </node>
  </library_nodes>
  <library_visual_scenes>
    <visual_scene id="scene">
      <node id="root">
        <matrix>1 0 0 1 0 1 0 2 0 0 1 3 0 0 0 1</matrix>
        <instance_geometry url="#tri-geom"/>
        <node id="child">
          <scale>2 2 2</scale>
          <instance_geometry url="#tri-geom"/>
        </node>
        <instance_node url="#library-node"/>
      </node>
    </visual_scene>
  </library_visual_scenes>
  <scene>
    <instance_visual_scene url="#scene"/>
  </scene>
</COLLADA>
"""


@pytest.fixture
def sample_dae() -> str:
    """Namespaced COLLADA document exercising every node feature."""
    return SAMPLE_DAE


@pytest.fixture
def sample_document() -> ColladaDocument:
    return ColladaDocument.from_string(SAMPLE_DAE)


@pytest.fixture
def sample_dae_file(tmp_path: Path) -> Path:
    path = tmp_path / "sample.dae"
    path.write_text(SAMPLE_DAE)
    return path


@pytest.fixture
def make_source() -> Callable[..., str]:
    """Factory for <source> markup, see ``source_xml``."""
    return source_xml


@pytest.fixture
def wrap_document() -> Callable[[str], ColladaDocument]:
    """Factory wrapping markup in a <COLLADA> root and indexing it."""

    def wrap(body: str, strict_ids: bool = False) -> ColladaDocument:
        return ColladaDocument.from_string(f"<COLLADA>{body}</COLLADA>", strict_ids=strict_ids)

    return wrap


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers main() installs so they don't outlive captured streams."""
    yield
    logger = logging.getLogger("dae2obj")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
