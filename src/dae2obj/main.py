"""Main entry point for dae2obj."""

import argparse
import logging
import sys
from pathlib import Path

import yaml

from .collada import ColladaDocument, convert_document
from .config import CYCLE_POLICIES, ConversionConfig
from .core.mesh import Mesh
from .errors import ColladaError
from .export import meshes_to_obj
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="dae2obj",
        description="Flatten a COLLADA (.dae) scene into a pre-transformed OBJ file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "input",
        metavar="INPUT",
        help="COLLADA document to convert",
    )
    parser.add_argument(
        "-o", "--output",
        metavar="PATH",
        help="Write the OBJ to PATH (default: stdout)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML file with conversion settings",
    )
    parser.add_argument(
        "--axis-correction",
        action="store_true",
        default=None,
        help="Rotate -90 degrees about X and scale by 0.001 after flattening",
    )
    parser.add_argument(
        "--on-cycle",
        choices=CYCLE_POLICIES,
        help="Handling of cyclic <instance_node> references (default: error)",
    )
    parser.add_argument(
        "--strict-ids",
        action="store_true",
        default=None,
        help="Fail on duplicate ids instead of using the last one",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Log vertex/triangle counts and the bounds of the result",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Also write the log to PATH",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ConversionConfig:
    """Configuration from --config, overridden by explicit flags."""
    config = ConversionConfig.from_yaml(args.config) if args.config else ConversionConfig()
    if args.axis_correction is not None:
        config.axis_correction = args.axis_correction
    if args.on_cycle is not None:
        config.on_cycle = args.on_cycle
    if args.strict_ids is not None:
        config.strict_ids = args.strict_ids
    return config


def log_summary(meshes: list[Mesh]) -> None:
    """Log totals and the axis-aligned bounds of all meshes."""
    merged = Mesh.merge(meshes)
    logger.info(
        f"Summary: {len(meshes)} mesh(es), {merged.vertex_count} vertices, "
        f"{merged.face_count} triangles"
    )
    if merged.vertex_count:
        lower, upper = merged.to_trimesh().bounds
        logger.info(f"Bounds: min={lower.tolist()} max={upper.tolist()}")


def main(argv: list[str] | None = None) -> int:
    """Run the converter; returns the process exit code."""
    args = parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
    )

    input_path = Path(args.input)
    if not input_path.is_file():
        logger.error(f"Input file not found: {input_path}")
        return 1

    try:
        config = build_config(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        document = ColladaDocument.from_file(input_path, strict_ids=config.strict_ids)
        meshes = convert_document(document, config)
    except ColladaError as e:
        logger.error(f"Conversion failed: {e}")
        return 1

    if args.summary:
        log_summary(meshes)

    obj_text = meshes_to_obj(meshes)
    if args.output:
        output_path = Path(args.output)
        output_path.write_text(obj_text)
        logger.info(f"Saved OBJ to {output_path}")
    else:
        sys.stdout.write(obj_text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
