"""Command-line entry point: ``osm-landmass`` / ``python -m osm_landmass``.

Configuration starts from the ``LANDMASS_*`` environment variables
(see ``core.config``); any flag given on the command line overrides the
matching field.

Exit codes:
    0: landmass written.
    1: fatal pipeline error (bad input, bad configuration, no land).
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from osm_landmass import __version__
from osm_landmass.activities.clip_boundary import read_clip_polygon
from osm_landmass.activities.read_osm import read_osm_features
from osm_landmass.activities.write_geojson import (
    write_coverage_geojson,
    write_landmass_geojson,
)
from osm_landmass.core.config import LandmassConfig, validate_config
from osm_landmass.core.diagnostics import DiagnosticsSink
from osm_landmass.core.exceptions import PipelineError
from osm_landmass.orchestrators.landmass_pipeline import run_pipeline

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("osm_landmass.cli")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osm-landmass",
        description="Build true-landmass polygons (coastline land minus inland water) "
        "from an OpenStreetMap extract.",
    )
    parser.add_argument(
        "-i",
        "--input",
        type=Path,
        required=True,
        help="OSM extract (.osm.pbf, or XML .osm, .osm.gz, .osm.bz2)",
    )
    parser.add_argument(
        "-o", "--output", type=Path, required=True, help="landmass GeoJSON output path"
    )
    parser.add_argument("--land-output", type=Path, help="also write the raw land union here")
    parser.add_argument("--water-output", type=Path, help="also write the raw water union here")
    parser.add_argument(
        "--include-tidal",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="count tidal=yes features as land (default: on)",
    )
    parser.add_argument(
        "--skip-water",
        action="store_true",
        default=None,
        help="do not subtract inland water",
    )
    parser.add_argument(
        "--clip",
        type=Path,
        help="GeoJSON polygon of the extract boundary; closes open coastline along it",
    )
    parser.add_argument(
        "--min-area-sqm",
        type=float,
        help="drop output polygons smaller than this many square metres",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> LandmassConfig:
    """Environment configuration with command-line overrides applied.

    Raises:
        ConfigValidationError: If the merged configuration is invalid.
    """
    config = LandmassConfig.from_env()
    overrides: dict[str, object] = {}
    if args.include_tidal is not None:
        overrides["include_tidal"] = args.include_tidal
    if args.skip_water is not None:
        overrides["skip_water"] = args.skip_water
    if args.min_area_sqm is not None:
        overrides["min_area_sqm"] = args.min_area_sqm
    if overrides:
        config = replace(config, **overrides)  # type: ignore[arg-type]
        validate_config(config)
    return config


def run(args: argparse.Namespace) -> int:
    config = config_from_args(args)
    diagnostics = DiagnosticsSink()
    clip = read_clip_polygon(args.clip) if args.clip else None

    result = run_pipeline(
        read_osm_features(args.input),
        config,
        diagnostics,
        clip=clip,
        correlation_id=args.input.name,
    )

    write_landmass_geojson(result.polygons, args.output)
    if args.land_output:
        write_coverage_geojson(result.land, args.land_output, "land")
    if args.water_output:
        write_coverage_geojson(result.water, args.water_output, "water")

    result.stats.log_summary()
    diagnostics.drain()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    try:
        return run(args)
    except PipelineError as exc:
        logger.error("Landmass build failed | %s", exc.to_error_dict())
        return 1
