#!/usr/bin/env python3
"""
Sample place poses on tables loaded from a JSON table array.

Input format:
    {"frame_id": "world",
     "tables": [{"name": "table_0",
                 "position": [x, y, z],
                 "orientation": [w, x, y, z],
                 "footprint": [[x, y], ...]}]}

Usage:
    python scripts/sample_place_poses.py --input tables.json --resolution 0.05 --height 0.1
    python scripts/sample_place_poses.py --input tables.json --table table_0 --box 0.1 0.1 0.2
    python scripts/sample_place_poses.py --input tables.json --export-solids out/
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from semantic_world import Box, Pose, SemanticWorld, SemanticWorldError, Table, TableArray


def load_table_array(path: str) -> TableArray:
    with open(path) as f:
        data = json.load(f)
    frame_id = data.get("frame_id", "world")
    tables = [
        Table(
            name=entry["name"],
            pose=Pose(
                position=entry.get("position", [0.0, 0.0, 0.0]),
                orientation=entry.get("orientation", [1.0, 0.0, 0.0, 0.0]),
            ),
            footprint=entry["footprint"],
            frame_id=frame_id,
        )
        for entry in data.get("tables", [])
    ]
    return TableArray(tables=tables, frame_id=frame_id)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sample place poses on tables from a JSON table array.",
    )
    parser.add_argument("--input", required=True, help="Path to table array JSON")
    parser.add_argument(
        "--table", default=None,
        help="Only sample this table (default: every table)",
    )
    parser.add_argument(
        "--resolution", type=float, default=0.05,
        help="Grid step in metres (default: 0.05)",
    )
    parser.add_argument(
        "--height", type=float, default=0.0,
        help="Height above the table in metres (default: 0.0)",
    )
    parser.add_argument(
        "--delta-height", type=float, default=0.01,
        help="Height step between stacked poses (default: 0.01)",
    )
    parser.add_argument(
        "--num-heights", type=int, default=2,
        help="Number of stacked heights per location (default: 2)",
    )
    parser.add_argument(
        "--min-edge-distance", type=float, default=0.10,
        help="Minimum distance from the table edge (default: 0.10)",
    )
    parser.add_argument(
        "--box", type=float, nargs=3, default=None, metavar=("SX", "SY", "SZ"),
        help="Size the edge margin and height for a box object instead",
    )
    parser.add_argument(
        "--output", default=None,
        help="Write place poses JSON here (default: stdout)",
    )
    parser.add_argument(
        "--export-solids", default=None,
        help="Directory to export extruded table solids as STL",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = os.path.abspath(args.input)
    if not os.path.isfile(input_path):
        parser.error(f"Input file not found: {input_path}")

    table_array = load_table_array(input_path)
    world = SemanticWorld()
    try:
        world.table_callback(table_array)
        names = [args.table] if args.table else [table.name for table in world.tables]

        results = {}
        for name in names:
            if args.box is not None:
                place_poses = world.generate_object_place_poses(
                    name, Box(size=tuple(args.box)), (1.0, 0.0, 0.0, 0.0), args.resolution,
                    delta_height=args.delta_height, num_heights=args.num_heights,
                )
            else:
                place_poses = world.generate_place_poses(
                    name, args.resolution, args.height,
                    delta_height=args.delta_height,
                    num_heights=args.num_heights,
                    min_distance_from_edge=args.min_edge_distance,
                )
            results[name] = [
                {
                    "frame_id": p.frame_id,
                    "position": list(p.pose.position),
                    "orientation": list(p.pose.orientation),
                }
                for p in place_poses
            ]

        if args.export_solids:
            os.makedirs(args.export_solids, exist_ok=True)
            for name, solid in world.materialize_solids().items():
                stl_path = os.path.join(args.export_solids, f"{name}.stl")
                solid.mesh.export(stl_path)
                print(f"Exported {stl_path}", file=sys.stderr)
    except SemanticWorldError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    text = json.dumps({"place_poses": results}, indent=2)
    if args.output:
        with open(args.output, "w") as f:
            f.write(text)
        print(f"Place poses saved to {args.output}", file=sys.stderr)
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
