"""Entry point for running the Forest Finder server as a module.

Usage:
    python -m forest_finder --data-file /path/to/forests.json
    forest-finder --data-file /path/to/forests.json
    forest-finder --fetch-municipalities data/municipality-map.json
"""

import argparse
import logging
import os
import sys


def main():
    """Main entry point for the Forest Finder MCP server."""
    parser = argparse.ArgumentParser(
        description="Forest Finder MCP Server - Find the nearest forest via MCP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  forest-finder --data-file ~/kokudo-forests.json
  forest-finder -f ~/forests.csv -m ~/municipality-map.json --radius 50000
  forest-finder --fetch-municipalities ~/municipality-map.json

Environment variables:
  FOREST_DATA_FILE              Path to forest dataset (.json or .csv)
  FOREST_MUNICIPALITY_FILE      Path to municipality code table (.json)
  FOREST_SEARCH_RADIUS_M        Default search radius in meters (default: 5000)
  FOREST_SEARCH_LIMIT           Default result cap (default: 200)
  FOREST_MIN_DISTANCE_CHANGE_M  Movement before a session re-searches (default: 50)
  FOREST_GRID_SCHEME            adaptive | tiered (default: adaptive)
  ADDRESS_LOOKUP_ENABLED        Reverse geocode missing addresses (default: true)
""",
    )
    parser.add_argument(
        "--data-file",
        "-f",
        metavar="PATH",
        help="Path to forest dataset (or set FOREST_DATA_FILE env var)",
    )
    parser.add_argument(
        "--municipality-file",
        "-m",
        metavar="PATH",
        help="Path to municipality code table (or set FOREST_MUNICIPALITY_FILE env var)",
    )
    parser.add_argument(
        "--radius",
        type=float,
        metavar="METERS",
        help="Default search radius in meters",
    )
    parser.add_argument(
        "--limit",
        type=int,
        metavar="N",
        help="Default maximum number of forests per result",
    )
    parser.add_argument(
        "--no-addresses",
        action="store_true",
        help="Disable reverse geocoding of missing addresses",
    )
    parser.add_argument(
        "--fetch-municipalities",
        metavar="PATH",
        help="Download the municipality code table to PATH and exit",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (logs go to stderr)",
    )
    args = parser.parse_args()

    # stdout carries the MCP stdio protocol
    logging.basicConfig(
        level=args.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.fetch_municipalities:
        from .municipalities import fetch_municipality_map

        table = fetch_municipality_map()
        path = table.save(args.fetch_municipalities)
        print(f"Wrote {len(table)} municipality names to {path}", file=sys.stderr)
        return

    # CLI args override env vars
    if args.data_file:
        os.environ["FOREST_DATA_FILE"] = args.data_file
    if args.municipality_file:
        os.environ["FOREST_MUNICIPALITY_FILE"] = args.municipality_file
    if args.radius is not None:
        os.environ["FOREST_SEARCH_RADIUS_M"] = str(args.radius)
    if args.limit is not None:
        os.environ["FOREST_SEARCH_LIMIT"] = str(args.limit)
    if args.no_addresses:
        os.environ["ADDRESS_LOOKUP_ENABLED"] = "false"

    # Import and initialize AFTER setting env vars
    from . import initialize, mcp

    initialize()
    mcp.run()


if __name__ == "__main__":
    main()
