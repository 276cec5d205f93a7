"""Command-line entrypoint: create the catalog tables and serve the API with uvicorn."""

from __future__ import annotations

import argparse

import uvicorn

from entity_rest.api import ddl  # noqa: F401  registers the catalog tables on the shared metadata
from entity_rest.api.api_config import get_api_config
from entity_rest.common.db import create_schema
from entity_rest.common.logging import configure_logging


def main() -> None:
    config = get_api_config()
    parser = argparse.ArgumentParser(description="Serve the entity REST API.")
    parser.add_argument("--host", default=config.host)
    parser.add_argument("--port", type=int, default=config.port)
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before serving.",
    )
    args = parser.parse_args()

    configure_logging()
    if args.create_schema:
        create_schema()
    uvicorn.run("entity_rest.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
