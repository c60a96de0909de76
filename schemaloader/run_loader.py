"""Command-line entry point for loading a database schema.

Usage::

    $ python -m schemaloader.run_loader --database-url sqlite:///app.db \
        --schema-name app.schema --relationships --dump-directory ./generated

Options not given on the command line fall back to ``SCHEMALOADER_*``
environment variables (see :mod:`schemaloader.settings`).
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional

from schemaloader.errors import SchemaLoaderError
from schemaloader.loader import SchemaLoader
from schemaloader.settings import LoaderOptions, get_settings

logger = logging.getLogger("schemaloader.run_loader")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Generate ORM class descriptions from a database catalog")

    parser.add_argument("--database-url", default=settings.database_url, help="SQLAlchemy database URL")
    parser.add_argument("--schema-name", default=settings.schema_name, help="Dotted package name of the generated schema")
    parser.add_argument("--db-schema", default=settings.db_schema, help="Database schema to inspect")

    # Selection and naming
    parser.add_argument("--constraint", default=None, help="Only load tables matching this regex")
    parser.add_argument("--exclude", default=None, help="Skip tables matching this regex")
    parser.add_argument("--relationships", action="store_true", default=settings.relationships,
                        help="Infer belongs-to / has-many accessors from foreign keys")
    parser.add_argument("--legacy-default-inflections", action="store_true",
                        default=settings.legacy_default_inflections,
                        help="Use the pre-noun-aware inflection rules")

    # Output
    parser.add_argument("--dump-directory", type=Path, default=settings.dump_directory,
                        help="Write generated modules below this existing directory")
    parser.add_argument("--debug", action="store_true", default=settings.debug,
                        help="Print the generated modules instead of writing them")
    parser.add_argument("--really-erase-my-files", action="store_true", default=settings.really_erase_my_files,
                        help="Delete previously generated files before dumping")
    parser.add_argument("--preserve-custom-content", action="store_true",
                        default=settings.preserve_custom_content,
                        help="Rewrite previously generated files, keeping code below the marker")

    return parser.parse_args(argv)


def build_options(args: argparse.Namespace) -> LoaderOptions:
    """Merge parsed arguments over the environment settings."""
    settings = get_settings()
    return settings.model_copy(
        update={
            "database_url": args.database_url,
            "schema_name": args.schema_name,
            "db_schema": args.db_schema,
            "constraint": re.compile(args.constraint) if args.constraint else settings.constraint,
            "exclude": re.compile(args.exclude) if args.exclude else settings.exclude,
            "relationships": args.relationships,
            "legacy_default_inflections": args.legacy_default_inflections,
            "dump_directory": args.dump_directory,
            "debug": args.debug,
            "really_erase_my_files": args.really_erase_my_files,
            "preserve_custom_content": args.preserve_custom_content,
        }
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run one schema load; return the process exit status."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = parse_args(argv)
    options = build_options(args)

    try:
        result = SchemaLoader.from_database_url(options.database_url, options).load()
    except SchemaLoaderError as exc:
        logger.error("Schema load failed: %s", exc)
        return 1

    logger.info("Loaded %d table(s) into schema %s", len(result.tables), result.registry.name)
    if result.warnings:
        logger.info("%d warning(s) reported", len(result.warnings))
    return 0


if __name__ == "__main__":  # pragma: no cover – script entry
    sys.exit(main())
