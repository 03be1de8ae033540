# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Resume store CLI.

Subcommands:

* ``provision USER_KEY``    : create the user's folder markers
* ``upload USER_KEY FILE``  : upload a resume and print its locations

Credentials come from ``--config`` (YAML) when given, otherwise from the
environment (``AWS_S3_BUCKET_NAME``, ``AWS_REGION``, ``AWS_ACCESS_KEY_ID``,
``AWS_SECRET_ACCESS_KEY``).  Results are printed as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from resume_store.config import ResumeStoreError, StorageConfig
from resume_store.logging import configure_logging
from resume_store.object_store import ObjectStoreClient
from resume_store.resumes import (
    ResumeLifecycleManager,
    extension_from_filename,
)


logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resume-store",
        description="Store resumes in S3 with hand-signed requests",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to resume-store.yaml (default: read the environment)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    provision = sub.add_parser(
        "provision", help="Create a user's resume folders"
    )
    provision.add_argument("user_key", help="Per-user key segment")

    upload = sub.add_parser("upload", help="Upload a user's resume")
    upload.add_argument("user_key", help="Per-user key segment")
    upload.add_argument("file", type=Path, help="Resume file to upload")
    upload.add_argument(
        "--content-type",
        default=None,
        help="MIME type (default: guessed from the file extension)",
    )
    return parser


def _load_config(config_path: Path | None) -> StorageConfig:
    if config_path is not None:
        return StorageConfig.from_yaml(config_path)
    return StorageConfig.from_env()


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv: Arguments (without program name).  Defaults to sys.argv.

    Returns:
        Process exit code.
    """
    args = _build_parser().parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.debug else logging.WARNING,
        add_secret_filter=True,
    )

    try:
        config = _load_config(args.config)
        with ObjectStoreClient(config) as store:
            manager = ResumeLifecycleManager(store)
            if args.command == "provision":
                result = asdict(manager.provision_user_folders(args.user_key))
            else:
                data = args.file.read_bytes()
                record = manager.upload_resume(
                    args.user_key,
                    data,
                    extension_from_filename(args.file.name),
                    args.content_type,
                )
                result = asdict(record)
    except (ResumeStoreError, OSError, ValueError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
