"""CLI entry point: print the cluster's auth configuration as etcdctl commands."""

from __future__ import annotations

import argparse
import asyncio
import io
import logging
import sys

from etcd_authdump.client import EtcdClient
from etcd_authdump.config import ClientConfig
from etcd_authdump.dump import DumpResult, dump
from etcd_authdump.exceptions import AuthDumpError, UnchangedError

logger = logging.getLogger("etcd_authdump")


async def _run(args: argparse.Namespace) -> DumpResult:
    config = ClientConfig.from_env()
    async with EtcdClient.from_config(config) as client:
        return await dump(
            client,
            args.prev_revision,
            timeout=args.timeout,
            command_prefix=args.etcdctl,
        )


def _non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="etcd-auth-dump",
        description=(
            "Dump etcd auth configuration as shell commands that set it up on an "
            "empty cluster. Passwords can't be recovered. The connection is "
            "configured with ETCD_ENDPOINTS, ETCD_USER, ETCD_PASSWORD, "
            "ETCD_CACERT, ETCD_CERT and ETCD_KEY."
        ),
    )
    parser.add_argument(
        "--etcdctl",
        default="etcdctl",
        help="Command each line starts with (default: etcdctl; '' for none)",
    )
    parser.add_argument(
        "--prev-revision",
        type=_non_negative_int,
        default=0,
        help="Print nothing if the auth revision is still this (default: 0, always dump)",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        result = asyncio.run(_run(args))
    except UnchangedError as e:
        logger.info(str(e))
        return 0
    except AuthDumpError as e:
        logger.error(str(e))
        return 1

    # keys that aren't UTF-8 were decoded with surrogateescape
    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(errors="surrogateescape")
    for command in result.commands:
        print(command)
    logger.debug(f"Dumped auth revision {result.revision}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
