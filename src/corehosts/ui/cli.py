from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from corehosts.app import delete_record, get_record, install, list_records, serve, set_record
from corehosts.common.logging import configure_logging
from corehosts.config import (
    ConfigurationError,
    InstallerConfig,
    ServerConfig,
    get_installer_config,
    get_server_config,
)
from corehosts.domain.errors import CorehostsError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

_MAX_PORT = 65535
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve custom DNS records through CoreDNS")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVELS,
        default="INFO",
        help="Logging verbosity (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    installer = subparsers.add_parser(
        "install", help="Patch CoreDNS to run the hosts server and load its hosts file"
    )
    installer.add_argument("--coredns-name", type=str, help="CoreDNS Deployment/ConfigMap name")
    installer.add_argument("--coredns-namespace", type=str, help="Namespace CoreDNS runs in")
    installer.add_argument("--server-version", type=str, help="Hosts server image tag")
    installer.add_argument("--server-port", type=int, help="Port the hosts server listens on")
    installer.add_argument(
        "--server-kubeconfig",
        type=str,
        help="Kubeconfig path passed to the sidecar (omit to use in-cluster credentials)",
    )
    installer.add_argument("--hosts-path", type=str, help="Hosts file CoreDNS should load")
    installer.add_argument(
        "--sort-directives",
        action="store_true",
        help="Rewrite each server block with its directives sorted by name",
    )

    server = subparsers.add_parser(
        "serve", help="Mirror the records ConfigMap into the hosts file until stopped"
    )
    _add_records_location(server)
    server.add_argument("--hosts-path", type=str, help="Hosts file to write")
    server.add_argument("--workers", type=int, help="Number of sync workers")
    server.add_argument(
        "--keep-on-delete",
        action="store_true",
        help="Leave the hosts file untouched when the records ConfigMap is deleted",
    )

    records = subparsers.add_parser("records", help="Manage custom DNS records")
    _add_records_location(records)
    records_sub = records.add_subparsers(dest="records_command", required=True)
    record_set = records_sub.add_parser("set", help="Create or update a record")
    record_set.add_argument("domain", type=str)
    record_set.add_argument("ip", type=str)
    record_delete = records_sub.add_parser("delete", help="Delete a record")
    record_delete.add_argument("domain", type=str)
    record_get = records_sub.add_parser("get", help="Show the ip of one domain")
    record_get.add_argument("domain", type=str)
    records_sub.add_parser("list", help="List all records")

    return parser.parse_args(list(argv))


def _add_records_location(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--records-name", type=str, help="Records ConfigMap name")
    parser.add_argument("--records-namespace", type=str, help="Records ConfigMap namespace")


def _validate_port(port: int | None) -> None:
    if port is not None and not 0 < port <= _MAX_PORT:
        raise ValueError(f"Invalid port: {port}")


def _installer_config(args: argparse.Namespace) -> InstallerConfig:
    _validate_port(args.server_port)
    overrides: dict[str, object] = {
        name: value
        for name, value in {
            "coredns_name": args.coredns_name,
            "coredns_namespace": args.coredns_namespace,
            "server_version": args.server_version,
            "server_port": args.server_port,
            "server_kubeconfig": args.server_kubeconfig,
            "hosts_path": args.hosts_path,
        }.items()
        if value is not None
    }
    if args.sort_directives:
        overrides["sort_directives"] = True
    return replace(get_installer_config(), **overrides)


def _server_config(args: argparse.Namespace) -> ServerConfig:
    config = get_server_config()
    overrides: dict[str, object] = {
        name: value
        for name, value in {
            "records_name": args.records_name,
            "records_namespace": args.records_namespace,
            "hosts_path": getattr(args, "hosts_path", None),
        }.items()
        if value is not None
    }
    sync = config.sync
    workers = getattr(args, "workers", None)
    if workers is not None:
        if workers < 1:
            raise ValueError("Workers must be at least 1")
        sync = replace(sync, workers=workers)
    if getattr(args, "keep_on_delete", False):
        sync = replace(sync, clear_on_delete=False)
    return replace(config, sync=sync, **overrides)


async def _serve_until_signalled(config: ServerConfig) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (SIGINT, SIGTERM):
        loop.add_signal_handler(signum, stop.set)
    await serve(stop, config)


async def _run_records(args: argparse.Namespace, config: ServerConfig) -> None:
    command = args.records_command
    if command == "set":
        record = await set_record(args.domain, args.ip, config=config)
        log.info("Record %s -> %s stored", record.domain, record.ip)
    elif command == "delete":
        await delete_record(args.domain, config=config)
        log.info("Record %s deleted", args.domain)
    elif command == "get":
        record = await get_record(args.domain, config=config)
        print(f"{record.ip} {record.domain}")  # noqa: T201
    elif command == "list":
        for record in await list_records(config=config):
            print(f"{record.ip} {record.domain}")  # noqa: T201
    else:
        raise ValueError(f"Unsupported records command: {command}")


async def _run(args: argparse.Namespace) -> None:
    if args.command == "install":
        report = await install(_installer_config(args))
        for outcome in report.steps:
            state = "updated" if outcome.written else "unchanged"
            log.info("%s: %s (%s)", outcome.step, state, outcome.identity)
    elif args.command == "serve":
        await _serve_until_signalled(_server_config(args))
    elif args.command == "records":
        await _run_records(args, _server_config(args))
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=parsed_args.log_level)
    signal(SIGINT, sigint_handler)

    try:
        asyncio.run(_run(parsed_args))
    except ValueError as exc:
        log.error("Invalid input: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except ConfigurationError as exc:
        log.error("Configuration error: %s", exc)  # noqa: TRY400
        sys.exit(1)
    except CorehostsError:
        log.exception("Command %s failed", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    # shell convention: 128 + SIGINT
    sys.exit(128 + SIGINT)


if __name__ == "__main__":
    main()
