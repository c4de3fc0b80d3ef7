"""Command-line front end for the sentrio Digest client.

``request`` performs a single authenticated request and prints the result;
``status`` checks a list of devices and renders a health table.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from rich.panel import Panel
from rich.table import Table

from ._client import AsyncDigestClient
from ._sentrio import SentrioClient, SentrioDevice
from ._types import ClientConfig, DigestError, HttpMethod, ResponseEncoding
from ._utils import DEFAULT_TIMEOUT_MS, console, logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sentriox", description="Talk to Digest-protected sentrio devices"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_credentials(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("-u", "--username", default="admin", help="Digest auth username")
        sub.add_argument("-p", "--password", default="admin", help="Digest auth password")
        sub.add_argument(
            "--verify",
            action="store_true",
            help="Verify TLS certificates (devices usually use self-signed ones)",
        )

    request = subparsers.add_parser("request", help="Perform one authenticated request")
    request.add_argument("url", help="Absolute device URL")
    request.add_argument(
        "-X",
        "--method",
        type=str.upper,
        choices=[method.value for method in HttpMethod],
        default="GET",
        help="HTTP method",
    )
    request.add_argument("--data", type=json.loads, help="JSON request body")
    request.add_argument(
        "--timeout", type=int, default=DEFAULT_TIMEOUT_MS, help="Per-attempt timeout (ms)"
    )
    request.add_argument("--binary", action="store_true", help="Treat the response as bytes")
    request.add_argument("-o", "--output", type=Path, help="Write the response body to a file")
    add_credentials(request)

    status = subparsers.add_parser("status", help="Check device health")
    status.add_argument("ips", nargs="+", help="Device addresses")
    add_credentials(status)

    return parser


async def _run_request(args: argparse.Namespace) -> int:
    body = args.data
    encoding = ResponseEncoding.BINARY if args.binary else ResponseEncoding.JSON
    config = ClientConfig(verify=args.verify, timeout_ms=args.timeout, response_encoding=encoding)

    async with AsyncDigestClient(config) as client:
        response = await client.request(
            args.url,
            args.method,
            body,
            username=args.username,
            password=args.password,
        )

    logging.info(f"{args.method} {args.url} → {response.status_code} {response.reason_phrase}")
    if args.output:
        data = response.data
        if isinstance(data, bytes):
            args.output.write_bytes(data)
        else:
            args.output.write_text(json.dumps(data, indent=2))
        logging.info(f"Wrote response body to {args.output}")
    elif isinstance(response.data, bytes):
        console.print(f"<{len(response.data)} bytes, {response.content_type or 'unknown type'}>")
    else:
        console.print(
            Panel.fit(
                json.dumps(response.data, indent=2),
                title=f"{response.status_code} {response.reason_phrase}",
                border_style="green",
            )
        )
    return 0


async def _run_status(args: argparse.Namespace) -> int:
    devices = [SentrioDevice(ip) for ip in args.ips]
    async with SentrioClient(
        args.username, args.password, ClientConfig(verify=args.verify)
    ) as sentrio:
        statuses = await sentrio.check_health(devices)

    table = Table(title="Sentrio health")
    table.add_column("Device", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    for status in statuses:
        colour = "green" if status.is_online else "red"
        table.add_row(status.ip, f"[{colour}]{status.status}[/]", status.error or "")
    console.print(table)
    return 0 if all(status.is_online for status in statuses) else 1


_COMMANDS = {
    "request": _run_request,
    "status": _run_status,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    try:
        return asyncio.run(_COMMANDS[args.command](args))
    except DigestError as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
