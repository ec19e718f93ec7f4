"""Command-line entry point for the co-parent client.

Runs single co-parent operations against the backend and prints the result
as JSON::

    coparent list <companion_id>
    coparent invite <companion_id> <email> <name> [--phone NUMBER]
    coparent pending
    coparent accept <token> | coparent decline <token>
    coparent access <parent_id> [companion_id ...]
    coparent promote <companion_id> <co_parent_id>
    coparent remove <companion_id> <co_parent_id>

The bearer token is read from ``COPARENT_ACCESS_TOKEN``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import BaseModel

from .auth import JwtTokenProvider
from .communication import RestClient
from .config import ClientConfig
from .models import InviteRequest
from .store import CoParentStore
from .thunks import CoParentOperations, Outcome

log = logging.getLogger("coparent")


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=fmt, stream=sys.stderr)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="coparent", description="Co-parent access client")
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List co-parents of a companion.")
    p.add_argument("companion_id")

    p = sub.add_parser("invite", help="Invite a co-parent to a companion.")
    p.add_argument("companion_id")
    p.add_argument("email")
    p.add_argument("name")
    p.add_argument("--phone", default=None)

    sub.add_parser("pending", help="List pending invites.")

    for name in ("accept", "decline"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a pending invite.")
        p.add_argument("token")

    p = sub.add_parser("access", help="Show your own access per companion.")
    p.add_argument("parent_id")
    p.add_argument("companion_ids", nargs="*")

    for name in ("promote", "remove"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a co-parent.")
        p.add_argument("companion_id")
        p.add_argument("co_parent_id")

    return parser


async def _execute(ops: CoParentOperations, args: argparse.Namespace) -> Outcome[Any]:
    if args.command == "list":
        return await ops.fetch_co_parents(args.companion_id)
    if args.command == "invite":
        request = InviteRequest(
            candidate_name=args.name,
            email=args.email,
            phone_number=args.phone,
            companion_id=args.companion_id,
        )
        return await ops.add_co_parent(request)
    if args.command == "pending":
        return await ops.fetch_pending_invites()
    if args.command == "accept":
        return await ops.accept_co_parent_invite(args.token)
    if args.command == "decline":
        return await ops.decline_co_parent_invite(args.token)
    if args.command == "access":
        return await ops.fetch_parent_access(args.parent_id, args.companion_ids or None)
    if args.command == "promote":
        return await ops.promote_co_parent_to_primary(args.companion_id, args.co_parent_id)
    return await ops.delete_co_parent(args.companion_id, args.co_parent_id)


async def run(config: ClientConfig, args: argparse.Namespace) -> int:
    if not config.has_token:
        log.error("No access token configured. Set COPARENT_ACCESS_TOKEN and try again.")
        return 1

    client = RestClient(config)
    tokens = JwtTokenProvider(config.access_token, skew_seconds=config.token_expiry_skew)
    ops = CoParentOperations(client, tokens, CoParentStore())
    try:
        outcome = await _execute(ops, args)
    finally:
        await client.close()

    if not outcome.ok:
        log.error("%s failed: %s", args.command, outcome.error)
        return 1
    print(json.dumps(_jsonable(outcome.value), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = _build_parser().parse_args(argv)
    _setup_logging(verbose=args.verbose)
    config = ClientConfig.load()
    return asyncio.run(run(config, args))


if __name__ == "__main__":
    sys.exit(main())
