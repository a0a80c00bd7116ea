# src/stellar_auth/scripts/login.py
"""Log in to a Stellar Auth server from the command line.

Either sign locally with a secret seed (the same path a browser extension
takes) or hand the challenge to the signing bot and wait for the callback::

    python -m stellar_auth.scripts.login --server http://localhost:8000 --secret S...
    python -m stellar_auth.scripts.login --public-key G... --bot
    python -m stellar_auth.scripts.login --resume
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path

import httpx

from stellar_auth.client import (
    AuthOrchestrator,
    AuthState,
    LocalKeypairSigner,
    SigningRejectedError,
    StateStore,
)

DEFAULT_STATE_FILE = Path.home() / ".stellar_auth" / "login.json"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Authenticate with a Stellar keypair")
    parser.add_argument("--server", default=os.getenv("STELLAR_AUTH_SERVER", "http://localhost:8000"))
    parser.add_argument("--state-file", type=Path, default=DEFAULT_STATE_FILE)
    parser.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds")

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--secret",
        help="Secret seed to sign with locally (or set STELLAR_SECRET and pass '-')",
    )
    mode.add_argument("--public-key", help="Public key to authenticate via an external signer")
    mode.add_argument("--resume", action="store_true", help="Resume a pending hand-off")
    mode.add_argument("--logout", action="store_true", help="End the current session")

    parser.add_argument("--bot", action="store_true", help="Route the request through the signing bot")
    parser.add_argument("--signed-xdr", help="Submit an envelope signed elsewhere")
    parser.add_argument(
        "--wait",
        type=float,
        default=0.0,
        help="Poll /auth/status for this many seconds after a hand-off",
    )
    return parser


def _poll(orchestrator: AuthOrchestrator, seconds: float, interval: float = 3.0) -> AuthState:
    deadline = time.monotonic() + seconds
    state = orchestrator.check_status()
    while state == AuthState.AWAITING_EXTERNAL_SIGNATURE and time.monotonic() < deadline:
        time.sleep(interval)
        state = orchestrator.check_status()
    return state


def _report(orchestrator: AuthOrchestrator) -> int:
    if orchestrator.state == AuthState.AUTHENTICATED:
        print(f"Authenticated as {orchestrator.public_key} (user {orchestrator.user_id})")
        return 0
    if orchestrator.state == AuthState.AWAITING_EXTERNAL_SIGNATURE:
        print("Waiting for the signature; run again with --resume to check.")
        return 0
    if orchestrator.state == AuthState.FAILED:
        print(f"Login failed: {orchestrator.error}", file=sys.stderr)
        return 1
    print(f"State: {orchestrator.state.value}")
    return 0


def run(args: argparse.Namespace, http: httpx.Client) -> int:
    orchestrator = AuthOrchestrator(http, state_store=StateStore(args.state_file))

    if args.logout:
        orchestrator.resume()
        orchestrator.logout()
        print("Logged out")
        return 0

    if args.resume:
        orchestrator.resume()
        if args.signed_xdr and orchestrator.state == AuthState.AWAITING_EXTERNAL_SIGNATURE:
            orchestrator.submit_signed_envelope(args.signed_xdr)
        elif args.wait:
            _poll(orchestrator, args.wait)
        return _report(orchestrator)

    signer: LocalKeypairSigner | None = None
    if args.secret:
        secret = os.getenv("STELLAR_SECRET", "") if args.secret == "-" else args.secret
        try:
            signer = LocalKeypairSigner(secret)
        except SigningRejectedError as exc:
            print(f"Login failed: {exc}", file=sys.stderr)
            return 1
        orchestrator.connect(signer)
    else:
        orchestrator.connect(manual_key=args.public_key)

    if orchestrator.state == AuthState.CONNECTING:
        orchestrator.request_challenge()
    if orchestrator.state != AuthState.CHALLENGE_ISSUED:
        return _report(orchestrator)

    if signer is not None and not args.bot:
        orchestrator.sign_with_extension(signer)
        return _report(orchestrator)

    if args.signed_xdr:
        orchestrator.submit_signed_envelope(args.signed_xdr)
        return _report(orchestrator)

    target = orchestrator.hand_off_to_bot()
    if orchestrator.bot_url:
        print(f"Open the signing bot: {target}")
    else:
        print(f"Signing bot unavailable. Sign directly with: {target}")
    if args.wait:
        _poll(orchestrator, args.wait)
    return _report(orchestrator)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING)
    with httpx.Client(base_url=args.server, timeout=args.timeout) as http:
        return run(args, http)


if __name__ == "__main__":
    raise SystemExit(main())
