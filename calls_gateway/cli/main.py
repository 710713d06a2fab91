"""CLI: calls-gateway serve, config validate, session new/info/add/reneg/close."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from ..callservice import CallService
from ..config import load_config, validate_config

_SESSION_ACTIONS = {
    "new": "create_new_session",
    "info": "get_session_information",
    "add": "add_new_track",
    "reneg": "renegotiate_session",
    "close": "close_track",
}


def _load_or_exit(config_path: str | None):
    try:
        return load_config(config_path)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)


def _read_payload(source: str | None):
    if source is None:
        return {}
    text = sys.stdin.read() if source == "-" else Path(source).read_text()
    return json.loads(text)


class _SuppressPreflightAccess(logging.Filter):
    """Hide OPTIONS pre-flight access logs."""
    def filter(self, record: logging.LogRecord) -> bool:
        return '"OPTIONS ' not in record.getMessage()


def cmd_serve(args):
    """Start the HTTP gateway."""
    import uvicorn

    from ..gateway import create_app

    config = _load_or_exit(args.config)
    errors = validate_config(config)
    if errors:
        print("Config validation errors:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        sys.exit(1)

    debug = args.debug or config.upstream.debug
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not debug:
        logging.getLogger("uvicorn.access").addFilter(_SuppressPreflightAccess())

    host = args.host or config.server.host
    port = args.port or config.server.port

    app = create_app(config)
    print(f"calls-gateway on {host}:{port} -> {config.upstream.sessions_url}")
    uvicorn.run(
        app, host=host, port=port, log_level="debug" if debug else "info",
        timeout_graceful_shutdown=2,
    )


def cmd_config_validate(args):
    """Validate config file."""
    config = _load_or_exit(args.config)

    errors = validate_config(config)
    if errors:
        print("Config validation errors:")
        for err in errors:
            print(f"  - {err}")
        sys.exit(1)
    else:
        print("Config is valid.")
        print(f"  App ID: {config.upstream.app_id}")
        print(f"  Sessions URL: {config.upstream.sessions_url}")
        print(
            f"  Timeouts: connect={config.timeouts.connect}s "
            f"upstream={config.timeouts.upstream}s body_read={config.timeouts.body_read}s"
        )
        print(f"  Listen: {config.server.host}:{config.server.port}")


async def _run_session_action(config, action: str, session_id: str, payload) -> dict:
    async with CallService(config.upstream, timeouts=config.timeouts) as service:
        operation = getattr(service, _SESSION_ACTIONS[action])
        if action == "new":
            result = await operation(payload)
        else:
            result = await operation(session_id, payload)
    return result.to_payload()


def cmd_session(args):
    """Call the upstream control plane directly and print the envelope."""
    config = _load_or_exit(args.config)
    if args.session_action != "new" and not args.session_id:
        print(f"Error: session {args.session_action} requires a session id", file=sys.stderr)
        sys.exit(1)

    try:
        payload = _read_payload(args.payload)
    except (OSError, ValueError) as e:
        print(f"Error reading payload: {e}", file=sys.stderr)
        sys.exit(1)

    envelope = asyncio.run(
        _run_session_action(config, args.session_action, args.session_id or "", payload)
    )
    print(json.dumps(envelope, indent=2))
    if not envelope["valid"]:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        prog="calls-gateway",
        description="HTTP gateway for real-time call-session lifecycle requests",
    )
    parser.add_argument("--config", "-c", help="Path to config file")

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP gateway")
    serve_parser.add_argument("--port", "-p", type=int, default=None)
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--debug", action="store_true", help="Verbose logging")

    # session
    session_parser = subparsers.add_parser("session", help="Call the upstream directly")
    session_parser.add_argument("session_action", choices=sorted(_SESSION_ACTIONS))
    session_parser.add_argument("session_id", nargs="?", default=None)
    session_parser.add_argument(
        "--payload",
        help="JSON payload file ('-' for stdin); defaults to {}",
    )

    # config validate
    config_parser = subparsers.add_parser("config", help="Config operations")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("validate", help="Validate config file")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "session":
        cmd_session(args)
    elif args.command == "config":
        if args.config_command == "validate":
            cmd_config_validate(args)
        else:
            print("Usage: calls-gateway config validate")
            sys.exit(1)


if __name__ == "__main__":
    main()
