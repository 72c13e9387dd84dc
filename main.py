#!/usr/bin/env python3
"""
SSO auth service -- process entry point and operator commands.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 44044
  python main.py create-app web "app-signing-secret"
  python main.py set-admin 42
  python main.py set-admin 42 --revoke

Configuration comes from the environment / .env (see core/config.py):
  ENV, STORAGE_URL, TOKEN_TTL_SECONDS, REQUEST_TIMEOUT_SECONDS,
  BCRYPT_ROUNDS, HOST, PORT

Applications are provisioned here rather than over the API: tokens for an
app can only be issued once the app and its signing secret exist in the store.
"""

import argparse
import sys

from sqlalchemy.exc import IntegrityError

from auth.store import CredentialStore
from core.config import get_settings
from core.logs import setup_logging


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    setup_logging(settings.env)
    # log_config=None keeps uvicorn from replacing the handlers set up above.
    # uvicorn owns SIGINT/SIGTERM and runs the lifespan shutdown on either.
    uvicorn.run(
        "api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


def _create_app(args: argparse.Namespace) -> int:
    if not args.secret:
        print("  [!] secret must not be empty.")
        return 2
    store = CredentialStore(get_settings().storage_url)
    try:
        app_id = store.create_app(args.name, args.secret.encode("utf-8"))
    except IntegrityError:
        print(f"  [!] An app named '{args.name}' already exists.")
        return 1
    finally:
        store.close()
    print(f"  app '{args.name}' registered with id {app_id}")
    return 0


def _set_admin(args: argparse.Namespace) -> int:
    store = CredentialStore(get_settings().storage_url)
    try:
        updated = store.set_admin(args.user_id, not args.revoke)
    finally:
        store.close()
    if not updated:
        print(f"  [!] No user with id {args.user_id}.")
        return 1
    state = "revoked from" if args.revoke else "granted to"
    print(f"  admin {state} user {args.user_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sso",
        description="Credential-issuance service: registration, login, per-app tokens.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting).")
    serve.set_defaults(func=_serve)

    create_app = sub.add_parser("create-app", help="Register a client application and its signing secret.")
    create_app.add_argument("name")
    create_app.add_argument("secret")
    create_app.set_defaults(func=_create_app)

    set_admin = sub.add_parser("set-admin", help="Grant (or revoke) the admin flag on a user.")
    set_admin.add_argument("user_id", type=int)
    set_admin.add_argument("--revoke", action="store_true", help="Clear the flag instead of setting it.")
    set_admin.set_defaults(func=_set_admin)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
