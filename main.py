#!/usr/bin/env python3
"""
Passgate -- username/password authentication with signed access tokens.

Usage:
  python main.py bootstrap
  python main.py login admin
  python main.py login admin --password 'Secret123!'
  python main.py check-token <token> admin
  python main.py serve --host 0.0.0.0 --port 8000

Configuration comes from the environment or a .env file (see core/config.py):
  SECRET_KEY, ADMIN_USERNAME, ADMIN_PASSWORD, TOKEN_EXPIRE_SECONDS,
  DATABASE_URL, BCRYPT_ROUNDS, DEBUG.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from auth.bootstrap import ensure_admin
from auth.errors import AuthError, BootstrapError, DirectoryError, ServiceUnavailable
from auth.passwords import BcryptHasher
from auth.service import create_auth_service
from auth.store import UserStore
from auth.tokens import SigningKey, TokenService
from core.config import get_settings


def _open_store(database_url: str) -> Optional[UserStore]:
    try:
        return UserStore(database_url)
    except DirectoryError:
        print("  [!] User directory unavailable. Try again later.")
        return None


def _cmd_bootstrap(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = _open_store(settings.database_url)
    if store is None:
        print("  [!] Bootstrap failed: could not open the user directory")
        return 1
    try:
        created = ensure_admin(
            store,
            BcryptHasher(rounds=settings.bcrypt_rounds),
            settings.admin_username,
            settings.admin_password,
        )
    except BootstrapError as e:
        print(f"  [!] Bootstrap failed: {e}")
        return 1
    finally:
        store.close()
    if created:
        print(f"  Admin user '{settings.admin_username}' created.")
    else:
        print(f"  Admin user '{settings.admin_username}' already present.")
    return 0


def _cmd_login(args: argparse.Namespace) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    settings = get_settings()
    store = _open_store(settings.database_url)
    if store is None:
        return 1
    try:
        issued = create_auth_service(store, settings).login(args.username, password)
    except AuthError:
        print("  [!] Invalid username or password.")
        return 1
    except ServiceUnavailable:
        print("  [!] User directory unavailable. Try again later.")
        return 1
    finally:
        store.close()
    print(issued.token)
    return 0


def _cmd_check_token(args: argparse.Namespace) -> int:
    # Validation is signature and expiry only; the directory is not consulted.
    settings = get_settings()
    tokens = TokenService(SigningKey.from_secret(settings.secret_key), settings.token_expire_seconds)
    valid = tokens.validate(args.token, args.subject)
    print("valid" if valid else "invalid")
    return 0 if valid else 1


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="passgate",
        description="Username/password authentication with signed, time-bounded tokens.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py bootstrap
  python main.py login admin
  TOKEN=$(python main.py login admin --password 'Secret123!')
  python main.py check-token "$TOKEN" admin
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_boot = sub.add_parser("bootstrap", help="Create the configured admin user if it does not exist")
    p_boot.set_defaults(func=_cmd_bootstrap)

    p_login = sub.add_parser("login", help="Verify credentials and print an access token")
    p_login.add_argument("username")
    p_login.add_argument("--password", default=None, help="Password (prompted for when omitted)")
    p_login.set_defaults(func=_cmd_login)

    p_check = sub.add_parser("check-token", help="Check a token against a username; exit 0 if valid")
    p_check.add_argument("token")
    p_check.add_argument("subject", metavar="USERNAME")
    p_check.set_defaults(func=_cmd_check_token)

    p_serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=_cmd_serve)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
