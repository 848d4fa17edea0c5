#!/usr/bin/env python3
"""
Users API -- command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py serve --reload
  python main.py create-user --name Alice --email alice@example.com
  python main.py create-user --name Alice --email alice@example.com --password-stdin < pw.txt

Environment variables (see core/config.py for the full list):
  SECRET_KEY     Token signing secret, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL of the user store. Default: SQLite file under auth/.
  BCRYPT_ROUNDS  bcrypt work factor (4-31). Default: 12.
"""

import argparse
import getpass
import sys

from auth.errors import AuthError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from cache.store import IdentityCache
from core.config import get_settings


def _read_password(from_stdin: bool) -> str:
    """Read the new account's password without echoing it.

    --password-stdin reads one line from stdin (for scripts); otherwise the
    user is prompted twice and the entries must match.
    """
    if from_stdin:
        return sys.stdin.readline().rstrip("\n")
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.", file=sys.stderr)
        sys.exit(1)
    return first


def create_user(name: str, email: str, password: str) -> int:
    """Register one account against the configured store. Returns an exit code."""
    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        service = AuthService(
            store=store,
            hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
            issuer=TokenIssuer(settings.secret_key, expire_seconds=settings.token_expire_seconds),
            cache=IdentityCache(ttl=settings.identity_cache_ttl),
        )
        try:
            user = service.register(name, email, password)
        except AuthError as exc:
            print(f"  [!] {exc.message}", file=sys.stderr)
            for problem in exc.detail or []:
                print(f"      {problem['field']}: {problem['message']}", file=sys.stderr)
            return 1
    finally:
        store.close()
    print(f"  Created user {user.id} <{user.email}>")
    return 0


def serve(host: str, port: int, reload: bool) -> None:
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=reload)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="users-api",
        description="Users API with bcrypt credentials and signed bearer tokens.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 3000
  python main.py create-user --name Alice --email alice@example.com
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve_parser = sub.add_parser("serve", help="Run the HTTP API under uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")

    create_parser = sub.add_parser("create-user", help="Register an account from the shell")
    create_parser.add_argument("--name", required=True, help="Display name (3-50 characters)")
    create_parser.add_argument("--email", required=True, help="Login email (must be unique)")
    create_parser.add_argument(
        "--password-stdin",
        action="store_true",
        help="Read the password from stdin instead of prompting",
    )

    args = parser.parse_args()

    if args.command == "serve":
        serve(args.host, args.port, args.reload)
    elif args.command == "create-user":
        password = _read_password(args.password_stdin)
        sys.exit(create_user(args.name, args.email, password))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
