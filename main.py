#!/usr/bin/env python3
"""
Konnect -- command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 5000 --reload
  python main.py create-user --name "Ada Lovelace" --email ada@example.com --password secret1

Environment variables:
  SECRET_KEY    Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL  SQLAlchemy URL (default: sqlite file next to this script).
"""

import argparse
import getpass
import sys


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace) -> int:
    from pydantic import ValidationError
    from sqlalchemy.exc import IntegrityError

    from api.models import SignupRequest
    from auth.models import User
    from auth.store import UserStore
    from auth.tokens import hash_password

    password = args.password or getpass.getpass("Password: ")
    try:
        body = SignupRequest(name=args.name, email=args.email, password=password)
    except ValidationError as exc:
        for err in exc.errors():
            print(f"  [!] {err['msg']}")
        return 1

    store = UserStore()
    try:
        user_id = store.create_user(User(name=body.name, email=body.email, hashed_password=hash_password(body.password)))
    except IntegrityError:
        print(f"  [!] A user with email {body.email} already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created user {user_id} ({body.email})")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="konnect",
        description="Konnect social networking API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py create-user --name "Ada Lovelace" --email ada@example.com
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=5000, help="Port (default: 5000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Create an account without going through the API")
    create.add_argument("--name", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--password", help="Prompted for when omitted")
    create.set_defaults(func=_create_user)

    args = parser.parse_args()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
