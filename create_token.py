"""Issue a development identity token signed with IDENTITY_SECRET.

Usage:
    python create_token.py --user-id user_1 --username ana --role admin
"""
import argparse

from service_tracker_api.app.core.security import create_identity_token


def main() -> None:
    ap = argparse.ArgumentParser(description="Create a signed identity token for local testing.")
    ap.add_argument("--user-id", required=True, help="Stable user identifier (token subject)")
    ap.add_argument("--username", help="Username stamped on created services")
    ap.add_argument("--full-name", help="Name shown in the dashboard greeting")
    ap.add_argument("--role", help="Role claim; 'admin' grants admin capabilities")
    # 365 days by default
    ap.add_argument("--expires", type=int, default=365 * 24 * 60 * 60, help="Lifetime in seconds")
    args = ap.parse_args()

    claims = {"sub": args.user_id}
    if args.username:
        claims["username"] = args.username
    if args.full_name:
        claims["full_name"] = args.full_name
    if args.role:
        claims["role"] = args.role
    print(create_identity_token(claims, expires_delta=args.expires))


if __name__ == "__main__":
    main()
