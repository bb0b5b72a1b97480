import argparse
from datetime import timedelta

from app.auth import create_access_token


def issue_token(user_id: str, minutes: int | None = None) -> str:
    if not user_id.strip():
        raise ValueError("user id must not be empty")
    expires = timedelta(minutes=minutes) if minutes else None
    return create_access_token(user_id.strip(), expires_delta=expires)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Print a bearer token for a user id")
    parser.add_argument("user_id")
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime")
    args = parser.parse_args(argv)

    print(issue_token(args.user_id, args.minutes))


if __name__ == "__main__":
    main()
