from jose import jwt
import argparse
import datetime

"""
CLI utility to generate a JWT for testing the agency site API.
The subject must also hold the role in user_roles (see grant_role.py).

Example usage:
    python scripts/generate_jwt.py --secret 'your-actual-secret' --user-id 3f6c... --email admin@example.com --seconds 600
"""

def main():
    parser = argparse.ArgumentParser(description="Generate a test JWT.")
    parser.add_argument("--secret", required=True, help="JWT secret key")
    parser.add_argument("--user-id", required=True, help="Auth user id (sub claim)")
    parser.add_argument("--email", default=None, help="Email claim")
    parser.add_argument("--seconds", type=int, default=3600, help="Token expiry in seconds (default: 3600, i.e. 1 hour)")
    args = parser.parse_args()

    payload = {
        "sub": args.user_id,
        "email": args.email,
        "exp": datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=args.seconds)
    }
    print(payload)
    token = jwt.encode(payload, args.secret, algorithm="HS256")
    print("----------------------------------------------------------\n")
    print(token)

if __name__ == "__main__":
    main()
