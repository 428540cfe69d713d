import argparse
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal
from models.user_role import APP_ROLES
from services.role_service import grant_role

"""
Grant an app role to an auth user so they can reach the admin endpoints.

Example usage:
    python scripts/grant_role.py --user-id 3f6c... --role admin
"""

def main():
    parser = argparse.ArgumentParser(description="Grant an app role to a user.")
    parser.add_argument("--user-id", required=True, help="Auth user id (JWT sub claim)")
    parser.add_argument("--role", default="admin", choices=list(APP_ROLES), help="Role to grant")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        user_role = grant_role(db, args.user_id, args.role)
        print(f"{user_role.user_id} has role {user_role.role}")
    finally:
        db.close()

if __name__ == "__main__":
    main()
