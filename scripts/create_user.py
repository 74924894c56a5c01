"""Create a user.

Usage:
  python scripts/create_user.py --name "Pizza Diner" --email d@jwt.com --password '...'
  python scripts/create_user.py --name Admin --email admin@jwt.com --password '...' --admin
  python scripts/create_user.py --name Owner --email f@jwt.com --password '...' --franchise 3

NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from pizza_service.config import load_config
from pizza_service.data import DB
from pizza_service.models import RoleAssignment


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--admin", action="store_true", help="grant the admin role")
    ap.add_argument("--franchise", type=int, action="append", default=[], help="franchise id to administer")
    args = ap.parse_args()

    roles = [RoleAssignment.diner()]
    if args.admin:
        roles.append(RoleAssignment.admin())
    roles.extend(RoleAssignment.franchisee(fid) for fid in args.franchise)

    cfg = load_config()
    db = DB(cfg.DB_DSN, list_per_page=cfg.DB_LIST_PER_PAGE)
    db.initialize_database()
    user = db.add_user(name=args.name, email=args.email, password=args.password, roles=roles)

    print("Created user:")
    print(user.to_dict())


if __name__ == "__main__":
    main()
