import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from pizza_service.config import load_config
from pizza_service.data import DB


def main() -> None:
    cfg = load_config()
    db = DB(cfg.DB_DSN, list_per_page=cfg.DB_LIST_PER_PAGE)
    created = db.initialize_database()
    admin = db.bootstrap_admin_if_needed(
        name=cfg.AUTH_BOOTSTRAP_ADMIN_NAME,
        email=cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL,
        password=cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD,
    )

    print(f"DB {'initialized' if created else 'already initialized'}: {cfg.DB_DSN}")
    if admin is not None:
        print(f"Default admin: {admin.email}")


if __name__ == "__main__":
    main()
