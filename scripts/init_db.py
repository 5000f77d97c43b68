import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.portal.bootstrap import ensure_admin
from app.portal.config import load_settings
from app.portal.security import PasswordHasher
from scripts._db_utils import script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Provision the default admin account in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    settings = load_settings()

    # Direct engine/session so this can run in release without building the app.
    with script_session(database_url) as s:
        created = ensure_admin(
            s,
            PasswordHasher(method=settings.password_hash_method),
            email=settings.admin_email,
            password=settings.admin_password,
        )

    print("Initialized database (seed_only).")
    print(f"Admin email: {settings.admin_email} ({'created' if created else 'already present'})")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
