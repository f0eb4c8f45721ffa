# backend/create_initial_admin.py

import os

from traineedb.database import SessionLocal
from traineedb.apps.accounts import models
from traineedb.security import get_password_hash


def main() -> None:
    db = SessionLocal()
    try:
        email = os.getenv("INITIAL_ADMIN_EMAIL", "admin@trainee.local").strip().lower()
        password = os.getenv("INITIAL_ADMIN_PASSWORD", "ChangeMe123!")

        # Check if it already exists
        existing = db.query(models.Admin).filter(models.Admin.email == email).first()
        if existing:
            print(f"[INFO] Admin already exists: id={existing.id}, email={existing.email}")
            return

        admin = models.Admin(
            name="System Admin",
            email=email,
            title="Training Administrator",
            is_active=True,
            hashed_password=get_password_hash(password),
        )

        db.add(admin)
        db.commit()
        db.refresh(admin)

        print("[OK] Created admin account:")
        print(f"  id:      {admin.id}")
        print(f"  email:   {admin.email}")
        print(f"  login password: {password}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
