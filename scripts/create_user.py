"""One-off script to create a local account (IDENTITY_BACKEND=local) for trying the reset flow."""
import sys
import os

# Ensure app is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.password_policy import password_policy_violation
from app.core.security import hash_password
from app.db.base import SessionLocal
from app.db.models.user import User


def main(argv):
    if len(argv) != 3:
        print("Usage: python scripts/create_user.py <email> <password>")
        return 2
    email, password = argv[1].strip().lower(), argv[2]
    violation = password_policy_violation(password)
    if violation:
        print(violation)
        return 2
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            print(f"User {email} already exists.")
            return 1
        user = User(email=email, password_hash=hash_password(password), name=email.split("@")[0])
        db.add(user)
        db.commit()
        db.refresh(user)
        print("Created user:")
        print(f"  id: {user.id}")
        print(f"  email: {user.email}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main(sys.argv))
