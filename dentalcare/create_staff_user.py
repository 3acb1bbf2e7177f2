"""Create or promote a staff account.

Usage:
    python -m dentalcare.create_staff_user EMAIL PASSWORD
"""
import sys

from dentalcare.auth.security import hash_password
from dentalcare.core import config
from dentalcare.database import Base, SessionLocal, engine
from dentalcare.models import appointment, timeslot  # noqa: F401
from dentalcare.models.user import User


def create_staff_user(db, email: str, password: str) -> User:
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email)
        db.add(user)
    user.hashed_password = hash_password(password)
    user.role = config.STAFF_ROLE
    db.commit()
    db.refresh(user)
    return user


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print(__doc__.strip(), file=sys.stderr)
        sys.exit(2)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = create_staff_user(db, args[0], args[1])
    finally:
        db.close()
    print(f"{user.email} is now {user.role}")


if __name__ == "__main__":
    main()
