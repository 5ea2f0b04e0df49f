"""
Create a pre-verified user (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user admin@medmap.co.za 'S3cure!Passw0rd' admin
Doctors and patients also get an empty role profile, as with self-registration.
"""
import argparse
import sys
import uuid

from email_validator import EmailNotValidError
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import session_scope
from app.core.security import hash_password, password_policy_violations
from app.domain.entities import ROLE_DOCTOR, ROLE_PATIENT, ROLES, UserRecord
from app.repositories import SqlAlchemyProfileRepository, SqlAlchemyUserRepository
from app.services.auth import canonical_email


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create a MedMap user with a verified email (the only way to create admins)."
    )
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (8-128 chars, mixed case, digit, symbol)")
    parser.add_argument("role", nargs="?", default="admin", choices=list(ROLES))
    args = parser.parse_args(argv)

    try:
        email = canonical_email(args.email)
    except EmailNotValidError as e:
        print(f"Invalid email address: {e}", file=sys.stderr)
        return 1
    problems = password_policy_violations(args.password)
    if problems:
        print("; ".join(problems), file=sys.stderr)
        return 1

    with session_scope() as db:
        users = SqlAlchemyUserRepository(db)
        if users.get_by_email(email) is not None:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user = users.add(
            UserRecord(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=hash_password(args.password),
                role=args.role,
                is_email_verified=True,
            )
        )
        profiles = SqlAlchemyProfileRepository(db)
        try:
            if args.role == ROLE_DOCTOR:
                profiles.create_doctor_profile(user.id, {})
            elif args.role == ROLE_PATIENT:
                profiles.create_patient_profile(user.id, {})
        except SQLAlchemyError as e:
            users.delete(user.id)
            print(f"Could not create {args.role} profile: {e}", file=sys.stderr)
            return 1
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
