"""
Interactive console for the Health Portal.
Initialises the schema and creates accounts (e.g. the first admin).
"""

from getpass import getpass

from healthportal.api.auth import hash_password
from healthportal.config import DEFAULT_ROLE
from healthportal.database import init_engine, init_schema
from healthportal.errors import Conflict, ValidationFailed
from healthportal.store import create_user
from healthportal.validation import check, register_rules


def prompt_account() -> dict:
    """Ask for the registration fields; empty optional answers are left out."""
    data = {
        "name": input("Name: ").strip(),
        "email": input("Email: ").strip(),
        "password": getpass("Password: "),
    }
    role = input("Role [patient/doctor/admin] (blank = patient): ").strip()
    if role:
        data["role"] = role
    phone = input("Phone (optional): ").strip()
    if phone:
        data["phone"] = phone
    return data


def create_account(engine, data: dict):
    """Validate *data* with the registration rules and store the user."""
    cleaned = check(data, register_rules)
    return create_user(
        engine,
        name=cleaned["name"],
        email=cleaned["email"],
        password_hash=hash_password(cleaned["password"]),
        role=cleaned.get("role", DEFAULT_ROLE),
        phone=cleaned.get("phone"),
    )


def main():
    print("=== Health Portal: account console ===\n")

    engine = init_engine()
    init_schema(engine)
    print("[init] Schema ready.")

    while True:
        try:
            answer = input("\nCreate an account? [y/N]: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if answer not in {"y", "yes"}:
            print("Goodbye.")
            break

        try:
            data = prompt_account()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        try:
            row = create_account(engine, data)
        except ValidationFailed as e:
            print("\n[INVALID] The account was not created:")
            for err in e.errors:
                print(f"  - {err.field}: {err.message}")
            continue
        except Conflict as e:
            print(f"\n[INVALID] {e.message}")
            continue

        print(f"\n[ok] Created {row['role']} #{row['id']} <{row['email']}>")


if __name__ == "__main__":
    main()
