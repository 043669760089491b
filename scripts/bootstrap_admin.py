#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from boom_booking.core.config import DEV_BOOTSTRAP_ALLOW  # noqa: E402
from boom_booking.core.database import SessionLocal, engine  # noqa: E402
from boom_booking.core.errors import InvalidInput  # noqa: E402
from boom_booking.models.user import ROLE_ADMIN, USER_ROLES  # noqa: E402
from boom_booking.services.admin_bootstrap import (  # noqa: E402
    ensure_users_table,
    upsert_user,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cria ou atualiza um usuário (admin de tenant ou super_admin).")
    parser.add_argument("--tenant", type=int, help="Tenant ID (omitir para super_admin)")
    parser.add_argument("--email", required=True, help="Email do usuário")
    parser.add_argument("--password", help="Senha do usuário")
    parser.add_argument("--name", required=True, help="Nome do usuário")
    parser.add_argument("--role", default=ROLE_ADMIN, choices=USER_ROLES, help="Role do usuário")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Permite executar sem DEV_BOOTSTRAP_ALLOW=1",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if not DEV_BOOTSTRAP_ALLOW and not args.force:
        print(
            "Bootstrap desabilitado. "
            "Defina DEV_BOOTSTRAP_ALLOW=1 ou use --force."
        )
        return 1

    try:
        ensure_users_table(engine)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        user, created = upsert_user(
            db,
            tenant_id=args.tenant,
            email=args.email,
            name=args.name,
            role=args.role,
            password=args.password,
        )
    except InvalidInput as exc:
        print(exc.message)
        return 1
    finally:
        db.close()

    action = "created" if created else "updated"
    print(f"User {action}: tenant={user.tenant_id} email={user.email} role={user.role}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
