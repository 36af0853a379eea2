"""Create the schema, a default site and optionally an administrator.

Usage::

    python -m zeelink.scripts.seed --site-name "主站" --admin-mobile 13800138000 --admin-password secret123
"""
from __future__ import annotations

import argparse
import logging
import sys

from zeelink.core.errors import AppError
from zeelink.core.security import generate_random_password
from zeelink.db.ezclient import EzClient, eq
from zeelink.db.session import SessionLocal, create_tables
from zeelink.models.user import ROLE_ADMIN
from zeelink.services import sites as site_service
from zeelink.services import users as user_service

logger = logging.getLogger(__name__)


def seed(client: EzClient, site_name: str, admin_mobile: str | None, admin_password: str | None) -> None:
    """Idempotently provision the default site and the admin account."""
    site = site_service.get_default_site(client)
    if site is None:
        site = site_service.create_site(client, site_name)
        logger.info("Created default site %s (%s)", site["id"], site["name"])
    else:
        logger.info("Default site already present: %s", site["name"])

    if not admin_mobile:
        return
    if client.count("users", eq("mobile", admin_mobile)) > 0:
        client.update("users", eq("mobile", admin_mobile), {"role": ROLE_ADMIN})
        logger.info("Promoted existing user %s to admin", admin_mobile)
        return
    if not admin_password:
        admin_password = generate_random_password(12)
        logger.warning("Generated password for admin %s: %s", admin_mobile, admin_password)
    user_service.create_user(
        client,
        {
            "mobile": admin_mobile,
            "password": admin_password,
            "nickname": "管理员",
            "role": ROLE_ADMIN,
            "current_site_id": site["id"],
        },
    )
    logger.info("Created admin account %s", admin_mobile)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--site-name", default="Zeelink", help="Name of the default site")
    parser.add_argument("--admin-mobile", help="Mobile number of the admin account")
    parser.add_argument("--admin-password", help="Password for a newly created admin (random if omitted)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    create_tables()
    db = SessionLocal()
    try:
        seed(EzClient(db), args.site_name, args.admin_mobile, args.admin_password)
    except AppError as exc:
        logger.error("Seeding failed: %s", exc.message)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
