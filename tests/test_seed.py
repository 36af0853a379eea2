# mypy: ignore-errors
# tests/test_seed.py
"""Tests for the provisioning script."""

from zeelink.core.security import verify_password
from zeelink.models import Site, User
from zeelink.scripts.seed import seed


def test_seed_is_idempotent(ez, db_session) -> None:
    seed(ez, "主站", "13700137001", "admin-pass")
    seed(ez, "另一个名字", "13700137001", "other-pass")

    sites = db_session.query(Site).all()
    assert [site.name for site in sites] == ["主站"]
    admin = db_session.query(User).filter_by(mobile="13700137001").one()
    assert admin.role == "admin"
    assert admin.current_site_id == sites[0].id
    assert verify_password("admin-pass", admin.password)


def test_seed_promotes_existing_user(ez, test_user, db_session) -> None:
    seed(ez, "主站", test_user.mobile, None)
    db_session.refresh(test_user)
    assert test_user.role == "admin"


def test_seed_generates_admin_password(ez, db_session) -> None:
    seed(ez, "主站", "13700137002", None)
    admin = db_session.query(User).filter_by(mobile="13700137002").one()
    assert admin.password


def test_seed_without_admin(ez, db_session) -> None:
    seed(ez, "主站", None, None)
    assert db_session.query(Site).count() == 1
    assert db_session.query(User).count() == 0
