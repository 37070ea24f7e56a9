from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from shortlinks.core.outcomes import (
    Deactivated,
    Expired,
    IncorrectPassword,
    InvalidOrUnprotected,
    NotFound,
    PasswordRequired,
    Redirect,
)
from shortlinks.database import Base, make_engine
from shortlinks.models import Click, Link, UniqueVisitor
from shortlinks.services.links import create_link, toggle_link_status
from shortlinks.services.redirect import resolve_redirect, verify_password

from .conftest import CHROME_DESKTOP, NOW, FakeGeo

DESTINATION = "https://example.com/page"


def follow(db, code, ip="203.0.113.1", now=NOW, **kwargs):
    return resolve_redirect(
        db, code, user_agent=CHROME_DESKTOP, peer_address=ip, now=now, geo=FakeGeo(), **kwargs
    )


def counters(db, code):
    db.expire_all()
    link = db.query(Link).filter(Link.short_code == code).one()
    return link.clicks_count, link.unique_clicks_count


class TestScenarios:
    def test_first_second_and_new_visitor(self, db):
        link = create_link(db, "owner-1", DESTINATION, now=NOW)
        code = link.short_code

        outcome = follow(db, code, ip="203.0.113.1")
        assert isinstance(outcome, Redirect)
        assert outcome.destination_url == DESTINATION
        assert counters(db, code) == (1, 1)

        follow(db, code, ip="203.0.113.1")
        assert counters(db, code) == (2, 1)

        follow(db, code, ip="198.51.100.2")
        assert counters(db, code) == (3, 2)

    def test_password_flow(self, db):
        link = create_link(db, "owner-1", DESTINATION, password="secret")
        code = link.short_code

        assert follow(db, code) == PasswordRequired(code)

        outcome = verify_password(db, code, "wrong", peer_address="203.0.113.1", now=NOW, geo=FakeGeo())
        assert outcome == IncorrectPassword(code)
        assert counters(db, code) == (0, 0)

        outcome = verify_password(db, code, "secret", peer_address="203.0.113.1", now=NOW, geo=FakeGeo())
        assert isinstance(outcome, Redirect)
        assert outcome.destination_url == DESTINATION
        assert counters(db, code) == (1, 1)

    def test_already_expired_link(self, db):
        link = create_link(db, "owner-1", DESTINATION, expires_at=NOW - timedelta(seconds=1))
        assert follow(db, link.short_code) == Expired(link.short_code)


class TestGates:
    def test_unknown_code(self, db):
        assert follow(db, "nothing") == NotFound("nothing")

    def test_oversized_code_is_not_found(self, db):
        assert follow(db, "x" * 200) == NotFound("x" * 200)

    def test_alias_resolves(self, db):
        create_link(db, None, DESTINATION, custom_alias="promo")
        outcome = follow(db, "promo")
        assert isinstance(outcome, Redirect)
        assert outcome.destination_url == DESTINATION
        assert outcome.click.short_code == "promo"
        assert counters(db, "promo") == (1, 1)

    def test_deactivated(self, db):
        link = create_link(db, "owner-1", DESTINATION)
        toggle_link_status(db, "owner-1", link.short_code)
        assert follow(db, link.short_code) == Deactivated(link.short_code)

    def test_expiry_boundary(self, db):
        link = create_link(db, "owner-1", DESTINATION, expires_at=NOW)
        assert isinstance(follow(db, link.short_code, now=NOW), Redirect)
        assert follow(db, link.short_code, now=NOW + timedelta(seconds=1)) == Expired(link.short_code)

    def test_expired_wins_over_password(self, db):
        link = create_link(db, "owner-1", DESTINATION, password="secret",
                           expires_at=NOW - timedelta(minutes=1))
        assert follow(db, link.short_code) == Expired(link.short_code)

    def test_deactivated_wins_over_password(self, db):
        link = create_link(db, "owner-1", DESTINATION, password="secret")
        toggle_link_status(db, "owner-1", link.short_code)
        assert follow(db, link.short_code) == Deactivated(link.short_code)

    def test_expired_wins_over_deactivated(self, db):
        link = create_link(db, "owner-1", DESTINATION, expires_at=NOW - timedelta(minutes=1))
        toggle_link_status(db, "owner-1", link.short_code)
        assert follow(db, link.short_code) == Expired(link.short_code)

    def test_denials_record_nothing(self, db):
        expired = create_link(db, "owner-1", DESTINATION, expires_at=NOW - timedelta(minutes=1))
        protected = create_link(db, "owner-1", DESTINATION, password="secret")

        follow(db, expired.short_code)
        follow(db, protected.short_code)
        follow(db, "nothing")

        assert db.query(Click).count() == 0
        assert counters(db, expired.short_code) == (0, 0)
        assert counters(db, protected.short_code) == (0, 0)


class TestVerifyPassword:
    @pytest.mark.parametrize("make", [
        lambda db: "nothing",
        lambda db: create_link(db, "owner-1", DESTINATION).short_code,
        lambda db: create_link(db, "owner-1", DESTINATION, password="secret",
                               expires_at=NOW - timedelta(minutes=1)).short_code,
    ])
    def test_invalid_or_unprotected(self, db, make):
        code = make(db)
        outcome = verify_password(db, code, "secret", now=NOW, geo=FakeGeo())
        assert outcome == InvalidOrUnprotected(code)

    def test_deactivated_link_is_invalid(self, db):
        link = create_link(db, "owner-1", DESTINATION, password="secret")
        toggle_link_status(db, "owner-1", link.short_code)
        outcome = verify_password(db, link.short_code, "secret", now=NOW, geo=FakeGeo())
        assert outcome == InvalidOrUnprotected(link.short_code)


def test_unique_never_exceeds_total(db):
    link = create_link(db, "owner-1", DESTINATION)
    for i in range(12):
        follow(db, link.short_code, ip=f"203.0.113.{i % 4}")

    total, unique = counters(db, link.short_code)
    assert total == 12
    assert unique == 4
    assert unique <= total


def test_forwarded_for_decides_the_visitor(db):
    link = create_link(db, "owner-1", DESTINATION)
    follow(db, link.short_code, ip="10.0.0.1", forwarded_for="203.0.113.7, 10.0.0.1")
    follow(db, link.short_code, ip="10.0.0.2", forwarded_for="203.0.113.7")

    assert counters(db, link.short_code) == (2, 1)
    assert db.query(Click).first().ip_address == "203.0.113.7"


def test_garbage_forwarded_for_falls_back_to_peer(db):
    link = create_link(db, "owner-1", DESTINATION)
    outcome = follow(db, link.short_code, ip="198.51.100.4", forwarded_for="x" * 60 + ", 203.0.113.7")

    assert isinstance(outcome, Redirect)
    assert db.query(Click).one().ip_address == "198.51.100.4"
    assert db.query(UniqueVisitor).one().ip_address == "198.51.100.4"


def test_concurrent_redirects_on_one_link(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'clicks.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with Session() as db:
        code = create_link(db, "owner-1", DESTINATION).short_code

    def visit(i):
        with Session() as db:
            outcome = resolve_redirect(
                db, code, user_agent=CHROME_DESKTOP, peer_address=f"203.0.113.{i % 5}", geo=FakeGeo()
            )
            return isinstance(outcome, Redirect)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(visit, range(40)))

    assert all(results)
    with Session() as db:
        assert counters(db, code) == (40, 5)
        assert db.query(Click).count() == 40
        assert db.query(Click).filter(Click.is_unique.is_(True)).count() == 5
        assert db.query(UniqueVisitor).count() == 5
    engine.dispose()
