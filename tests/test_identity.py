from datetime import timedelta

import pytest
from starlette.requests import Request

from app.exceptions import InvalidArgumentError, UnauthorizedError
from app.services.identity_service import (
    GuestIdentity, ResolvedIdentity, UserIdentity, identity_resolver
)
from app.utils.security import create_access_token


def build_request(headers=None, query=""):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": raw_headers,
        "query_string": query.encode(),
    })


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_valid_token_resolves_user(db, make_user):
    user = make_user()
    request = build_request(bearer(create_access_token(str(user.id))))

    resolved = identity_resolver.resolve(db, request)

    assert resolved.identity == UserIdentity(user.id)
    assert resolved.generated is False


def test_user_token_wins_over_guest_identifier(db, make_user):
    user = make_user()
    headers = bearer(create_access_token(str(user.id)))
    headers["X-Guest-Identifier"] = "guest-1"

    assert identity_resolver.resolve(db, build_request(headers)).identity == UserIdentity(user.id)


@pytest.mark.parametrize("token", ["garbage", "", "a.b.c"])
def test_invalid_token_degrades_to_guest(db, token):
    headers = bearer(token)
    headers["X-Guest-Identifier"] = "guest-1"

    assert identity_resolver.resolve(db, build_request(headers)).identity == GuestIdentity("guest-1")


def test_expired_token_degrades_to_guest(db, make_user):
    user = make_user()
    token = create_access_token(str(user.id), expires_delta=timedelta(minutes=-1))

    resolved = identity_resolver.resolve(db, build_request(bearer(token), query="guest_identifier=g-2"))

    assert resolved.identity == GuestIdentity("g-2")


def test_inactive_user_is_not_resolved(db, make_user):
    user = make_user(status=False)
    request = build_request(bearer(create_access_token(str(user.id))))

    assert identity_resolver.resolve(db, request).identity is None


def test_guest_identifier_sources_in_order(db):
    request = build_request({"X-Guest-Identifier": "from-header"}, query="guestIdentifier=from-query")

    assert identity_resolver.resolve(db, request, explicit_guest="from-body").identity == GuestIdentity("from-body")
    assert identity_resolver.resolve(db, request).identity == GuestIdentity("from-header")
    assert identity_resolver.resolve(db, build_request(query="guestIdentifier=from-query")).identity == (
        GuestIdentity("from-query")
    )


def test_generate_mints_unique_guest_identifiers(db):
    first = identity_resolver.resolve(db, build_request(), generate=True)
    second = identity_resolver.resolve(db, build_request(), generate=True)

    assert first.generated and second.generated
    assert first.identity.guest_identifier != second.identity.guest_identifier
    assert len(first.identity.guest_identifier) == 32


def test_malformed_guest_identifier_rejected(db):
    with pytest.raises(InvalidArgumentError):
        identity_resolver.resolve(db, build_request({"X-Guest-Identifier": "bad id!"}))


def test_require_without_identity_is_unauthorized():
    with pytest.raises(UnauthorizedError):
        identity_resolver.require(ResolvedIdentity(identity=None))
