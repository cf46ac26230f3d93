"""
Access gate tests.

Covers the route access table, the decision function and the redirects the
middleware answers with.
"""

import re
import pytest
from datetime import timedelta
from transport_backend.app.core.exceptions import InsufficientPermissionsError
from transport_backend.app.core.identity import normalize_role
from transport_backend.app.core.jwt import create_session_token
from transport_backend.app.core.rbac import (
    ADMIN, CLIENT, DRIVER, ROUTE_ACCESS, build_rules, decide_access, match_rule, require_any_role, require_role,
)

ALL_ROLES = (ADMIN, DRIVER, CLIENT)


def concrete_path(pattern):
    """The literal prefix of a route pattern, e.g. ``/list/users``."""
    return re.sub(r"\(.*", "", pattern)


def who(role):
    return {"user_id": "user_1", "role": role, "requires_password_change": False, "claims": {}}


# TEST 1: Decision function
def test_unmatched_path_passes_through():
    decision = decide_access("/health", None)
    assert decision.allowed
    assert decision.rule is None


def test_no_session_goes_to_sign_in():
    decision = decide_access("/admin", None)
    assert not decision.allowed
    assert decision.redirect_to == "/sign-in"
    assert decision.reason == "unauthenticated"


def test_no_role_goes_to_onboarding():
    decision = decide_access("/list/trips", who(None))
    assert decision.redirect_to == "/onboarding"
    assert decision.reason == "missing-role"


@pytest.mark.parametrize("path, role, home", [
    ("/admin", DRIVER, "/driver"),
    ("/admin/reports", CLIENT, "/client"),
    ("/driver", ADMIN, "/admin"),
    ("/client", DRIVER, "/driver"),
    ("/list/users", DRIVER, "/driver"),
    ("/list/vehicles/3", CLIENT, "/client"),
    ("/list/expenses", CLIENT, "/client"),
    ("/list/issues/7", DRIVER, "/driver"),
])
def test_wrong_role_goes_home(path, role, home):
    decision = decide_access(path, who(role))
    assert not decision.allowed
    assert decision.redirect_to == home


@pytest.mark.parametrize("path, role", [
    ("/admin", ADMIN),
    ("/admin/settings", ADMIN),
    ("/driver", DRIVER),
    ("/client/", CLIENT),
    ("/list/trips", CLIENT),
    ("/list/trips/12", DRIVER),
    ("/list/shipments", DRIVER),
    ("/list/expenses", DRIVER),
    ("/list/users/user_2", ADMIN),
])
def test_allowed_roles(path, role):
    assert decide_access(path, who(role)).allowed


@pytest.mark.parametrize("pattern, roles", ROUTE_ACCESS)
@pytest.mark.parametrize("suffix", ["", "/7"])
def test_every_route_admits_only_its_roles(pattern, roles, suffix):
    path = concrete_path(pattern) + suffix

    for role in ALL_ROLES:
        decision = decide_access(path, who(role))
        if role in roles:
            assert decision.allowed, (path, role)
        else:
            assert not decision.allowed, (path, role)
            assert decision.redirect_to == f"/{role}"


@pytest.mark.parametrize("pattern", [pattern for pattern, roles in ROUTE_ACCESS if roles == (ADMIN,)])
@pytest.mark.parametrize("role", [DRIVER, CLIENT])
def test_admin_only_routes_send_others_home(pattern, role):
    decision = decide_access(concrete_path(pattern), who(role))

    assert not decision.allowed
    assert decision.redirect_to == f"/{role}"
    assert decision.rule == pattern


def test_first_matching_rule_wins():
    rules = build_rules([
        ("/list/trips/special(.*)", (ADMIN,)),
        ("/list/trips(/.*)?", (ADMIN, DRIVER)),
    ])
    assert match_rule("/list/trips/special", rules).pattern == "/list/trips/special(.*)"
    assert not decide_access("/list/trips/special", who(DRIVER), rules).allowed
    assert decide_access("/list/trips/4", who(DRIVER), rules).allowed


def test_list_prefix_does_not_leak_to_similar_paths():
    assert match_rule("/list/usersettings") is None


# TEST 2: Role normalization
def test_role_claim_is_normalized():
    assert normalize_role({"metadata": {"role": " Driver "}}) == DRIVER
    assert normalize_role({"role": "ADMIN"}) == ADMIN
    assert normalize_role({"metadata": {"role": "superuser"}}) is None
    assert normalize_role({"metadata": {}}) is None


# TEST 3: Role helpers
def test_require_role():
    assert require_role(who(ADMIN), ADMIN) == ADMIN

    with pytest.raises(InsufficientPermissionsError) as exc:
        require_role(who(CLIENT), ADMIN)
    assert exc.value.message == "Unauthorized: Requires admin role, but user has client"

    with pytest.raises(InsufficientPermissionsError) as exc:
        require_role(who(None), ADMIN)
    assert exc.value.message == "Unauthorized: No role assigned"


def test_require_any_role():
    assert require_any_role(who(DRIVER), [ADMIN, DRIVER]) == DRIVER
    with pytest.raises(InsufficientPermissionsError) as exc:
        require_any_role(who(CLIENT), [ADMIN, DRIVER])
    assert "one of [admin, driver]" in exc.value.message


# TEST 4: Middleware
@pytest.mark.asyncio
async def test_middleware_redirects_anonymous_to_sign_in(client):
    response = await client.get("/admin")
    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"


@pytest.mark.asyncio
async def test_middleware_redirects_wrong_role_home(client, auth_headers):
    response = await client.get("/admin", headers=auth_headers("user_d", DRIVER))
    assert response.status_code == 307
    assert response.headers["location"] == "/driver"


@pytest.mark.asyncio
async def test_middleware_redirects_missing_role_to_onboarding(client, auth_headers):
    response = await client.get("/list/trips", headers=auth_headers("user_x"))
    assert response.status_code == 307
    assert response.headers["location"] == "/onboarding"


@pytest.mark.asyncio
async def test_expired_session_counts_as_signed_out(client):
    token = create_session_token(
        {"sub": "user_a", "metadata": {"role": "admin"}}, expires_delta=timedelta(minutes=-5)
    )
    response = await client.get("/admin", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"


@pytest.mark.asyncio
async def test_session_cookie_is_accepted(client, seed):
    user, _ = await seed.admin()
    token = create_session_token({"sub": user.id, "metadata": {"role": "admin"}})
    client.cookies.set("__session", token)
    response = await client.get("/admin")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_unmatched_paths_are_not_gated(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["redis"] is True
    assert "X-Correlation-ID" in response.headers
