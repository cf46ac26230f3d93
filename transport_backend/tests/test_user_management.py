"""
User management tests.

Invitations, role changes and deactivation keep the identity provider, the
local users table and live sessions in step.
"""

import pytest
from sqlalchemy import select
from transport_backend.app.core.exceptions import ExternalServiceError
from transport_backend.app.models.enums import UserRole
from transport_backend.app.models.profiles import ClientProfile, DriverProfile
from transport_backend.app.models.user import User
from transport_backend.app.schemas.user import AssignUserRoleRequest, InviteUserRequest, UserUpdate
from transport_backend.app.services import user_management
from transport_backend.app.services.user_management import DEFAULT_PASSWORD, generate_temporary_password


def test_temporary_password_mixes_character_classes():
    password = generate_temporary_password()
    assert len(password) == 12
    assert any(c.isupper() for c in password)
    assert any(c.islower() for c in password)
    assert any(c.isdigit() for c in password)
    assert any(c in "!@#$%^&*" for c in password)


# TEST 1: Invitations
@pytest.mark.asyncio
async def test_invite_without_email_uses_default_password(db_session, seed, provider, email_sender):
    _, admin = await seed.admin()

    result = await user_management.invite_user(db_session, admin, InviteUserRequest(
        name="Youssef Amrani",
        username="yamrani",
        role=UserRole.DRIVER,
        license_number="DL-5521",
        experience_years=6,
    ), provider, email_sender)

    assert result.success
    assert f"Default password: {DEFAULT_PASSWORD}" in result.message
    assert email_sender.sent == []

    call = next(c for c in provider.calls if c[0] == "create_user")
    assert call[1] == "yamrani"
    assert call[2] == {"role": "driver", "requiresPasswordChange": True}

    user = await db_session.get(User, result.data["user_id"])
    assert user.role == UserRole.DRIVER
    assert user.requires_password_change is True
    profile = (await db_session.execute(
        select(DriverProfile).where(DriverProfile.user_id == user.id)
    )).scalar_one()
    assert profile.license_number == "DL-5521"
    assert profile.experience_years == 6


@pytest.mark.asyncio
async def test_invite_with_email_sends_temporary_password(db_session, seed, provider, email_sender):
    _, admin = await seed.admin()

    result = await user_management.invite_user(db_session, admin, InviteUserRequest(
        name="Sara Client",
        username="sara",
        email="sara@example.com",
        role=UserRole.CLIENT,
        company_name="Atlas Foods",
        address="12 Rue de Fes, Rabat",
    ), provider, email_sender)

    assert result.success
    assert "They will receive an email with their temporary password." in result.message
    assert len(email_sender.sent) == 1
    assert email_sender.sent[0]["to"] == "sara@example.com"
    assert email_sender.sent[0]["html"] != DEFAULT_PASSWORD

    profile = (await db_session.execute(
        select(ClientProfile).where(ClientProfile.user_id == result.data["user_id"])
    )).scalar_one()
    assert profile.company_name == "Atlas Foods"


@pytest.mark.asyncio
async def test_invite_survives_email_failure(db_session, seed, provider, email_sender):
    _, admin = await seed.admin()
    email_sender.fail_with = ExternalServiceError("email", "Email service is unreachable")

    result = await user_management.invite_user(db_session, admin, InviteUserRequest(
        name="Karim", username="karim", email="karim@example.com", role=UserRole.CLIENT,
    ), provider, email_sender)

    assert result.success
    assert "could not be sent" in result.message
    assert await db_session.get(User, result.data["user_id"]) is not None


@pytest.mark.asyncio
async def test_invite_rejects_taken_username(db_session, seed, provider, email_sender):
    admin_user, admin = await seed.admin()

    result = await user_management.invite_user(db_session, admin, InviteUserRequest(
        name="Copy", username="admin1", role=UserRole.CLIENT,
    ), provider, email_sender)

    assert result.message == "Username is already taken"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_provider_failure_aborts_invite(db_session, seed, provider, email_sender):
    _, admin = await seed.admin()
    provider.fail_with = ExternalServiceError("identity", "That username is taken")

    result = await user_management.invite_user(db_session, admin, InviteUserRequest(
        name="Nobody", username="nobody", role=UserRole.CLIENT,
    ), provider, email_sender)

    assert not result.success
    assert result.error_code == "ERR_EXTERNAL_001"
    users = (await db_session.execute(select(User).where(User.username == "nobody"))).scalars().all()
    assert users == []


# TEST 2: Role changes
@pytest.mark.asyncio
async def test_role_change_replaces_profile(db_session, seed, provider):
    _, admin = await seed.admin()
    driver_user, _, _ = await seed.driver()
    user_id = driver_user.id

    result = await user_management.update_user(db_session, admin, user_id, UserUpdate(
        name="Former Driver",
        role=UserRole.CLIENT,
        company_name="Rif Logistics",
        address="3 Avenue Hassan II, Tangier",
    ), provider)

    assert result.success
    assert result.data.role == UserRole.CLIENT
    driver_profiles = (await db_session.execute(
        select(DriverProfile).where(DriverProfile.user_id == user_id)
    )).scalars().all()
    assert driver_profiles == []
    client_profile = (await db_session.execute(
        select(ClientProfile).where(ClientProfile.user_id == user_id)
    )).scalar_one()
    assert client_profile.company_name == "Rif Logistics"

    update_call = next(c for c in provider.calls if c[0] == "update_user")
    assert update_call[2]["public_metadata"] == {"role": "client"}
    assert update_call[2]["first_name"] == "Former"


@pytest.mark.asyncio
async def test_assign_role_to_provider_user(db_session, seed, provider):
    _, admin = await seed.admin()
    provider.users = [{
        "id": "user_ext_1",
        "username": "hamza",
        "first_name": "Hamza",
        "last_name": "Idrissi",
        "email_addresses": [{"email_address": "hamza@example.com"}],
    }]

    result = await user_management.assign_user_role(db_session, admin, AssignUserRoleRequest(
        identifier="hamza@example.com", role=UserRole.DRIVER, license_number="DL-9001",
    ), provider)

    assert result.success
    assert result.message == "Role driver assigned successfully to user."
    user = await db_session.get(User, "user_ext_1")
    assert user.name == "Hamza Idrissi"
    assert user.role == UserRole.DRIVER
    assert ("update_user_metadata", "user_ext_1", {"role": "driver"}) in provider.calls


@pytest.mark.asyncio
async def test_assign_role_to_unknown_user(db_session, seed, provider):
    _, admin = await seed.admin()

    result = await user_management.assign_user_role(db_session, admin, AssignUserRoleRequest(
        identifier="ghost", role=UserRole.CLIENT,
    ), provider)

    assert result.error_code == "ERR_NOT_FOUND_001"


# TEST 3: Deactivation and deletion
@pytest.mark.asyncio
async def test_deactivated_user_loses_api_access(client, seed, auth_headers, redis):
    admin_user, _ = await seed.admin()
    driver_user, _, _ = await seed.driver()
    driver_headers = auth_headers(driver_user.id, UserRole.DRIVER)

    before = await client.get("/v1/notifications/unread-count", headers=driver_headers)
    assert before.status_code == 200

    response = await client.post(
        f"/v1/users/{driver_user.id}/deactivate", headers=auth_headers(admin_user.id, UserRole.ADMIN)
    )
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert f"user:sessions:{driver_user.id}:revoked" in redis.store

    after = await client.get("/v1/notifications/unread-count", headers=driver_headers)
    assert after.status_code == 401
    assert after.json()["error_code"] == "ERR_AUTH_002"

    reactivated = await client.post(
        f"/v1/users/{driver_user.id}/activate", headers=auth_headers(admin_user.id, UserRole.ADMIN)
    )
    assert reactivated.json()["success"] is True
    assert (await client.get("/v1/notifications/unread-count", headers=driver_headers)).status_code == 200


@pytest.mark.asyncio
async def test_deactivated_user_is_signed_out_of_pages(client, seed, auth_headers, redis):
    admin_user, _ = await seed.admin()
    driver_user, _, _ = await seed.driver()
    driver_headers = auth_headers(driver_user.id, UserRole.DRIVER)
    assert (await client.get("/driver", headers=driver_headers)).status_code == 200

    await client.post(f"/v1/users/{driver_user.id}/deactivate", headers=auth_headers(admin_user.id, UserRole.ADMIN))

    dashboard = await client.get("/driver", headers=driver_headers)
    assert dashboard.status_code == 307
    assert dashboard.headers["location"] == "/sign-in"

    trips = await client.get("/list/trips", headers=driver_headers)
    assert trips.status_code == 307
    assert trips.headers["location"] == "/sign-in"

    sign_in = await client.get("/sign-in", headers=driver_headers)
    assert sign_in.status_code == 200
    assert sign_in.json()["page"] == "sign-in"


@pytest.mark.asyncio
async def test_inactive_admin_cannot_open_list_pages(client, seed, auth_headers, redis):
    inactive = await seed.user(UserRole.ADMIN, is_active=False)
    assert redis.store == {}

    response = await client.get("/list/users", headers=auth_headers(inactive.id, UserRole.ADMIN))

    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in"


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_or_delete_self(db_session, seed, provider, redis):
    admin_user, admin = await seed.admin()

    deactivated = await user_management.deactivate_user(db_session, admin, admin_user.id, redis)
    deleted = await user_management.delete_user(db_session, admin, admin["user_id"], provider, redis)

    assert deactivated.message == "You cannot deactivate your own account"
    assert deleted.message == "You cannot delete your own account"
    assert redis.store == {}


@pytest.mark.asyncio
async def test_delete_user_removes_profile_and_revokes(db_session, seed, provider, redis):
    _, admin = await seed.admin()
    client_user, _, _ = await seed.client()
    user_id = client_user.id
    provider.fail_with = ExternalServiceError("identity", "Identity provider is unreachable")

    result = await user_management.delete_user(db_session, admin, user_id, provider, redis)

    assert result.success
    assert await db_session.get(User, user_id) is None
    profiles = (await db_session.execute(
        select(ClientProfile).where(ClientProfile.user_id == user_id)
    )).scalars().all()
    assert profiles == []
    assert redis.ttls[f"user:sessions:{user_id}:revoked"] == 3600
