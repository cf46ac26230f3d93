"""
User management actions (admin-only).

Users live in two places: the identity provider owns credentials and the
role metadata carried in sessions, the local table mirrors them together
with the role profile. Every action keeps the two in step.
"""

import logging
import secrets
import string
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, or_
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import BusinessRuleError, ExternalServiceError, ResourceNotFoundError
from transport_backend.app.core.rbac import ADMIN, require_role
from transport_backend.app.core.token_revocation import clear_user_session_revocation, revoke_user_sessions
from transport_backend.app.models.enums import DriverStatus, UserRole
from transport_backend.app.models.profiles import ClientProfile, DriverProfile
from transport_backend.app.models.user import User
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.user import (
    AssignUserRoleRequest, InviteUserRequest, ProfileFields, UserListResponse, UserResponse, UserUpdate
)
from transport_backend.app.services.actions import action
from transport_backend.app.services.email import EmailSender
from transport_backend.app.services.identity_provider import (
    IdentityProviderClient, full_name, primary_email, primary_phone, split_name
)

logger = logging.getLogger(__name__)

# Used when an invited user has no e-mail to receive a generated password
DEFAULT_PASSWORD = "randpass@1234"

PASSWORD_SYMBOLS = "!@#$%^&*"


def generate_temporary_password(length: int = 12) -> str:
    """Random password with at least one upper, lower, digit and symbol."""
    required = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(PASSWORD_SYMBOLS),
    ]
    charset = string.ascii_letters + string.digits + PASSWORD_SYMBOLS
    chars = required + [secrets.choice(charset) for _ in range(length - len(required))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def _get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise ResourceNotFoundError("User", user_id)
    return user


async def _ensure_unique_identity(db: AsyncSession, user_id: Optional[str], email: Optional[str], username: Optional[str]):
    if email:
        query = select(User.id).where(User.email == email)
        if user_id:
            query = query.where(User.id != user_id)
        if (await db.execute(query)).first():
            raise BusinessRuleError("Email is already in use")
    if username:
        query = select(User.id).where(User.username == username)
        if user_id:
            query = query.where(User.id != user_id)
        if (await db.execute(query)).first():
            raise BusinessRuleError("Username is already taken")


async def drop_role_profile(db: AsyncSession, user_id: str, old_role: UserRole) -> None:
    """Delete the profile that belonged to the user's previous role."""
    if old_role == UserRole.DRIVER:
        await db.execute(delete(DriverProfile).where(DriverProfile.user_id == user_id))
    elif old_role == UserRole.CLIENT:
        await db.execute(delete(ClientProfile).where(ClientProfile.user_id == user_id))


async def upsert_role_profile(db: AsyncSession, user_id: str, role: UserRole, fields: ProfileFields) -> None:
    """
    Create or update the profile matching ``role`` from the submitted fields.

    A driver profile needs a license number to be created, a client profile
    a company name and an address. Fields left out keep their value.
    """
    if role == UserRole.DRIVER and (fields.license_number or fields.experience_years is not None):
        if fields.license_number:
            taken = await db.execute(
                select(DriverProfile.id).where(
                    DriverProfile.license_number == fields.license_number,
                    DriverProfile.user_id != user_id,
                )
            )
            if taken.first():
                raise BusinessRuleError("A driver with this license number already exists")

        result = await db.execute(select(DriverProfile).where(DriverProfile.user_id == user_id))
        profile = result.scalar_one_or_none()
        if profile:
            if fields.license_number:
                profile.license_number = fields.license_number
            if fields.experience_years is not None:
                profile.experience_years = fields.experience_years
        elif fields.license_number:
            db.add(DriverProfile(
                user_id=user_id,
                license_number=fields.license_number,
                experience_years=fields.experience_years or 0,
                status=DriverStatus.ACTIVE,
            ))

    elif role == UserRole.CLIENT and (fields.company_name or fields.address):
        result = await db.execute(select(ClientProfile).where(ClientProfile.user_id == user_id))
        profile = result.scalar_one_or_none()
        if profile:
            if fields.company_name:
                profile.company_name = fields.company_name
            if fields.address:
                profile.address = fields.address
            if "vat_number" in fields.model_fields_set:
                profile.vat_number = _blank_to_none(fields.vat_number)
        elif fields.company_name and fields.address:
            db.add(ClientProfile(
                user_id=user_id,
                company_name=fields.company_name,
                address=fields.address,
                vat_number=_blank_to_none(fields.vat_number),
            ))

    await db.flush()


# Queries

@action("Failed to fetch users")
async def list_users(
    db: AsyncSession,
    identity: dict,
    page: int = 1,
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    page_size: Optional[int] = None,
) -> ActionResult:
    require_role(identity, ADMIN)
    page_size = page_size or settings.items_per_page

    query = select(User)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            User.name.ilike(pattern), User.email.ilike(pattern), User.username.ilike(pattern)
        ))
    if role:
        query = query.where(User.role == role)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(User.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return ActionResult.ok(data=UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    ))


@action("Failed to fetch user")
async def get_user(db: AsyncSession, identity: dict, user_id: str) -> ActionResult:
    require_role(identity, ADMIN)
    return ActionResult.ok(data=UserResponse.model_validate(await _get_user(db, user_id)))


# Mutations

@action("Failed to update user")
async def update_user(
    db: AsyncSession,
    identity: dict,
    user_id: str,
    payload: UserUpdate,
    provider: IdentityProviderClient,
) -> ActionResult:
    """
    Edit a user and their role profile.

    A role change deletes the profile of the old role; the new role's
    profile is created from the submitted profile fields.
    """
    require_role(identity, ADMIN)
    user = await _get_user(db, user_id)

    email = _blank_to_none(payload.email)
    username = _blank_to_none(payload.username)
    await _ensure_unique_identity(db, user_id, email, username if "username" in payload.model_fields_set else None)

    provider_update = {
        **split_name(payload.name),
        "public_metadata": {"role": payload.role.value},
    }
    if email:
        provider_update["email_address"] = [email]
    if "username" in payload.model_fields_set:
        provider_update["username"] = username
    provider_user = await provider.update_user(user_id, provider_update)

    old_role = user.role
    if old_role != payload.role:
        await drop_role_profile(db, user_id, old_role)
        logger.info("User %s role changed from %s to %s", user_id, old_role.value, payload.role.value)

    user.name = payload.name
    user.role = payload.role
    if "email" in payload.model_fields_set:
        user.email = email
    if "phone" in payload.model_fields_set:
        user.phone = _blank_to_none(payload.phone)
    if "image" in payload.model_fields_set:
        user.image = _blank_to_none(payload.image)
    if "username" in payload.model_fields_set:
        user.username = (provider_user or {}).get("username", username)

    await upsert_role_profile(db, user_id, payload.role, payload)
    await db.commit()
    await db.refresh(user)

    return ActionResult.ok("User updated successfully", data=UserResponse.model_validate(user))


@action("Failed to delete user")
async def delete_user(
    db: AsyncSession,
    identity: dict,
    user_id: str,
    provider: IdentityProviderClient,
    redis=None,
) -> ActionResult:
    require_role(identity, ADMIN)
    if user_id == identity["user_id"]:
        raise BusinessRuleError("You cannot delete your own account")

    user = await _get_user(db, user_id)
    await db.delete(user)
    await db.commit()

    if redis is not None:
        await revoke_user_sessions(redis, user_id)

    try:
        await provider.delete_user(user_id)
    except ExternalServiceError as exc:
        # Local record is already gone; the provider user can be removed by hand
        logger.error("Error deleting user %s from identity provider: %s", user_id, exc.message)

    return ActionResult.ok("User deleted successfully")


@action("Failed to deactivate user")
async def deactivate_user(db: AsyncSession, identity: dict, user_id: str, redis) -> ActionResult:
    """Deactivate a user and revoke their live sessions."""
    require_role(identity, ADMIN)
    if user_id == identity["user_id"]:
        raise BusinessRuleError("You cannot deactivate your own account")

    user = await _get_user(db, user_id)
    if not user.is_active:
        raise BusinessRuleError("User is already inactive")

    user.is_active = False
    await db.commit()
    await revoke_user_sessions(redis, user_id)

    logger.info("User %s deactivated by %s", user_id, identity["user_id"])
    return ActionResult.ok(f"User '{user.name}' has been deactivated")


@action("Failed to activate user")
async def activate_user(db: AsyncSession, identity: dict, user_id: str, redis) -> ActionResult:
    require_role(identity, ADMIN)

    user = await _get_user(db, user_id)
    if user.is_active:
        raise BusinessRuleError("User is already active")

    user.is_active = True
    await db.commit()
    await clear_user_session_revocation(redis, user_id)

    logger.info("User %s activated by %s", user_id, identity["user_id"])
    return ActionResult.ok(f"User '{user.name}' has been activated")


@action("Failed to invite user. Please try again.")
async def invite_user(
    db: AsyncSession,
    identity: dict,
    payload: InviteUserRequest,
    provider: IdentityProviderClient,
    email_sender: EmailSender,
) -> ActionResult:
    """
    Create a user in the identity provider and locally.

    With an e-mail the user gets a generated temporary password by mail,
    without one the default password is set. Either way the user must
    change it at first sign-in.
    """
    require_role(identity, ADMIN)

    username = payload.username.strip()
    if not username:
        raise BusinessRuleError("Username is required")
    email = _blank_to_none(payload.email)
    await _ensure_unique_identity(db, None, email, username)

    password = generate_temporary_password() if email else DEFAULT_PASSWORD

    provider_user = await provider.create_user(
        username=username,
        name=payload.name,
        password=password,
        public_metadata={"role": payload.role.value, "requiresPasswordChange": True},
        email=email,
    )
    user_id = provider_user["id"]

    db.add(User(
        id=user_id,
        name=payload.name,
        email=email,
        username=provider_user.get("username") or username,
        phone=_blank_to_none(payload.phone),
        role=payload.role,
        is_active=True,
        requires_password_change=True,
    ))
    await db.flush()
    await upsert_role_profile(db, user_id, payload.role, payload)
    await db.commit()

    logger.info("User %s invited as %s by %s", user_id, payload.role.value, identity["user_id"])

    if not email:
        return ActionResult.ok(
            f"User {payload.name} has been created successfully. Default password: {DEFAULT_PASSWORD}. "
            "They will be required to change it on first login.",
            data={"user_id": user_id},
        )

    try:
        await email_sender.send_temporary_password(email, payload.name, password)
    except ExternalServiceError as exc:
        logger.error("Temporary password e-mail to %s failed: %s", email, exc.message)
        return ActionResult.ok(
            f"User {payload.name} has been created, but the temporary password e-mail could not be sent.",
            data={"user_id": user_id},
        )

    return ActionResult.ok(
        f"User {payload.name} has been invited successfully. "
        "They will receive an email with their temporary password.",
        data={"user_id": user_id},
    )


@action("Failed to assign role")
async def assign_user_role(
    db: AsyncSession,
    identity: dict,
    payload: AssignUserRoleRequest,
    provider: IdentityProviderClient,
) -> ActionResult:
    """Give an existing provider user (found by e-mail or username) a role."""
    require_role(identity, ADMIN)

    identifier = payload.identifier.strip()
    if "@" in identifier:
        matches = await provider.find_users(email=identifier)
    else:
        matches = await provider.find_users(username=identifier)
    if not matches:
        raise ResourceNotFoundError("User", identifier)
    target = matches[0]
    target_id = target["id"]

    await provider.update_user_metadata(target_id, {"role": payload.role.value})

    user = await db.get(User, target_id)
    if user is None:
        user = User(
            id=target_id,
            name=full_name(target),
            email=primary_email(target),
            username=target.get("username"),
            phone=primary_phone(target),
            role=payload.role,
            is_active=True,
        )
        db.add(user)
    else:
        if user.role != payload.role:
            await drop_role_profile(db, target_id, user.role)
        user.role = payload.role
        user.username = target.get("username")
    await db.flush()

    await upsert_role_profile(db, target_id, payload.role, payload)
    await db.commit()

    logger.info("Role %s assigned to user %s", payload.role.value, target_id)
    return ActionResult.ok(f"Role {payload.role.value} assigned successfully to user.")
