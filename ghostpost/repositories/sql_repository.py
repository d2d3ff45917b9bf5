"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ghostpost.db.models import (
    User,
    Account,
    Role,
    AccountMember,
    Site,
    UserSitePreference,
    TempRegistration,
)
from ghostpost.db.session import get_session
from ghostpost.domain.states import MemberStatus, RegistrationStep


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- users --------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).where(User.email == email)
            return session.execute(stmt).scalar_one_or_none()

    def create_user(
        self,
        email: str,
        *,
        password_hash: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        is_active: bool = True,
        is_super_admin: bool = False,
        registration_step: str = "COMPLETED",
    ) -> User:
        entity = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            is_active=is_active,
            is_super_admin=is_super_admin,
            registration_step=registration_step,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def set_user_active(self, user_id: str, active: bool) -> None:
        with get_session() as session:
            stmt = update(User).where(User.id == user_id).values(is_active=active, updated_at=utcnow())
            session.execute(stmt)
            session.commit()

    def touch_last_login(self, user_id: str) -> None:
        with get_session() as session:
            session.execute(update(User).where(User.id == user_id).values(last_login_at=utcnow()))
            session.commit()

    def set_last_selected_account(self, user_id: str, account_id: str | None) -> None:
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(last_selected_account_id=account_id, updated_at=utcnow())
            )
            session.execute(stmt)
            session.commit()

    # -------------------------- accounts & roles --------------------------
    def create_account(self, name: str, slug: str) -> Account:
        entity = Account(name=name, slug=slug)
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def slug_exists(self, slug: str) -> bool:
        slug_value = (slug or "").strip()
        if not slug_value:
            return False
        with get_session() as session:
            stmt = select(Account.id).where(Account.slug == slug_value).limit(1)
            return session.execute(stmt).first() is not None

    def create_role(
        self,
        account_id: str,
        name: str,
        permissions: Iterable[str] | None = None,
        *,
        description: str | None = None,
        is_system_role: bool = False,
    ) -> Role:
        entity = Role(
            account_id=account_id,
            name=name,
            description=description,
            permissions=list(permissions or []),
            is_system_role=is_system_role,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    # -------------------------- members --------------------------
    def add_member(
        self,
        account_id: str,
        user_id: str,
        *,
        role_id: str | None = None,
        is_owner: bool = False,
        status: MemberStatus = MemberStatus.ACTIVE,
    ) -> AccountMember:
        entity = AccountMember(
            account_id=account_id,
            user_id=user_id,
            role_id=role_id,
            is_owner=is_owner,
            status=status,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def get_membership(self, user_id: str, account_id: str) -> Optional[AccountMember]:
        """Member row for (user, account) with its role eagerly loaded."""
        with get_session() as session:
            stmt = (
                select(AccountMember)
                .options(selectinload(AccountMember.role))
                .where(AccountMember.user_id == user_id, AccountMember.account_id == account_id)
            )
            return session.execute(stmt).scalars().first()

    def get_member_in_account(self, member_id: str, account_id: str) -> Optional[AccountMember]:
        """Look a member up only inside ``account_id``; other tenants' rows are invisible."""
        with get_session() as session:
            stmt = (
                select(AccountMember)
                .options(selectinload(AccountMember.role))
                .where(AccountMember.id == member_id, AccountMember.account_id == account_id)
            )
            return session.execute(stmt).scalar_one_or_none()

    def list_members(self, account_id: str) -> list[AccountMember]:
        with get_session() as session:
            stmt = (
                select(AccountMember)
                .options(selectinload(AccountMember.role), selectinload(AccountMember.user))
                .where(AccountMember.account_id == account_id)
                .order_by(AccountMember.created_at)
            )
            return session.execute(stmt).scalars().all()

    def transition_member_status(
        self,
        member_id: str,
        account_id: str,
        *,
        source: MemberStatus,
        target: MemberStatus,
        protect_owner: bool = False,
        exclude_user_id: str | None = None,
    ) -> bool:
        """Compare-and-swap the member status; True when exactly this call applied it."""
        with get_session() as session:
            stmt = update(AccountMember).where(
                AccountMember.id == member_id,
                AccountMember.account_id == account_id,
                AccountMember.status == source,
            )
            if protect_owner:
                stmt = stmt.where(AccountMember.is_owner.is_(False))
            if exclude_user_id:
                stmt = stmt.where(AccountMember.user_id != exclude_user_id)
            result = session.execute(stmt.values(status=target, updated_at=utcnow()))
            session.commit()
            return result.rowcount == 1

    # -------------------------- sites --------------------------
    def create_site(self, account_id: str, name: str, url: str | None = None) -> Site:
        entity = Site(account_id=account_id, name=name, url=url)
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def get_site_in_account(self, site_id: str, account_id: str) -> Optional[Site]:
        with get_session() as session:
            stmt = select(Site).where(Site.id == site_id, Site.account_id == account_id)
            return session.execute(stmt).scalar_one_or_none()

    def list_sites(self, account_id: str) -> list[Site]:
        with get_session() as session:
            stmt = select(Site).where(Site.account_id == account_id).order_by(Site.created_at)
            return session.execute(stmt).scalars().all()

    def set_last_selected_site(self, user_id: str, account_id: str, site_id: str) -> int:
        with get_session() as session:
            stmt = (
                update(AccountMember)
                .where(AccountMember.user_id == user_id, AccountMember.account_id == account_id)
                .values(last_selected_site_id=site_id, updated_at=utcnow())
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount

    # -------------------------- preferences --------------------------
    def get_preference(self, user_id: str, site_id: str) -> Optional[UserSitePreference]:
        with get_session() as session:
            stmt = select(UserSitePreference).where(
                UserSitePreference.user_id == user_id,
                UserSitePreference.site_id == site_id,
            )
            return session.execute(stmt).scalar_one_or_none()

    def upsert_preference(self, user_id: str, site_id: str, *, language: str | None, timezone_name: str | None) -> UserSitePreference:
        values = {"language": language, "timezone": timezone_name, "updated_at": utcnow()}
        with get_session() as session:
            stmt = (
                update(UserSitePreference)
                .where(UserSitePreference.user_id == user_id, UserSitePreference.site_id == site_id)
                .values(**values)
            )
            if session.execute(stmt).rowcount == 0:
                session.add(UserSitePreference(user_id=user_id, site_id=site_id, **values))
                try:
                    session.commit()
                except IntegrityError:
                    # lost the insert race; the row exists now
                    session.rollback()
                    session.execute(stmt)
                    session.commit()
            else:
                session.commit()
        return self.get_preference(user_id, site_id)

    # -------------------------- temp registrations --------------------------
    def get_temp_registration(self, reg_id: str) -> Optional[TempRegistration]:
        with get_session() as session:
            return session.get(TempRegistration, reg_id)

    def get_temp_registration_by_email(self, email: str) -> Optional[TempRegistration]:
        with get_session() as session:
            stmt = select(TempRegistration).where(TempRegistration.email == email)
            return session.execute(stmt).scalar_one_or_none()

    def replace_temp_registration(self, email: str, **values) -> TempRegistration:
        """Start a fresh registration for ``email``, discarding any earlier one.

        Restarting yields a new id, so an abandoned record's step is never
        rewound in place.
        """
        with get_session() as session:
            session.execute(delete(TempRegistration).where(TempRegistration.email == email))
            entity = TempRegistration(email=email, interview_data={}, otp_attempts=0, **values)
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def update_temp_registration(self, reg_id: str, **values) -> bool:
        with get_session() as session:
            stmt = update(TempRegistration).where(TempRegistration.id == reg_id).values(**values)
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    def merge_interview_data(self, reg_id: str, data: dict, *, step: RegistrationStep | None = None) -> Optional[TempRegistration]:
        """Shallow-merge ``data`` into the stored answers and optionally set a new step."""
        with get_session() as session:
            stmt = select(TempRegistration).where(TempRegistration.id == reg_id).with_for_update()
            entity = session.execute(stmt).scalar_one_or_none()
            if entity is None:
                return None
            merged = dict(entity.interview_data or {})
            merged.update(data or {})
            entity.interview_data = merged
            if step is not None:
                entity.current_step = step
            session.commit()
            session.refresh(entity)
            return entity

    def slug_reserved_by_registration(self, slug: str, *, exclude_id: str | None = None) -> bool:
        with get_session() as session:
            stmt = select(TempRegistration.id).where(TempRegistration.account_slug == slug)
            if exclude_id:
                stmt = stmt.where(TempRegistration.id != exclude_id)
            return session.execute(stmt.limit(1)).first() is not None

    def delete_temp_registration(self, reg_id: str) -> None:
        with get_session() as session:
            session.execute(delete(TempRegistration).where(TempRegistration.id == reg_id))
            session.commit()

    def purge_expired_registrations(self, now: datetime | None = None) -> int:
        cutoff = now or utcnow()
        with get_session() as session:
            result = session.execute(delete(TempRegistration).where(TempRegistration.expires_at < cutoff))
            session.commit()
            return result.rowcount

    def complete_registration(self, reg: TempRegistration, owner_permissions: Iterable[str]) -> tuple[User, Account]:
        """Create user, account, owner role and owner membership, then drop ``reg``.

        Runs as one transaction. IntegrityError (slug or email already taken)
        propagates to the caller with nothing written.
        """
        with get_session() as session:
            user = User(
                email=reg.email,
                password_hash=reg.password_hash,
                first_name=reg.first_name,
                last_name=reg.last_name,
                phone_number=reg.phone_number,
                email_verified_at=reg.email_verified_at,
                registration_step="COMPLETED",
                is_active=True,
            )
            account = Account(name=reg.account_name, slug=reg.account_slug)
            session.add_all([user, account])
            session.flush()
            role = Role(
                account_id=account.id,
                name="Owner",
                description="Full access to all account features",
                permissions=list(owner_permissions),
                is_system_role=True,
            )
            session.add(role)
            session.flush()
            session.add(
                AccountMember(
                    account_id=account.id,
                    user_id=user.id,
                    role_id=role.id,
                    is_owner=True,
                    status=MemberStatus.ACTIVE,
                )
            )
            user.last_selected_account_id = account.id
            session.execute(delete(TempRegistration).where(TempRegistration.id == reg.id))
            session.commit()
            return user, account
