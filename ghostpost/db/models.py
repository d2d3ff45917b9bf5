"""SQLAlchemy models for users, accounts, memberships and onboarding."""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ghostpost.domain.states import MemberStatus, RegistrationStep

from .session import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(Text, nullable=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    phone_number = Column(String(40), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_super_admin = Column(Boolean, default=False, nullable=False)
    registration_step = Column(String(32), default="COMPLETED", nullable=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    last_selected_account_id = Column(String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    memberships = relationship("AccountMember", back_populates="user", cascade="all,delete-orphan")


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(50), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    members = relationship("AccountMember", back_populates="account", cascade="all,delete-orphan")
    roles = relationship("Role", back_populates="account", cascade="all,delete-orphan")
    sites = relationship("Site", back_populates="account", cascade="all,delete-orphan")


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    permissions = Column(JSON, default=list, nullable=False)
    is_system_role = Column(Boolean, default=False, nullable=False)

    account = relationship("Account", back_populates="roles")


class AccountMember(Base):
    __tablename__ = "account_members"
    __table_args__ = (UniqueConstraint("user_id", "account_id", name="uq_account_members_user_account"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
    status = Column(Enum(MemberStatus, name="member_status", native_enum=False), default=MemberStatus.ACTIVE, nullable=False)
    is_owner = Column(Boolean, default=False, nullable=False)
    last_selected_site_id = Column(String(36), ForeignKey("sites.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    account = relationship("Account", back_populates="members")
    user = relationship("User", back_populates="memberships")
    role = relationship("Role")


class Site(Base):
    __tablename__ = "sites"

    id = Column(String(36), primary_key=True, default=_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    url = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    account = relationship("Account", back_populates="sites")


class UserSitePreference(Base):
    __tablename__ = "user_site_preferences"
    __table_args__ = (UniqueConstraint("user_id", "site_id", name="uq_user_site_preferences_pair"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    site_id = Column(String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    language = Column(String(16), nullable=True)
    timezone = Column(String(64), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class TempRegistration(Base):
    __tablename__ = "temp_registrations"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    phone_number = Column(String(40), nullable=True)
    password_hash = Column(Text, nullable=False)
    consent_at = Column(DateTime(timezone=True), nullable=True)
    current_step = Column(
        Enum(RegistrationStep, name="registration_step", native_enum=False),
        default=RegistrationStep.FORM,
        nullable=False,
    )
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    otp_hash = Column(String(64), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    otp_attempts = Column(Integer, default=0, nullable=False)
    account_name = Column(String(255), nullable=True)
    account_slug = Column(String(50), nullable=True)
    interview_data = Column(JSON, default=dict, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class UserSession(Base):
    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
