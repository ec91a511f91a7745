# This project was developed with assistance from AI tools.
"""
Humanitarian program management -- domain models

Projects, subprojects and activities form the containment chain that
role scope is evaluated against. Beneficiary PII is stored only as
AES-GCM envelopes in the ``*_enc`` JSON columns.
"""

import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from .enums import EntityType, RecordStatus


def _uuid() -> str:
    return str(uuid.uuid4())


def _entity_type_column():
    return Column(
        Enum(EntityType, name="entity_type", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )


def _status_column():
    return Column(
        Enum(RecordStatus, name="record_status", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RecordStatus.ACTIVE,
    )


# ---------------------------------------------------------------------------
# Users and roles
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    status = _status_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    roles = relationship("Role", secondary="user_roles", back_populates="users")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    users = relationship("User", secondary="user_roles", back_populates="roles")

    def __repr__(self):
        return f"<Role(name='{self.name}')>"


class UserRole(Base):
    """Junction table linking users to roles."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_role"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Containment chain: project <- subproject <- activity
# ---------------------------------------------------------------------------


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    status = _status_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    subprojects = relationship("Subproject", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}')>"


class Subproject(Base):
    __tablename__ = "subprojects"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    status = _status_column()
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    project = relationship("Project", back_populates="subprojects")
    activities = relationship("Activity", back_populates="subproject", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Subproject(id={self.id}, project_id={self.project_id})>"


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    frequency = Column(String(50), nullable=True)
    subproject_id = Column(String(36), ForeignKey("subprojects.id", ondelete="CASCADE"), nullable=False, index=True)
    status = _status_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    subproject = relationship("Subproject", back_populates="activities")

    def __repr__(self):
        return f"<Activity(id={self.id}, subproject_id={self.subproject_id})>"


# ---------------------------------------------------------------------------
# Staff assignments (scope source for manager roles)
# ---------------------------------------------------------------------------


class ProjectUser(Base):
    __tablename__ = "project_users"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_user"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class SubprojectUser(Base):
    __tablename__ = "subproject_users"
    __table_args__ = (UniqueConstraint("subproject_id", "user_id", name="uq_subproject_user"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    subproject_id = Column(String(36), ForeignKey("subprojects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ActivityUser(Base):
    __tablename__ = "activity_users"
    __table_args__ = (UniqueConstraint("activity_id", "user_id", name="uq_activity_user"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    activity_id = Column(String(36), ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Beneficiaries
# ---------------------------------------------------------------------------


class Beneficiary(Base):
    """Beneficiary record. PII columns hold ``{alg, iv, tag, data}`` envelopes."""

    __tablename__ = "beneficiaries"

    id = Column(String(36), primary_key=True, default=_uuid)
    pseudonym = Column(String(32), unique=True, nullable=False)
    status = _status_column()
    first_name_enc = Column(JSON, nullable=True)
    last_name_enc = Column(JSON, nullable=True)
    dob_enc = Column(JSON, nullable=True)
    national_id_enc = Column(JSON, nullable=True)
    phone_enc = Column(JSON, nullable=True)
    email_enc = Column(JSON, nullable=True)
    address_enc = Column(JSON, nullable=True)
    gender_enc = Column(JSON, nullable=True)
    municipality_enc = Column(JSON, nullable=True)
    nationality_enc = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    assignments = relationship(
        "BeneficiaryAssignment", back_populates="beneficiary", cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Beneficiary(id={self.id}, pseudonym='{self.pseudonym}')>"


class BeneficiaryAssignment(Base):
    """Links a beneficiary to a project or subproject."""

    __tablename__ = "beneficiary_assignments"
    __table_args__ = (
        UniqueConstraint("beneficiary_id", "entity_id", "entity_type", name="uq_beneficiary_entity"),
        Index("ix_beneficiary_assignments_entity", "entity_id", "entity_type"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    beneficiary_id = Column(
        String(36), ForeignKey("beneficiaries.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    entity_id = Column(String(36), nullable=False)
    entity_type = _entity_type_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    beneficiary = relationship("Beneficiary", back_populates="assignments")


# ---------------------------------------------------------------------------
# Services and deliveries
# ---------------------------------------------------------------------------


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    status = _status_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ServiceAssignment(Base):
    """Makes a service available at a project, subproject or activity."""

    __tablename__ = "service_assignments"
    __table_args__ = (
        UniqueConstraint("service_id", "entity_id", "entity_type", name="uq_service_entity"),
        Index("ix_service_assignments_entity", "entity_id", "entity_type"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    entity_id = Column(String(36), nullable=False)
    entity_type = _entity_type_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ServiceDelivery(Base):
    """A service delivered to a beneficiary at any level of the chain."""

    __tablename__ = "service_deliveries"
    __table_args__ = (Index("ix_service_deliveries_entity", "entity_id", "entity_type"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False, index=True)
    beneficiary_id = Column(String(36), ForeignKey("beneficiaries.id"), nullable=False, index=True)
    entity_id = Column(String(36), nullable=False)
    entity_type = _entity_type_column()
    form_response_id = Column(String(36), ForeignKey("form_responses.id"), nullable=True)
    staff_user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    delivered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<ServiceDelivery(id={self.id}, {self.entity_type}:{self.entity_id})>"


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


class FormTemplate(Base):
    __tablename__ = "form_templates"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    definition = Column("schema", JSON, nullable=False, default=dict)
    version = Column(String(20), nullable=False, default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class FormEntityAssociation(Base):
    """Attaches a form template to a project, subproject or activity."""

    __tablename__ = "form_entity_associations"
    __table_args__ = (
        UniqueConstraint("form_template_id", "entity_id", "entity_type", name="uq_form_template_entity"),
        Index("ix_form_entity_associations_entity", "entity_id", "entity_type"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    form_template_id = Column(
        String(36), ForeignKey("form_templates.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    entity_id = Column(String(36), nullable=False)
    entity_type = _entity_type_column()
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class FormResponse(Base):
    __tablename__ = "form_responses"
    __table_args__ = (Index("ix_form_responses_entity", "entity_id", "entity_type"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    form_template_id = Column(String(36), ForeignKey("form_templates.id"), nullable=False, index=True)
    entity_id = Column(String(36), nullable=False)
    entity_type = _entity_type_column()
    submitted_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    beneficiary_id = Column(String(36), ForeignKey("beneficiaries.id"), nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditLog(Base):
    """Append-only audit trail. INSERT + SELECT only."""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}')>"
