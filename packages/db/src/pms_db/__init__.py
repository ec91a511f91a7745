# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, get_db, get_db_service
from .enums import EntityType, RecordStatus, RoleName
from .models import (
    Activity,
    ActivityUser,
    AuditLog,
    Beneficiary,
    BeneficiaryAssignment,
    FormEntityAssociation,
    FormResponse,
    FormTemplate,
    Project,
    ProjectUser,
    Role,
    Service,
    ServiceAssignment,
    ServiceDelivery,
    Subproject,
    SubprojectUser,
    User,
    UserRole,
)

__all__ = [
    "Base",
    "DatabaseService",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "EntityType",
    "RecordStatus",
    "RoleName",
    # Models
    "Activity",
    "ActivityUser",
    "AuditLog",
    "Beneficiary",
    "BeneficiaryAssignment",
    "FormEntityAssociation",
    "FormResponse",
    "FormTemplate",
    "Project",
    "ProjectUser",
    "Role",
    "Service",
    "ServiceAssignment",
    "ServiceDelivery",
    "Subproject",
    "SubprojectUser",
    "User",
    "UserRole",
]
