from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Enum, JSON
from sqlalchemy.sql import func
from lexmarket.database import Base
import enum
import uuid

# =====================================================
# ENUMS
# =====================================================

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    LAWYER = "lawyer"
    CLIENT = "client"

class CaseStatus(str, enum.Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    CLOSED = "Closed"
    ON_HOLD = "On Hold"

class CasePriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"

class MilestoneStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DENIED = "denied"

class NotificationType(str, enum.Enum):
    LAWYER_APPLIED = "lawyer_applied"
    MILESTONE_ADDED = "milestone_added"
    MILESTONE_COMPLETED = "milestone_completed"
    APPLICATION_ACCEPTED = "application_accepted"
    APPLICATION_DENIED = "application_denied"


def new_id() -> str:
    return str(uuid.uuid4())

# =====================================================
# CASE MANAGEMENT SYSTEM
# =====================================================

class CaseRecord(Base):
    """A case document plus the scalar fields the store is queried by.

    ``document`` holds the full case (milestones embedded); the indexed
    columns mirror it and are rewritten on every save.
    """
    __tablename__ = "cases"

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(128), nullable=False, index=True)
    status = Column(Enum(CaseStatus), default=CaseStatus.OPEN, nullable=False, index=True)
    priority = Column(Enum(CasePriority), default=CasePriority.MEDIUM, nullable=False)
    category = Column(String(100), index=True)
    assigned_lawyer_id = Column(String(128), index=True)
    document = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)

class ApplicationRecord(Base):
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=new_id)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    lawyer_id = Column(String(128), nullable=False, index=True)
    lawyer_name = Column(String(255), nullable=False)
    proposal = Column(Text, nullable=False)
    status = Column(Enum(ApplicationStatus), default=ApplicationStatus.PENDING, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

# =====================================================
# NOTIFICATION SYSTEM
# =====================================================

class NotificationRecord(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    type = Column(Enum(NotificationType), nullable=False)
    case_id = Column(String(36), nullable=False, index=True)
    milestone_id = Column(String(64))
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
