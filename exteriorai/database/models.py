"""
Database models for ExteriorAI projects, transformation history and activity
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class ProjectStatus(enum.Enum):
    """Lifecycle of a project. Once a project leaves DRAFT it never returns to it."""

    DRAFT = "draft"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ProjectType(enum.Enum):
    BACKYARD = "backyard"
    FRONTYARD = "frontyard"
    GARDEN = "garden"
    PATIO = "patio"
    HOUSE = "house"
    LANDSCAPE = "landscape"
    OTHER = "other"


class Project(Base):
    """A user's outdoor space and the current state of its redesign"""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    type = Column(Enum(ProjectType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    status = Column(
        Enum(ProjectStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ProjectStatus.DRAFT,
    )
    style_preference = Column(Integer, nullable=False, default=50)  # 0 = natural, 100 = modern
    transformations = Column(Integer, nullable=False, default=0)
    thumbnail = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("idx_project_user_updated", "user_id", "updated_at"),)

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', status={self.status})>"


class TransformationRecord(Base):
    """
    One generated "after" image of a project. Append-only.

    project_id is not a foreign key; deleting a project leaves its history
    rows in place.
    """

    __tablename__ = "transformations"

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    previous_image_url = Column(Text, nullable=True)
    prompt = Column(Text, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("idx_transformation_project_ts", "project_id", "timestamp"),)

    def __repr__(self):
        return f"<TransformationRecord(id={self.id}, project_id={self.project_id})>"


class ActivityLog(Base):
    """Append-only audit entry written as a side effect of project changes"""

    __tablename__ = "activity"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    action = Column(String(500), nullable=False)
    project_id = Column(String(36), nullable=True)
    project_name = Column(String(200), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, action='{self.action}')>"
