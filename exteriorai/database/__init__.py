"""
Database module for ExteriorAI
"""
from .models import ActivityLog, Base, Project, ProjectStatus, ProjectType, TransformationRecord

__all__ = [
    "Base",
    "Project",
    "ProjectStatus",
    "ProjectType",
    "TransformationRecord",
    "ActivityLog",
]
