"""
Project, transformation history and activity persistence.

There are no cross-row transactions here: callers that write a transformation
record and then update the parent project do so in two separate steps.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from exteriorai.core.errors import ProjectNotFoundError
from exteriorai.database.models import ActivityLog, Project, ProjectStatus, TransformationRecord, utcnow

logger = logging.getLogger(__name__)

# Columns a caller may set through update_project
UPDATABLE_FIELDS = {"name", "type", "status", "style_preference", "transformations", "thumbnail"}


class ProjectStore:
    """Gateway over the SQLAlchemy session for projects and their history"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch_recent_first(self, ordered_query, unordered_query, sort_key) -> list:
        """
        Run the ordered query; if the database rejects it (for example a missing
        or still-building index), fetch unordered and sort in memory instead.
        Both paths return newest first.
        """
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(ordered_query)
                return list(result.scalars().all())
        except DBAPIError as e:
            logger.warning(f"Ordered query failed, falling back to in-memory sort: {e}")

        result = await self.session.execute(unordered_query)
        rows = list(result.scalars().all())
        rows.sort(key=sort_key, reverse=True)
        return rows

    # Projects

    async def create_project(self, owner_id: str, data: Dict[str, Any]) -> str:
        if not owner_id:
            raise ValueError("owner_id is required to create a project")

        now = utcnow()
        project = Project(
            user_id=owner_id,
            name=data["name"],
            type=data["type"],
            status=data.get("status") or ProjectStatus.DRAFT,
            style_preference=data.get("style_preference", 50),
            transformations=data.get("transformations", 0),
            thumbnail=data.get("thumbnail"),
            created_at=now,
            updated_at=now,
        )
        self.session.add(project)
        await self.session.commit()
        await self.session.refresh(project)

        logger.info(f"Created project {project.id} for user {owner_id}")
        return project.id

    async def get_project(self, project_id: str) -> Optional[Project]:
        result = await self.session.execute(select(Project).where(Project.id == project_id))
        return result.scalar_one_or_none()

    async def get_user_projects(self, owner_id: str) -> List[Project]:
        """All projects owned by owner_id, most recently updated first"""
        base_query = select(Project).where(Project.user_id == owner_id)
        return await self._fetch_recent_first(
            base_query.order_by(Project.updated_at.desc()),
            base_query,
            sort_key=lambda p: p.updated_at,
        )

    async def update_project(self, project_id: str, fields: Dict[str, Any]) -> Project:
        """Merge the given fields into the project and always stamp updated_at"""
        project = await self.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError()

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        for field, value in fields.items():
            setattr(project, field, value)

        project.updated_at = utcnow()

        await self.session.commit()
        await self.session.refresh(project)

        logger.debug(f"Updated project {project_id} (fields: {list(fields.keys())})")
        return project

    async def delete_project(self, project_id: str) -> None:
        """Hard delete. Transformation rows of the project are not touched."""
        project = await self.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError()

        await self.session.delete(project)
        await self.session.commit()

        logger.info(f"Deleted project {project_id}")

    # Transformation history

    async def add_transformation_record(self, project_id: str, record: Dict[str, Any]) -> str:
        transformation = TransformationRecord(
            project_id=project_id,
            image_url=record["image_url"],
            previous_image_url=record.get("previous_image_url"),
            prompt=record.get("prompt"),
            timestamp=utcnow(),
        )
        self.session.add(transformation)
        await self.session.commit()
        await self.session.refresh(transformation)

        logger.info(f"Added transformation {transformation.id} to project {project_id}")
        return transformation.id

    async def get_transformation(self, transformation_id: str) -> Optional[TransformationRecord]:
        result = await self.session.execute(
            select(TransformationRecord).where(TransformationRecord.id == transformation_id)
        )
        return result.scalar_one_or_none()

    async def get_project_transformations(self, project_id: str) -> List[TransformationRecord]:
        """Transformation history of a project, newest first"""
        base_query = select(TransformationRecord).where(TransformationRecord.project_id == project_id)
        return await self._fetch_recent_first(
            base_query.order_by(TransformationRecord.timestamp.desc()),
            base_query,
            sort_key=lambda t: t.timestamp,
        )

    # Activity

    async def create_activity_log(
        self,
        owner_id: str,
        action: str,
        project_id: Optional[str] = None,
        project_name: Optional[str] = None,
    ) -> bool:
        """
        Best-effort audit entry. Returns False instead of raising so the
        enclosing operation is never failed by its activity log.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(
                    ActivityLog(
                        user_id=owner_id,
                        action=action,
                        project_id=project_id,
                        project_name=project_name,
                        timestamp=utcnow(),
                    )
                )
            await self.session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error creating activity log: {e}")
            await self.session.rollback()
            return False

    async def get_user_activity(self, owner_id: str, limit: int = 10) -> List[ActivityLog]:
        result = await self.session.execute(
            select(ActivityLog)
            .where(ActivityLog.user_id == owner_id)
            .order_by(ActivityLog.timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
