"""Project lifecycle - the only place project status is written."""

import logging
import uuid

from ..clients.repository import Repository
from ..errors import ValidationError
from ..models import GenerationConfig, ProjectState, ProjectStatus

logger = logging.getLogger(__name__)

# Allowed status moves. saved -> draft is a re-edit by the surrounding system.
TRANSITIONS: dict[ProjectStatus, set[ProjectStatus]] = {
    ProjectStatus.DRAFT: {ProjectStatus.GENERATING},
    ProjectStatus.GENERATING: {ProjectStatus.SAVED},
    ProjectStatus.SAVED: {ProjectStatus.PUBLISHED, ProjectStatus.DRAFT},
    ProjectStatus.PUBLISHED: set(),
}


class ProjectService:
    """Create projects and move them through draft -> generating -> saved -> published."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def create(self, owner_address: str, prompt: str, config: GenerationConfig) -> ProjectState:
        if not owner_address:
            raise ValidationError("Owner address is required")
        project = ProjectState(
            id=str(uuid.uuid4()),
            owner_address=owner_address,
            prompt=prompt,
            name=f"{config.subject} {config.theme} Collection",
        )
        self.repository.create_project(project)
        logger.info("Created project %s (%s)", project.id, project.name)
        return project

    def get(self, project_id: str) -> ProjectState:
        return self.repository.get_project(project_id)

    def transition(self, project_id: str, status: ProjectStatus) -> ProjectState:
        """Move a project to a new status, enforcing TRANSITIONS."""
        project = self.repository.get_project(project_id)
        if status not in TRANSITIONS[project.status]:
            raise ValidationError(
                f"Cannot move project from {project.status.value} to {status.value}",
                project_id=project_id,
            )
        logger.info("Project %s: %s -> %s", project_id, project.status.value, status.value)
        return self.repository.update_project(project_id, status=status)

    def set_preview(self, project_id: str, image: bytes) -> ProjectState:
        return self.repository.update_project(project_id, preview_image=image)

    def publish(self, project_id: str, contract_address: str) -> ProjectState:
        project = self.transition(project_id, ProjectStatus.PUBLISHED)
        return self.repository.update_project(project.id, contract_address=contract_address)
