"""Persistence collaborator interface plus an in-memory implementation."""

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any

from ..errors import NotFoundError
from ..models import MintedAsset, ProjectState, TraitAsset


class Repository(ABC):
    """Create/read/update by identifier for projects, traits and minted assets."""

    @abstractmethod
    def create_project(self, project: ProjectState) -> ProjectState:
        pass

    @abstractmethod
    def get_project(self, project_id: str) -> ProjectState:
        """Raises NotFoundError if absent."""
        pass

    @abstractmethod
    def update_project(self, project_id: str, **changes: Any) -> ProjectState:
        pass

    @abstractmethod
    def create_trait(self, trait: TraitAsset) -> TraitAsset:
        pass

    @abstractmethod
    def get_trait(self, trait_id: str) -> TraitAsset:
        """Raises NotFoundError if absent."""
        pass

    @abstractmethod
    def list_traits(self, project_id: str) -> list[TraitAsset]:
        pass

    @abstractmethod
    def create_minted(self, asset: MintedAsset) -> MintedAsset:
        pass

    @abstractmethod
    def list_minted(self, project_id: str) -> list[MintedAsset]:
        pass


class InMemoryRepository(Repository):
    """Thread-safe dict-backed repository for local runs and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._projects: dict[str, ProjectState] = {}
        self._traits: dict[str, TraitAsset] = {}
        self._minted: dict[str, MintedAsset] = {}

    def create_project(self, project: ProjectState) -> ProjectState:
        with self._lock:
            self._projects[project.id] = project
        return project

    def get_project(self, project_id: str) -> ProjectState:
        with self._lock:
            project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}", project_id=project_id)
        return project

    def update_project(self, project_id: str, **changes: Any) -> ProjectState:
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                raise NotFoundError(f"Project not found: {project_id}", project_id=project_id)
            updated = replace(project, **changes)
            self._projects[project_id] = updated
        return updated

    def create_trait(self, trait: TraitAsset) -> TraitAsset:
        with self._lock:
            self._traits[trait.id] = trait
        return trait

    def get_trait(self, trait_id: str) -> TraitAsset:
        with self._lock:
            trait = self._traits.get(trait_id)
        if trait is None:
            raise NotFoundError(f"Trait not found: {trait_id}")
        return trait

    def list_traits(self, project_id: str) -> list[TraitAsset]:
        with self._lock:
            return [t for t in self._traits.values() if t.project_id == project_id]

    def create_minted(self, asset: MintedAsset) -> MintedAsset:
        with self._lock:
            self._minted[asset.id] = asset
        return asset

    def list_minted(self, project_id: str) -> list[MintedAsset]:
        with self._lock:
            return [a for a in self._minted.values() if a.project_id == project_id]
