"""Collection generation engine."""

import logging
import math
import random
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Sequence

from ..clients import InMemoryRepository, build_clients
from ..clients.repository import Repository
from ..config import Settings
from ..errors import GenerationError, GenerationTimeoutError, NotFoundError
from ..models import (
    CollectionManifest,
    CompositeResult,
    GenerationConfig,
    MintedAsset,
    ProjectState,
    ProjectStatus,
    TraitAsset,
    TraitRef,
)
from ..services import (
    TRAIT_CATEGORIES,
    AssetGenerator,
    CollectionPlanner,
    Compositor,
    ConfigParser,
    ProjectService,
    TraitStore,
)
from ..services.variants import pick_variant, rarity

logger = logging.getLogger(__name__)


@dataclass
class TraitFailure:
    category: str
    variation: int
    error: GenerationError

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "variation": self.variation,
            "error": str(self.error),
            "type": type(self.error).__name__,
        }


@dataclass
class TraitBatch:
    """Outcome of a trait generation pass. Saved work survives failures."""
    saved: list[TraitAsset] = field(default_factory=list)
    reused: list[TraitAsset] = field(default_factory=list)
    failures: list[TraitFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class RunResult:
    project: ProjectState
    config: GenerationConfig
    manifest: CollectionManifest
    base: TraitAsset
    traits: TraitBatch
    minted: list[MintedAsset]


class CollectionEngine:
    """Orchestrates config -> plan -> base -> traits -> composites.

    This is the only layer that writes project status.
    """

    def __init__(
        self,
        llm,
        image,
        repository: Repository,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        self.repository = repository
        self.parser = ConfigParser(llm)
        self.planner = CollectionPlanner(llm)
        self.assets = AssetGenerator(image)
        self.store = TraitStore(repository, min_inline_bytes=self.settings.min_inline_bytes)
        self.compositor = Compositor(image, store=self.store)
        self.projects = ProjectService(repository)

    @classmethod
    def from_settings(cls, settings: Settings, repository: Repository | None = None) -> "CollectionEngine":
        """Build clients from settings (simulated when credentials are missing)."""
        llm, image = build_clients(settings)
        return cls(llm, image, repository or InMemoryRepository(), settings)

    def start(
        self,
        prompt: str,
        owner_address: str,
        supply: int | None = None,
    ) -> tuple[ProjectState, GenerationConfig]:
        """Parse the prompt and open a project in the generating state."""
        config = self.parser.parse(prompt, supply=supply)
        project = self.projects.create(owner_address, prompt, config)
        project = self.projects.transition(project.id, ProjectStatus.GENERATING)
        return project, config

    def plan(self, config: GenerationConfig, size: int | None = None) -> CollectionManifest:
        return self.planner.plan(config, size=size or config.supply)

    def generate_base(self, project_id: str, config: GenerationConfig) -> TraitAsset:
        """Generate (or reuse) the Body layer's base trait and store it as preview."""
        project = self.projects.get(project_id)
        if project.base_trait:
            logger.info("Reusing base image for project %s", project_id)
            return project.base_trait

        try:
            image_bytes = self.assets.generate_base(config)
        except GenerationError as e:
            e.project_id = project_id
            raise
        base = self.store.save(project_id, "body", "Base Character", image_bytes)
        self.projects.set_preview(project_id, base.image_data)
        return base

    def generate_traits(
        self,
        project_id: str,
        config: GenerationConfig,
        categories: Sequence[str] = TRAIT_CATEGORIES,
        variations: int | None = None,
    ) -> TraitBatch:
        """
        Generate every category/variation not already stored, in parallel.

        Each success is saved as soon as it completes; failures and timeouts are
        collected instead of discarding finished work.
        """
        variations = variations or self.settings.trait_variations
        batch = TraitBatch()

        pending: list[tuple[str, int]] = []
        for category in categories:
            for variation in range(1, variations + 1):
                existing = self.store.find(project_id, category, variation)
                if existing:
                    batch.reused.append(existing)
                else:
                    pending.append((category.strip().lower(), variation))

        if not pending:
            logger.info("All %d traits already generated for %s", len(batch.reused), project_id)
            return batch

        workers = max(1, min(self.settings.max_workers, len(pending)))
        batch_timeout = self.settings.request_timeout * math.ceil(len(pending) / workers)
        logger.info("Generating %d traits with %d workers", len(pending), workers)

        executor = ThreadPoolExecutor(max_workers=workers)
        futures = {
            executor.submit(self.assets.generate_trait, category, config, variation): (category, variation)
            for category, variation in pending
        }
        try:
            for future in as_completed(futures, timeout=batch_timeout):
                category, variation = futures[future]
                try:
                    generated = future.result()
                except GenerationError as e:
                    e.project_id = project_id
                    logger.warning("Trait %s %d failed: %s", category, variation, e)
                    batch.failures.append(TraitFailure(category, variation, e))
                    continue
                batch.saved.append(self.store.save(
                    project_id,
                    generated.category,
                    generated.description,
                    generated.image_data,
                    variation=variation,
                ))
        except FuturesTimeoutError:
            for future, (category, variation) in futures.items():
                if not future.done():
                    error = GenerationTimeoutError(
                        f"Trait generation exceeded {batch_timeout}s",
                        category=category,
                        variation=variation,
                        project_id=project_id,
                    )
                    batch.failures.append(TraitFailure(category, variation, error))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "Traits for %s: %d saved, %d reused, %d failed",
            project_id, len(batch.saved), len(batch.reused), len(batch.failures),
        )
        return batch

    def preview(self, project_id: str, trait_refs: Sequence[TraitRef]) -> CompositeResult:
        """Composite selected traits onto the project's base and store it as preview."""
        base = self._base_ref(project_id)
        result = self.compositor.composite_refs(base, trait_refs, project_id=project_id)
        self.projects.set_preview(project_id, result.image)
        return result

    def finalize(
        self,
        project_id: str,
        config: GenerationConfig,
        count: int | None = None,
        rng: random.Random | None = None,
    ) -> list[MintedAsset]:
        """Composite `count` random variants, persist them, then mark the project saved."""
        count = count or config.supply
        base = self._base_ref(project_id)
        layers = self.projects.get(project_id).layers
        layer_rarity = {layer.key: rarity(layer) for layer in layers if layer.traits}

        minted = []
        for i in range(1, count + 1):
            traits = pick_variant(layers, rng)
            refs = [TraitRef(category=t.category, image_data=t.image_data, trait_id=t.id) for t in traits]
            result = self.compositor.composite_refs(base, refs, project_id=project_id)
            asset = MintedAsset(
                id=str(uuid.uuid4()),
                project_id=project_id,
                name=f"{config.subject} #{i}",
                description=f"{config.subject} with {len(traits)} traits",
                image=result.image,
                attributes=[{"trait_type": t.category, "value": t.description} for t in traits],
                rarity_score=sum(layer_rarity.get(t.category, 100.0) for t in traits) / len(traits) if traits else 100.0,
            )
            minted.append(self.repository.create_minted(asset))
            logger.info("Composited %s (%d/%d)", asset.name, i, count)

        self.projects.transition(project_id, ProjectStatus.SAVED)
        return minted

    def run(
        self,
        prompt: str,
        owner_address: str,
        supply: int | None = None,
        variations: int | None = None,
        categories: Sequence[str] = TRAIT_CATEGORIES,
    ) -> RunResult:
        """Full pipeline for one theme."""
        project, config = self.start(prompt, owner_address, supply=supply)
        manifest = self.plan(config)
        base = self.generate_base(project.id, config)
        traits = self.generate_traits(project.id, config, categories, variations)
        minted = self.finalize(project.id, config)
        return RunResult(
            project=self.projects.get(project.id),
            config=config,
            manifest=manifest,
            base=base,
            traits=traits,
            minted=minted,
        )

    def _base_ref(self, project_id: str) -> TraitRef:
        base = self.projects.get(project_id).base_trait
        if base is None:
            raise NotFoundError("Project has no Body layer base image", category="body", project_id=project_id)
        return TraitRef(category="body", image_data=base.image_data, trait_id=base.id)
