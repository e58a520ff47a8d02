"""
Story Clustering Pipeline

End-to-end flow:
1. prepare: extract references and signals per activity
2. cluster: Layer 1 graph clustering
3. refine: Layer 2 LLM assignment of leftover activities, in batches
4. dedup: merge small clusters sharing a dominant container
5. run: all of the above, in that order

Also exposes functional entry points that build fresh collaborators per
call for callers that do not hold a pipeline.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .clustering import (
    ClusteringOptions,
    ClusteringService,
    RefExtractor,
    SignalExtractor,
    dedup_clusters_by_container,
)
from .common.config import StoryweaveConfig, load_config
from .common.llm_client import LLMClient
from .common.schemas import (
    Activity,
    Assignment,
    AssignResult,
    CandidateActivity,
    Cluster,
    ClusterableActivity,
    ClusterSummary,
    ExtractedSignals,
)
from .refinement import (
    ClusterAssigner,
    apply_assignments,
    summarize_clusters,
    to_candidates,
)

logger = logging.getLogger("storyweave.pipeline")


@dataclass
class RefinementOutcome:
    """Clusters after Layer 2, with the delta that produced them"""
    clusters: List[Cluster]
    assignments: Dict[str, Assignment] = field(default_factory=dict)
    batches: int = 0
    fallback_batches: int = 0
    skipped: bool = False

    @property
    def fallback(self) -> bool:
        return self.fallback_batches > 0


@dataclass
class PipelineResult:
    """Final clusters plus what happened on the way"""
    clusters: List[Cluster]
    activities: List[ClusterableActivity]
    layer1_cluster_count: int
    refinement: Optional[RefinementOutcome] = None

    @property
    def unclustered_ids(self) -> List[str]:
        clustered = {i for c in self.clusters for i in c.activity_ids}
        return [a.id for a in self.activities if a.id not in clustered]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clusters": [c.to_dict() for c in self.clusters],
            "unclustered": self.unclustered_ids,
            "layer1ClusterCount": self.layer1_cluster_count,
            "refinement": {
                "batches": self.refinement.batches,
                "fallbackBatches": self.refinement.fallback_batches,
                "assigned": len(self.refinement.assignments),
            } if self.refinement and not self.refinement.skipped else None,
        }


class StoryClusteringPipeline:
    """
    Orchestrates reference extraction, clustering and refinement.

    Every collaborator is injected; build one with ``from_config`` for the
    default wiring.
    """

    def __init__(
        self,
        ref_extractor: RefExtractor,
        signal_extractor: SignalExtractor,
        clustering_service: ClusteringService,
        assigner: Optional[ClusterAssigner] = None,
        config: Optional[StoryweaveConfig] = None,
    ):
        self._refs = ref_extractor
        self._signals = signal_extractor
        self._clustering = clustering_service
        self._assigner = assigner
        self._config = config or StoryweaveConfig()

    @classmethod
    def from_config(
        cls,
        config: StoryweaveConfig,
        llm_client: Optional[LLMClient] = None,
    ) -> "StoryClusteringPipeline":
        assigner = None
        if config.refiner.enabled:
            llm = llm_client or LLMClient.from_config(config.llm)
            assigner = ClusterAssigner(llm, config.refiner)

        return cls(
            ref_extractor=RefExtractor(),
            signal_extractor=SignalExtractor(),
            clustering_service=ClusteringService(ClusteringOptions.from_config(config.clustering)),
            assigner=assigner,
            config=config,
        )

    def prepare(
        self,
        activities: Iterable[Activity],
        self_identifiers: Sequence[str] = (),
    ) -> List[ClusterableActivity]:
        """Attach references and signals to each activity"""
        prepared = []
        for activity in activities:
            signals = self._signals.extract(activity.source, activity.raw_payload, self_identifiers)
            prepared.append(ClusterableActivity(
                id=activity.id,
                source=activity.source,
                timestamp=activity.timestamp,
                title=activity.title,
                description=activity.description,
                refs=self._refs.extract_from_activity(activity),
                collaborators=signals.collaborators,
                container=signals.container,
            ))

        logger.debug(
            "Prepared %d activities (%d with refs, %d with container, %d with collaborators)",
            len(prepared),
            sum(1 for a in prepared if a.refs),
            sum(1 for a in prepared if a.container),
            sum(1 for a in prepared if a.collaborators),
        )
        return prepared

    def cluster(self, prepared: Sequence[ClusterableActivity]) -> List[Cluster]:
        """Layer 1 clustering"""
        return self._clustering.cluster_activities_in_memory(prepared)

    def dedup(self, clusters: Sequence[Cluster]) -> List[Cluster]:
        """Container dedup when enabled; `run` applies it after Layer 2"""
        clusters = list(clusters)
        settings = self._config.clustering
        if settings.dedup_by_container:
            deduped = dedup_clusters_by_container(clusters, settings.max_merge_size)
            if len(deduped) != len(clusters):
                logger.debug("Container dedup merged %d clusters into %d", len(clusters), len(deduped))
            clusters = deduped
        return clusters

    async def refine(
        self,
        clusters: Sequence[Cluster],
        prepared: Sequence[ClusterableActivity],
    ) -> RefinementOutcome:
        """
        Layer 2: send unclustered activities to the assigner in batches.

        Each batch sees clusters created by earlier batches. A fallback on one
        batch leaves its candidates unclustered and the next batch proceeds.
        """
        result = list(clusters)
        if self._assigner is None or not self._config.refiner.enabled:
            return RefinementOutcome(clusters=result, skipped=True)

        clustered = {i for c in result for i in c.activity_ids}
        unclustered = [a for a in prepared if a.id not in clustered]
        if not unclustered:
            logger.debug("All activities already clustered, skipping Layer 2")
            return RefinementOutcome(clusters=result, skipped=True)

        activities_by_id = {a.id: a for a in prepared}
        candidates = to_candidates(unclustered)
        batch_size = max(1, self._config.refiner.batch_size)
        outcome = RefinementOutcome(clusters=result)

        logger.debug(
            "Sending %d unclustered activities to Layer 2 (%d existing clusters)",
            len(candidates), len(result),
        )

        for start in range(0, len(candidates), batch_size):
            batch = candidates[start:start + batch_size]
            batch_number = start // batch_size + 1
            summaries = summarize_clusters(result, activities_by_id)
            outcome.batches += 1

            assigned = await self._assigner.assign(summaries, batch)
            if assigned.fallback:
                logger.warning("Layer 2 fallback on batch %d", batch_number)
                outcome.fallback_batches += 1
                continue

            logger.info(
                "Layer 2 batch %d: assigned %d activities (model: %s, %sms)",
                batch_number, len(assigned.assignments), assigned.model, assigned.processing_time_ms,
            )
            result = apply_assignments(result, summaries, assigned.assignments, activities_by_id)
            outcome.assignments.update(assigned.assignments)

        outcome.clusters = result
        return outcome

    async def run(
        self,
        activities: Iterable[Activity],
        self_identifiers: Sequence[str] = (),
    ) -> PipelineResult:
        prepared = self.prepare(activities, self_identifiers)
        clusters = self.cluster(prepared)
        layer1_count = len(clusters)

        refinement = await self.refine(clusters, prepared)
        final = self.dedup(refinement.clusters)

        logger.info(
            "Clustered %d activities into %d clusters (%d from Layer 1)",
            len(prepared), len(final), layer1_count,
        )
        return PipelineResult(
            clusters=final,
            activities=prepared,
            layer1_cluster_count=layer1_count,
            refinement=refinement,
        )


# ============================================================================
# Functional entry points
# ============================================================================

def extract_refs(value: Any) -> List[str]:
    """References in a string, a list of strings, or any JSON-like object"""
    extractor = RefExtractor()
    if value is None or isinstance(value, str):
        return extractor.extract(value)
    if isinstance(value, (list, tuple)) and all(v is None or isinstance(v, str) for v in value):
        return extractor.extract_from_multiple(value)
    return extractor.extract_from_object(value)


def extract_signals(
    source: str,
    raw_payload: Optional[Dict[str, Any]],
    self_identifiers: Sequence[str] = (),
) -> ExtractedSignals:
    """Collaborators and container for one raw payload"""
    return SignalExtractor().extract(source, raw_payload, self_identifiers)


def cluster_activities_in_memory(
    activities: Sequence[ClusterableActivity],
    options: Optional[ClusteringOptions] = None,
) -> List[Cluster]:
    """Layer 1 clustering with default collaborators"""
    return ClusteringService(options).cluster_activities_in_memory(activities)


async def assign_clusters(
    existing_clusters: Sequence[ClusterSummary],
    candidates: Sequence[CandidateActivity],
    llm: Optional[LLMClient] = None,
    config: Optional[StoryweaveConfig] = None,
) -> AssignResult:
    """Layer 2 assignment; builds an LLM client from config when none is given"""
    if not candidates:
        return AssignResult()
    config = config or load_config()
    if llm is None:
        llm = LLMClient.from_config(config.llm)
    return await ClusterAssigner(llm, config.refiner).assign(existing_clusters, candidates)
