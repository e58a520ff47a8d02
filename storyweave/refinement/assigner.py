"""
Cluster Assigner - Layer 2 refinement.

After Layer 1 (graph clustering) leaves some activities unclustered, an LLM
decides for each one whether it joins an existing cluster (MOVE), starts a
new one (NEW), or stays where it is (KEEP).

The result is a delta; applying it is left to the caller. Any failure ends
in ``fallback=True`` with an empty delta so the Layer 1 result stands.
"""

import asyncio
import logging
import time
from typing import Optional, Sequence

from ..common.config import RefinerConfig
from ..common.schemas import AssignResult, CandidateActivity, ClusterSummary
from .prompts import ASSIGNMENT_POLICY, build_assignment_prompt
from .validator import validate_assignments

logger = logging.getLogger("storyweave.refinement.assigner")


class ClusterAssigner:
    """
    LLM-based assignment of unclustered activities.

    Validation failures are retried once with the errors appended to the
    prompt. Backend errors and timeouts fall back without a retry.
    """

    MAX_RETRIES = 1

    def __init__(self, llm_client=None, config: Optional[RefinerConfig] = None):
        self._llm = llm_client
        self._config = config or RefinerConfig()

    @property
    def is_available(self) -> bool:
        return self._llm is not None and self._llm.is_available

    async def assign(
        self,
        existing_clusters: Sequence[ClusterSummary],
        candidates: Sequence[CandidateActivity],
    ) -> AssignResult:
        """
        Assign every candidate to an existing cluster or a new one.

        Args:
            existing_clusters: Summaries of clusters a candidate may MOVE into
            candidates: Activities needing a decision

        Returns:
            AssignResult with one Assignment per candidate, or an empty
            fallback result
        """
        if not candidates:
            return AssignResult()

        if not self.is_available:
            logger.warning("LLM unavailable, keeping Layer 1 clusters for %d candidates", len(candidates))
            return AssignResult(fallback=True)

        existing_ids = [c.id for c in existing_clusters]
        started = time.perf_counter()
        errors = None

        for attempt in range(self.MAX_RETRIES + 1):
            prompt = build_assignment_prompt(existing_clusters, candidates, errors)
            try:
                raw = await asyncio.wait_for(
                    self._llm.agenerate(
                        prompt,
                        system=ASSIGNMENT_POLICY,
                        max_tokens=self._config.max_tokens,
                        timeout=self._config.timeout_seconds,
                    ),
                    timeout=self._config.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Cluster assignment timed out after %.1fs, falling back",
                    self._config.timeout_seconds,
                )
                return AssignResult(fallback=True)
            except Exception as e:
                logger.warning("Cluster assignment failed: %s", e)
                return AssignResult(fallback=True)

            result = validate_assignments(raw, candidates, existing_ids)
            if result.valid:
                elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
                logger.debug(
                    "Assigned %d candidates on attempt %d in %.1fms",
                    len(result.assignments), attempt + 1, elapsed_ms,
                )
                return AssignResult(
                    assignments=result.assignments,
                    model=getattr(self._llm, "model", None) or None,
                    processing_time_ms=elapsed_ms,
                )

            errors = result.errors
            logger.debug("Attempt %d rejected with %d errors: %s", attempt + 1, len(errors), errors)

        logger.warning(
            "Cluster assignment response invalid after %d attempts, falling back",
            self.MAX_RETRIES + 1,
        )
        return AssignResult(fallback=True)
