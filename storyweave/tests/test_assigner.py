"""
Tests for ClusterAssigner (Layer 2)

Call, validate, retry once on invalid output, fall back on anything else.
"""

import asyncio
import json
import logging

import pytest
from unittest.mock import AsyncMock, Mock

from storyweave.common.config import RefinerConfig
from storyweave.common.schemas import AssignmentAction, CandidateActivity, ClusterSummary
from storyweave.refinement.assigner import ClusterAssigner
from storyweave.refinement.prompts import ASSIGNMENT_POLICY


def make_llm(*responses, model="claude-haiku-4-5-20251001"):
    llm = Mock()
    llm.is_available = True
    llm.model = model
    llm.agenerate = AsyncMock(side_effect=list(responses))
    return llm


@pytest.fixture
def clusters():
    return [
        ClusterSummary(
            id="layer1_0",
            name="AUTH-123",
            activity_count=3,
            date_range="Mar 1 - Mar 4",
            tool_summary="github, jira",
            top_activities="Add token refresh, Fix expiry bug, Review auth flow",
        ),
    ]


@pytest.fixture
def candidates():
    return [
        CandidateActivity(id="s1", source="slack", title="Token refresh rollout plan", date="Mar 5"),
        CandidateActivity(id="s2", source="google", title="Q2 hiring sync", date="Mar 6"),
    ]


VALID = json.dumps({"s1": "MOVE:layer1_0", "s2": "NEW:Hiring"})


class TestSkipAndAvailability:
    @pytest.mark.asyncio
    async def test_no_candidates_no_call(self, clusters):
        llm = make_llm(VALID)
        result = await ClusterAssigner(llm).assign(clusters, [])

        assert result.assignments == {}
        assert result.fallback is False
        llm.agenerate.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_backend_falls_back(self, clusters, candidates):
        llm = make_llm(VALID)
        llm.is_available = False
        result = await ClusterAssigner(llm).assign(clusters, candidates)

        assert result.fallback is True
        assert result.assignments == {}
        llm.agenerate.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_client_falls_back(self, clusters, candidates):
        result = await ClusterAssigner(None).assign(clusters, candidates)
        assert result.fallback is True


class TestSuccess:
    @pytest.mark.asyncio
    async def test_valid_first_response(self, clusters, candidates):
        llm = make_llm(VALID)
        result = await ClusterAssigner(llm).assign(clusters, candidates)

        assert result.fallback is False
        assert result.assignments["s1"].action is AssignmentAction.MOVE
        assert result.assignments["s1"].target == "layer1_0"
        assert result.assignments["s2"].target == "Hiring"
        assert result.model == "claude-haiku-4-5-20251001"
        assert result.processing_time_ms is not None and result.processing_time_ms >= 0
        assert llm.agenerate.await_count == 1

    @pytest.mark.asyncio
    async def test_request_shape(self, clusters, candidates):
        llm = make_llm(VALID)
        config = RefinerConfig(timeout_seconds=12.0, max_tokens=900)
        await ClusterAssigner(llm, config).assign(clusters, candidates)

        args, kwargs = llm.agenerate.call_args
        assert "layer1_0" in args[0]
        assert "Token refresh rollout plan" in args[0]
        assert kwargs["system"] == ASSIGNMENT_POLICY
        assert kwargs["max_tokens"] == 900
        assert kwargs["timeout"] == 12.0

    @pytest.mark.asyncio
    async def test_retry_recovers(self, clusters, candidates):
        llm = make_llm("not json", VALID)
        result = await ClusterAssigner(llm).assign(clusters, candidates)

        assert result.fallback is False
        assert llm.agenerate.await_count == 2

        first_prompt = llm.agenerate.call_args_list[0].args[0]
        retry_prompt = llm.agenerate.call_args_list[1].args[0]
        assert retry_prompt.startswith(first_prompt)
        assert "rejected" in retry_prompt
        assert "not valid JSON" in retry_prompt


class TestFallback:
    @pytest.mark.asyncio
    async def test_two_malformed_responses(self, clusters, candidates, caplog):
        llm = make_llm("garbage", json.dumps({"s1": "MOVE:nowhere"}))
        with caplog.at_level(logging.WARNING, logger="storyweave.refinement.assigner"):
            result = await ClusterAssigner(llm).assign(clusters, candidates)

        assert result.assignments == {}
        assert result.fallback is True
        assert llm.agenerate.await_count == ClusterAssigner.MAX_RETRIES + 1
        assert "invalid" in caplog.text

    @pytest.mark.asyncio
    async def test_exception_is_not_retried(self, clusters, candidates, caplog):
        llm = make_llm(RuntimeError("connection reset"), VALID)
        with caplog.at_level(logging.WARNING, logger="storyweave.refinement.assigner"):
            result = await ClusterAssigner(llm).assign(clusters, candidates)

        assert result.assignments == {}
        assert result.fallback is True
        assert llm.agenerate.await_count == 1
        assert "connection reset" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout_is_not_retried(self, clusters, candidates):
        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        llm = make_llm()
        llm.agenerate = AsyncMock(side_effect=hang)
        config = RefinerConfig(timeout_seconds=0.05)

        result = await ClusterAssigner(llm, config).assign(clusters, candidates)

        assert result.fallback is True
        assert llm.agenerate.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_error_from_client(self, clusters, candidates):
        llm = make_llm(asyncio.TimeoutError())
        result = await ClusterAssigner(llm).assign(clusters, candidates)
        assert result.fallback is True
        assert llm.agenerate.await_count == 1
