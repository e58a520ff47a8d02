"""
Tests for Signal Extraction

Per-tool collaborators and containers, self exclusion, and dispatch
behavior for unknown tools and bad payloads.
"""

import logging

import pytest

from storyweave.clustering.signals import (
    GitHubSignalSource,
    NullSignalSource,
    SignalExtractor,
    SignalSource,
    is_excluded_branch,
)
from storyweave.common.schemas import ExtractedSignals


@pytest.fixture
def extractor():
    return SignalExtractor()


class TestGitHub:
    def test_collaborators_and_branch(self, extractor):
        signals = extractor.extract("github", {
            "author": "Alice",
            "reviewers": ["bob", "carol"],
            "requestedReviewers": ["dave"],
            "mentions": ["bob"],
            "headRef": "feature/token-refresh",
        })
        assert signals.collaborators == ["alice", "bob", "carol", "dave"]
        assert signals.container == "feature/token-refresh"

    def test_excluded_head_ref_falls_back_to_repository(self, extractor):
        signals = extractor.extract("github", {"headRef": "main", "repository": "acme/backend"})
        assert signals.container == "repo:acme/backend"

    def test_workflow_branch(self, extractor):
        signals = extractor.extract("github", {"branch": "fix/login", "repository": "acme/backend"})
        assert signals.container == "fix/login"

    @pytest.mark.parametrize("branch", ["main", "master", "develop", "release/2.1", "hotfix/urgent"])
    def test_excluded_branches(self, branch):
        assert is_excluded_branch(branch)

    def test_feature_branch_not_excluded(self):
        assert not is_excluded_branch("feature/release-notes")

    def test_no_container(self, extractor):
        assert extractor.extract("github", {"author": "alice"}).container is None


class TestJira:
    def test_epic_container(self, extractor):
        signals = extractor.extract("jira", {
            "assignee": "alice",
            "reporter": "bob",
            "watchers": ["carol"],
            "linkedIssues": [
                {"key": "AUTH-1", "type": "Story"},
                {"key": "AUTH-100", "type": "Epic"},
            ],
        })
        assert signals.collaborators == ["alice", "bob", "carol"]
        assert signals.container == "AUTH-100"

    def test_no_epic(self, extractor):
        signals = extractor.extract("jira", {"linkedIssues": [{"key": "AUTH-1", "type": "Bug"}]})
        assert signals.container is None

    def test_malformed_links(self, extractor):
        assert extractor.extract("jira", {"linkedIssues": "AUTH-100"}).container is None


class TestSlack:
    def test_thread_container(self, extractor):
        signals = extractor.extract("slack", {
            "author": "alice",
            "parentAuthor": "bob",
            "mentions": ["carol"],
            "channelId": "C12345678",
            "threadTs": "1710000000.000100",
        })
        assert signals.collaborators == ["alice", "bob", "carol"]
        assert signals.container == "1710000000.000100"

    def test_api_thread_ts_spelling(self, extractor):
        assert extractor.extract("slack", {"thread_ts": "1710000000.1"}).container == "1710000000.1"

    def test_channel_is_not_a_container(self, extractor):
        assert extractor.extract("slack", {"channelId": "C12345678"}).container is None


class TestConfluenceAndFigma:
    def test_confluence_space(self, extractor):
        signals = extractor.extract("confluence", {
            "creator": "alice",
            "lastModifiedBy": "bob",
            "spaceKey": "ENG",
        })
        assert signals.collaborators == ["alice", "bob"]
        assert signals.container == "ENG"

    def test_figma_file(self, extractor):
        signals = extractor.extract("figma", {
            "owner": "dana",
            "commenters": ["alice", "erin"],
            "editors": ["erin"],
            "fileKey": "ABC123",
        })
        assert signals.collaborators == ["dana", "alice", "erin"]
        assert signals.container == "ABC123"


class TestSelfExclusion:
    def test_self_removed_case_insensitively(self, extractor):
        signals = extractor.extract(
            "github",
            {"author": "Alice", "reviewers": ["BOB", "carol"]},
            self_identifiers=["alice", "Bob"],
        )
        assert signals.collaborators == ["carol"]

    def test_non_string_people_skipped(self, extractor):
        signals = extractor.extract("jira", {"assignee": None, "watchers": ["bob", 7, {"x": 1}, ""]})
        assert signals.collaborators == ["bob"]


class TestDispatch:
    def test_unknown_source_yields_empty(self, extractor):
        signals = extractor.extract("notion", {"author": "alice", "threadTs": "1"})
        assert signals == ExtractedSignals()
        assert signals.is_empty

    @pytest.mark.parametrize("payload", [None, {}, "not a dict", ["list"]])
    def test_missing_or_malformed_payload(self, extractor, payload):
        assert extractor.extract("github", payload) == ExtractedSignals()

    def test_supported_sources(self, extractor):
        assert extractor.supported_sources == ["confluence", "figma", "github", "jira", "slack"]

    def test_register_custom_source(self):
        class LinearSignalSource(SignalSource):
            source_name = "linear"

            def collect_people(self, raw_payload):
                return [raw_payload.get("assignee", "")]

            def derive_container(self, raw_payload):
                return raw_payload.get("project")

        extractor = SignalExtractor(sources=[LinearSignalSource()])
        signals = extractor.extract("linear", {"assignee": "Alice", "project": "checkout"})
        assert signals.collaborators == ["alice"]
        assert signals.container == "checkout"
        assert extractor.extract("github", {"author": "bob"}).is_empty

    def test_register_requires_source_name(self, extractor):
        class NamelessSource(NullSignalSource):
            source_name = ""

        with pytest.raises(ValueError, match="source_name"):
            extractor.register(NamelessSource())

    def test_failing_source_is_contained(self, caplog):
        class BrokenSource(GitHubSignalSource):
            def derive_container(self, raw_payload):
                raise KeyError("headRef")

        extractor = SignalExtractor(sources=[BrokenSource()])
        with caplog.at_level(logging.WARNING, logger="storyweave.clustering.signals"):
            signals = extractor.extract("github", {"author": "alice"})

        assert signals.is_empty
        assert "github" in caplog.text
