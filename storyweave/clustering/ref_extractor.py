"""
Reference Extractor

Finds cross-tool identifiers (ticket keys, pull requests, wiki pages, design
files, Google docs) in free text and raw payloads and normalizes them to
comparable reference strings such as "AUTH-123", "acme/api#42",
"confluence:123456" or "figma:ABC123".

References are case-sensitive and exact-match: "AUTH-123" and "auth-123"
are different references.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Pattern, Match, Sequence, Tuple

logger = logging.getLogger("storyweave.clustering.ref_extractor")

CONFIDENCE_LEVELS = {"high": 3, "medium": 2, "low": 1}


class PatternValidationError(ValueError):
    """Raised when registered patterns disagree with their own examples"""


@dataclass(frozen=True)
class RefPattern:
    """A reference pattern with the examples it must (and must not) match"""
    id: str
    tool_type: str
    regex: Pattern
    normalize: Callable[[Match], Optional[str]]
    confidence: str = "high"
    description: str = ""
    examples: Tuple[Tuple[str, str], ...] = ()
    negative_examples: Tuple[str, ...] = ()


@dataclass
class RefMatch:
    """A single normalized reference and where it was found"""
    ref: str
    pattern_id: str
    confidence: str
    start: int
    end: int


# ============================================================================
# Default patterns
# ============================================================================

def _pull_request_ref(match: Match) -> str:
    scope, number = match.group(1), match.group(2)
    if scope:
        return f"{scope}#{number}"
    # Bare "#42" carries no repository; keep it apart from scoped refs
    return f"local#{number}"


DEFAULT_PATTERNS: Tuple[RefPattern, ...] = (
    RefPattern(
        id="ticket-key-v2",
        tool_type="jira",
        regex=re.compile(r"(?<![A-Z0-9])([A-Z]{2,10}-\d+)(?!\d)"),
        normalize=lambda m: m.group(1),
        description="Issue tracker keys such as AUTH-123",
        examples=(
            ("Fixed AUTH-123 today", "AUTH-123"),
            ("AB-1", "AB-1"),
            ("ABCDEFGHIJ-12345 shipped", "ABCDEFGHIJ-12345"),
            ("修复 CORE-456", "CORE-456"),
            ("branch AUTH-123_login", "AUTH-123"),
            ("fixAUTH-9", "AUTH-9"),
        ),
        negative_examples=("upgrade v1.0.0 to V2.0.0-beta", "X-123", "auth-123", "ABCDEFGHIJK-1"),
    ),
    RefPattern(
        id="pull-request-v2",
        tool_type="github",
        regex=re.compile(
            r"(?:(?<![\w./-])([A-Za-z0-9][\w.-]*/[\w.-]+))?#(\d+)\b", re.ASCII
        ),
        normalize=_pull_request_ref,
        description="Scoped org/repo#N references and bare #N references",
        examples=(
            ("Merged acme/backend#42", "acme/backend#42"),
            ("Fixed in PR #42", "local#42"),
        ),
        negative_examples=("issue number 42", "see #abc"),
    ),
    RefPattern(
        id="github-url-v1",
        tool_type="github",
        regex=re.compile(
            r"github\.com/([A-Za-z0-9][\w.-]*)/([\w.-]+?)/(?:pull|issues)/(\d+)", re.ASCII
        ),
        normalize=lambda m: f"{m.group(1)}/{m.group(2)}#{m.group(3)}",
        description="Pull request and issue links",
        examples=(
            ("https://github.com/acme/x/pull/7", "acme/x#7"),
            ("https://github.com/acme/backend/issues/99#top", "acme/backend#99"),
        ),
        negative_examples=("https://github.com/acme/backend/tree/main",),
    ),
    RefPattern(
        id="confluence-url-v1",
        tool_type="confluence",
        regex=re.compile(
            r"atlassian\.net/wiki/[^\s\"'<>]*?pages/(?:viewpage\.action\?pageId=)?(\d+)"
        ),
        normalize=lambda m: f"confluence:{m.group(1)}",
        description="Confluence page links",
        examples=(
            ("https://acme.atlassian.net/wiki/spaces/ENG/pages/987654/Auth+Design", "confluence:987654"),
            ("https://acme.atlassian.net/wiki/pages/viewpage.action?pageId=123456", "confluence:123456"),
        ),
        negative_examples=("https://acme.atlassian.net/wiki/spaces/ENG/overview",),
    ),
    RefPattern(
        id="confluence-rawdata-v1",
        tool_type="confluence",
        regex=re.compile(r"\"pageId\"\s*:\s*\"?(\d+)\"?"),
        normalize=lambda m: f"confluence:{m.group(1)}",
        description="Confluence page ids in serialized payloads",
        examples=(('{"pageId": "123456789"}', "confluence:123456789"),),
    ),
    RefPattern(
        id="figma-url-v1",
        tool_type="figma",
        regex=re.compile(r"figma\.com/(?:file|design)/([A-Za-z0-9]+)"),
        normalize=lambda m: f"figma:{m.group(1)}",
        description="Figma file and design links",
        examples=(
            ("https://www.figma.com/file/ABC123XYZ/Design", "figma:ABC123XYZ"),
            ("https://www.figma.com/design/abc123/Checkout", "figma:abc123"),
        ),
        negative_examples=("https://www.figma.com/community",),
    ),
    RefPattern(
        id="google-docs-v1",
        tool_type="google",
        regex=re.compile(r"docs\.google\.com/document/d/([a-zA-Z0-9_-]{25,})"),
        normalize=lambda m: f"gdoc:{m.group(1)}",
        description="Google Docs document ids from links",
        examples=(
            ("https://docs.google.com/document/d/1234567890abcdefghijklmno/edit", "gdoc:1234567890abcdefghijklmno"),
        ),
        negative_examples=("https://docs.google.com/forms/d/123",),
    ),
    RefPattern(
        id="google-docs-rawdata-v1",
        tool_type="google",
        regex=re.compile(r"\"documentId\"\s*:\s*\"([a-zA-Z0-9_-]{25,})\""),
        normalize=lambda m: f"gdoc:{m.group(1)}",
        confidence="medium",
        description="Google Docs document ids in serialized payloads",
        examples=(('{"documentId": "1AbC123XYZ456_defGHI789jkl_99999"}', "gdoc:1AbC123XYZ456_defGHI789jkl_99999"),),
    ),
    RefPattern(
        id="google-sheets-v1",
        tool_type="google",
        regex=re.compile(r"docs\.google\.com/spreadsheets/d/([a-zA-Z0-9_-]{25,})"),
        normalize=lambda m: f"gsheet:{m.group(1)}",
        description="Google Sheets ids from links",
        examples=(
            ("https://docs.google.com/spreadsheets/d/1234567890abcdefghijklmno/edit", "gsheet:1234567890abcdefghijklmno"),
        ),
    ),
    RefPattern(
        id="google-slides-v1",
        tool_type="google",
        regex=re.compile(r"docs\.google\.com/presentation/d/([a-zA-Z0-9_-]{25,})"),
        normalize=lambda m: f"gslides:{m.group(1)}",
        description="Google Slides ids from links",
        examples=(
            ("https://docs.google.com/presentation/d/1234567890abcdefghijklmno/edit", "gslides:1234567890abcdefghijklmno"),
        ),
    ),
    RefPattern(
        id="google-drive-file-v1",
        tool_type="google",
        regex=re.compile(r"drive\.google\.com/file/d/([a-zA-Z0-9_-]{25,})"),
        normalize=lambda m: f"gdrive:{m.group(1)}",
        description="Google Drive file ids from links",
        examples=(
            ("Recording: https://drive.google.com/file/d/1234567890abcdefghijklmno/view", "gdrive:1234567890abcdefghijklmno"),
        ),
    ),
    RefPattern(
        id="google-drive-folder-v1",
        tool_type="google",
        regex=re.compile(r"drive\.google\.com/drive/folders/([a-zA-Z0-9_-]{25,})"),
        normalize=lambda m: f"gfolder:{m.group(1)}",
        description="Google Drive folder ids from links",
        examples=(
            ("https://drive.google.com/drive/folders/1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms", "gfolder:1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms"),
            ("Project files: https://drive.google.com/drive/folders/1AbC123_defGHI456-jklMNOpqrs?usp=drive_link", "gfolder:1AbC123_defGHI456-jklMNOpqrs"),
        ),
        negative_examples=("https://drive.google.com/drive/my-drive",),
    ),
    RefPattern(
        id="google-calendar-v1",
        tool_type="google",
        regex=re.compile(r"calendar\.google\.com/calendar/(?:event\?eid=|r/eventedit/)([a-zA-Z0-9_=-]+)"),
        normalize=lambda m: f"gcal:{m.group(1)}",
        confidence="medium",
        description="Google Calendar event ids from links",
        examples=(
            ("https://calendar.google.com/calendar/event?eid=NXJqbG1vNnRuYWJjZGVmZ2hpamtsbW5vcHFyc3R1dnd4eXoxMjM", "gcal:NXJqbG1vNnRuYWJjZGVmZ2hpamtsbW5vcHFyc3R1dnd4eXoxMjM"),
            ("https://calendar.google.com/calendar/r/eventedit/abc123def456ghi789", "gcal:abc123def456ghi789"),
        ),
        negative_examples=("https://calendar.google.com/calendar/", "https://calendar.google.com/calendar/r/month"),
    ),
    RefPattern(
        id="google-meet-v1",
        tool_type="google",
        regex=re.compile(r"meet\.google\.com/([a-z]{3,4}-[a-z]{3,4}-[a-z]{3,4})", re.IGNORECASE),
        normalize=lambda m: f"gmeet:{m.group(1).lower()}",
        confidence="medium",
        description="Google Meet codes from links",
        examples=(("Join: https://meet.google.com/abc-defg-hij", "gmeet:abc-defg-hij"),),
    ),
    RefPattern(
        id="google-meet-rawdata-v1",
        tool_type="google",
        regex=re.compile(r"\"meetCode\"\s*:\s*\"([a-z]{3,4}-[a-z]{3,4}-[a-z]{3,4})\"", re.IGNORECASE),
        normalize=lambda m: f"gmeet:{m.group(1).lower()}",
        confidence="medium",
        description="Google Meet codes in serialized payloads",
        examples=(('{"meetCode": "ABC-defg-hij"}', "gmeet:abc-defg-hij"),),
    ),
)


# ============================================================================
# Registry
# ============================================================================

class PatternRegistry:
    """Ordered collection of reference patterns"""

    def __init__(self, patterns: Optional[Iterable[RefPattern]] = None):
        self._patterns: List[RefPattern] = list(DEFAULT_PATTERNS if patterns is None else patterns)

    @property
    def patterns(self) -> List[RefPattern]:
        return list(self._patterns)

    def register(self, pattern: RefPattern) -> None:
        if any(p.id == pattern.id for p in self._patterns):
            raise ValueError(f"Pattern already registered: {pattern.id}")
        self._patterns.append(pattern)

    def get_validation_errors(self) -> List[str]:
        """Check every pattern against its own positive and negative examples"""
        errors = []
        for pattern in self._patterns:
            for text, expected in pattern.examples:
                found = [ref for ref, _, _ in _scan(pattern, text)]
                if expected not in found:
                    errors.append(
                        f"[{pattern.id}] expected {expected!r} from {text!r}, got {found!r}"
                    )
            for text in pattern.negative_examples:
                found = [ref for ref, _, _ in _scan(pattern, text)]
                if found:
                    errors.append(f"[{pattern.id}] should not match {text!r}, got {found!r}")
        return errors


def _scan(pattern: RefPattern, text: str) -> List[Tuple[str, int, int]]:
    results = []
    for match in pattern.regex.finditer(text):
        ref = pattern.normalize(match)
        if ref:
            results.append((ref, match.start(), match.end()))
    return results


# ============================================================================
# Extractor
# ============================================================================

class RefExtractor:
    """
    Extracts cross-tool references from text.

    Every registered pattern runs independently over the same text. Matches
    are ordered by position in the text and deduplicated, so each reference
    appears once, at its first occurrence.
    """

    def __init__(self, registry: Optional[PatternRegistry] = None):
        self._registry = registry if registry is not None else PatternRegistry()

    @property
    def registry(self) -> PatternRegistry:
        return self._registry

    def validate(self) -> None:
        """Raise PatternValidationError if any pattern disagrees with its examples"""
        if not self._registry.patterns:
            raise PatternValidationError("RefExtractor has no registered patterns")

        errors = self._registry.get_validation_errors()
        if errors:
            raise PatternValidationError(
                "RefExtractor validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )

    def extract_matches(
        self,
        text: Optional[str],
        pattern_ids: Optional[Sequence[str]] = None,
        tool_types: Optional[Sequence[str]] = None,
        min_confidence: Optional[str] = None,
    ) -> List[RefMatch]:
        """
        Extract references with their pattern and location.

        Args:
            text: Text to scan (None and blank text yield no matches)
            pattern_ids: Only run these patterns
            tool_types: Only run patterns for these tool types
            min_confidence: Skip patterns below this confidence ("high", "medium", "low")

        Returns:
            One RefMatch per distinct reference, in order of first occurrence
        """
        if not text or not text.strip():
            return []

        found: List[Tuple[int, int, RefMatch]] = []
        for order, pattern in enumerate(self._select_patterns(pattern_ids, tool_types, min_confidence)):
            try:
                for ref, start, end in _scan(pattern, text):
                    found.append((start, order, RefMatch(
                        ref=ref,
                        pattern_id=pattern.id,
                        confidence=pattern.confidence,
                        start=start,
                        end=end,
                    )))
            except Exception as e:
                logger.warning("Pattern %s failed, skipping: %s", pattern.id, e)

        found.sort(key=lambda item: (item[0], item[1]))

        seen = set()
        matches = []
        for _, _, match in found:
            if match.ref not in seen:
                seen.add(match.ref)
                matches.append(match)
        return matches

    def extract(self, text: Optional[str]) -> List[str]:
        """Extract deduplicated references from a single text"""
        return [m.ref for m in self.extract_matches(text)]

    def extract_from_multiple(self, texts: Iterable[Optional[str]]) -> List[str]:
        """Extract the union of references across several texts"""
        combined = "\n".join(t for t in texts if t)
        return self.extract(combined)

    def extract_from_object(self, obj: Any) -> List[str]:
        """Extract references from any JSON-serializable object"""
        if obj is None:
            return []
        try:
            serialized = json.dumps(obj, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as e:
            logger.debug("Could not serialize object for ref extraction: %s", e)
            return []
        return self.extract(serialized)

    def extract_from_activity(self, activity, include_source_url: bool = True) -> List[str]:
        """
        Extract references from every text source of an activity.

        Scans source id, title, description, the serialized raw payload and,
        unless disabled, the source URL.
        """
        texts = [
            getattr(activity, "source_id", None),
            activity.title,
            activity.description,
        ]
        raw_payload = getattr(activity, "raw_payload", None)
        if raw_payload:
            try:
                texts.append(json.dumps(raw_payload, ensure_ascii=False, default=str))
            except (TypeError, ValueError) as e:
                logger.debug("Could not serialize raw payload of %s: %s", activity.id, e)
        if include_source_url:
            texts.append(getattr(activity, "source_url", None))
        return self.extract_from_multiple(texts)

    def _select_patterns(
        self,
        pattern_ids: Optional[Sequence[str]],
        tool_types: Optional[Sequence[str]],
        min_confidence: Optional[str],
    ) -> List[RefPattern]:
        patterns = self._registry.patterns

        if pattern_ids is not None:
            allowed = set(pattern_ids)
            patterns = [p for p in patterns if p.id in allowed]

        if tool_types is not None:
            allowed = set(tool_types)
            patterns = [p for p in patterns if p.tool_type in allowed]

        if min_confidence:
            floor = CONFIDENCE_LEVELS[min_confidence]
            patterns = [p for p in patterns if CONFIDENCE_LEVELS[p.confidence] >= floor]

        return patterns
