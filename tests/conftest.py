"""
Root conftest.py: shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • Async tests are marked explicitly with @pytest.mark.asyncio.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from domain.models import CandidateFile, UploadForm
from shared_utils.error_handler import UploadError


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ---------------------------------------------------------------------------
# Feedback record fixtures
# ---------------------------------------------------------------------------

def _base_record(**overrides: Any) -> Dict[str, Any]:
    """A backend feedback record without any multi-AI payload."""
    record: Dict[str, Any] = {
        "id": 42,
        "audioId": 7,
        "overallScore": 50,
        "communicationScore": 60,
        "engagementScore": 55,
        "instructionScore": 65,
        "summary": "Clear session with good strengths in demonstration.",
        "strengths": ["Clear demonstrations"],
        "improvements": ["Ask more open questions"],
        "keyInfo": {"totalWords": 1200, "wordsPerMinute": 110},
        "questioning": {"totalQuestions": 8, "openQuestions": 3},
        "language": {"clarity": 7},
        "coachBehaviours": {"toneAnalysis": "calm"},
        "playerEngagement": {"interactionCount": 14},
        "intendedOutcomes": {"outcomesIdentified": ["passing"]},
        "visualAnalysis": None,
    }
    record.update(overrides)
    return record


def _current_payload(**overrides: Any) -> Dict[str, Any]:
    """A three-provider multi-AI payload in the current layout."""
    payload: Dict[str, Any] = {
        "openaiAnalysis": {
            "overallScore": 90,
            "detailed": {
                "communicationScore": 80,
                "questioning": {"openQuestions": 6, "questioningStyle": "socratic"},
                "keyInfo": {"totalWords": 1250},
            },
        },
        "claudeAnalysis": {
            "pedagogicalInsights": ["Scaffold the drill"],
            "instructionalDesign": "Progressive overload",
            "learningTheoryApplication": "Constructivist",
        },
        "perplexityAnalysis": {
            "researchEvidence": ["Study A"],
            "bestPractices": ["Practice B"],
            "industryBenchmarks": ["Benchmark C"],
        },
        "synthesizedInsights": {
            "overallScore": 95,
            "keyStrengths": ["Energy"],
            "priorityDevelopmentAreas": ["Wait time"],
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def base_record() -> Dict[str, Any]:
    return _base_record()


@pytest.fixture()
def current_record() -> Dict[str, Any]:
    """Base record carrying a JSON-encoded current-layout payload."""
    return _base_record(multiAiAnalysis=json.dumps(_current_payload()))


@pytest.fixture()
def legacy_record() -> Dict[str, Any]:
    return _base_record(
        multiAiAnalysis={
            "openai": {
                "overallScore": 70,
                "questioning": {"openQuestions": 5},
            }
        }
    )


# ---------------------------------------------------------------------------
# Batch upload fixtures
# ---------------------------------------------------------------------------

def _candidate(
    filename: str = "session.mp3",
    content_type: str = "audio/mpeg",
    size_bytes: Optional[int] = None,
    content: bytes = b"ID3-fake-audio",
) -> CandidateFile:
    return CandidateFile(
        filename=filename,
        content_type=content_type,
        size_bytes=len(content) if size_bytes is None else size_bytes,
        content=content,
    )


class FakeUploadClient:
    """In-memory UploadClientPort.

    Reports the configured progress steps for every file, then succeeds, or
    raises UploadError for filenames listed in ``fail``.
    """

    def __init__(self, fail: Optional[List[str]] = None, steps: Optional[List[int]] = None) -> None:
        self.fail = set(fail or [])
        self.steps = steps if steps is not None else [25, 50, 99]
        self.calls: List[tuple] = []

    async def upload(
        self,
        candidate: CandidateFile,
        form: UploadForm,
        on_progress: Callable[[int], None],
    ) -> Dict[str, Any]:
        self.calls.append((candidate.filename, form))
        for step in self.steps:
            on_progress(step)
        if candidate.filename in self.fail:
            raise UploadError("Upload failed", filename=candidate.filename, status_code=500)
        return {"id": len(self.calls), "title": form.title}


@pytest.fixture()
def fake_upload_client() -> FakeUploadClient:
    return FakeUploadClient()


@pytest.fixture()
def make_base_record() -> Callable[..., Dict[str, Any]]:
    """Factory: base record with keyword overrides."""
    return _base_record


@pytest.fixture()
def make_current_payload() -> Callable[..., Dict[str, Any]]:
    """Factory: current-layout payload with keyword overrides."""
    return _current_payload


@pytest.fixture()
def make_candidate() -> Callable[..., CandidateFile]:
    """Factory: in-memory CandidateFile."""
    return _candidate


@pytest.fixture()
def upload_client_factory() -> Callable[..., FakeUploadClient]:
    return FakeUploadClient
