"""
Pure domain models for the Coaching Feedback Engine.

These models carry NO transport dependencies. They represent the raw feedback
record handed over by the backend, the tagged parse result of its multi-AI
payload, the normalized view consumed by presentation, and the state of one
batch upload job.
"""

from __future__ import annotations

import copy
import io
import mimetypes
import os
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, BinaryIO, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from shared_utils.constants import EXTENSION_MEDIA_TYPES


# ---------------------------------------------------------------------------
# Raw record (backend collaborator)
# ---------------------------------------------------------------------------


class RawFeedbackRecord(BaseModel):
    """Feedback record exactly as the backend returned it.

    ``base_fields`` keeps every key of the payload untouched; the four
    dedicated attributes are the keys whose shape is known to vary between
    analyser versions.
    """

    model_config = ConfigDict(frozen=True)

    base_fields: Dict[str, Any] = Field(default_factory=dict)
    multi_ai_analysis: Any = None
    strengths: Any = None
    improvements: Any = None
    summary: Any = None

    @classmethod
    def from_api(cls, payload: Any) -> "RawFeedbackRecord":
        """Build a record from a decoded JSON object.

        Anything other than a mapping yields an empty record. The payload is
        deep-copied so later changes to it never leak into the record.
        """
        data: Dict[str, Any] = copy.deepcopy(dict(payload)) if isinstance(payload, Mapping) else {}
        return cls(
            base_fields=data,
            multi_ai_analysis=data.get("multiAiAnalysis"),
            strengths=data.get("strengths"),
            improvements=data.get("improvements"),
            summary=data.get("summary"),
        )


# ---------------------------------------------------------------------------
# Provider payload parse result (tagged union)
# ---------------------------------------------------------------------------


class PayloadShape(str, Enum):
    """Discriminator values of ParsedProviderPayload."""

    NONE = "none"
    CURRENT = "current"
    LEGACY = "legacy"
    UNPARSEABLE = "unparseable"


class NoAnalysis(BaseModel):
    """No multi-AI payload on the record."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class CurrentShapeAnalysis(BaseModel):
    """Three-provider payload with synthesized insights.

    ``openai`` is the effective OpenAI block (``openaiAnalysis.detailed`` when
    present, otherwise ``openaiAnalysis`` itself).
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["current"] = "current"
    openai: Dict[str, Any] = Field(default_factory=dict)
    claude: Dict[str, Any] = Field(default_factory=dict)
    perplexity: Dict[str, Any] = Field(default_factory=dict)
    synthesized: Dict[str, Any] = Field(default_factory=dict)
    openai_overall_score: Any = None


class LegacyShapeAnalysis(BaseModel):
    """Older payload keyed by a single ``openai`` block."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["legacy"] = "legacy"
    openai: Dict[str, Any] = Field(default_factory=dict)


class Unparseable(BaseModel):
    """Payload present but unusable. Treated like NoAnalysis downstream."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unparseable"] = "unparseable"
    reason: str = ""


ParsedProviderPayload = Annotated[
    Union[NoAnalysis, CurrentShapeAnalysis, LegacyShapeAnalysis, Unparseable],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Normalized view
# ---------------------------------------------------------------------------


class AnalysisSource(str, Enum):
    """Which payload shape contributed to a view."""

    BASE = "base"
    CURRENT = "current"
    LEGACY = "legacy"


class ListProvenance(str, Enum):
    """Where the entries of a strengths/improvements list came from."""

    RECORD = "record"
    SUMMARY_HEURISTIC = "summary_heuristic"
    NONE = "none"


def freeze(value: Any) -> Any:
    """Read-only copy: mappings become MappingProxyType, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Plain dict/list copy of a frozen value, for serialization."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


class TopicBlock(BaseModel):
    """One structured feedback section.

    ``content`` holds the primary analysis (base record merged with the
    primary provider). ``annotations`` holds supplementary-provider material
    and can never shadow a primary key. Both are deeply read-only; nested
    lists are stored as tuples.
    """

    model_config = ConfigDict(frozen=True)

    content: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    annotations: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("content", "annotations", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(value)

    @field_serializer("content", "annotations")
    def _as_plain(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return thaw(value)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.content:
            return self.content[key]
        return self.annotations.get(key, default)

    def flatten(self) -> Dict[str, Any]:
        """Single mapping for rendering; primary keys win over annotations."""
        merged = dict(self.annotations)
        merged.update(self.content)
        return merged

    def is_empty(self) -> bool:
        return not self.content and not self.annotations


class NormalizedFeedbackView(BaseModel):
    """UI-ready feedback, rebuilt on every fetch of the raw record."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    feedback_id: Optional[str] = None
    analysis_source: AnalysisSource = AnalysisSource.BASE

    overall_score: float = 0
    communication_score: float = 0
    engagement_score: float = 0
    instruction_score: float = 0
    summary: str = ""

    key_info: TopicBlock = Field(default_factory=TopicBlock)
    questioning: TopicBlock = Field(default_factory=TopicBlock)
    language: TopicBlock = Field(default_factory=TopicBlock)
    coach_behaviours: TopicBlock = Field(default_factory=TopicBlock)
    player_engagement: TopicBlock = Field(default_factory=TopicBlock)
    intended_outcomes: TopicBlock = Field(default_factory=TopicBlock)
    visual_analysis: TopicBlock = Field(default_factory=TopicBlock)

    strengths: Tuple[str, ...] = ()
    improvements: Tuple[str, ...] = ()
    strengths_provenance: ListProvenance = ListProvenance.NONE
    improvements_provenance: ListProvenance = ListProvenance.NONE
    comprehensive_strengths: Tuple[str, ...] = ()
    comprehensive_improvements: Tuple[str, ...] = ()

    def topic(self, key: str) -> TopicBlock:
        """Look up a topic block by its wire key (e.g. ``coachBehaviours``)."""
        for name in type(self).model_fields:
            value = getattr(self, name)
            if to_camel(name) == key and isinstance(value, TopicBlock):
                return value
        raise KeyError(key)


# ---------------------------------------------------------------------------
# Batch upload
# ---------------------------------------------------------------------------


class CandidateFile(BaseModel):
    """A file offered for upload, backed by a path on disk or by bytes."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content_type: str = ""
    size_bytes: int = 0
    path: Optional[str] = None
    content: Optional[bytes] = Field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: str) -> "CandidateFile":
        filename = os.path.basename(path)
        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        content_type = EXTENSION_MEDIA_TYPES.get(extension) or mimetypes.guess_type(filename)[0] or ""
        return cls(
            filename=filename,
            content_type=content_type,
            size_bytes=os.path.getsize(path),
            path=path,
        )

    @property
    def title(self) -> str:
        """Session title sent with the upload: the name up to its first dot."""
        return self.filename.split(".")[0] or self.filename

    def open(self) -> BinaryIO:
        if self.content is not None:
            return io.BytesIO(self.content)
        if self.path is not None:
            return open(self.path, "rb")
        raise ValueError(f"{self.filename} has neither content nor path")


class UploadForm(BaseModel):
    """Text fields of the multipart upload request."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    filesize: int

    @classmethod
    def for_batch(cls, candidate: CandidateFile) -> "UploadForm":
        return cls(
            title=candidate.title,
            description=f"Batch upload: {candidate.filename}",
            filesize=candidate.size_bytes,
        )

    def to_form_fields(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "filesize": str(self.filesize),
        }


class RejectionReason(str, Enum):
    """Why a candidate was refused at selection time."""

    INVALID_TYPE = "invalid_type"
    FILE_TOO_LARGE = "file_too_large"


class FileRejection(BaseModel):
    """A candidate refused at selection time."""

    filename: str
    reason: RejectionReason
    message: str


class SelectionResult(BaseModel):
    """Outcome of one select_files call."""

    accepted: List[CandidateFile] = []
    rejected: List[FileRejection] = []
    truncated_count: int = 0  # valid files dropped by the batch cap


class BatchState(str, Enum):
    """Batch job lifecycle."""

    IDLE = "idle"
    UPLOADING = "uploading"
    COMPLETED = "completed"


class FileUploadStatus(str, Enum):
    """Per-file status inside a running batch."""

    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FileUploadState(BaseModel):
    """Progress and outcome of one file of a batch."""

    index: int
    filename: str
    status: FileUploadStatus = FileUploadStatus.PENDING
    progress: int = 0
    error: Optional[str] = None
    response: Dict[str, Any] = {}


class BatchProgress(BaseModel):
    """Snapshot pushed to progress listeners."""

    overall: int
    file_index: Optional[int] = None
    filename: Optional[str] = None
    file_status: Optional[FileUploadStatus] = None
    file_progress: int = 0


class BatchOutcome(str, Enum):
    """Terminal classification of a batch."""

    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL = "partial"
    ALL_FAILED = "all_failed"


class BatchUploadResult(BaseModel):
    """Report generated after a batch completes."""

    total: int
    succeeded: List[int] = []
    failed: List[int] = []
    files: List[FileUploadState] = []
    overall_progress: int = 0
    duration_ms: float = 0.0

    @property
    def outcome(self) -> BatchOutcome:
        if not self.failed:
            return BatchOutcome.ALL_SUCCEEDED
        if not self.succeeded:
            return BatchOutcome.ALL_FAILED
        return BatchOutcome.PARTIAL

    @property
    def is_total_failure(self) -> bool:
        return self.total > 0 and len(self.failed) == self.total
