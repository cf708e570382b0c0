"""Data models for the DashScope generation client."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")


class TaskStatus(str, Enum):
    """Status of an asynchronous DashScope task."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        """Map an upstream ``task_status`` value to a member, UNKNOWN if unrecognised."""
        if isinstance(raw, str):
            try:
                status = cls(raw.upper())
            except ValueError:
                return cls.UNKNOWN
            return status
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED, TaskStatus.UNKNOWN)


class ErrorKind(str, Enum):
    """Failure categories carried by a failed ServiceResult."""

    CONFIGURATION = "configuration"
    UPSTREAM = "upstream"
    UNSUPPORTED_MODEL = "unsupported_model"
    UNKNOWN_STATUS = "unknown_status"
    TIMEOUT = "timeout"
    TASK_FAILED = "task_failed"
    INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Uniform outcome of an operation that crosses the service boundary.

    Attributes:
        success: Whether the operation succeeded.
        data: Payload when ``success`` is true.
        error: Human-readable message when ``success`` is false.
        kind: Failure category when ``success`` is false.
    """
    success: bool
    data: T | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind) -> ServiceResult[T]:
        return cls(success=False, error=error, kind=kind)


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class GenerationRequest:
    """A shaped request for one upstream model.

    ``parameters`` is frozen on construction (mappings become read-only
    proxies, lists become tuples); ``body()`` returns a fresh plain copy.

    Attributes:
        model: DashScope model name, sent as the top-level ``model`` field.
        parameters: Model-specific body fields (``input``, ``parameters``).
        is_async: Whether the submission needs the async-processing header.
        api_url: Upstream endpoint the body is posted to.
    """
    model: str
    parameters: Mapping[str, Any]
    is_async: bool
    api_url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", _freeze(self.parameters))

    def body(self) -> dict[str, Any]:
        return {"model": self.model, **_thaw(self.parameters)}


@dataclass
class TaskHandle:
    """An upstream task acknowledged for asynchronous processing."""
    task_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def age_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.created_at).total_seconds()


@dataclass(frozen=True)
class GeneratedArtifact:
    """A generated image or video URL."""
    id: int
    url: str


@dataclass(frozen=True)
class VideoResult:
    """Outcome of a video generation task."""
    task_id: str
    artifacts: list[GeneratedArtifact] = field(default_factory=list)

    @property
    def url(self) -> str | None:
        return self.artifacts[0].url if self.artifacts else None


@dataclass(frozen=True)
class PollSettings:
    """Attempt budget and fixed delay (seconds) for task polling."""
    max_attempts: int = 60
    interval: float = 2.0


# ----------------------------------------------------------------------
# User-supplied parameters, one record per generation flow
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class TextToImageParams:
    """Text-to-image fields.

    Attributes:
        model: Model name (``qwen-image``, ``wan2.2-t2i-flash``, ...).
        prompt: Generation prompt.
        size: Output size as ``"<width>*<height>"``.
        count: Number of images to generate (1-4).
        negative_prompt: Things to avoid (Qwen-Image only).
        style: Optional style hint appended to the prompt.
    """
    model: str
    prompt: str
    size: str = "1024*1024"
    count: int = 1
    negative_prompt: str = ""
    style: str | None = None


@dataclass(frozen=True)
class ImageToImageParams:
    """Image-to-image fields (image edit and style repaint)."""
    model: str
    image_url: str
    prompt: str = ""
    count: int = 1
    style_index: int = 0
    function: str = "stylization_all"


@dataclass(frozen=True)
class TextToVideoParams:
    model: str
    prompt: str
    size: str = "1280*720"
    duration: int = 5


@dataclass(frozen=True)
class ImageToVideoParams:
    model: str
    image_url: str
    prompt: str = ""
    resolution: str = "720P"
    duration: int = 5


@dataclass(frozen=True)
class VideoToVideoParams:
    """Video style transform fields.

    Attributes:
        model: Model name (``video-style-transform``).
        video_url: Public URL of the source video.
        style: Style id (0 Japanese manga ... 7 ink wash).
        video_fps: Output frame rate (15, 20 or 25).
    """
    model: str
    video_url: str
    style: int = 0
    video_fps: int = 15
