"""DashScope (Wanx / Qwen-Image) client for async image and video generation."""

from wanx_client.builders import build_request
from wanx_client.client import (
    ConfigurationError,
    DashScopeClient,
    DashScopeError,
    DryRunInterrupt,
    UnsupportedModelError,
    UpstreamError,
)
from wanx_client.extractors import extract_artifacts
from wanx_client.models import (
    ErrorKind,
    GeneratedArtifact,
    GenerationRequest,
    ImageToImageParams,
    ImageToVideoParams,
    PollSettings,
    ServiceResult,
    TaskHandle,
    TaskStatus,
    TextToImageParams,
    TextToVideoParams,
    VideoResult,
    VideoToVideoParams,
)
from wanx_client.poller import poll_until_terminal
from wanx_client.service import GenerationService

__all__ = [
    "DashScopeClient",
    "DashScopeError",
    "ConfigurationError",
    "UpstreamError",
    "UnsupportedModelError",
    "DryRunInterrupt",
    "GenerationService",
    "build_request",
    "extract_artifacts",
    "poll_until_terminal",
    "ErrorKind",
    "GeneratedArtifact",
    "GenerationRequest",
    "PollSettings",
    "ServiceResult",
    "TaskHandle",
    "TaskStatus",
    "VideoResult",
    "TextToImageParams",
    "ImageToImageParams",
    "TextToVideoParams",
    "ImageToVideoParams",
    "VideoToVideoParams",
]
