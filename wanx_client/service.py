"""Generation service: submit, poll and extract behind a ServiceResult boundary.

Callers never need exception handling to render an outcome. Builder,
gateway and poller errors are converted into ``ServiceResult.fail`` with an
``ErrorKind``. Dry-run interrupts are the one exception that passes through.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from wanx_client.builders import GenerationParams, build_request
from wanx_client.client import (
    ConfigurationError,
    DashScopeClient,
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
    TextToImageParams,
    TextToVideoParams,
    VideoResult,
    VideoToVideoParams,
)
from wanx_client.poller import poll_until_terminal

logger = logging.getLogger(__name__)


def _task_id_of(body: Any) -> str | None:
    output = body.get("output") if isinstance(body, dict) else None
    task_id = output.get("task_id") if isinstance(output, dict) else None
    return task_id if isinstance(task_id, str) and task_id else None


class GenerationService:
    """One async call per generation type, each returning a ServiceResult.

    Usage::

        async with DashScopeClient(api_key="sk-...") as client:
            service = GenerationService(client)
            result = await service.generate_image(
                TextToImageParams(model="wan2.2-t2i-flash", prompt="a red bicycle")
            )
            if result.success:
                print([a.url for a in result.data])
    """

    def __init__(
        self,
        client: DashScopeClient,
        image_polling: PollSettings | None = None,
        video_polling: PollSettings | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.image_polling = image_polling or PollSettings(max_attempts=60, interval=2.0)
        self.video_polling = video_polling or PollSettings(max_attempts=100, interval=10.0)
        self._sleep = sleep

    async def run(
        self,
        request: GenerationRequest,
        polling: PollSettings | None = None,
    ) -> ServiceResult[tuple[str | None, list[GeneratedArtifact]]]:
        """Submit a built request and collect its artifacts.

        Returns:
            ``(task_id, artifacts)`` on success; ``task_id`` is None for
            synchronous models.
        """
        polling = polling or self.image_polling
        try:
            logger.info("Submitting %s request (async=%s)", request.model, request.is_async)
            body = await self.client.forward(request.api_url, request.body(), request.is_async)

            task_id: str | None = None
            if request.is_async:
                task_id = _task_id_of(body)
                if not task_id:
                    return ServiceResult.fail(
                        f"No task_id in task creation response: {body}", ErrorKind.UPSTREAM,
                    )
                handle = TaskHandle(task_id=task_id)
                logger.info("Task created: %s (%s)", handle.task_id, request.model)

                polled = await poll_until_terminal(
                    self.client,
                    handle.task_id,
                    polling.max_attempts,
                    polling.interval,
                    sleep=self._sleep,
                )
                if not polled.success:
                    logger.info("Task %s ended without result: %s", handle.task_id, polled.error)
                    return ServiceResult.fail(polled.error or "Task failed", polled.kind or ErrorKind.UPSTREAM)
                body = polled.data
                logger.info("Task %s succeeded after %.1fs", handle.task_id, handle.age_seconds)

            artifacts = extract_artifacts(request.model, body)
        except ConfigurationError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.CONFIGURATION)
        except UnsupportedModelError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.UNSUPPORTED_MODEL)
        except UpstreamError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.UPSTREAM)
        except ValueError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.INVALID_REQUEST)

        if not artifacts:
            logger.warning("%s reported success but produced no results", request.model)
        return ServiceResult.ok((task_id, artifacts))

    async def _generate(
        self,
        params: GenerationParams,
        polling: PollSettings,
    ) -> ServiceResult[tuple[str | None, list[GeneratedArtifact]]]:
        try:
            request = build_request(params)
        except UnsupportedModelError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.UNSUPPORTED_MODEL)
        except ValueError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.INVALID_REQUEST)
        return await self.run(request, polling)

    async def _images(self, params: GenerationParams) -> ServiceResult[list[GeneratedArtifact]]:
        result = await self._generate(params, self.image_polling)
        if not result.success:
            return ServiceResult.fail(result.error, result.kind)
        _, artifacts = result.data
        return ServiceResult.ok(artifacts)

    async def _video(self, params: GenerationParams) -> ServiceResult[VideoResult]:
        result = await self._generate(params, self.video_polling)
        if not result.success:
            return ServiceResult.fail(result.error, result.kind)
        task_id, artifacts = result.data
        return ServiceResult.ok(VideoResult(task_id=task_id or "", artifacts=artifacts))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_image(self, params: TextToImageParams) -> ServiceResult[list[GeneratedArtifact]]:
        """Text-to-image."""
        return await self._images(params)

    async def generate_image_to_image(self, params: ImageToImageParams) -> ServiceResult[list[GeneratedArtifact]]:
        """Image edit or style repaint of a reference image."""
        return await self._images(params)

    async def generate_video(self, params: TextToVideoParams) -> ServiceResult[VideoResult]:
        """Text-to-video."""
        return await self._video(params)

    async def generate_image_to_video(self, params: ImageToVideoParams) -> ServiceResult[VideoResult]:
        """Animate a still image (used as first frame)."""
        return await self._video(params)

    async def generate_video_to_video(self, params: VideoToVideoParams) -> ServiceResult[VideoResult]:
        """Restyle an existing video."""
        return await self._video(params)

    async def task_status(self, task_id: str) -> ServiceResult[dict]:
        """Look up a task once, without polling."""
        try:
            return ServiceResult.ok(await self.client.lookup(task_id))
        except ConfigurationError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.CONFIGURATION)
        except UpstreamError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.UPSTREAM)
        except ValueError as exc:
            return ServiceResult.fail(str(exc), ErrorKind.INVALID_REQUEST)
