from __future__ import annotations

import httpx
import pytest

from tests.conftest import RecordingHandler, task_body
from wanx_client.models import (
    ErrorKind,
    GeneratedArtifact,
    ImageToImageParams,
    ImageToVideoParams,
    PollSettings,
    TextToImageParams,
    TextToVideoParams,
    VideoToVideoParams,
)
from wanx_client.service import GenerationService


def _async_route(*task_bodies: dict, task_id: str = "T1"):
    """POST creates task_id; successive GETs replay task_bodies (last one repeats)."""
    served = []

    def route(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"request_id": "r", "output": {"task_id": task_id, "task_status": "PENDING"}})
        body = task_bodies[min(len(served), len(task_bodies) - 1)]
        served.append(body)
        return httpx.Response(200, json=body)

    return route


@pytest.mark.asyncio
async def test_sync_text_to_image(make_client, sleep):
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"output": {"results": [{"url": "https://x/y.jpg"}]}}))

    async with make_client(handler) as client:
        result = await GenerationService(client, sleep=sleep).generate_image(
            TextToImageParams(model="wan2.2-t2i-flash", prompt="a red bicycle", size="1024*1024", count=1)
        )

    assert result.success is True
    assert result.data == [GeneratedArtifact(id=0, url="https://x/y.jpg")]
    assert len(handler.requests) == 1
    assert "X-DashScope-Async" not in handler.requests[0].headers
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_async_image_edit_polls_until_succeeded(make_client, sleep):
    handler = RecordingHandler(_async_route(
        task_body("RUNNING"),
        task_body("RUNNING"),
        task_body("SUCCEEDED", results=[{"url": "https://x/edited.png"}]),
    ))

    async with make_client(handler) as client:
        service = GenerationService(client, image_polling=PollSettings(max_attempts=10, interval=2.0), sleep=sleep)
        result = await service.generate_image_to_image(
            ImageToImageParams(model="wanx2.1-imageedit", image_url="https://x/in.png", prompt="make it watercolor")
        )

    assert result.success
    assert [a.url for a in result.data] == ["https://x/edited.png"]
    assert len(handler.lookups()) == 3
    assert all(str(r.url).endswith("/api/v1/tasks/T1") for r in handler.lookups())
    assert handler.requests[0].headers["X-DashScope-Async"] == "enable"
    assert sleep.calls == [2.0, 2.0]


@pytest.mark.asyncio
async def test_async_video_failure_surfaces_upstream_message(make_client, sleep):
    failed = task_body("FAILED")
    failed["task_metrics"] = {"error_message": "quota exceeded"}
    handler = RecordingHandler(_async_route(failed))

    async with make_client(handler) as client:
        result = await GenerationService(client, sleep=sleep).generate_video(
            TextToVideoParams(model="wanx2.1-t2v-turbo", prompt="sunset", size="1280*720")
        )

    assert not result.success
    assert result.error == "quota exceeded"
    assert result.kind is ErrorKind.TASK_FAILED
    assert len(handler.lookups()) == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_image_to_video_returns_video_result(make_client, sleep):
    handler = RecordingHandler(_async_route(
        task_body("PENDING", task_id="V9"),
        task_body("SUCCEEDED", task_id="V9", video_url="https://x/clip.mp4"),
        task_id="V9",
    ))

    async with make_client(handler) as client:
        service = GenerationService(client, video_polling=PollSettings(max_attempts=5, interval=10.0), sleep=sleep)
        result = await service.generate_image_to_video(
            ImageToVideoParams(model="wanx2.1-i2v-turbo", image_url="https://x/a.png", resolution="480P")
        )

    assert result.success
    assert result.data.task_id == "V9"
    assert result.data.url == "https://x/clip.mp4"
    assert sleep.calls == [10.0]


@pytest.mark.asyncio
async def test_video_to_video_times_out(make_client, sleep):
    handler = RecordingHandler(_async_route(task_body("RUNNING")))

    async with make_client(handler) as client:
        service = GenerationService(client, video_polling=PollSettings(max_attempts=3, interval=1.0), sleep=sleep)
        result = await service.generate_video_to_video(
            VideoToVideoParams(model="video-style-transform", video_url="https://x/v.mp4")
        )

    assert result.kind is ErrorKind.TIMEOUT
    assert len(handler.lookups()) == 3
    assert sleep.calls == [1.0, 1.0]


@pytest.mark.asyncio
async def test_success_without_results_is_an_empty_list(make_client, sleep):
    handler = RecordingHandler(_async_route(task_body("SUCCEEDED", results=[])))

    async with make_client(handler) as client:
        result = await GenerationService(client, sleep=sleep).generate_image_to_image(
            ImageToImageParams(model="wanx-style-repaint-v1", image_url="https://x/face.jpg")
        )

    assert result.success
    assert result.data == []


@pytest.mark.asyncio
async def test_missing_task_id_is_an_upstream_failure(make_client, sleep):
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"output": {}}))

    async with make_client(handler) as client:
        result = await GenerationService(client, sleep=sleep).generate_video(
            TextToVideoParams(model="wanx2.1-t2v-turbo", prompt="sunset")
        )

    assert result.kind is ErrorKind.UPSTREAM
    assert handler.lookups() == []


@pytest.mark.asyncio
async def test_errors_become_results(make_client, sleep):
    handler = RecordingHandler(lambda request: httpx.Response(401, json={"code": "InvalidApiKey", "message": "bad key"}))

    async with make_client(handler) as client:
        service = GenerationService(client, sleep=sleep)
        upstream = await service.generate_image(TextToImageParams(model="qwen-image", prompt="a cat"))
        unsupported = await service.generate_image(TextToImageParams(model="Hunyuan", prompt="a cat"))
        invalid = await service.generate_image(TextToImageParams(model="qwen-image", prompt=""))

    assert upstream.kind is ErrorKind.UPSTREAM
    assert "InvalidApiKey" in upstream.error
    assert unsupported.kind is ErrorKind.UNSUPPORTED_MODEL
    assert invalid.kind is ErrorKind.INVALID_REQUEST
    assert len(handler.requests) == 1


@pytest.mark.asyncio
async def test_missing_credential_is_a_configuration_failure(make_client, sleep):
    handler = RecordingHandler(lambda request: httpx.Response(200, json={}))

    async with make_client(handler, api_key=None) as client:
        result = await GenerationService(client, sleep=sleep).generate_image(
            TextToImageParams(model="wan2.2-t2i-flash", prompt="a red bicycle")
        )

    assert result.kind is ErrorKind.CONFIGURATION
    assert handler.requests == []


@pytest.mark.asyncio
async def test_task_status_lookup(make_client):
    handler = RecordingHandler(lambda request: httpx.Response(200, json=task_body("RUNNING")))

    async with make_client(handler) as client:
        service = GenerationService(client)
        found = await service.task_status("T1")
        empty = await service.task_status("")

    assert found.success
    assert found.data["output"]["task_status"] == "RUNNING"
    assert empty.kind is ErrorKind.INVALID_REQUEST


@pytest.mark.asyncio
async def test_undecodable_response_is_an_upstream_failure(make_client, sleep):
    def route(request: httpx.Request) -> httpx.Response:
        raise httpx.DecodingError("bad gzip", request=request)

    async with make_client(RecordingHandler(route)) as client:
        result = await GenerationService(client, sleep=sleep).generate_image(
            TextToImageParams(model="wan2.2-t2i-flash", prompt="a red bicycle")
        )

    assert result.kind is ErrorKind.UPSTREAM
    assert "bad gzip" in result.error


@pytest.mark.asyncio
async def test_undecodable_lookup_is_retried(make_client, sleep):
    lookups = []

    def route(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"output": {"task_id": "T1", "task_status": "PENDING"}})
        lookups.append(request)
        if len(lookups) == 1:
            raise httpx.DecodingError("bad gzip", request=request)
        return httpx.Response(200, json=task_body("SUCCEEDED", video_url="https://x/clip.mp4"))

    async with make_client(RecordingHandler(route)) as client:
        service = GenerationService(client, video_polling=PollSettings(max_attempts=3, interval=10.0), sleep=sleep)
        result = await service.generate_video(TextToVideoParams(model="wanx2.1-t2v-turbo", prompt="sunset"))

    assert result.success
    assert result.data.url == "https://x/clip.mp4"
    assert len(lookups) == 2
    assert sleep.calls == [10.0]
