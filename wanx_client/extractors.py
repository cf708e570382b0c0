"""Result extractors: map terminal response bodies to artifact lists.

Missing or malformed fields produce an empty list, never an exception.
"""

from __future__ import annotations

from typing import Any, Callable

from wanx_client.models import GeneratedArtifact
from wanx_client.registry import ModelFamily, get_model


def _output(body: Any) -> dict:
    output = body.get("output") if isinstance(body, dict) else None
    return output if isinstance(output, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _choice_images(body: Any) -> list[str]:
    urls = []
    for choice in _as_list(_output(body).get("choices")):
        message = choice.get("message") if isinstance(choice, dict) else None
        content = _as_list(message.get("content")) if isinstance(message, dict) else []
        image = next(
            (item["image"] for item in content if isinstance(item, dict) and item.get("image")),
            None,
        )
        if image:
            urls.append(image)
    return urls


def _result_urls(body: Any) -> list[str]:
    return [
        item["url"]
        for item in _as_list(_output(body).get("results"))
        if isinstance(item, dict) and item.get("url")
    ]


def _output_field(key: str) -> Callable[[Any], list[str]]:
    def extract(body: Any) -> list[str]:
        url = _output(body).get(key)
        return [url] if isinstance(url, str) and url else []
    return extract


EXTRACTORS: dict[ModelFamily, Callable[[Any], list[str]]] = {
    ModelFamily.QWEN_IMAGE: _choice_images,
    ModelFamily.TEXT_TO_IMAGE: _result_urls,
    ModelFamily.IMAGE_EDIT: _result_urls,
    ModelFamily.STYLE_REPAINT: _result_urls,
    ModelFamily.TEXT_TO_VIDEO: _output_field("video_url"),
    ModelFamily.IMAGE_TO_VIDEO: _output_field("video_url"),
    ModelFamily.VIDEO_STYLE_TRANSFORM: _output_field("output_video_url"),
}


def extract_artifacts(model: str, body: Any) -> list[GeneratedArtifact]:
    """Collect generated artifact URLs from a terminal response body.

    Args:
        model: Model name the request was built for.
        body: Parsed upstream JSON (synchronous response or SUCCEEDED task).

    Returns:
        Artifacts numbered by position; empty when the body has no results.

    Raises:
        UnsupportedModelError: If the model is not registered.
    """
    family = get_model(model).family
    urls = EXTRACTORS[family](body)
    return [GeneratedArtifact(id=index, url=url) for index, url in enumerate(urls)]
