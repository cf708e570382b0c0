"""Request builders: shape user fields into each model family's payload.

Builders are pure. ``build_request`` looks the model up in the registry and
dispatches on its ``ModelFamily``; every family has exactly one builder.
"""

from __future__ import annotations

from typing import Any, Callable, Union

from wanx_client.client import UnsupportedModelError
from wanx_client.models import (
    GenerationRequest,
    ImageToImageParams,
    ImageToVideoParams,
    TextToImageParams,
    TextToVideoParams,
    VideoToVideoParams,
)
from wanx_client.registry import VIDEO_SIZES, ModelFamily, ModelSpec, get_model

GenerationParams = Union[
    TextToImageParams,
    ImageToImageParams,
    TextToVideoParams,
    ImageToVideoParams,
    VideoToVideoParams,
]

MAX_PROMPT_LENGTH = 2000
MIN_OUTPUT_COUNT = 1
MAX_OUTPUT_COUNT = 4
AUTO_STYLE = "auto"
VIDEO_FPS_CHOICES = (15, 20, 25)
VIDEO_STYLE_COUNT = 8


def _check_prompt(prompt: str, required: bool = True) -> str:
    prompt = prompt.strip()
    if required and not prompt:
        raise ValueError("prompt is required")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValueError(f"prompt exceeds {MAX_PROMPT_LENGTH} characters ({len(prompt)})")
    return prompt


def _check_count(count: int) -> int:
    if not MIN_OUTPUT_COUNT <= count <= MAX_OUTPUT_COUNT:
        raise ValueError(f"count must be between {MIN_OUTPUT_COUNT} and {MAX_OUTPUT_COUNT}, got {count}")
    return count


def _check_url(url: str, name: str) -> str:
    if not url:
        raise ValueError(f"{name} is required")
    return url


def _expect(params: GenerationParams, kind: type, spec: ModelSpec) -> None:
    if not isinstance(params, kind):
        raise UnsupportedModelError(
            f"Model {spec.name!r} ({spec.family.value}) does not accept {type(params).__name__}"
        )


def _styled_prompt(prompt: str, style: str | None) -> str:
    if style and style.lower() != AUTO_STYLE:
        return f"{prompt} Image style: {style}."
    return prompt


# ----------------------------------------------------------------------
# Per-family builders
# ----------------------------------------------------------------------

def _build_qwen_image(params: TextToImageParams, spec: ModelSpec) -> dict[str, Any]:
    _expect(params, TextToImageParams, spec)
    prompt = _styled_prompt(_check_prompt(params.prompt), params.style)
    return {
        "input": {
            "messages": [
                {"role": "user", "content": [{"text": prompt}]},
            ],
        },
        "parameters": {
            "negative_prompt": params.negative_prompt,
            "prompt_extend": True,
            "watermark": False,
            "size": params.size,
            "n": _check_count(params.count),
        },
    }


def _build_text_to_image(params: TextToImageParams, spec: ModelSpec) -> dict[str, Any]:
    _expect(params, TextToImageParams, spec)
    prompt = _styled_prompt(_check_prompt(params.prompt), params.style)
    return {
        "input": {"prompt": prompt},
        "parameters": {
            "size": params.size,
            "n": _check_count(params.count),
        },
    }


def _build_image_edit(params: ImageToImageParams, spec: ModelSpec) -> dict[str, Any]:
    _expect(params, ImageToImageParams, spec)
    return {
        "input": {
            "function": params.function,
            "prompt": _check_prompt(params.prompt),
            "base_image_url": _check_url(params.image_url, "image_url"),
        },
        "parameters": {"n": _check_count(params.count)},
    }


def _build_style_repaint(params: ImageToImageParams, spec: ModelSpec) -> dict[str, Any]:
    _expect(params, ImageToImageParams, spec)
    return {
        "input": {
            "image_url": _check_url(params.image_url, "image_url"),
            "style_index": params.style_index,
        },
    }


def _build_text_to_video(params: TextToVideoParams, spec: ModelSpec) -> dict[str, Any]:
    _expect(params, TextToVideoParams, spec)
    allowed = {size for level in spec.quality_levels for size in VIDEO_SIZES[level].values()}
    if params.size not in allowed:
        raise ValueError(
            f"Size {params.size!r} is not available for {spec.name} "
            f"(quality levels: {', '.join(spec.quality_levels)})"
        )
    return {
        "input": {"prompt": _check_prompt(params.prompt)},
        "parameters": {
            "size": params.size,
            "duration": params.duration,
        },
    }


def _build_image_to_video(params: ImageToVideoParams, spec: ModelSpec) -> dict[str, Any]:
    _expect(params, ImageToVideoParams, spec)
    resolution = params.resolution.upper()
    if resolution not in spec.quality_levels:
        raise ValueError(
            f"Resolution {params.resolution!r} is not available for {spec.name} "
            f"(expected one of: {', '.join(spec.quality_levels)})"
        )
    return {
        "input": {
            "prompt": _check_prompt(params.prompt, required=False),
            "img_url": _check_url(params.image_url, "image_url"),
        },
        "parameters": {
            "resolution": resolution,
            "duration": params.duration,
        },
    }


def _build_video_style_transform(params: VideoToVideoParams, spec: ModelSpec) -> dict[str, Any]:
    _expect(params, VideoToVideoParams, spec)
    if not 0 <= params.style < VIDEO_STYLE_COUNT:
        raise ValueError(f"style must be between 0 and {VIDEO_STYLE_COUNT - 1}, got {params.style}")
    if params.video_fps not in VIDEO_FPS_CHOICES:
        raise ValueError(f"video_fps must be one of {VIDEO_FPS_CHOICES}, got {params.video_fps}")
    return {
        "input": {"video_url": _check_url(params.video_url, "video_url")},
        "parameters": {
            "style": params.style,
            "video_fps": params.video_fps,
        },
    }


BUILDERS: dict[ModelFamily, Callable[[Any, ModelSpec], dict[str, Any]]] = {
    ModelFamily.QWEN_IMAGE: _build_qwen_image,
    ModelFamily.TEXT_TO_IMAGE: _build_text_to_image,
    ModelFamily.IMAGE_EDIT: _build_image_edit,
    ModelFamily.STYLE_REPAINT: _build_style_repaint,
    ModelFamily.TEXT_TO_VIDEO: _build_text_to_video,
    ModelFamily.IMAGE_TO_VIDEO: _build_image_to_video,
    ModelFamily.VIDEO_STYLE_TRANSFORM: _build_video_style_transform,
}


def build_request(params: GenerationParams) -> GenerationRequest:
    """Shape user-supplied fields into the request for ``params.model``.

    Raises:
        UnsupportedModelError: If the model is unknown or belongs to another flow.
        ValueError: If a field is missing or out of range.
    """
    spec = get_model(params.model)
    builder = BUILDERS[spec.family]
    return GenerationRequest(
        model=spec.name,
        parameters=builder(params, spec),
        is_async=spec.is_async,
        api_url=spec.api_url,
    )
