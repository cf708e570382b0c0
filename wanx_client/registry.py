"""Supported DashScope models, their families and endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from wanx_client.client import UnsupportedModelError

_SERVICES = "https://dashscope.aliyuncs.com/api/v1/services/aigc"

MULTIMODAL_GENERATION_URL = f"{_SERVICES}/multimodal-generation/generation"
TEXT_TO_IMAGE_URL = f"{_SERVICES}/text2image/image-synthesis"
IMAGE_TO_IMAGE_URL = f"{_SERVICES}/image2image/image-synthesis"
IMAGE_GENERATION_URL = f"{_SERVICES}/image-generation/generation"
VIDEO_SYNTHESIS_URL = f"{_SERVICES}/video-generation/video-synthesis"


class ModelFamily(str, Enum):
    """Request/response shape shared by a group of models."""

    QWEN_IMAGE = "qwen_image"
    TEXT_TO_IMAGE = "text_to_image"
    IMAGE_EDIT = "image_edit"
    STYLE_REPAINT = "style_repaint"
    TEXT_TO_VIDEO = "text_to_video"
    IMAGE_TO_VIDEO = "image_to_video"
    VIDEO_STYLE_TRANSFORM = "video_style_transform"


@dataclass(frozen=True)
class ModelSpec:
    """A registered model.

    Attributes:
        name: DashScope model name.
        family: Payload/response family.
        api_url: Endpoint the model is served from.
        is_async: Whether submissions create a task that must be polled.
        description: Short human-readable label.
        quality_levels: Video resolutions the model accepts (video models only).
    """
    name: str
    family: ModelFamily
    api_url: str
    is_async: bool
    description: str = ""
    quality_levels: tuple[str, ...] = field(default_factory=tuple)


_REGISTRY: tuple[ModelSpec, ...] = (
    ModelSpec("qwen-image", ModelFamily.QWEN_IMAGE, MULTIMODAL_GENERATION_URL, False,
              "Qwen-Image text-to-image"),
    ModelSpec("wan2.2-t2i-flash", ModelFamily.TEXT_TO_IMAGE, TEXT_TO_IMAGE_URL, False,
              "Wan 2.2 text-to-image, flash"),
    ModelSpec("wan2.2-t2i-plus", ModelFamily.TEXT_TO_IMAGE, TEXT_TO_IMAGE_URL, False,
              "Wan 2.2 text-to-image, plus"),
    ModelSpec("wanx2.1-imageedit", ModelFamily.IMAGE_EDIT, IMAGE_TO_IMAGE_URL, True,
              "Wanx 2.1 general image editing"),
    ModelSpec("wanx-style-repaint-v1", ModelFamily.STYLE_REPAINT, IMAGE_GENERATION_URL, True,
              "Wanx portrait style repaint"),
    ModelSpec("wanx2.1-t2v-turbo", ModelFamily.TEXT_TO_VIDEO, VIDEO_SYNTHESIS_URL, True,
              "Wanx 2.1 text-to-video, turbo", ("480P", "720P")),
    ModelSpec("wanx2.1-t2v-plus", ModelFamily.TEXT_TO_VIDEO, VIDEO_SYNTHESIS_URL, True,
              "Wanx 2.1 text-to-video, plus", ("720P",)),
    ModelSpec("wan2.2-t2v-plus", ModelFamily.TEXT_TO_VIDEO, VIDEO_SYNTHESIS_URL, True,
              "Wan 2.2 text-to-video, plus", ("480P", "1080P")),
    ModelSpec("wanx2.1-i2v-turbo", ModelFamily.IMAGE_TO_VIDEO, VIDEO_SYNTHESIS_URL, True,
              "Wanx 2.1 image-to-video, turbo", ("480P", "720P")),
    ModelSpec("wanx2.1-i2v-plus", ModelFamily.IMAGE_TO_VIDEO, VIDEO_SYNTHESIS_URL, True,
              "Wanx 2.1 image-to-video, plus", ("720P",)),
    ModelSpec("wan2.2-i2v-flash", ModelFamily.IMAGE_TO_VIDEO, VIDEO_SYNTHESIS_URL, True,
              "Wan 2.2 image-to-video, flash", ("480P", "720P")),
    ModelSpec("wan2.2-i2v-plus", ModelFamily.IMAGE_TO_VIDEO, VIDEO_SYNTHESIS_URL, True,
              "Wan 2.2 image-to-video, plus", ("480P", "1080P")),
    ModelSpec("video-style-transform", ModelFamily.VIDEO_STYLE_TRANSFORM, VIDEO_SYNTHESIS_URL, True,
              "Wanx video style transform"),
)

MODELS: dict[str, ModelSpec] = {spec.name: spec for spec in _REGISTRY}

# Qwen-Image output sizes per aspect ratio
IMAGE_SIZES: dict[str, str] = {
    "1:1": "1328*1328",
    "16:9": "1664*928",
    "3:2": "1472*1140",
    "2:3": "1140*1472",
    "3:4": "1140*1472",
    "4:3": "1472*1140",
    "9:16": "928*1664",
}

# Video frame sizes per quality level and aspect ratio
VIDEO_SIZES: dict[str, dict[str, str]] = {
    "480P": {"16:9": "832*480", "9:16": "480*832", "1:1": "624*624"},
    "720P": {
        "16:9": "1280*720", "9:16": "720*1280", "1:1": "960*960",
        "4:3": "1088*832", "3:4": "832*1088",
    },
    "1080P": {
        "16:9": "1920*1080", "9:16": "1080*1920", "1:1": "1440*1440",
        "4:3": "1632*1248", "3:4": "1248*1632",
    },
}


def get_model(name: str) -> ModelSpec:
    """Return the registered spec for a model name.

    Raises:
        UnsupportedModelError: If the model is not registered.
    """
    try:
        return MODELS[name]
    except KeyError:
        raise UnsupportedModelError(f"Unsupported model: {name!r}") from None


def models_in(*families: ModelFamily) -> list[ModelSpec]:
    return [spec for spec in _REGISTRY if spec.family in families]


def size_for_aspect_ratio(ratio: str) -> str:
    """Qwen-Image output size for an aspect ratio such as ``"16:9"``."""
    if ratio not in IMAGE_SIZES:
        raise ValueError(f"Unsupported aspect ratio {ratio!r}, expected one of {sorted(IMAGE_SIZES)}")
    return IMAGE_SIZES[ratio]


def video_size(quality: str, ratio: str = "16:9") -> str:
    """Video frame size for a quality level and aspect ratio.

    Falls back to the first size of the quality level when the ratio is not offered.
    """
    sizes = VIDEO_SIZES.get(quality.upper())
    if not sizes:
        raise ValueError(f"Unsupported video quality {quality!r}, expected one of {list(VIDEO_SIZES)}")
    return sizes.get(ratio) or next(iter(sizes.values()))
