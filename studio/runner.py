"""CLI runner for DashScope image and video generation.

Usage:
    wanx-studio text-to-image "a red bicycle" --model wan2.2-t2i-flash
    wanx-studio image-to-image --image-url https://... --prompt "make it watercolor"
    wanx-studio text-to-video "sunset over the sea" --quality 720P
    wanx-studio image-to-video --image-url https://... --resolution 480P
    wanx-studio video-to-video --video-url https://... --style 3
    wanx-studio task <task_id>
    wanx-studio models
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from studio.config import get_api_key, get_base_url, get_poll_settings, get_timeout, load_config
from wanx_client.client import DashScopeClient, DryRunInterrupt, UpstreamError
from wanx_client.models import (
    GeneratedArtifact,
    ImageToImageParams,
    ImageToVideoParams,
    ServiceResult,
    TextToImageParams,
    TextToVideoParams,
    VideoResult,
    VideoToVideoParams,
)
from wanx_client.registry import MODELS, ModelFamily, models_in, size_for_aspect_ratio, video_size
from wanx_client.service import GenerationService

logger = logging.getLogger(__name__)
console = Console()

_DEFAULT_CONFIG = "config.yaml"


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet down httpx unless debugging
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _model_choice(*families: ModelFamily) -> click.Choice:
    return click.Choice([spec.name for spec in models_in(*families)])


def make_client(config: dict, dry_run: bool = False, echo: bool = False) -> DashScopeClient:
    """Build the gateway client from configuration."""
    return DashScopeClient(
        api_key=get_api_key(config),
        base_url=get_base_url(config),
        timeout=get_timeout(config),
        dry_run=dry_run,
        echo=echo,
    )


def _artifact_path(download_dir: Path, stem: str, artifact: GeneratedArtifact, default_ext: str) -> Path:
    suffix = Path(urlparse(artifact.url).path).suffix or default_ext
    return download_dir / f"{stem}_{artifact.id}{suffix}"


async def _generate(
    ctx_obj: dict,
    flow: str,
    params: Any,
    download_dir: str | None,
) -> tuple[ServiceResult, list[Path]]:
    config = load_config(ctx_obj["config"])
    downloaded: list[Path] = []

    async with make_client(config, ctx_obj["dry_run"], ctx_obj["echo"]) as client:
        service = GenerationService(
            client,
            image_polling=get_poll_settings(config, "image"),
            video_polling=get_poll_settings(config, "video"),
        )
        with console.status(f"[bold]Generating with {params.model}...[/bold]"):
            result = await getattr(service, flow)(params)

        if result.success and download_dir:
            data = result.data
            artifacts = data.artifacts if isinstance(data, VideoResult) else data
            default_ext = ".mp4" if isinstance(data, VideoResult) else ".png"
            for artifact in artifacts:
                target = _artifact_path(Path(download_dir), params.model, artifact, default_ext)
                try:
                    downloaded.append(await client.download_file(artifact.url, target))
                except UpstreamError as exc:
                    console.print(f"  [red]Failed to download {artifact.url}: {escape(str(exc))}[/red]")

    return result, downloaded


def _report(result: ServiceResult, downloaded: list[Path]) -> None:
    if not result.success:
        console.print(f"[red]Generation failed ({result.kind.value}): {escape(result.error)}[/red]")
        sys.exit(1)

    data = result.data
    artifacts = data.artifacts if isinstance(data, VideoResult) else data
    if isinstance(data, VideoResult) and data.task_id:
        console.print(f"[dim]Task: {data.task_id}[/dim]")

    if not artifacts:
        console.print("[yellow]The task succeeded but produced no results.[/yellow]")
        return

    table = Table(title="Generated", show_lines=True)
    table.add_column("#", justify="right", style="cyan")
    table.add_column("URL", overflow="fold")
    for artifact in artifacts:
        table.add_row(str(artifact.id), artifact.url)
    console.print(table)

    for path in downloaded:
        console.print(f"  [green]Saved {path}[/green]")


def _run(ctx: click.Context, flow: str, params: Any, download_dir: str | None) -> None:
    try:
        result, downloaded = asyncio.run(_generate(ctx.obj, flow, params, download_dir))
    except DryRunInterrupt:
        console.print("[yellow]Dry run: request not sent.[/yellow]")
        return
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    _report(result, downloaded)


_download_option = click.option(
    "--download", "-d", "download_dir", default=None, type=click.Path(file_okay=False),
    help="Directory to save generated files to",
)


@click.group()
@click.option("--config", "-c", default=_DEFAULT_CONFIG, help="Path to config.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--dry-run", is_flag=True, help="Print request bodies without sending them")
@click.option("--echo", is_flag=True, help="Print request bodies before sending them")
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool, dry_run: bool, echo: bool) -> None:
    """DashScope Wanx / Qwen-Image generation."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["dry_run"] = dry_run
    ctx.obj["echo"] = echo
    _setup_logging(verbose)


# ------------------------------------------------------------------
# images
# ------------------------------------------------------------------

@cli.command("text-to-image")
@click.argument("prompt")
@click.option("--model", "-m", default="wan2.2-t2i-flash",
              type=_model_choice(ModelFamily.QWEN_IMAGE, ModelFamily.TEXT_TO_IMAGE))
@click.option("--size", default="1024*1024", help="Output size, e.g. 1024*1024")
@click.option("--aspect-ratio", "-a", default=None, help="Pick the size from an aspect ratio (e.g. 16:9)")
@click.option("--count", "-n", default=1, type=int, help="Number of images (1-4)")
@click.option("--negative-prompt", default="", help="Things to avoid")
@click.option("--style", default=None, help="Style hint appended to the prompt")
@_download_option
@click.pass_context
def cmd_text_to_image(
    ctx: click.Context,
    prompt: str,
    model: str,
    size: str,
    aspect_ratio: str | None,
    count: int,
    negative_prompt: str,
    style: str | None,
    download_dir: str | None,
) -> None:
    """Generate images from a text prompt."""
    if aspect_ratio:
        try:
            size = size_for_aspect_ratio(aspect_ratio)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--aspect-ratio")
    params = TextToImageParams(
        model=model,
        prompt=prompt,
        size=size,
        count=count,
        negative_prompt=negative_prompt,
        style=style,
    )
    _run(ctx, "generate_image", params, download_dir)


@cli.command("image-to-image")
@click.option("--image-url", "-i", required=True, help="Public URL of the reference image")
@click.option("--model", "-m", default="wanx2.1-imageedit",
              type=_model_choice(ModelFamily.IMAGE_EDIT, ModelFamily.STYLE_REPAINT))
@click.option("--prompt", "-p", default="", help="Edit instruction")
@click.option("--count", "-n", default=1, type=int, help="Number of images (1-4)")
@click.option("--style-index", default=0, type=int, help="Style index (style repaint only)")
@click.option("--function", "function", default="stylization_all", help="Edit function (image edit only)")
@_download_option
@click.pass_context
def cmd_image_to_image(
    ctx: click.Context,
    image_url: str,
    model: str,
    prompt: str,
    count: int,
    style_index: int,
    function: str,
    download_dir: str | None,
) -> None:
    """Edit or restyle a reference image."""
    params = ImageToImageParams(
        model=model,
        image_url=image_url,
        prompt=prompt,
        count=count,
        style_index=style_index,
        function=function,
    )
    _run(ctx, "generate_image_to_image", params, download_dir)


# ------------------------------------------------------------------
# videos
# ------------------------------------------------------------------

@cli.command("text-to-video")
@click.argument("prompt")
@click.option("--model", "-m", default="wanx2.1-t2v-turbo", type=_model_choice(ModelFamily.TEXT_TO_VIDEO))
@click.option("--quality", "-q", default="720P", help="480P, 720P or 1080P")
@click.option("--aspect-ratio", "-a", default="16:9", help="Aspect ratio within the quality level")
@click.option("--duration", default=5, type=int, help="Duration in seconds")
@_download_option
@click.pass_context
def cmd_text_to_video(
    ctx: click.Context,
    prompt: str,
    model: str,
    quality: str,
    aspect_ratio: str,
    duration: int,
    download_dir: str | None,
) -> None:
    """Generate a video from a text prompt."""
    try:
        size = video_size(quality, aspect_ratio)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--quality")
    params = TextToVideoParams(model=model, prompt=prompt, size=size, duration=duration)
    _run(ctx, "generate_video", params, download_dir)


@cli.command("image-to-video")
@click.option("--image-url", "-i", required=True, help="Public URL of the first frame")
@click.option("--model", "-m", default="wanx2.1-i2v-turbo", type=_model_choice(ModelFamily.IMAGE_TO_VIDEO))
@click.option("--prompt", "-p", default="", help="Motion/style prompt")
@click.option("--resolution", "-r", default="720P", help="480P, 720P or 1080P")
@click.option("--duration", default=5, type=int, help="Duration in seconds")
@_download_option
@click.pass_context
def cmd_image_to_video(
    ctx: click.Context,
    image_url: str,
    model: str,
    prompt: str,
    resolution: str,
    duration: int,
    download_dir: str | None,
) -> None:
    """Animate a still image."""
    params = ImageToVideoParams(
        model=model,
        image_url=image_url,
        prompt=prompt,
        resolution=resolution,
        duration=duration,
    )
    _run(ctx, "generate_image_to_video", params, download_dir)


@cli.command("video-to-video")
@click.option("--video-url", "-i", required=True, help="Public URL of the source video")
@click.option("--model", "-m", default="video-style-transform",
              type=_model_choice(ModelFamily.VIDEO_STYLE_TRANSFORM))
@click.option("--style", "-s", default=0, type=int, help="Style id (0-7)")
@click.option("--fps", "video_fps", default="15", type=click.Choice(["15", "20", "25"]), help="Output frame rate")
@_download_option
@click.pass_context
def cmd_video_to_video(
    ctx: click.Context,
    video_url: str,
    model: str,
    style: int,
    video_fps: str,
    download_dir: str | None,
) -> None:
    """Restyle an existing video."""
    params = VideoToVideoParams(model=model, video_url=video_url, style=style, video_fps=int(video_fps))
    _run(ctx, "generate_video_to_video", params, download_dir)


# ------------------------------------------------------------------
# tasks & models
# ------------------------------------------------------------------

@cli.command("task")
@click.argument("task_id")
@click.pass_context
def cmd_task(ctx: click.Context, task_id: str) -> None:
    """Show the current state of an asynchronous task."""

    async def lookup() -> ServiceResult:
        config = load_config(ctx.obj["config"])
        async with make_client(config) as client:
            return await GenerationService(client).task_status(task_id)

    try:
        result = asyncio.run(lookup())
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        sys.exit(1)

    if not result.success:
        console.print(f"[red]Lookup failed ({result.kind.value}): {escape(result.error)}[/red]")
        sys.exit(1)
    console.print_json(data=result.data)


@cli.command("models")
def cmd_models() -> None:
    """List supported models."""
    table = Table(title="Models", show_lines=True)
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Family")
    table.add_column("Mode", justify="center")
    table.add_column("Quality")
    table.add_column("Description")

    for spec in MODELS.values():
        mode = "[yellow]async[/yellow]" if spec.is_async else "[green]sync[/green]"
        table.add_row(spec.name, spec.family.value, mode, ", ".join(spec.quality_levels), spec.description)

    console.print(table)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
