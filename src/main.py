"""Main application entry point for reelsmith."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from models.audio import TrackId
from models.scene import MediaSource
from reel.errors import ReelError
from reel.orchestrator import SceneProgress
from reel.render_pipeline import RenderProgress
from reel.sample_prompts import get_sample, list_samples
from reel.studio import Studio
from utils.config import load_config, setup_logging

logger = logging.getLogger(__name__)


class SceneProgressBar:
    """tqdm bar fed by orchestrator progress."""

    def __init__(self):
        self.bar: Optional[tqdm] = None

    def __call__(self, progress: SceneProgress):
        if self.bar is None:
            self.bar = tqdm(total=progress.total, desc="Scenes", unit="scene", leave=True)
        self.bar.set_description(f"Scene {progress.index}/{progress.total} (~{progress.eta_minutes} min left)")
        if progress.scene is not None or progress.skipped:
            self.bar.n = progress.index
        self.bar.set_postfix(kept=len(progress.scenes))
        self.bar.refresh()

    def close(self):
        if self.bar:
            self.bar.close()


class RenderProgressBar:
    """tqdm bar fed by render stage progress."""

    def __init__(self):
        self.bar = tqdm(
            total=100,
            desc="Rendering",
            unit="%",
            leave=True,
            bar_format="{l_bar}{bar}| {n:.1f}/{total:.1f}% [{elapsed}<{remaining}]",
        )

    def __call__(self, progress: RenderProgress):
        self.bar.set_description(progress.label)
        self.bar.n = min(progress.percent, 100.0)
        self.bar.refresh()

    def close(self):
        self.bar.close()


def read_script(args) -> str:
    """Script text from --sample, a file, or stdin ("-")."""
    if getattr(args, "sample", None):
        sample = get_sample(args.sample)
        if sample is None:
            raise ReelError(f"No sample named {args.sample!r}. Run 'samples' to list them.")
        return sample.script
    if not args.script or args.script == "-":
        return sys.stdin.read()
    return Path(args.script).read_text(encoding="utf-8")


async def _generate_scenes(studio: Studio, source: MediaSource) -> None:
    bar = SceneProgressBar()
    try:
        await studio.generate_scenes(source, on_progress=bar)
    finally:
        bar.close()
    print(f"Generated {len(studio.scenes)} scenes")


async def _prepare_audio(studio: Studio, args) -> None:
    if args.narration:
        path = Path(args.narration)
        await studio.upload_audio(TrackId.NARRATION, path.read_bytes(), path.name)
    else:
        print("Generating narration...")
        await studio.generate_narration()

    for track_id, url, prompt in (
        (TrackId.BACKGROUND_MUSIC, args.bgm, args.bgm_prompt),
        (TrackId.SOUND_EFFECTS, args.sfx, args.sfx_prompt),
    ):
        if url:
            studio.select_audio(track_id, url)
        elif prompt:
            print(f"Generating {track_id.label}...")
            await studio.generate_audio(track_id, prompt)

    studio.set_volume(TrackId.NARRATION, args.narration_volume)
    studio.set_volume(TrackId.BACKGROUND_MUSIC, args.bgm_volume)
    studio.set_volume(TrackId.SOUND_EFFECTS, args.sfx_volume)


async def run_scenes(studio: Studio, args) -> None:
    studio.set_script(read_script(args))
    await _generate_scenes(studio, MediaSource(args.source))
    payload = json.dumps([scene.to_dict() for scene in studio.scenes], indent=2)
    if args.out:
        Path(args.out).write_text(payload, encoding="utf-8")
        print(f"Scenes written to {args.out}")
    else:
        print(payload)


async def run_narrate(studio: Studio, args) -> None:
    studio.set_script(read_script(args))
    if args.enhance:
        await studio.enhance_script()
    asset = await studio.generate_narration()
    speakers = ", ".join(f"{s.name} ({s.voice})" for s in studio.speakers)
    print(f"Narration ready: {asset.path}")
    print(f"Speakers: {speakers}")


async def run_render(studio: Studio, args) -> None:
    studio.set_script(read_script(args))
    await studio.load()

    await _generate_scenes(studio, MediaSource(args.source))
    await _prepare_audio(studio, args)

    bar = RenderProgressBar()
    try:
        result = await studio.render(on_progress=bar)
    finally:
        bar.close()

    print(f"Video saved to {result.local_path}")
    print(f"Stored at {result.public_url}")

    if args.thumbnail:
        thumbnail = await studio.generate_thumbnail()
        thumb_path = result.local_path.with_suffix(".png")
        thumb_path.write_bytes(thumbnail.image)
        print(f"Thumbnail '{thumbnail.title}' saved to {thumb_path}")


def run_samples(args) -> None:
    if args.key:
        sample = get_sample(args.key)
        if sample is None:
            print(f"No sample named {args.key!r}")
            sys.exit(1)
        print(sample.script)
        return
    for number, sample in enumerate(list_samples(), start=1):
        print(f"{number}. {sample.title}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reelsmith: turn a narration script into a narrated slideshow video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  reelsmith scenes script.txt --source pexels_photo
  reelsmith narrate --sample 4
  reelsmith render script.txt --bgm-prompt "calm lo-fi piano" --thumbnail
  reelsmith serve --port 8000
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_script_args(sub):
        sub.add_argument("script", nargs="?", help="Script file ('-' for stdin)")
        sub.add_argument("--sample", help="Use a built-in sample script (number or title)")

    def add_source_arg(sub):
        sub.add_argument(
            "--source",
            choices=[s.value for s in MediaSource],
            default=MediaSource.AI.value,
            help="Where scene visuals come from",
        )

    scenes = subparsers.add_parser("scenes", help="Generate scenes for a script")
    add_script_args(scenes)
    add_source_arg(scenes)
    scenes.add_argument("--out", help="Write scenes as JSON to this file")

    narrate = subparsers.add_parser("narrate", help="Generate narration audio for a script")
    add_script_args(narrate)
    narrate.add_argument("--enhance", action="store_true", help="Enhance the script before synthesis")

    render = subparsers.add_parser("render", help="Scenes, narration and render in one go")
    add_script_args(render)
    add_source_arg(render)
    render.add_argument("--narration", help="Use this audio file instead of generated narration")
    render.add_argument("--bgm", help="Background music URL")
    render.add_argument("--bgm-prompt", help="Generate background music from this description")
    render.add_argument("--sfx", help="Sound effects URL")
    render.add_argument("--sfx-prompt", help="Generate sound effects from this description")
    render.add_argument("--narration-volume", type=float, default=1.0)
    render.add_argument("--bgm-volume", type=float, default=0.5)
    render.add_argument("--sfx-volume", type=float, default=0.8)
    render.add_argument("--thumbnail", action="store_true", help="Also generate a title thumbnail")

    samples = subparsers.add_parser("samples", help="List sample scripts or print one")
    samples.add_argument("key", nargs="?", help="Sample number or title")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    return parser


async def run_command(args) -> None:
    config = load_config()
    setup_logging(config["log_level"])

    studio = Studio.from_config(config)
    try:
        if args.command == "scenes":
            await run_scenes(studio, args)
        elif args.command == "narrate":
            await run_narrate(studio, args)
        elif args.command == "render":
            await run_render(studio, args)
    finally:
        await studio.close()


def main():
    """Main entry point."""
    args = build_parser().parse_args()

    if args.command == "samples":
        run_samples(args)
        return
    if args.command == "serve":
        from api.server import run

        run(host=args.host, port=args.port)
        return

    try:
        asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except (ReelError, ValueError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
