"""Scene orchestration: script -> prompts -> paced, one-at-a-time media acquisition.

Acquisition is strictly sequential with a pacing delay between calls so a
run stays under provider rate limits. Scenes are appended and published as
soon as they arrive, so callers always see partial progress; a failure
aborts the run but keeps every scene gathered so far.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

from models.scene import MediaSource, Scene
from reel.acquisition import MediaAcquirer, as_rate_limit
from reel.errors import (
    EmptyScriptError,
    NoScenesError,
    RateLimitedError,
    ReelError,
    SceneGenerationError,
)
from services.ai_service import AIService

logger = logging.getLogger(__name__)

AI_PACING_SECONDS = 12.0
STOCK_PACING_SECONDS = 3.5

ScenesObserver = Callable[[tuple[Scene, ...]], None]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class SceneProgress:
    """Progress of one scene run, published before and after each acquisition."""

    index: int  # 1-based prompt number
    total: int
    message: str
    eta_minutes: int
    scenes: tuple[Scene, ...]
    scene: Optional[Scene] = None  # Set once the prompt was acquired
    skipped: bool = False
    done: bool = False

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "total": self.total,
            "message": self.message,
            "eta_minutes": self.eta_minutes,
            "scene_count": len(self.scenes),
            "skipped": self.skipped,
            "done": self.done,
        }


class SceneOrchestrator:
    """Owns the scene sequence and runs scene generation for a script.

    Example:
        orchestrator = SceneOrchestrator(ai_service, MediaAcquirer(image_service))
        scenes = await orchestrator.generate_scenes(script, MediaSource.AI)
    """

    def __init__(
        self,
        ai_service: AIService,
        acquirer: MediaAcquirer,
        sleep: SleepFn = asyncio.sleep,
        ai_delay: float = AI_PACING_SECONDS,
        stock_delay: float = STOCK_PACING_SECONDS,
    ):
        self.ai_service = ai_service
        self.acquirer = acquirer
        self._sleep = sleep
        self.ai_delay = ai_delay
        self.stock_delay = stock_delay
        self._scenes: list[Scene] = []
        self._observers: list[ScenesObserver] = []

    @property
    def scenes(self) -> tuple[Scene, ...]:
        return tuple(self._scenes)

    def subscribe(self, observer: ScenesObserver) -> Callable[[], None]:
        """Call ``observer`` with the full sequence whenever it changes."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def _publish(self) -> None:
        snapshot = self.scenes
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as e:
                logger.warning(f"Scene observer failed: {e}")

    def clear(self) -> None:
        """Discard the current sequence."""
        self._scenes.clear()
        self._publish()

    def pacing_delay(self, source: MediaSource) -> float:
        return self.ai_delay if source.is_generative else self.stock_delay

    async def decompose(self, script: str) -> list[str]:
        """Split the script into ordered scene prompts.

        Raises:
            EmptyScriptError: Blank script
            NoScenesError: The model returned no prompts
            RateLimitedError: Gemini quota exhausted
            SceneGenerationError: Any other decomposition failure
        """
        if not script or not script.strip():
            raise EmptyScriptError("Script cannot be empty to generate scenes.")

        logger.info("Analyzing script to create scene prompts")
        try:
            prompts = await asyncio.to_thread(self.ai_service.generate_prompts_from_script, script)
        except Exception as e:
            rate_limited = as_rate_limit(e)
            if rate_limited is not None:
                raise rate_limited from e
            raise SceneGenerationError(f"Scene prompt generation failed: {e}") from e

        if not prompts:
            raise NoScenesError(
                "The AI could not generate any scenes from the script. Try making it more descriptive."
            )

        logger.info(f"Script decomposed into {len(prompts)} scene prompts")
        return prompts

    def _progress_message(self, index: int, total: int, source: MediaSource) -> tuple[str, int]:
        remaining = total - index + 1
        eta_minutes = math.ceil(remaining * self.pacing_delay(source) / 60)
        if source.is_generative:
            text = f"Generating scene {index}/{total}..."
        else:
            text = f"Searching Pexels for scene {index}/{total}..."
        return (
            f"{text} (pacing requests to avoid API rate limits, approx. {eta_minutes} min remaining)",
            eta_minutes,
        )

    async def stream(self, script: str, source: MediaSource) -> AsyncIterator[SceneProgress]:
        """Run scene generation, yielding progress as it goes.

        The previous sequence is discarded first. Breaking out of the
        iteration abandons the run; scenes produced so far stay in
        ``self.scenes``.

        Raises:
            RateLimitedError: Provider throttling; ``.scenes`` holds the partial sequence
            SceneGenerationError: Any other failure; ``.scenes`` holds the partial sequence
        """
        self.clear()
        prompts = await self.decompose(script)
        total = len(prompts)
        delay = self.pacing_delay(source)

        for index, prompt in enumerate(prompts, start=1):
            message, eta = self._progress_message(index, total, source)
            logger.info(message)
            yield SceneProgress(index=index, total=total, message=message, eta_minutes=eta, scenes=self.scenes)

            try:
                scene = await self.acquirer.acquire(prompt, source)
            except RateLimitedError as e:
                logger.warning(f"Rate limited at scene {index}/{total}; keeping {len(self._scenes)} scenes")
                raise RateLimitedError(str(e), retry_after=e.retry_after, scenes=self.scenes) from e
            except ReelError:
                raise
            except Exception as e:
                logger.error(f"Scene {index}/{total} failed: {e}")
                raise SceneGenerationError(
                    f"Failed to generate scene {index}/{total}: {e}", scenes=self.scenes
                ) from e

            if scene is None:
                logger.warning(f"Could not find media for prompt: {prompt!r}")
            else:
                self._scenes.append(scene)
                self._publish()

            yield SceneProgress(
                index=index,
                total=total,
                message=message,
                eta_minutes=eta,
                scenes=self.scenes,
                scene=scene,
                skipped=scene is None,
                done=index == total,
            )

            if index < total:
                await self._sleep(delay)

        logger.info(f"Scene generation complete: {len(self._scenes)}/{total} scenes")

    async def generate_scenes(
        self,
        script: str,
        source: MediaSource,
        on_progress: Optional[Callable[[SceneProgress], None]] = None,
    ) -> tuple[Scene, ...]:
        """Run scene generation to completion and return the sequence."""
        async for progress in self.stream(script, source):
            if on_progress:
                on_progress(progress)
        return self.scenes

    async def regenerate_scene(self, index: int, source: MediaSource) -> Scene:
        """Re-acquire the scene at ``index`` from its original prompt and replace it.

        Raises:
            IndexError: No scene at ``index``
            SceneGenerationError: The scene has no prompt or nothing usable came back
            RateLimitedError: Provider throttling
        """
        current = self._scenes[index]
        if not current.prompt:
            raise SceneGenerationError("Scene has no prompt to regenerate from", scenes=self.scenes)

        try:
            scene = await self.acquirer.acquire(current.prompt, source)
        except RateLimitedError as e:
            raise RateLimitedError(str(e), retry_after=e.retry_after, scenes=self.scenes) from e
        except ReelError:
            raise
        except Exception as e:
            raise SceneGenerationError(f"Failed to regenerate scene: {e}", scenes=self.scenes) from e

        if scene is None:
            raise SceneGenerationError("No media found for this scene's prompt", scenes=self.scenes)

        self._scenes[index] = scene
        self._publish()
        return scene
