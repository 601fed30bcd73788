"""Error taxonomy for scene generation, preview and rendering."""

from typing import Optional, Sequence

from models.scene import Scene


class ReelError(Exception):
    """Base class for every user-visible reel failure."""


class EmptyInputError(ReelError):
    """A required input (script, prompt, scenes, narration) is blank or missing."""


class EmptyScriptError(EmptyInputError):
    """The narration script is blank."""


class NoResultsError(ReelError):
    """Decomposition or search produced nothing usable."""


class NoScenesError(NoResultsError):
    """Script decomposition yielded zero scene prompts."""


class _PartialScenesMixin:
    scenes: tuple[Scene, ...]

    def _keep(self, scenes: Optional[Sequence[Scene]]) -> None:
        self.scenes = tuple(scenes or ())


class RateLimitedError(_PartialScenesMixin, ReelError):
    """A provider throttled the request; wait before trying again.

    Attributes:
        retry_after: Seconds the provider asked us to wait, when it said so
        scenes: Scenes gathered before the run was aborted
    """

    def __init__(
        self,
        message: str = "Rate limit reached. Please wait a minute before trying again.",
        retry_after: Optional[float] = None,
        scenes: Optional[Sequence[Scene]] = None,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self._keep(scenes)


class SceneGenerationError(_PartialScenesMixin, ReelError):
    """Scene generation failed for a reason other than rate limiting."""

    def __init__(self, message: str, scenes: Optional[Sequence[Scene]] = None):
        super().__init__(message)
        self._keep(scenes)


class EngineNotReadyError(ReelError):
    """Render requested before the media engine finished loading."""


class StageFailureError(ReelError):
    """One render stage failed; the whole job is discarded."""

    PREFIX = "Video rendering failed during"

    def __init__(self, stage: str, detail: str):
        super().__init__(f"{self.PREFIX} {stage}: {detail}")
        self.stage = stage
        self.detail = detail


class UnsupportedOutputTypeError(ReelError):
    """The engine returned the output file in an unexpected shape."""


class PreviewNotReadyError(ReelError):
    """Preview needs at least one scene and a narration source."""


class AudioPlaybackError(ReelError):
    """An audio backend refused to play, pause or seek. Logged, never fatal."""
