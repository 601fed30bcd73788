"""Progress tracking for multi-stage jobs such as renders."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class ProcessingStage:
    """Represents a stage in a processing pipeline."""

    name: str
    total_items: int
    completed_items: float = 0
    status: str = "pending"  # pending, in_progress, completed, failed
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def elapsed_time(self) -> float:
        """Calculate elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time else time.time()
        return end - self.start_time


class ProcessingStatus:
    """Tracks overall progress across weighted stages.

    Every change is reported through the optional callback.

    Example usage:
        status = ProcessingStatus(label="render", update_callback=print_progress)

        status.register_stage("concat", total_items=1)
        status.start_stage("concat")
        status.update_stage("concat", completed=0.5)
        status.complete_stage("concat")

        print(f"Overall: {status.overall_progress:.1f}%")
    """

    def __init__(
        self,
        label: str,
        update_callback: Optional[Callable[["ProcessingStatus"], None]] = None,
    ):
        """Initialize processing status tracker.

        Args:
            label: Human-readable name of the job being tracked
            update_callback: Optional callback function called on updates
        """
        self.label = label
        self.update_callback = update_callback

        self.stages: dict[str, ProcessingStage] = {}
        self.start_time = time.time()
        self.error_message: Optional[str] = None
        self.current_stage: Optional[str] = None

        logger.debug(f"Initialized progress tracking for: {label}")

    def register_stage(self, stage_name: str, total_items: int = 1):
        """Register a processing stage."""
        self.stages[stage_name] = ProcessingStage(name=stage_name, total_items=total_items)
        logger.debug(f"Registered stage: {stage_name} ({total_items} items)")
        self._notify_update()

    def start_stage(self, stage_name: str):
        """Mark a stage as started."""
        if stage_name not in self.stages:
            logger.warning(f"Stage {stage_name} not registered, auto-registering")
            self.register_stage(stage_name, total_items=1)

        stage = self.stages[stage_name]
        stage.status = "in_progress"
        stage.start_time = time.time()
        self.current_stage = stage_name

        logger.info(f"Started stage: {stage_name}")
        self._notify_update()

    def update_stage(
        self,
        stage_name: str,
        completed: Optional[float] = None,
        increment: float = 0,
    ):
        """Update progress for a stage.

        Args:
            stage_name: Name of the stage to update
            completed: Set completed items to this value (absolute, may be fractional)
            increment: Increment completed items by this amount (relative)
        """
        if stage_name not in self.stages:
            logger.warning(f"Cannot update unregistered stage: {stage_name}")
            return

        stage = self.stages[stage_name]

        if completed is not None:
            stage.completed_items = max(0, min(completed, stage.total_items))
        else:
            stage.completed_items = min(stage.completed_items + increment, stage.total_items)

        self._notify_update()

    def complete_stage(self, stage_name: str):
        """Mark a stage as completed."""
        if stage_name not in self.stages:
            logger.warning(f"Cannot complete unregistered stage: {stage_name}")
            return

        stage = self.stages[stage_name]
        stage.status = "completed"
        stage.completed_items = stage.total_items
        stage.end_time = time.time()

        logger.info(f"Completed stage: {stage_name} ({stage.elapsed_time:.1f}s)")
        self._notify_update()

    def fail_stage(self, stage_name: str, error: str):
        """Mark a stage as failed."""
        if stage_name not in self.stages:
            logger.warning(f"Cannot fail unregistered stage: {stage_name}")
            return

        stage = self.stages[stage_name]
        stage.status = "failed"
        stage.end_time = time.time()
        self.error_message = error

        logger.error(f"Failed stage: {stage_name} - {error}")
        self._notify_update()

    def complete_processing(self):
        """Log the total time once every stage is done."""
        elapsed = time.time() - self.start_time
        logger.info(f"{self.label} complete in {elapsed:.1f}s")

    @property
    def overall_progress(self) -> float:
        """Calculate overall progress percentage across all stages."""
        total_items = sum(stage.total_items for stage in self.stages.values())
        if total_items == 0:
            return 0.0

        completed_items = sum(stage.completed_items for stage in self.stages.values())
        return (completed_items / total_items) * 100

    def _notify_update(self):
        if self.update_callback:
            try:
                self.update_callback(self)
            except Exception as e:
                logger.warning(f"Update callback failed: {e}")
