"""Sequential batch suggestions with a fixed delay between controls."""
from __future__ import annotations

import time
from typing import Callable, Sequence

import structlog

from control_advisor.config.settings import SuggestionSettings
from control_advisor.models.controls import Control, ExistingControl
from control_advisor.models.suggestion import Suggestion
from control_advisor.strategies.fallback_text import generate_generic_implementation
from control_advisor.strategies.selector import SuggestionSelector
from control_advisor.utils.error_handler import describe_error

logger = structlog.get_logger(__name__)


class BatchRunner:
    """Applies the selector to many controls, one at a time."""

    def __init__(self, selector: SuggestionSelector, sleep: Callable[[float], None] = time.sleep):
        self.selector = selector
        self._sleep = sleep

    def run(
        self,
        controls: Sequence[Control],
        existing_controls: Sequence[ExistingControl],
        settings: SuggestionSettings,
    ) -> dict[str, Suggestion]:
        """Suggest every control with an id; results are keyed by control id.

        A failing control gets a zero-confidence suggestion and the batch
        continues. ``settings.batch_delay`` seconds pass between controls so a
        shared local inference backend is not saturated.
        """
        results: dict[str, Suggestion] = {}
        pending = [c for c in controls if c.id]
        skipped = len(controls) - len(pending)
        if skipped:
            logger.warning("batch_controls_skipped", count=skipped, reason="missing id")

        logger.info("batch_started", total=len(pending), delay=settings.batch_delay)
        for idx, control in enumerate(pending):
            if idx > 0 and settings.batch_delay > 0:
                self._sleep(settings.batch_delay)
            try:
                results[control.id] = self.selector.suggest(control, existing_controls, settings)
            except Exception as e:
                logger.error("batch_control_failed", control_id=control.id, error=describe_error(e))
                results[control.id] = Suggestion.minimal(
                    generate_generic_implementation(control),
                    f"Error: {describe_error(e)}",
                )

        logger.info("batch_completed", total=len(results))
        return results
