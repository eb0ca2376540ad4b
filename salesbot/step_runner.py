from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger("salesbot.pipeline")


@dataclass
class PipelineStep:
    """Named unit of work over a MessageContext."""
    name: str
    fn: Callable[[object], None]
    skip_if: Optional[Callable[[object], bool]] = None
    always_run: bool = False


class PipelineRunner:
    """Ordered step runner; a step may halt the rest by setting context.halted."""

    def __init__(self, steps: list[PipelineStep]) -> None:
        self._steps = steps

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self._steps]

    def run(self, context: object) -> list[str]:
        """Purpose: Execute steps in order, honoring skip_if, halted and always_run.
        Inputs/Outputs: Input is a mutable context; output is the names of steps run.
        Side Effects / State: Step functions mutate the context; timings go to debug log.
        Dependencies: Reads an optional boolean `halted` attribute on the context.
        Failure Modes: Exceptions in step functions propagate to the caller.
        If Removed: The message handler cannot produce replies.
        Testing Notes: A halting step must still let always_run steps execute.
        """
        # always_run steps (finalize/logging) survive a halt; others do not.
        executed: list[str] = []
        for step in self._steps:
            if not step.always_run:
                if getattr(context, "halted", False):
                    continue
                if step.skip_if and step.skip_if(context):
                    continue
            started = time.perf_counter()
            step.fn(context)
            executed.append(step.name)
            logger.debug("step=%s elapsed_ms=%.1f", step.name, (time.perf_counter() - started) * 1000)
        return executed
