# remote_driver/core/controller/runner.py
"""
Sequential runner for ActionSpec[] against one RemoteDriver.

Responsibilities:
- Validate each spec via registry
- Execute actions, retrying on ActionExecutionError
- Optional random per-step delay
- On failure: save a screenshot (if artifacts_dir is set)
- Return per-step outcomes for CLI rendering
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .. import registry
from ..action import ActionSpec
from ..errors import ActionExecutionError, RemoteDriverError

log = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """UI-friendly outcome used by the CLI."""

    index: int
    name: str
    ok: bool
    detail: str = "-"
    artifact_path: str | None = None
    extracted: str | None = None
    meta: dict[str, Any] | None = None


class Runner:
    def __init__(
        self,
        *,
        retries: int = 0,
        artifacts_dir: Path | None = None,
        random_delay_ms: tuple[int, int] | None = None,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.retries = max(0, retries)
        self.artifacts_dir = artifacts_dir
        self.random_delay_ms = random_delay_ms
        self.backoff_seconds = backoff_seconds
        if self.artifacts_dir:
            self.artifacts_dir.mkdir(parents=True, exist_ok=True)

    def run(self, driver: Any, specs: list[ActionSpec]) -> list[StepOutcome]:
        outcomes: list[StepOutcome] = []

        for i, spec in enumerate(specs, start=1):
            name = spec.name

            try:
                _meta, params = registry.validate_spec(spec)
            except (ValidationError, KeyError) as e:
                outcomes.append(
                    StepOutcome(index=i, name=name, ok=False, detail=f"invalid spec: {e}")
                )
                self._maybe_delay()
                continue

            attempt = 0
            while True:
                try:
                    fn = registry.get_action(name)
                    res = fn(driver, params)
                    outcomes.append(
                        StepOutcome(
                            index=i,
                            name=name,
                            ok=bool(res.ok),
                            detail=self._detail(res),
                            extracted=res.extracted_content,
                            meta=dict(res.meta),
                        )
                    )
                    break

                except ActionExecutionError as e:
                    attempt += 1
                    if attempt > self.retries:
                        artifact = self._on_failure(driver, i, name)
                        outcomes.append(
                            StepOutcome(
                                index=i,
                                name=name,
                                ok=False,
                                detail=str(e),
                                artifact_path=artifact,
                            )
                        )
                        break
                    log.info("retrying step", extra={"step": i, "action": name, "attempt": attempt})
                    time.sleep(self.backoff_seconds * attempt)

                finally:
                    self._maybe_delay()

        return outcomes

    @staticmethod
    def _detail(res: Any) -> str:
        text = res.extracted_content
        if text:
            return (text[:120] + "…") if len(text) > 120 else text
        if "url" in res.meta:
            return str(res.meta["url"])
        if "selector" in res.meta:
            return f'selector="{res.meta["selector"]}"'
        return "-"

    def _maybe_delay(self) -> None:
        if not self.random_delay_ms:
            return
        low, high = self.random_delay_ms
        if low < 0 or high < 0 or high < low:
            return
        time.sleep(random.randint(low, high) / 1000)

    def _on_failure(self, driver: Any, index: int, name: str) -> str | None:
        """Best-effort failure screenshot; a broken session must not mask the step error."""
        if not self.artifacts_dir:
            return None
        png = self.artifacts_dir / f"fail-{index:02d}-{name}.png"
        try:
            driver.capture_screenshot(png)
        except (RemoteDriverError, OSError, ValueError) as e:
            log.warning("failure screenshot not saved", extra={"path": str(png), "error": str(e)})
            return None
        return str(png)
