# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Distance-tiered haptic/audio alerts.

| distance d (m)    | response                                             |
|-------------------|------------------------------------------------------|
| d < 0.20          | strong pulse + audible cue, strong pulse every 0.5 s |
| 0.20 <= d < 0.50  | single strong pulse                                  |
| 0.50 <= d < 1.00  | single light pulse                                   |
| d >= 1.00         | nothing                                              |
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable

from common.config import Config, config

logger = logging.getLogger(__name__)


class AlertTier(str, Enum):
    NONE = "none"
    LIGHT = "light"
    STRONG = "strong"
    REPEATING = "repeating"


class PulseIntensity(str, Enum):
    LIGHT = "light"
    STRONG = "strong"


@runtime_checkable
class AlertActuator(Protocol):
    """Haptic/audio output device. Commands are fire-and-forget."""

    def pulse(self, intensity: PulseIntensity) -> None: ...

    def play_cue(self) -> None: ...


class LoggingAlertActuator:
    """Actuator that only logs, for hosts without haptic hardware."""

    def pulse(self, intensity: PulseIntensity) -> None:
        logger.info("haptic_pulse", extra={"intensity": intensity.value})

    def play_cue(self) -> None:
        logger.info("audible_cue")


@dataclass(frozen=True)
class AlertThresholds:
    repeat_below: float = 0.20
    strong_below: float = 0.50
    light_below: float = 1.00

    @classmethod
    def from_config(cls, settings: Config = config) -> AlertThresholds:
        return cls(
            repeat_below=settings.ALERT_REPEAT_BELOW_M,
            strong_below=settings.ALERT_STRONG_BELOW_M,
            light_below=settings.ALERT_LIGHT_BELOW_M,
        )


def classify_distance(
    distance: float, thresholds: AlertThresholds = AlertThresholds()
) -> AlertTier:
    if distance < thresholds.repeat_below:
        return AlertTier.REPEATING
    if distance < thresholds.strong_below:
        return AlertTier.STRONG
    if distance < thresholds.light_below:
        return AlertTier.LIGHT
    return AlertTier.NONE


@dataclass
class AlertState:
    last_triggered: float = -math.inf
    active_repeat: bool = False


@dataclass(frozen=True)
class AlertDecision:
    tier: AlertTier
    issued: bool


class AlertPolicy:
    """Maps nearest-obstacle distance to alerts, with throttling and a cancellable repeat.

    The policy is the only owner of the alert state and of the repeat task.
    ``evaluate`` must be called from the event loop that runs the repeat.
    """

    def __init__(
        self,
        actuator: AlertActuator,
        thresholds: Optional[AlertThresholds] = None,
        throttle_s: float = 0.5,
        repeat_interval_s: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._actuator = actuator
        self._thresholds = thresholds or AlertThresholds()
        self._throttle_s = throttle_s
        self._repeat_interval_s = repeat_interval_s
        self._clock = clock
        self._state = AlertState()
        self._repeat_task: Optional[asyncio.Task[None]] = None

    @classmethod
    def from_config(
        cls, actuator: AlertActuator, settings: Config = config
    ) -> AlertPolicy:
        return cls(
            actuator,
            thresholds=AlertThresholds.from_config(settings),
            throttle_s=settings.ALERT_THROTTLE_S,
            repeat_interval_s=settings.ALERT_REPEAT_INTERVAL_S,
        )

    @property
    def state(self) -> AlertState:
        return dataclasses.replace(self._state)

    @property
    def repeat_active(self) -> bool:
        return self._repeat_task is not None and not self._repeat_task.done()

    def evaluate(self, distance: float) -> AlertDecision:
        """Issue the alert for a new nearest-obstacle distance, if allowed."""
        tier = classify_distance(distance, self._thresholds)
        if tier is not AlertTier.REPEATING:
            self.cancel_repeat()
        if tier is AlertTier.NONE:
            return AlertDecision(tier, issued=False)

        now = self._clock()
        if now - self._state.last_triggered < self._throttle_s:
            return AlertDecision(tier, issued=False)

        self.cancel_repeat()
        self._state.last_triggered = now

        if tier is AlertTier.REPEATING:
            self._fire(self._actuator.pulse, PulseIntensity.STRONG)
            self._fire(self._actuator.play_cue)
            self._repeat_task = asyncio.get_running_loop().create_task(
                self._repeat_pulses()
            )
            self._state.active_repeat = True
        elif tier is AlertTier.STRONG:
            self._fire(self._actuator.pulse, PulseIntensity.STRONG)
        else:
            self._fire(self._actuator.pulse, PulseIntensity.LIGHT)

        logger.debug("alert_issued", extra={"tier": tier.value, "distance": distance})
        return AlertDecision(tier, issued=True)

    def cancel_repeat(self) -> None:
        if self._repeat_task is not None:
            self._repeat_task.cancel()
            self._repeat_task = None
        self._state.active_repeat = False

    def clear(self) -> None:
        """Stop any repeat and forget the throttle history."""
        self.cancel_repeat()
        self._state = AlertState()

    async def _repeat_pulses(self) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            while True:
                await asyncio.sleep(self._repeat_interval_s)
                self._fire(self._actuator.pulse, PulseIntensity.STRONG)

    def _fire(self, command: Callable[..., None], *args: object) -> None:
        try:
            command(*args)
        except Exception as err:
            logger.warning("Alert actuator command failed", extra={"error": str(err)})
