"""
Hardware seam for the robot.

The planning core never talks to motors or sensors directly.  Tools receive a :class:`RobotDriver`
and a :class:`StatusPublisher`; real hardware bindings implement these protocols, while
:class:`SimulatedRobot` and :class:`LoggingPublisher` keep everything runnable on a laptop.
"""

import logging
import time
from typing import (
    List,
    Optional,
    Protocol,
)

import httpx

logger = logging.getLogger(__name__)

FORWARD_CM_PER_MS = 132.7 / 2000.0
"""2000 ms of forward/backward travel covers roughly 132.7 cm."""

TURN_DEG_PER_MS = 90.0 / 570.0
"""570 ms of turning rotates the car roughly 90 degrees."""

SONAR_MAX_CM = 400.0
"""Beyond this range the sonar reports no echo."""

DIRECTIONS = ("forward", "backward", "left", "right", "stop")


class RobotDriver(Protocol):
    """Actuation and sensing primitives.  All calls block until the action is done."""

    def move(self, direction: str, duration_ms: int) -> None:
        """Drive in *direction* for *duration_ms* milliseconds, then stop."""

    def stop(self) -> None:
        """Stop all motors immediately."""

    def ping_cm(self) -> Optional[float]:
        """Return the sonar distance in centimetres, or ``None`` when there is no echo."""

    def describe(self) -> str:
        """Return a short human-readable summary of the robot state."""


class StatusPublisher(Protocol):
    """Outbound status channel (MQTT topic, webhook, log...)."""

    def publish(self, message: str) -> str:
        """Publish *message* and return a short delivery note."""


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------
class SimulatedRobot:
    """
    Software stand-in for the car.

    The world is one-dimensional: a wall sits ``obstacle_cm`` ahead of the car.  Turning changes
    the heading; the wall is only visible while the car faces it (heading 0).
    """

    def __init__(self, obstacle_cm: float = 150.0, real_time: bool = False) -> None:
        self.obstacle_cm = obstacle_cm
        self.real_time = real_time
        self.heading_deg = 0.0
        self.travelled_cm = 0.0
        self.history: List[str] = []

    def move(self, direction: str, duration_ms: int) -> None:
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction '{direction}'")
        if duration_ms < 0:
            raise ValueError("Duration must be non-negative")

        if self.real_time and duration_ms:
            time.sleep(duration_ms / 1000.0)

        if direction == "stop":
            self.stop()
            return

        if direction in ("forward", "backward"):
            distance = duration_ms * FORWARD_CM_PER_MS
            sign = 1.0 if direction == "forward" else -1.0
            self.travelled_cm += sign * distance
            if self.heading_deg % 360.0 == 0.0:
                # The car bumps into the wall rather than passing through it.
                self.obstacle_cm = max(0.0, self.obstacle_cm - sign * distance)
        else:
            angle = duration_ms * TURN_DEG_PER_MS
            self.heading_deg += angle if direction == "right" else -angle
            self.heading_deg = round(self.heading_deg % 360.0, 1)

        self.history.append(f"{direction} {duration_ms}")
        logger.debug("Simulated move %s %dms -> %s", direction, duration_ms, self.describe())

    def stop(self) -> None:
        self.history.append("stop")

    def ping_cm(self) -> Optional[float]:
        if self.heading_deg % 360.0 != 0.0 or self.obstacle_cm > SONAR_MAX_CM:
            return None
        return round(self.obstacle_cm, 1)

    def describe(self) -> str:
        return (
            f"heading={self.heading_deg:.1f}deg travelled={self.travelled_cm:.1f}cm "
            f"moves={len(self.history)}"
        )


# ---------------------------------------------------------------------------
# Status publishers
# ---------------------------------------------------------------------------
class LoggingPublisher:
    """Publishes status messages to the log and keeps them in memory."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def publish(self, message: str) -> str:
        self.messages.append(message)
        logger.info("STATUS: %s", message)
        return "Status message published"


class WebhookPublisher:
    """Posts status messages as JSON to an HTTP endpoint."""

    def __init__(self, url: str, robot_id: str = "arduino_car", timeout: float = 10.0) -> None:
        self.url = url
        self.robot_id = robot_id
        self.timeout = timeout

    def publish(self, message: str) -> str:
        payload = {
            "message": message,
            "timestamp": int(time.time() * 1000),
            "robot_id": self.robot_id,
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(self.url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Webhook request error: %s", str(e))
            return f"Error sending log: {str(e)}"

        return f"Log sent successfully. Response code: {resp.status_code}"
