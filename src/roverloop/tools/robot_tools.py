"""
Robot tools exposed to the planner.

Each tool takes the raw parameter string chosen by the model and returns a line of text that is fed
back into the next planning prompt.  Tools raise ``ValueError`` on bad parameters; the dispatcher
turns that into an error note.
"""

import logging

from roverloop.config import (
    Settings,
    settings,
)
from roverloop.robot.driver import (
    DIRECTIONS,
    SONAR_MAX_CM,
    LoggingPublisher,
    RobotDriver,
    SimulatedRobot,
    StatusPublisher,
    WebhookPublisher,
)
from roverloop.tools import (
    CatalogBuilder,
    ToolCatalog,
)

logger = logging.getLogger(__name__)

MAX_MOVE_MS = 10_000
"""Longest single actuation a tool call may request."""


def parse_move_params(params: str, max_move_ms: int = MAX_MOVE_MS) -> tuple[str, int]:
    """
    Parse ``"<direction> <ms>"`` into a direction and a bounded duration.

    ``"stop"`` alone is accepted and means a zero-length stop.
    """
    parts = params.strip().lower().split()
    if not parts:
        raise ValueError("move_car needs '<direction> <ms>'")

    direction = parts[0]
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown direction '{direction}'. Use one of: {', '.join(DIRECTIONS)}")

    if len(parts) == 1:
        if direction == "stop":
            return direction, 0
        raise ValueError(f"move_car '{direction}' needs a duration in ms")

    try:
        duration_ms = int(float(parts[1].removesuffix("ms")))
    except ValueError as exc:
        raise ValueError(f"Invalid duration '{parts[1]}'") from exc

    if duration_ms < 0 or duration_ms > max_move_ms:
        raise ValueError(f"Duration must be between 0 and {max_move_ms} ms, got {duration_ms}")
    return direction, duration_ms


def _format_distance(distance: float | None) -> str:
    if distance is None:
        return f"Distance: Out of range (>{SONAR_MAX_CM:.0f}cm or no echo)"
    return f"Distance: {distance:g} cm"


def build_robot_catalog(
    robot: RobotDriver,
    publisher: StatusPublisher,
    webhook: StatusPublisher | None = None,
    max_move_ms: int = MAX_MOVE_MS,
) -> ToolCatalog:
    """
    Build the catalog of robot tools bound to *robot* and *publisher*.

    ``log_to_webhook`` is only registered when a *webhook* publisher is given.
    """
    builder = CatalogBuilder()

    @builder.register("move_car")
    def move_car(params: str) -> str:
        """Controls movement (forward/backward/left/right/stop + value in ms)"""
        direction, duration_ms = parse_move_params(params, max_move_ms)
        if direction == "stop":
            robot.stop()
            return "Car stopped"
        robot.move(direction, duration_ms)
        return f"Moved {direction} for {duration_ms}ms"

    @builder.register("get_sonar_distance")
    def get_sonar_distance(params: str) -> str:  # pylint: disable=unused-argument
        """Measures distance using ultrasonic sensor in centimeters"""
        return _format_distance(robot.ping_cm())

    @builder.register("test_sonar")
    def test_sonar(params: str) -> str:  # pylint: disable=unused-argument
        """Tests ultrasonic sensor by taking three readings"""
        readings = [robot.ping_cm() for _ in range(3)]
        echoes = [r for r in readings if r is not None]
        rendered = ", ".join("no echo" if r is None else f"{r:g} cm" for r in readings)
        status = "OK" if echoes else "NO ECHO"
        return f"Sonar test {status}: {rendered}"

    @builder.register("get_environment_info")
    def get_environment_info(params: str) -> str:  # pylint: disable=unused-argument
        """Gathers current environment information"""
        return f"{_format_distance(robot.ping_cm())}; {robot.describe()}"

    @builder.register("send_mqtt_message")
    def send_mqtt_message(params: str) -> str:
        """Sends status updates over MQTT"""
        message = params.strip()
        if not message:
            raise ValueError("send_mqtt_message needs a message")
        return publisher.publish(message)

    if webhook is not None:

        @builder.register("log_to_webhook")
        def log_to_webhook(params: str) -> str:
            """Sends a log message via HTTP POST to webhook endpoint"""
            return webhook.publish(params.strip() or "Robot log entry")

    return builder.build()


def build_default_catalog(config: Settings | None = None) -> ToolCatalog:
    """Build the robot catalog for the driver and status channels named in settings."""
    config = config or settings
    if config.ROBOT_DRIVER.lower() != "simulated":
        raise ValueError(f"Robot driver '{config.ROBOT_DRIVER}' is not supported.")

    robot = SimulatedRobot(
        obstacle_cm=config.SIMULATED_OBSTACLE_CM, real_time=config.SIMULATE_REAL_TIME
    )
    webhook = (
        WebhookPublisher(config.STATUS_WEBHOOK_URL, robot_id=config.ROBOT_ID)
        if config.STATUS_WEBHOOK_URL
        else None
    )
    logger.info("Using simulated robot (obstacle at %.1f cm)", config.SIMULATED_OBSTACLE_CM)
    return build_robot_catalog(robot, LoggingPublisher(), webhook)
