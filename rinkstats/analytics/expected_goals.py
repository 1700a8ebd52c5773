"""
Shot Expected Goals Model

Scores each shot attempt with a goal probability from its geometry
(distance and angle to the net) and context (shot type, strength).

The model is a logistic regression whose shot type and strength
adjustments are applied as log-odds of multipliers. Output is clamped to
a band strictly inside (0, 1).
"""

from dataclasses import dataclass
import numpy as np

from rinkstats.config import QualityCoefficients
from rinkstats.models.events import Manpower, ShotEvent, ShotTechnique

# Net sits on the goal line at x = +/-89, y = 0
NET_X = 89.0

MAX_DISTANCE = 200.0
MAX_ANGLE = 90.0


@dataclass(frozen=True)
class ShotGeometry:
    """Distance (feet) and angle (degrees) from the attacked net."""

    distance: float
    angle: float


def shot_geometry(x: float, y: float) -> ShotGeometry:
    """
    Calculate distance and angle to the nearest net.

    Shots from the negative half attack the net at x = -89, so the
    geometry is symmetric across the center line.

    Args:
        x: X coordinate
        y: Y coordinate (center = 0)

    Returns:
        ShotGeometry with angle 0 for dead center and 90 on the goal line
    """
    net_x = NET_X if x >= 0 else -NET_X
    distance = float(np.hypot(x - net_x, y))

    from_goal_line = abs(net_x - x)
    lateral = abs(y)
    if from_goal_line > 0:
        angle = float(np.degrees(np.arctan(lateral / from_goal_line)))
    else:
        angle = MAX_ANGLE

    return ShotGeometry(distance=distance, angle=angle)


class ShotQualityModel:
    """Logistic expected goals model."""

    DANGER_HIGH = 0.15
    DANGER_MEDIUM = 0.08

    def __init__(self, coefficients: QualityCoefficients | None = None) -> None:
        self.coefficients = coefficients or QualityCoefficients()

    def predict(
        self,
        distance: float,
        angle: float,
        shot_type: ShotTechnique | str = ShotTechnique.WRIST,
        strength: Manpower | str = Manpower.EVEN,
        is_rebound: bool = False,
    ) -> float:
        """
        Calculate the goal probability for a shot.

        Args:
            distance: Distance from the net in feet
            angle: Angle from the center line in degrees
            shot_type: Normalized shot type
            strength: Strength state of the shooting team
            is_rebound: Whether the shot followed another shot quickly

        Returns:
            Probability within [min_probability, max_probability]
        """
        c = self.coefficients

        valid_distance = min(max(distance or 0.0, 0.0), MAX_DISTANCE)
        valid_angle = min(max(angle or 0.0, 0.0), MAX_ANGLE)

        logit = c.intercept + valid_distance * c.distance + valid_angle * c.angle

        shot_key = shot_type.value if isinstance(shot_type, ShotTechnique) else str(shot_type)
        strength_key = strength.value if isinstance(strength, Manpower) else str(strength)
        logit += np.log(c.shot_type_multipliers.get(shot_key, 1.0))
        logit += np.log(c.strength_multipliers.get(strength_key, 1.0))

        if is_rebound:
            logit += c.rebound_bonus

        probability = 1.0 / (1.0 + np.exp(-logit))
        return float(min(max(probability, c.min_probability), c.max_probability))

    def predict_event(self, event: ShotEvent) -> float:
        """Score a normalized shot event."""
        geometry = shot_geometry(event.x_coord, event.y_coord)
        return self.predict(
            geometry.distance, geometry.angle, event.shot_type, event.strength, is_rebound=event.is_rebound
        )

    def is_high_danger(self, distance: float) -> bool:
        """High-danger attempts are taken inside the fixed distance threshold."""
        return distance < self.coefficients.high_danger_distance

    def is_high_danger_event(self, event: ShotEvent) -> bool:
        return self.is_high_danger(shot_geometry(event.x_coord, event.y_coord).distance)

    def danger_level(self, xg: float) -> str:
        """Categorize a probability as high / medium / low danger."""
        if xg >= self.DANGER_HIGH:
            return "high"
        if xg >= self.DANGER_MEDIUM:
            return "medium"
        return "low"

    @staticmethod
    def goals_above_expected(goals: int, expected: float) -> float:
        """Actual goals minus summed expected goals."""
        return goals - expected
