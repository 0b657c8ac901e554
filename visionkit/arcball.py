"""Arcball rotation driven by mouse drags over a window."""

from __future__ import annotations

import enum
import math

import numpy as np


class _Tracking(enum.Enum):
    IDLE = 0
    STARTING = 1
    TRACKING = 2


def rotation_matrix(angle_degrees: float, axis) -> np.ndarray:
    """4x4 rotation by ``angle_degrees`` about ``axis`` (normalized here).

    A zero-length axis gives the identity.
    """
    a = np.asarray(axis, dtype=float)
    length = np.linalg.norm(a)
    result = np.eye(4)
    if length == 0:
        return result
    x, y, z = a / length
    theta = math.radians(angle_degrees)
    c, s = math.cos(theta), math.sin(theta)
    unit = np.array([x, y, z])
    cross = np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])
    result[:3, :3] = c * np.eye(3) + (1.0 - c) * np.outer(unit, unit) + s * cross
    return result


class Arcball:
    """Turns cursor movement while the button is held into a rotation."""

    def __init__(
        self,
        width: int,
        height: int,
        roll_speed: float = 1.0,
        x_axis: bool = True,
        y_axis: bool = True,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("window size must be positive")
        self.width = width
        self.height = height
        self.roll_speed = roll_speed
        self.x_axis = x_axis
        self.y_axis = y_axis
        self.angle = 0.0
        self.cam_axis = np.array([0.0, 1.0, 0.0])
        self.prev_pos = np.zeros(3)
        self.curr_pos = np.zeros(3)
        self._state = _Tracking.IDLE

    def to_screen_coord(self, x: float, y: float) -> np.ndarray:
        """Map a window position onto the unit hemisphere facing the viewer."""
        cx = (2 * x - self.width) / self.width if self.x_axis else 0.0
        cy = -(2 * y - self.height) / self.height if self.y_axis else 0.0
        cx = min(max(cx, -1.0), 1.0)
        cy = min(max(cy, -1.0), 1.0)
        length_squared = cx * cx + cy * cy
        if length_squared <= 1.0:
            return np.array([cx, cy, math.sqrt(1.0 - length_squared)])
        coord = np.array([cx, cy, 0.0])
        return coord / np.linalg.norm(coord)

    def mouse_button(self, pressed: bool) -> None:
        """Start tracking when the (left) button is pressed, stop otherwise."""
        self._state = _Tracking.STARTING if pressed else _Tracking.IDLE

    def cursor(self, x: float, y: float) -> None:
        """Feed a cursor position; updates the rotation while tracking."""
        if self._state is _Tracking.IDLE:
            return
        if self._state is _Tracking.STARTING:
            self.prev_pos = self.to_screen_coord(x, y)
            self._state = _Tracking.TRACKING
            return
        self.curr_pos = self.to_screen_coord(x, y)
        dot = float(np.dot(self.prev_pos, self.curr_pos))
        self.angle = math.acos(max(-1.0, min(1.0, dot)))
        self.cam_axis = np.cross(self.prev_pos, self.curr_pos)

    def view_rotation_matrix(self) -> np.ndarray:
        """Rotation in camera coordinates, to be applied to the view matrix."""
        return rotation_matrix(math.degrees(self.angle) * self.roll_speed, self.cam_axis)

    def model_rotation_matrix(self, view_matrix) -> np.ndarray:
        """Rotation in world coordinates, to be applied to the model matrix."""
        view = np.asarray(view_matrix, dtype=float)
        axis = np.linalg.inv(view[:3, :3]) @ self.cam_axis
        return rotation_matrix(math.degrees(self.angle) * self.roll_speed, axis)