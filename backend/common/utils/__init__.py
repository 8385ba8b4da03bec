"""Common utility functions."""

from .geo import BoundingBox, bounding_box, calculate_distance

__all__ = [
    "BoundingBox",
    "bounding_box",
    "calculate_distance",
]
