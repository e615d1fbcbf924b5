"""Product tag positions.

A tag is anchored to a point on a post image as a percentage of the image's
width and height, so it stays in place however large the image is rendered.
"""
import math

MIN_PERCENT = 0.0
MAX_PERCENT = 100.0


def clamp_percentage(value):
    """Coerce ``value`` to a float within [0, 100]."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid coordinate: {value!r}")
    if math.isnan(value):
        raise ValueError("Invalid coordinate: NaN")
    return max(MIN_PERCENT, min(MAX_PERCENT, value))


def coordinates_from_click(x, y, width, height, left=0, top=0):
    """Convert a pointer position inside a bounded element to tag coordinates.

    ``x``/``y`` are page coordinates of the click and ``left``/``top`` the
    element's offset, all in pixels. Returns ``(x_percent, y_percent)``.
    """
    if width <= 0 or height <= 0:
        raise ValueError("Element must have a positive size")
    x_percent = (x - left) / width * 100
    y_percent = (y - top) / height * 100
    return clamp_percentage(x_percent), clamp_percentage(y_percent)
