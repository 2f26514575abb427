import math
import numpy as np
from typing import Tuple
from .errors import ValidationError
from .schemas import Rect

Point = Tuple[float, float]
TransformMatrix = np.ndarray


def _check_zoom(zoom: float) -> float:
    z = float(zoom)
    if not math.isfinite(z) or z <= 0:
        raise ValidationError(f"zoom debe ser un número positivo (recibido {zoom!r})")
    return z


def zoom_matrix(zoom: float) -> TransformMatrix:
    """Matriz documento -> dispositivo para un zoom dado (sin traslación)."""
    z = _check_zoom(zoom)
    return np.array([[z, 0, 0], [0, z, 0]], dtype=float)


def inverse_zoom_matrix(zoom: float) -> TransformMatrix:
    """Matriz dispositivo -> documento."""
    z = _check_zoom(zoom)
    return np.array([[1.0 / z, 0, 0], [0, 1.0 / z, 0]], dtype=float)


def apply_affine(T: TransformMatrix, x: float, y: float) -> Point:
    """Aplica transformacion afin a un punto."""
    X = np.array([x, y, 1.0], dtype=float)
    u, v = (T @ X)
    return float(u), float(v)


def to_document(point: Point, zoom: float) -> Point:
    return apply_affine(inverse_zoom_matrix(zoom), point[0], point[1])


def to_device(point: Point, zoom: float) -> Point:
    return apply_affine(zoom_matrix(zoom), point[0], point[1])


def length_to_document(value: float, zoom: float) -> float:
    # anchos/altos son escalares: sin traslación
    return float(value) / _check_zoom(zoom)


def length_to_device(value: float, zoom: float) -> float:
    return float(value) * _check_zoom(zoom)


def rect_to_document(rect: Rect, zoom: float) -> Rect:
    """Convierte un rectángulo dibujado en pantalla a espacio documento."""
    x, y = to_document((rect.x, rect.y), zoom)
    return Rect(
        x=x,
        y=y,
        width=length_to_document(rect.width, zoom),
        height=length_to_document(rect.height, zoom),
    )


def rect_to_device(rect: Rect, zoom: float) -> Rect:
    x, y = to_device((rect.x, rect.y), zoom)
    return Rect(
        x=x,
        y=y,
        width=length_to_device(rect.width, zoom),
        height=length_to_device(rect.height, zoom),
    )
