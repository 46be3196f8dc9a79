# File: rcv/geom/types.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.0
# Status: stable
# Date: 2026-10-18
# Purpose: Tipos valor 2-D (punto, rect, extensión de bloque). Sin comportamiento de dominio.
# Notes: Coordenadas canvas en px; el centro del bloque es su "position".
from __future__ import annotations

from dataclasses import dataclass

# Medidas del bloque de conversación (px). Compartidas por layout y aristas.
BLOCK_WIDTH = 320.0
BLOCK_HEIGHT = 380.0
BLOCK_HALF_WIDTH = BLOCK_WIDTH / 2.0


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def __neg__(self) -> "Point":
        return Point(-self.x, -self.y)

    def as_tuple(self) -> tuple[float, float]:
        return (float(self.x), float(self.y))

    @staticmethod
    def of(value: "Point | tuple[float, float] | list[float]") -> "Point":
        if isinstance(value, Point):
            return value
        x, y = value
        return Point(float(x), float(y))


@dataclass(frozen=True)
class Rect:
    """Rect alineado a ejes (x/y = esquina superior izquierda)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def center(self) -> Point:
        return Point(self.x + self.width / 2.0, self.y + self.height / 2.0)

    def contains(self, p: Point) -> bool:
        return self.left <= p.x <= self.right and self.top <= p.y <= self.bottom

    @staticmethod
    def from_points(a: Point, b: Point, *, pad: float = 0.0) -> "Rect":
        """Menor rect que contiene a y b, con `pad` de margen en cada lado."""
        x0 = min(a.x, b.x) - pad
        y0 = min(a.y, b.y) - pad
        x1 = max(a.x, b.x) + pad
        y1 = max(a.y, b.y) + pad
        return Rect(x0, y0, x1 - x0, y1 - y0)


@dataclass(frozen=True)
class BlockExtent:
    width: float = BLOCK_WIDTH
    height: float = BLOCK_HEIGHT

    @property
    def half_width(self) -> float:
        return self.width / 2.0

    @property
    def half_height(self) -> float:
        return self.height / 2.0


@dataclass(frozen=True)
class PositionedBlock:
    """Bloque ubicado: `center` es la posición que asigna el layout."""

    center: Point
    extent: BlockExtent = BlockExtent()

    @property
    def x(self) -> float:
        return self.center.x

    @property
    def y(self) -> float:
        return self.center.y

    def rect(self) -> Rect:
        e = self.extent
        return Rect(self.center.x - e.half_width, self.center.y - e.half_height, e.width, e.height)
