# File: rcv/geom/edges.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.0
# Status: stable
# Date: 2026-10-18
# Purpose: Geometría de la arista padre -> hijo (anclas, Bézier cúbica, bounding box).
# Notes: Función pura; el resultado solo se usa para dibujar, nunca se guarda.
from __future__ import annotations

import logging
from dataclasses import dataclass

from rcv.geom.types import BLOCK_HALF_WIDTH, Point, PositionedBlock, Rect

log = logging.getLogger(__name__)

CONTROL_FACTOR = 0.3
CONTROL_MIN = 80.0
CONTROL_MAX = 150.0
BBOX_PAD = 50.0


@dataclass(frozen=True)
class Connection:
    start: Point
    end: Point
    control_point1: Point
    control_point2: Point
    bounding_box: Rect
    # Padre e hijo en las mismas coordenadas (se resuelve centro a centro).
    degenerate: bool = False

    def label_point(self) -> Point:
        """Punto medio de la recta start-end, 10 px arriba (etiqueta L<n>)."""
        return Point(
            self.start.x + (self.end.x - self.start.x) / 2.0,
            self.start.y + (self.end.y - self.start.y) / 2.0 - 10.0,
        )

    def path_in_box(self) -> tuple[Point, Point, Point, Point]:
        """start, cp1, cp2, end relativos a la esquina del bounding box."""
        origin = Point(self.bounding_box.x, self.bounding_box.y)
        return (
            self.start - origin,
            self.control_point1 - origin,
            self.control_point2 - origin,
            self.end - origin,
        )


def control_offset(dx: float) -> float:
    return min(max(abs(dx) * CONTROL_FACTOR, CONTROL_MIN), CONTROL_MAX)


def anchors_for(parent: PositionedBlock, child: PositionedBlock) -> tuple[Point, Point]:
    """Anclas en el punto medio del borde lateral; misma x => centro a centro."""
    p_half = parent.extent.half_width if parent.extent else BLOCK_HALF_WIDTH
    c_half = child.extent.half_width if child.extent else BLOCK_HALF_WIDTH

    start_x = parent.x
    end_x = child.x
    if child.x > parent.x:
        start_x = parent.x + p_half
        end_x = child.x - c_half
    elif child.x < parent.x:
        start_x = parent.x - p_half
        end_x = child.x + c_half
    return Point(start_x, parent.y), Point(end_x, child.y)


def connection_for(parent: PositionedBlock, child: PositionedBlock) -> Connection:
    start, end = anchors_for(parent, child)
    degenerate = parent.center == child.center
    if degenerate:
        log.debug("connection_for: padre e hijo coinciden en %s", parent.center.as_tuple())

    off = control_offset(end.x - start.x)
    # Hacia afuera desde cada ancla, en la dirección de la arista.
    if end.x > start.x:
        cp1 = Point(start.x + off, start.y)
        cp2 = Point(end.x - off, end.y)
    else:
        cp1 = Point(start.x - off, start.y)
        cp2 = Point(end.x + off, end.y)

    return Connection(
        start=start,
        end=end,
        control_point1=cp1,
        control_point2=cp2,
        bounding_box=Rect.from_points(start, end, pad=BBOX_PAD),
        degenerate=degenerate,
    )
