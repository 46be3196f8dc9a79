# File: rcv/core/viewport.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.2
# Status: stable
# Date: 2026-10-18
# Purpose: Controlador de viewport: offset de pan, drag, rueda/trackpad y recentrado.
# Notes: Sin Qt. CanvasView traduce eventos Qt a press/move/release/wheel.
"""Viewport controller.

Two modes, ``IDLE`` and ``DRAGGING``; wheel-pan is a transient action that
does not change the mode.

- idle -> dragging: primary button pressed on the canvas background (not
  inside an internal scrollable region). The pointer position is recorded.
- dragging: each move adds (current - last) to the offset, then records the
  current position. No smoothing, the content tracks the pointer exactly.
- dragging -> idle: primary button released. The Qt layer listens globally
  while dragging so a release outside the canvas still ends the drag.
- wheel: without the zoom modifier and outside scrollable regions the
  offset moves by the negated delta and the event is consumed. Otherwise it
  is passed through untouched (pinch-zoom / inner scroll win).
- recenter: the only absolute assignment of the offset; puts the root
  branch at the centre of the visible viewport.

Drag scope: while dragging, the controller holds the context managers
produced by the registered scope factories (override cursor, text
selection suppression, global listeners). They are released on every exit
path: release, :meth:`ViewportController.close` and a failing enter.
"""

from __future__ import annotations

import contextlib
import logging
from enum import Enum
from typing import Any, Callable, ContextManager, Iterable, Optional

from rcv.geom.types import Point

log = logging.getLogger(__name__)

ScopeFactory = Callable[[], ContextManager[Any]]
TargetPredicate = Callable[[Any], bool]


class DragMode(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class PointerButton(str, Enum):
    PRIMARY = "primary"
    MIDDLE = "middle"
    SECONDARY = "secondary"
    OTHER = "other"


# Marcas de regiones con scroll propio (propiedad "rcv_scroll_role" en la UI).
SCROLL_ROLE_VIEWPORT = "scroll_viewport"
SCROLL_ROLE_MESSAGES = "message_list"
SCROLL_ROLES = (SCROLL_ROLE_VIEWPORT, SCROLL_ROLE_MESSAGES)


def is_within_scrollable(
    target: Any,
    parent_of: Callable[[Any], Any],
    is_marked: TargetPredicate,
    *,
    max_depth: int = 256,
) -> bool:
    """Sube por la cadena de ancestros de `target`; True si alguno está marcado.

    Se evalúa en cada evento (sin cache): el target cambia entre eventos.
    """
    cur = target
    depth = 0
    while cur is not None and depth < max_depth:
        if is_marked(cur):
            return True
        cur = parent_of(cur)
        depth += 1
    return False


class ViewportController:
    def __init__(
        self,
        *,
        is_internal_scrollable: Optional[TargetPredicate] = None,
        drag_scopes: Iterable[ScopeFactory] = (),
        wheel_sensitivity: float = 1.0,
        on_offset_changed: Optional[Callable[[Point], None]] = None,
        on_dragging_changed: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._is_internal_scrollable = is_internal_scrollable or (lambda _t: False)
        self._scope_factories: list[ScopeFactory] = list(drag_scopes)
        self._wheel_sensitivity = float(wheel_sensitivity)
        self._on_offset_changed = on_offset_changed
        self._on_dragging_changed = on_dragging_changed

        self._offset = Point(0.0, 0.0)
        self._mode = DragMode.IDLE
        self._last_pointer_pos = Point(0.0, 0.0)
        self._drag_stack: Optional[contextlib.ExitStack] = None
        self._conversation_id: Optional[str] = None

    # ---------------------------
    # Estado
    # ---------------------------
    @property
    def canvas_offset(self) -> Point:
        return self._offset

    @property
    def mode(self) -> DragMode:
        return self._mode

    @property
    def is_dragging(self) -> bool:
        return self._mode == DragMode.DRAGGING

    @property
    def last_pointer_pos(self) -> Point:
        return self._last_pointer_pos

    @property
    def wheel_sensitivity(self) -> float:
        return self._wheel_sensitivity

    def set_wheel_sensitivity(self, value: float) -> None:
        self._wheel_sensitivity = max(0.1, min(5.0, float(value)))

    def add_drag_scope(self, factory: ScopeFactory) -> None:
        """Registra un recurso a tomar mientras dure el drag (aplica al próximo drag)."""
        self._scope_factories.append(factory)

    def is_internal(self, target: Any) -> bool:
        return bool(self._is_internal_scrollable(target))

    # ---------------------------
    # Coordenadas
    # ---------------------------
    def to_screen(self, canvas_pt: Point | tuple[float, float]) -> Point:
        return Point.of(canvas_pt) + self._offset

    def to_canvas(self, screen_pt: Point | tuple[float, float]) -> Point:
        return Point.of(screen_pt) - self._offset

    # ---------------------------
    # Eventos
    # ---------------------------
    def press(self, button: PointerButton, pos: Point | tuple[float, float], target: Any = None) -> bool:
        """Botón presionado sobre el lienzo. True si arranca un drag (evento consumido)."""
        if button != PointerButton.PRIMARY or self.is_dragging:
            return False
        if self.is_internal(target):
            return False
        self._last_pointer_pos = Point.of(pos)
        self._enter_dragging()
        return True

    def move(self, pos: Point | tuple[float, float]) -> bool:
        if not self.is_dragging:
            return False
        p = Point.of(pos)
        delta = p - self._last_pointer_pos
        self._last_pointer_pos = p
        if delta.x or delta.y:
            self._set_offset(self._offset + delta)
        return True

    def release(self, button: PointerButton) -> bool:
        if button != PointerButton.PRIMARY or not self.is_dragging:
            return False
        self._exit_dragging()
        return True

    def wheel(
        self,
        delta: Point | tuple[float, float],
        *,
        zoom_modifier: bool = False,
        target: Any = None,
    ) -> bool:
        """Pan por rueda/trackpad. False => dejar pasar el evento sin tocarlo."""
        if zoom_modifier:
            return False
        if self.is_internal(target):
            return False
        d = Point.of(delta)
        s = self._wheel_sensitivity
        self._set_offset(Point(self._offset.x - d.x * s, self._offset.y - d.y * s))
        return True

    def recenter(self, root_position: Point | tuple[float, float], viewport_size: tuple[float, float]) -> Point:
        """Offset absoluto: la raíz queda en el centro del viewport visible."""
        root = Point.of(root_position)
        w, h = viewport_size
        self._set_offset(Point(float(w) / 2.0 - root.x, float(h) / 2.0 - root.y))
        return self._offset

    def on_conversation_changed(
        self,
        conversation_id: Optional[str],
        root_position: Point | tuple[float, float],
        viewport_size: tuple[float, float],
    ) -> bool:
        """Recentra solo si cambió la identidad de la conversación activa."""
        if conversation_id == self._conversation_id:
            return False
        self._conversation_id = conversation_id
        self.recenter(root_position, viewport_size)
        log.debug("viewport: recentrado para conversación %s -> %s", conversation_id, self._offset.as_tuple())
        return True

    def close(self) -> None:
        """Teardown: libera el drag scope si quedó activo."""
        if self.is_dragging:
            self._exit_dragging()

    # ---------------------------
    # Internos
    # ---------------------------
    def _set_offset(self, offset: Point) -> None:
        self._offset = offset
        if self._on_offset_changed is not None:
            self._on_offset_changed(offset)

    def _enter_dragging(self) -> None:
        stack = contextlib.ExitStack()
        try:
            for factory in self._scope_factories:
                stack.enter_context(factory())
        except Exception:
            stack.close()
            raise
        self._drag_stack = stack
        self._mode = DragMode.DRAGGING
        if self._on_dragging_changed is not None:
            self._on_dragging_changed(True)

    def _exit_dragging(self) -> None:
        stack = self._drag_stack
        self._drag_stack = None
        self._mode = DragMode.IDLE
        try:
            if stack is not None:
                stack.close()
        finally:
            if self._on_dragging_changed is not None:
                self._on_dragging_changed(False)
