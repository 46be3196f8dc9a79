# File: rcv/ui/canvas_view.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.2
# Status: stable
# Date: 2026-10-18
# Purpose: Lienzo infinito (QGraphicsView): bloques por rama, aristas Bézier, pan por drag/rueda.
# Notes: Escena = coords de viewport; el pan mueve un item contenedor (offset del ViewportController).
from __future__ import annotations

import contextlib
import math

from PySide6.QtCore import QEvent, QObject, QPointF, QRectF, Qt, QTimer, Signal
from PySide6.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen, QPolygonF

# Optional: hardware-accelerated viewport (only if enabled by env var).
try:
    from PySide6.QtOpenGLWidgets import QOpenGLWidget
except ImportError:  # pragma: no cover
    QOpenGLWidget = None  # type: ignore
from PySide6.QtWidgets import (
    QApplication,
    QGraphicsEllipseItem,
    QGraphicsItem,
    QGraphicsPathItem,
    QGraphicsPolygonItem,
    QGraphicsProxyWidget,
    QGraphicsRectItem,
    QGraphicsScene,
    QGraphicsSimpleTextItem,
    QGraphicsView,
    QWidget,
)

from rcv.core.models import Conversation
from rcv.core.settings import env_bool
from rcv.core.viewport import SCROLL_ROLES, PointerButton, ViewportController, is_within_scrollable
from rcv.geom.edges import Connection, connection_for
from rcv.geom.types import BLOCK_HEIGHT, BLOCK_WIDTH, Point, PositionedBlock
from rcv.ui.block_widget import SCROLL_ROLE_PROPERTY, ConversationBlockWidget
from rcv.utils.errors import NoRootError
from rcv.utils.log import get_logger

log = get_logger(__name__)

EDGE_COLOR = QColor(100, 116, 139)
EDGE_DOT_COLOR = QColor(148, 163, 184)


class BranchEdgeItem(QGraphicsPathItem):
    """Conector padre -> hijo dibujado en el espacio local de su bounding box."""

    def __init__(self, connection: Connection, level: int, *, show_label: bool = True, parent: QGraphicsItem | None = None) -> None:
        super().__init__(parent)
        box = connection.bounding_box
        self.setPos(box.x, box.y)
        start, c1, c2, end = connection.path_in_box()

        path = QPainterPath(QPointF(start.x, start.y))
        path.cubicTo(QPointF(c1.x, c1.y), QPointF(c2.x, c2.y), QPointF(end.x, end.y))
        self.setPath(path)

        pen = QPen(EDGE_COLOR)
        pen.setWidthF(2.0)
        # 8,4 px con ancho 2 (el patrón va en unidades de ancho de pluma)
        pen.setDashPattern([4.0, 2.0])
        self.setPen(pen)
        self.setOpacity(0.7)

        # Punta de flecha orientada según la tangente final (c2 -> end)
        ang = math.atan2(end.y - c2.y, end.x - c2.x)
        tip = QPointF(end.x, end.y)
        back = QPointF(end.x - 8.0 * math.cos(ang), end.y - 8.0 * math.sin(ang))
        nx, ny = -math.sin(ang) * 3.0, math.cos(ang) * 3.0
        arrow = QGraphicsPolygonItem(
            QPolygonF([tip, QPointF(back.x() + nx, back.y() + ny), QPointF(back.x() - nx, back.y() - ny)]),
            self,
        )
        arrow.setBrush(QBrush(EDGE_COLOR))
        arrow.setPen(Qt.NoPen)

        dot_start = QGraphicsEllipseItem(start.x - 4.0, start.y - 4.0, 8.0, 8.0, self)
        dot_start.setBrush(QBrush(EDGE_DOT_COLOR))
        dot_start.setPen(QPen(EDGE_COLOR, 1.0))
        dot_end = QGraphicsEllipseItem(end.x - 3.0, end.y - 3.0, 6.0, 6.0, self)
        dot_end.setBrush(QBrush(EDGE_COLOR))
        dot_end.setPen(Qt.NoPen)

        self._label = QGraphicsSimpleTextItem(f"L{level}", self)
        f = QFont(self._label.font())
        f.setPointSizeF(8.0)
        self._label.setFont(f)
        self._label.setBrush(QBrush(EDGE_DOT_COLOR))
        lp = connection.label_point()
        br = self._label.boundingRect()
        self._label.setPos(lp.x - box.x - br.width() / 2.0, lp.y - box.y - br.height())
        self._label.setVisible(show_label)

    def set_label_visible(self, on: bool) -> None:
        self._label.setVisible(bool(on))


class _GlobalPointerFilter(QObject):
    """Event filter de aplicación: solo instalado mientras dura un drag."""

    def __init__(self, controller: ViewportController, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._ctl = controller

    def eventFilter(self, obj, event) -> bool:
        et = event.type()
        if et == QEvent.Type.MouseMove:
            gp = event.globalPosition()
            self._ctl.move(Point(gp.x(), gp.y()))
        elif et == QEvent.Type.MouseButtonRelease and event.button() == Qt.LeftButton:
            self._ctl.release(PointerButton.PRIMARY)
        return False


class CanvasView(QGraphicsView):
    branch_selected = Signal(str)  # branch_id
    navigate_requested = Signal(str, str)  # (branch_id, message_id)
    offset_changed = Signal(float, float)

    THEME_PRESETS = {
        'dark': {
            'bg': (30, 30, 30),
            'grid': (52, 52, 52),
            'text': (160, 160, 160),
        },
        'mid': {
            'bg': (55, 55, 55),
            'grid': (75, 75, 75),
            'text': (190, 190, 190),
        },
        'light': {
            'bg': (248, 250, 252),
            'grid': (226, 232, 240),
            'text': (100, 116, 139),
        },
    }

    GRID_STEP = 20.0

    def __init__(self, parent: QWidget | None = None, *, wheel_sensitivity: float = 1.0) -> None:
        super().__init__(parent)

        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)

        self._conversation: Conversation | None = None
        self._highlight_id: str | None = None
        self._show_level_labels = True
        self._blocks: dict[str, ConversationBlockWidget] = {}
        self._proxies: dict[str, QGraphicsProxyWidget] = {}
        self._edges: list[BranchEdgeItem] = []
        self._pending_recenter = False

        # Contenedor de todo el contenido: su pos ES el canvas offset.
        self._content = QGraphicsRectItem()
        self._content.setPen(Qt.NoPen)
        self._scene.addItem(self._content)

        self._viewport_ctl = ViewportController(
            is_internal_scrollable=self._is_internal_scrollable,
            drag_scopes=(self._grab_cursor_scope, self._text_selection_scope, self._global_pointer_scope),
            wheel_sensitivity=wheel_sensitivity,
            on_offset_changed=self._on_offset_changed,
            on_dragging_changed=self._on_dragging_changed,
        )
        self._global_filter = _GlobalPointerFilter(self._viewport_ctl, self)

        self._theme_id = 'light'
        self._apply_theme_colors('light')

        self.setAlignment(Qt.AlignLeft | Qt.AlignTop)
        self.setTransformationAnchor(QGraphicsView.NoAnchor)
        self.setResizeAnchor(QGraphicsView.NoAnchor)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setDragMode(QGraphicsView.NoDrag)
        self.setRenderHint(QPainter.Antialiasing, True)
        self.setRenderHint(QPainter.TextAntialiasing, True)
        self.setViewportUpdateMode(QGraphicsView.FullViewportUpdate)
        self.setFocusPolicy(Qt.StrongFocus)

        # Optional: OpenGL viewport. Enable with env `RCV_CANVAS_OPENGL=1`.
        if env_bool("RCV_CANVAS_OPENGL", False) and QOpenGLWidget is not None:
            self.setViewport(QOpenGLWidget())

        self.viewport().setCursor(Qt.OpenHandCursor)

    # ------------------------------ API

    @property
    def viewport_controller(self) -> ViewportController:
        return self._viewport_ctl

    def canvas_offset(self) -> Point:
        return self._viewport_ctl.canvas_offset

    def is_dragging(self) -> bool:
        return self._viewport_ctl.is_dragging

    def theme_id(self) -> str:
        return self._theme_id

    def set_theme(self, theme_id: str) -> None:
        tid = (theme_id or '').strip().lower()
        if tid not in self.THEME_PRESETS:
            tid = 'light'
        self._theme_id = tid
        self._apply_theme_colors(tid)
        self.viewport().update()

    def set_wheel_sensitivity(self, value: float) -> None:
        self._viewport_ctl.set_wheel_sensitivity(value)

    def set_level_labels_visible(self, on: bool) -> None:
        self._show_level_labels = bool(on)
        for e in self._edges:
            e.set_label_visible(self._show_level_labels)

    def set_conversation(self, conversation: Conversation | None) -> None:
        """Cambia la conversación mostrada. Recentra solo si cambió su identidad."""
        self._conversation = conversation
        self._rebuild()
        self._recenter_if_changed()

    def refresh(self) -> None:
        """Reconstruye bloques/aristas (cambio estructural o de mensajes). No toca el offset."""
        self._rebuild()

    def refresh_active(self) -> None:
        conv = self._conversation
        active = conv.active_branch_id if conv is not None else None
        for bid, w in self._blocks.items():
            w.set_active(bid == active)

    def set_highlight(self, message_id: str | None) -> None:
        self._highlight_id = message_id
        for w in self._blocks.values():
            w.set_highlight(message_id)

    def center_on_root(self) -> None:
        conv = self._conversation
        if conv is None:
            return
        try:
            root = conv.root()
        except NoRootError as e:
            log.warning("No se puede centrar: %s", e)
            return
        vp = self.viewport().size()
        self._viewport_ctl.recenter(root.position, (vp.width(), vp.height()))

    def teardown(self) -> None:
        """Libera el drag (cursor/listeners globales) si quedó activo."""
        self._viewport_ctl.close()

    # ------------------------------ Escena

    def _rebuild(self) -> None:
        for it in list(self._content.childItems()):
            self._scene.removeItem(it)
        for proxy in self._proxies.values():
            proxy.deleteLater()
        self._blocks.clear()
        self._proxies.clear()
        self._edges.clear()

        conv = self._conversation
        if conv is None:
            self.viewport().update()
            return

        if not conv.has_messages():
            self._add_ready_hint(conv.canvas_center)
            self.viewport().update()
            return

        for bid, branch in conv.branches.items():
            w = ConversationBlockWidget(branch)
            w.set_active(bid == conv.active_branch_id)
            w.set_highlight(self._highlight_id)
            w.selected.connect(self.branch_selected)
            w.navigate_requested.connect(self.navigate_requested)

            proxy = self._scene.addWidget(w)
            proxy.setParentItem(self._content)
            proxy.setPos(branch.position.x - BLOCK_WIDTH / 2.0, branch.position.y - BLOCK_HEIGHT / 2.0)
            proxy.setZValue(10)
            self._blocks[bid] = w
            self._proxies[bid] = proxy

        for branch in conv.branches.values():
            if not branch.parent_branch_id:
                continue
            parent = conv.branches.get(branch.parent_branch_id)
            if parent is None:
                continue
            conn = connection_for(PositionedBlock(parent.position), PositionedBlock(branch.position))
            edge = BranchEdgeItem(conn, branch.level, show_label=self._show_level_labels, parent=self._content)
            edge.setZValue(5)
            self._edges.append(edge)

        self.viewport().update()

    def _add_ready_hint(self, center: Point) -> None:
        title = QGraphicsSimpleTextItem("Ready to Chat", self._content)
        f = QFont(title.font())
        f.setPointSizeF(14.0)
        title.setFont(f)
        sub = QGraphicsSimpleTextItem("Send your first message to start", self._content)
        for it, dy in ((title, -14.0), (sub, 14.0)):
            it.setBrush(QBrush(self._text_color))
            br = it.boundingRect()
            it.setPos(center.x - br.width() / 2.0, center.y + dy - br.height() / 2.0)

    def _recenter_if_changed(self) -> None:
        conv = self._conversation
        if conv is None:
            return
        if not self.isVisible() or self.viewport().width() <= 1:
            # Sin tamaño real todavía: se recentra en el primer resize.
            self._pending_recenter = True
            return
        try:
            root = conv.root()
        except NoRootError as e:
            log.warning("Conversación %s sin raíz válida: %s", conv.id, e)
            return
        vp = self.viewport().size()
        self._viewport_ctl.on_conversation_changed(conv.id, root.position, (vp.width(), vp.height()))

    # ------------------------------ Hit-testing / regiones con scroll

    def _proxy_ancestor(self, item: QGraphicsItem | None) -> QGraphicsProxyWidget | None:
        proxies = set(self._proxies.values())
        cur = item
        while cur is not None:
            if cur in proxies:
                return cur  # type: ignore[return-value]
            cur = cur.parentItem()
        return None

    def _target_at(self, vp_pos) -> object | None:
        """Widget más profundo bajo el cursor (si cae en un bloque) o el item de escena."""
        item = self.itemAt(vp_pos)
        if item is None:
            return None
        proxy = self._proxy_ancestor(item)
        if proxy is not None and proxy.widget() is not None:
            local = proxy.mapFromScene(self.mapToScene(vp_pos))
            top = proxy.widget()
            return top.childAt(local.toPoint()) or top
        return item

    def _target_in_block(self, target: object | None) -> bool:
        if isinstance(target, QWidget):
            return True
        if isinstance(target, QGraphicsItem):
            return self._proxy_ancestor(target) is not None
        return False

    @staticmethod
    def _parent_of(obj: object) -> object | None:
        if isinstance(obj, QWidget):
            return obj.parentWidget()
        if isinstance(obj, QGraphicsItem):
            return obj.parentItem()
        return None

    @staticmethod
    def _is_marked_scrollable(obj: object) -> bool:
        if isinstance(obj, QWidget):
            return obj.property(SCROLL_ROLE_PROPERTY) in SCROLL_ROLES
        if isinstance(obj, QGraphicsItem):
            return obj.data(0) in SCROLL_ROLES
        return False

    def _is_internal_scrollable(self, target: object) -> bool:
        return is_within_scrollable(target, self._parent_of, self._is_marked_scrollable)

    # ------------------------------ Drag scope

    @contextlib.contextmanager
    def _grab_cursor_scope(self):
        QApplication.setOverrideCursor(Qt.ClosedHandCursor)
        try:
            yield
        finally:
            QApplication.restoreOverrideCursor()

    @contextlib.contextmanager
    def _text_selection_scope(self):
        for w in self._blocks.values():
            w.set_text_selectable(False)
        try:
            yield
        finally:
            # Los bloques vigentes (pueden haberse reconstruido durante el drag).
            for w in self._blocks.values():
                w.set_text_selectable(True)

    @contextlib.contextmanager
    def _global_pointer_scope(self):
        app = QApplication.instance()
        if app is None:
            yield
            return
        app.installEventFilter(self._global_filter)
        try:
            yield
        finally:
            app.removeEventFilter(self._global_filter)

    # ------------------------------ Eventos

    def mousePressEvent(self, event) -> None:
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return

        vp = event.position().toPoint()
        target = self._target_at(vp)
        if self._target_in_block(target):
            # Click en un bloque: selección/navegación, no pan.
            super().mousePressEvent(event)
            return

        gp = event.globalPosition()
        if self._viewport_ctl.press(PointerButton.PRIMARY, Point(gp.x(), gp.y()), target):
            event.accept()
            return
        super().mousePressEvent(event)

    def wheelEvent(self, event) -> None:
        mods = event.modifiers()
        zoom = bool(mods & (Qt.ControlModifier | Qt.MetaModifier))

        # Qt: positivo = rueda hacia arriba/izquierda. El controlador usa convención
        # de scroll (positivo = abajo/derecha), por eso el signo invertido.
        pd = event.pixelDelta()
        if not pd.isNull():
            delta = Point(-float(pd.x()), -float(pd.y()))
        else:
            ad = event.angleDelta()
            # 120 unidades (un "notch") ≈ 100 px
            delta = Point(-ad.x() / 1.2, -ad.y() / 1.2)

        target = self._target_at(event.position().toPoint())
        if self._viewport_ctl.wheel(delta, zoom_modifier=zoom, target=target):
            event.accept()
            return
        super().wheelEvent(event)

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        vp = self.viewport().size()
        self._scene.setSceneRect(QRectF(0.0, 0.0, float(vp.width()), float(vp.height())))
        if self._pending_recenter:
            # Diferido: el primer resize puede llegar antes de que la ventana sea visible.
            QTimer.singleShot(0, self._flush_pending_recenter)

    def showEvent(self, event) -> None:
        super().showEvent(event)
        if self._pending_recenter:
            QTimer.singleShot(0, self._flush_pending_recenter)

    def _flush_pending_recenter(self) -> None:
        if not self._pending_recenter:
            return
        self._pending_recenter = False
        self._recenter_if_changed()

    def hideEvent(self, event) -> None:
        self.teardown()
        super().hideEvent(event)

    # ------------------------------ Pintado

    def _apply_theme_colors(self, theme_id: str) -> None:
        preset = self.THEME_PRESETS.get(theme_id, self.THEME_PRESETS['light'])
        self._bg_color = QColor(*preset['bg'])
        self._grid_color = QColor(*preset['grid'])
        self._text_color = QColor(*preset['text'])

    def _on_offset_changed(self, offset: Point) -> None:
        self._content.setPos(offset.x, offset.y)
        self.viewport().update()
        self.offset_changed.emit(offset.x, offset.y)

    def _on_dragging_changed(self, dragging: bool) -> None:
        self.viewport().setCursor(Qt.ClosedHandCursor if dragging else Qt.OpenHandCursor)

    def drawBackground(self, painter: QPainter, rect: QRectF) -> None:
        painter.save()
        painter.fillRect(rect, self._bg_color)

        # Grilla que acompaña al pan (fase = offset mod paso).
        step = self.GRID_STEP
        off = self._viewport_ctl.canvas_offset
        painter.setRenderHint(QPainter.Antialiasing, False)
        pen = QPen(self._grid_color)
        pen.setCosmetic(True)
        pen.setWidthF(0.0)
        painter.setPen(pen)

        x = math.floor((rect.left() - off.x) / step) * step + off.x
        while x < rect.right():
            painter.drawLine(QPointF(x, rect.top()), QPointF(x, rect.bottom()))
            x += step
        y = math.floor((rect.top() - off.y) / step) * step + off.y
        while y < rect.bottom():
            painter.drawLine(QPointF(rect.left(), y), QPointF(rect.right(), y))
            y += step

        painter.restore()

    def drawForeground(self, painter: QPainter, rect: QRectF) -> None:
        _ = rect
        if self._conversation is not None:
            return
        painter.save()
        painter.setPen(QPen(self._text_color))
        r = QRectF(self.viewport().rect())
        f = QFont(painter.font())
        f.setPointSizeF(14.0)
        painter.setFont(f)
        painter.drawText(r.adjusted(0, -20, 0, -20), Qt.AlignCenter, "Canvas Area")
        f.setPointSizeF(10.0)
        painter.setFont(f)
        painter.drawText(r.adjusted(0, 20, 0, 20), Qt.AlignCenter, "Start a conversation to begin working")
        painter.restore()
