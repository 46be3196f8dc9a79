# File: rcv/ui/main_window.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.2
# Status: stable
# Date: 2026-10-18
# Purpose: Ventana principal: sidebar de conversaciones + lienzo de ramas + barra de chat.
# Notes: Toda mutación pasa por Workspace; la UI solo refresca vistas.
from __future__ import annotations

import base64
import os

from PySide6.QtCore import QByteArray, Qt, QTimer
from PySide6.QtGui import QAction, QActionGroup, QCloseEvent, QKeySequence
from PySide6.QtWidgets import (
    QLabel,
    QMainWindow,
    QSplitter,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from rcv.core.settings import AppSettings
from rcv.core.version import APP_NAME, APP_VERSION, HIGHLIGHT_CLEAR_MS
from rcv.core.workspace import Workspace
from rcv.ui.canvas_view import CanvasView
from rcv.ui.chat_bar import ChatBar
from rcv.ui.conversation_sidebar import ConversationSidebar
from rcv.utils.errors import RcvError
from rcv.utils.log import get_logger

log = get_logger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, workspace: Workspace | None = None) -> None:
        super().__init__()
        self.setWindowTitle("{} v{}".format(APP_NAME, APP_VERSION))
        self.resize(1400, 860)

        self._workspace = workspace if workspace is not None else Workspace.with_samples()
        # Preferencias usuario (tema, rueda, etiquetas)
        self._settings = AppSettings.load()

        self._highlight_timer = QTimer(self)
        self._highlight_timer.setSingleShot(True)
        self._highlight_timer.setInterval(HIGHLIGHT_CLEAR_MS)
        self._highlight_timer.timeout.connect(self._on_highlight_timeout)

        self._build_ui()
        self._build_menu()

        # [RCV-KEEP] No debe romper el arranque.
        self._restore_ui_state()

        self._refresh_all()

    def _build_ui(self) -> None:
        self._sidebar = ConversationSidebar(self)
        self._sidebar.setObjectName("conversation_sidebar")
        self._sidebar.conversation_selected.connect(self._on_conversation_selected)
        self._sidebar.new_requested.connect(self.action_new_conversation)

        self._canvas = CanvasView(self, wheel_sensitivity=self._settings.wheel_sensitivity)
        self._canvas.set_theme(os.environ.get("RCV_CANVAS_THEME") or self._settings.canvas_theme)
        self._canvas.set_level_labels_visible(self._settings.show_level_labels)
        # Encolado: el bloque que emite puede ser reconstruido por el handler.
        self._canvas.branch_selected.connect(self._on_branch_selected, Qt.QueuedConnection)
        self._canvas.navigate_requested.connect(self._on_navigate_requested, Qt.QueuedConnection)

        self._chat = ChatBar(self)
        self._chat.send_requested.connect(self._on_send_requested)
        self._chat.branch_requested.connect(self.action_new_branch)
        self._chat.branch_switch_requested.connect(self._on_branch_selected)

        right = QWidget(self)
        rl = QVBoxLayout(right)
        rl.setContentsMargins(0, 0, 0, 0)
        rl.setSpacing(0)
        rl.addWidget(self._canvas, 1)
        rl.addWidget(self._chat, 0)

        self._splitter = QSplitter(Qt.Horizontal, self)
        self._splitter.setObjectName("main_splitter")
        self._splitter.addWidget(self._sidebar)
        self._splitter.addWidget(right)
        self._splitter.setStretchFactor(0, 0)
        self._splitter.setStretchFactor(1, 1)
        self._splitter.setSizes([260, 1140])
        self.setCentralWidget(self._splitter)

        sb = QStatusBar(self)
        self.setStatusBar(sb)
        self._status_label = QLabel("Listo", self)
        sb.addPermanentWidget(self._status_label)

    def _build_menu(self) -> None:
        m_file = self.menuBar().addMenu("&Archivo")

        act_new = QAction("&Nueva conversación", self)
        act_new.setShortcut(QKeySequence.New)
        act_new.triggered.connect(self.action_new_conversation)
        m_file.addAction(act_new)

        m_file.addSeparator()
        act_quit = QAction("&Salir", self)
        act_quit.setShortcut(QKeySequence.Quit)
        act_quit.triggered.connect(self.close)
        m_file.addAction(act_quit)

        m_branch = self.menuBar().addMenu("&Rama")
        self._act_new_branch = QAction("Nueva &rama", self)
        self._act_new_branch.setShortcut(QKeySequence("Ctrl+B"))
        self._act_new_branch.triggered.connect(self.action_new_branch)
        m_branch.addAction(self._act_new_branch)

        m_view = self.menuBar().addMenu("&Ver")
        act_center = QAction("&Centrar en raíz", self)
        act_center.setShortcut(QKeySequence("Ctrl+0"))
        act_center.triggered.connect(self.action_center_on_root)
        m_view.addAction(act_center)

        act_labels = QAction("Etiquetas de &nivel", self)
        act_labels.setCheckable(True)
        act_labels.setChecked(self._settings.show_level_labels)
        act_labels.toggled.connect(self._set_level_labels)
        m_view.addAction(act_labels)

        m_view.addSeparator()
        m_theme = m_view.addMenu("Tema del &lienzo")
        grp = QActionGroup(self)
        grp.setExclusive(True)

        # Orden fijo
        theme_items = [
            ("Oscuro", "dark"),
            ("Medio", "mid"),
            ("Claro", "light"),
        ]
        current = self._canvas.theme_id()
        for label, tid in theme_items:
            act = QAction(label, self)
            act.setCheckable(True)
            act.setChecked(tid == current)
            act.triggered.connect(lambda checked=False, _tid=tid: self._set_canvas_theme(_tid))
            grp.addAction(act)
            m_theme.addAction(act)

    # ---------------------------
    # Refresco de vistas
    # ---------------------------
    def _refresh_all(self) -> None:
        ws = self._workspace
        self._sidebar.set_conversations(ws.conversation_list(), ws.active_conversation_id)
        self._canvas.set_conversation(ws.active_conversation)
        self._canvas.set_highlight(ws.highlighted_message_id)
        self._refresh_chat()

    def _refresh_chat(self) -> None:
        ws = self._workspace
        conv = ws.active_conversation
        self._chat.set_enabled_for_conversation(conv is not None)
        self._chat.set_branches(ws.branches_by_level(), conv.active_branch_id if conv is not None else None)
        can = ws.can_create_branch()
        self._chat.set_can_branch(can)
        self._act_new_branch.setEnabled(can)

    def _refresh_sidebar(self) -> None:
        ws = self._workspace
        self._sidebar.set_conversations(ws.conversation_list(), ws.active_conversation_id)

    # ---------------------------
    # Acciones
    # ---------------------------
    def action_new_conversation(self) -> None:
        conv = self._workspace.new_conversation()
        self._highlight_timer.stop()
        self._refresh_all()
        self._chat.focus_input()
        self._status(f"Conversación nueva: {conv.title}")

    def action_new_branch(self) -> None:
        try:
            branch = self._workspace.create_branch()
        except RcvError as e:
            log.warning("No se pudo crear la rama: %s", e)
            self._status(f"Error: {e}")
            return
        if branch is None:
            self._status("La rama activa no tiene mensajes propios")
            return
        self._highlight_timer.stop()
        self._canvas.refresh()
        self._canvas.set_highlight(None)
        self._refresh_chat()
        self._status(f"Rama creada: {branch.name} (nivel {branch.level})")

    def action_center_on_root(self) -> None:
        self._canvas.center_on_root()

    def _on_send_requested(self, text: str) -> None:
        sent = self._workspace.send_message(text)
        if sent is None:
            return
        self._chat.clear_input()
        self._highlight_timer.stop()
        self._canvas.set_highlight(None)
        self._canvas.refresh()
        self._refresh_sidebar()
        self._refresh_chat()

    def _on_conversation_selected(self, conversation_id: str) -> None:
        try:
            conv = self._workspace.select_conversation(conversation_id)
        except RcvError as e:
            log.warning("Selección de conversación inválida: %s", e)
            return
        self._highlight_timer.stop()
        self._canvas.set_conversation(conv)
        self._canvas.set_highlight(None)
        self._refresh_chat()
        self._status(conv.title)

    def _on_branch_selected(self, branch_id: str) -> None:
        try:
            self._workspace.switch_branch(branch_id)
        except RcvError as e:
            log.warning("Cambio de rama inválido: %s", e)
            return
        if self._workspace.highlighted_message_id is None:
            self._highlight_timer.stop()
        self._canvas.refresh_active()
        self._canvas.set_highlight(self._workspace.highlighted_message_id)
        self._refresh_chat()

    def _on_navigate_requested(self, branch_id: str, message_id: str) -> None:
        try:
            branch = self._workspace.navigate_to_message(branch_id, message_id)
        except RcvError as e:
            log.warning("Navegación inválida: %s", e)
            return
        self._canvas.refresh_active()
        self._canvas.set_highlight(message_id)
        self._refresh_chat()
        # Reinicia el timer: el último navegado es el que se limpia.
        self._highlight_timer.start()
        self._status(f"Mensaje de origen en {branch.name}")

    def _on_highlight_timeout(self) -> None:
        self._workspace.clear_highlight()
        self._canvas.set_highlight(None)

    # ---------------------------
    # Preferencias de vista
    # ---------------------------
    def _set_canvas_theme(self, theme_id: str) -> None:
        """Cambia el tema del lienzo y lo persiste en settings.json."""
        theme_id = (theme_id or "").strip().lower()
        self._settings.canvas_theme = theme_id
        self._settings.save()
        self._canvas.set_theme(theme_id)

        label = {"dark": "Oscuro", "mid": "Medio", "light": "Claro"}.get(theme_id, theme_id)
        self._status(f"Tema del lienzo: {label}")

    def _set_level_labels(self, on: bool) -> None:
        self._settings.show_level_labels = bool(on)
        self._settings.save()
        self._canvas.set_level_labels_visible(on)

    # ---------------------------
    # Estado de ventana
    # ---------------------------
    def closeEvent(self, event: QCloseEvent) -> None:
        self._highlight_timer.stop()
        self._canvas.teardown()
        self._persist_ui_state()
        super().closeEvent(event)

    def _restore_ui_state(self) -> None:
        """Restaura geometry/state del QMainWindow + splitter."""
        try:
            if self._settings.ui_main_geometry_b64:
                raw = base64.b64decode(self._settings.ui_main_geometry_b64.encode("ascii"), validate=False)
                self.restoreGeometry(QByteArray(raw))
            if self._settings.ui_main_state_b64:
                raw = base64.b64decode(self._settings.ui_main_state_b64.encode("ascii"), validate=False)
                self.restoreState(QByteArray(raw))
            if self._settings.ui_splitter_b64:
                raw = base64.b64decode(self._settings.ui_splitter_b64.encode("ascii"), validate=False)
                self._splitter.restoreState(QByteArray(raw))
        except ValueError:
            # No romper arranque
            log.debug("UI state inválido en settings", exc_info=True)

    def _persist_ui_state(self) -> None:
        """Captura geometry/state/splitter y lo guarda en AppSettings (base64)."""
        self._settings.ui_main_geometry_b64 = base64.b64encode(bytes(self.saveGeometry())).decode("ascii")
        self._settings.ui_main_state_b64 = base64.b64encode(bytes(self.saveState())).decode("ascii")
        self._settings.ui_splitter_b64 = base64.b64encode(bytes(self._splitter.saveState())).decode("ascii")
        if not self._settings.save():
            log.warning("No se pudieron guardar las preferencias de UI")

    def _status(self, text: str) -> None:
        self._status_label.setText(text)
