# File: rcv/ui/conversation_sidebar.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.0
# Status: stable
# Date: 2026-10-18
# Purpose: Panel lateral: lista de conversaciones + botón "Nueva conversación".
# Notes: Solo vista; la selección se resuelve en MainWindow vía Workspace.
from __future__ import annotations

from typing import Iterable

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from rcv.core.workspace import ConversationSummary
from rcv.utils.log import get_logger

log = get_logger(__name__)


class ConversationSidebar(QWidget):
    conversation_selected = Signal(str)
    new_requested = Signal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._sync_lock = False
        self._build_ui()

    def _build_ui(self) -> None:
        lay = QVBoxLayout(self)
        lay.setContentsMargins(6, 6, 6, 6)
        lay.setSpacing(6)

        self._btn_new = QPushButton("Nueva conversación", self)
        self._btn_new.clicked.connect(self.new_requested)
        lay.addWidget(self._btn_new)

        hdr = QLabel("Conversaciones", self)
        hdr.setStyleSheet("color: #64748b;")
        lay.addWidget(hdr)

        self._list = QListWidget(self)
        self._list.setSelectionMode(QAbstractItemView.SingleSelection)
        self._list.setWordWrap(True)
        self._list.currentItemChanged.connect(self._on_current_changed)
        lay.addWidget(self._list, 1)

    # ---------------------------
    # Public API
    # ---------------------------
    def set_conversations(self, items: Iterable[ConversationSummary], active_id: str | None) -> None:
        """Reconstruye la lista sin re-emitir selección."""
        self._sync_lock = True
        try:
            self._list.clear()
            for s in items:
                it = QListWidgetItem(f"{s.title}\n{s.last_message}")
                it.setData(Qt.UserRole, s.id)
                it.setToolTip(s.last_message)
                self._list.addItem(it)
                if s.id == active_id:
                    self._list.setCurrentItem(it)
        finally:
            self._sync_lock = False

    def _on_current_changed(self, cur: QListWidgetItem | None, _prev: QListWidgetItem | None) -> None:
        if self._sync_lock or cur is None:
            return
        cid = cur.data(Qt.UserRole)
        if cid:
            log.debug("sidebar: conversación %s", cid)
            self.conversation_selected.emit(str(cid))
