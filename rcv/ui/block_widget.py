# File: rcv/ui/block_widget.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.1
# Status: stable
# Date: 2026-10-18
# Purpose: Bloque de conversación (una rama): header con resumen, lista de mensajes, footer.
# Notes: La lista y su viewport se marcan con "rcv_scroll_role" para que el lienzo no robe la rueda.
from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QBrush, QColor, QFont
from PySide6.QtWidgets import (
    QAbstractItemView,
    QFrame,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QVBoxLayout,
    QWidget,
)

from rcv.core.models import Branch, Message
from rcv.core.viewport import SCROLL_ROLE_MESSAGES, SCROLL_ROLE_VIEWPORT
from rcv.geom.types import BLOCK_HEIGHT, BLOCK_WIDTH

SCROLL_ROLE_PROPERTY = "rcv_scroll_role"

_ROLE_MESSAGE = int(Qt.UserRole)
_ROLE_ORIGIN_ID = int(Qt.UserRole) + 1


class ConversationBlockWidget(QFrame):
    """Vista de una rama. Emite selección y navegación a mensajes heredados."""

    selected = Signal(str)  # branch_id
    navigate_requested = Signal(str, str)  # (parent_branch_id, message_id original)

    def __init__(self, branch: Branch, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._branch = branch
        self._active = False
        self._highlight_id: str | None = None

        self.setObjectName("conversation_block")
        self.setFixedSize(int(BLOCK_WIDTH), int(BLOCK_HEIGHT))
        self.setFrameShape(QFrame.StyledPanel)
        self.setCursor(Qt.PointingHandCursor)

        self._build_ui()
        self.set_branch(branch)

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(10, 8, 10, 8)
        root.setSpacing(6)

        head = QHBoxLayout()
        head.setSpacing(6)
        self._lbl_name = QLabel(self)
        f = QFont(self._lbl_name.font())
        f.setBold(True)
        self._lbl_name.setFont(f)
        head.addWidget(self._lbl_name, 0)

        self._lbl_level = QLabel(self)
        self._lbl_level.setStyleSheet("color: #64748b;")
        head.addWidget(self._lbl_level, 0)
        head.addStretch(1)

        self._lbl_counts = QLabel(self)
        self._lbl_counts.setStyleSheet("color: #64748b;")
        head.addWidget(self._lbl_counts, 0)
        root.addLayout(head)

        self._lbl_summary = QLabel(self)
        self._lbl_summary.setWordWrap(True)
        self._lbl_summary.setMaximumHeight(40)
        self._lbl_summary.setTextInteractionFlags(Qt.TextSelectableByMouse)
        root.addWidget(self._lbl_summary)

        self._list = QListWidget(self)
        self._list.setWordWrap(True)
        self._list.setSelectionMode(QAbstractItemView.NoSelection)
        self._list.setVerticalScrollMode(QAbstractItemView.ScrollPerPixel)
        self._list.setProperty(SCROLL_ROLE_PROPERTY, SCROLL_ROLE_MESSAGES)
        self._list.viewport().setProperty(SCROLL_ROLE_PROPERTY, SCROLL_ROLE_VIEWPORT)
        self._list.itemClicked.connect(self._on_item_clicked)
        root.addWidget(self._list, 1)

        self._lbl_footer = QLabel(self)
        self._lbl_footer.setAlignment(Qt.AlignCenter)
        self._lbl_footer.setStyleSheet("color: #64748b; font-size: 11px;")
        root.addWidget(self._lbl_footer)

    # ---------------------------
    # Public API
    # ---------------------------
    @property
    def branch_id(self) -> str:
        return self._branch.id

    def set_branch(self, branch: Branch) -> None:
        self._branch = branch
        inherited = branch.inherited_messages()
        own = branch.own_messages()

        self._lbl_name.setText(branch.name)
        self._lbl_level.setText(f"L{branch.level}" if branch.level > 0 else "")
        counts = f"↑{len(inherited)}  " if inherited else ""
        self._lbl_counts.setText(f"{counts}✉{len(own)}")
        self._lbl_summary.setText(branch.summary)

        if own:
            self._lbl_footer.setText("Last: {}".format(own[-1].timestamp.strftime("%H:%M:%S")))
        elif inherited:
            self._lbl_footer.setText("Continue from parent")
        else:
            self._lbl_footer.setText("Start conversation")

        self._rebuild_messages()

    def set_active(self, active: bool) -> None:
        self._active = bool(active)
        border = "#2563eb" if self._active else "#cbd5e1"
        width = 2 if self._active else 1
        self.setStyleSheet(
            f"QFrame#conversation_block {{ background: #ffffff; border: {width}px solid {border}; border-radius: 10px; }}"
        )

    def set_highlight(self, message_id: str | None) -> None:
        if message_id == self._highlight_id:
            return
        self._highlight_id = message_id
        self._rebuild_messages()

    def set_text_selectable(self, on: bool) -> None:
        flags = Qt.TextSelectableByMouse if on else Qt.NoTextInteraction
        self._lbl_summary.setTextInteractionFlags(flags)

    # ---------------------------
    # Internos
    # ---------------------------
    def _rebuild_messages(self) -> None:
        self._list.clear()
        if not self._branch.messages:
            it = QListWidgetItem("No messages yet")
            it.setTextAlignment(Qt.AlignCenter)
            it.setForeground(QBrush(QColor(100, 116, 139)))
            it.setFlags(Qt.NoItemFlags)
            self._list.addItem(it)
            return

        target: QListWidgetItem | None = None
        inherited = self._branch.inherited_messages()
        if inherited:
            hdr = QListWidgetItem("↑ From parent branch (click to navigate)")
            hdr.setForeground(QBrush(QColor(148, 163, 184)))
            hdr.setFlags(Qt.NoItemFlags)
            self._list.addItem(hdr)
        for m in [*inherited, *self._branch.own_messages()]:
            it = self._make_item(m)
            self._list.addItem(it)
            if self._highlight_id and m.origin_message_id() == self._highlight_id:
                target = it
        if target is not None:
            self._list.scrollToItem(target, QAbstractItemView.PositionAtCenter)

    def _make_item(self, m: Message) -> QListWidgetItem:
        who = "Tú" if m.role == "user" else "Asistente"
        it = QListWidgetItem(f"{who}: {m.content}")
        it.setData(_ROLE_MESSAGE, m)
        it.setData(_ROLE_ORIGIN_ID, m.origin_message_id())
        it.setTextAlignment(Qt.AlignRight if m.role == "user" else Qt.AlignLeft)

        if m.is_inherited:
            it.setForeground(QBrush(QColor(148, 163, 184)))
            it.setToolTip("Click to navigate to this message in the parent branch")
        elif m.role == "user":
            it.setBackground(QBrush(QColor(219, 234, 254)))
        else:
            it.setBackground(QBrush(QColor(241, 245, 249)))

        if self._highlight_id and m.origin_message_id() == self._highlight_id:
            it.setBackground(QBrush(QColor(253, 230, 138)))
        return it

    def _on_item_clicked(self, it: QListWidgetItem) -> None:
        m = it.data(_ROLE_MESSAGE)
        if isinstance(m, Message) and m.is_inherited and self._branch.parent_branch_id:
            # No selecciona la rama: navega al origen.
            self.navigate_requested.emit(self._branch.parent_branch_id, m.origin_message_id())
            return
        self.selected.emit(self._branch.id)

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.LeftButton:
            self.selected.emit(self._branch.id)
            event.accept()
            return
        super().mousePressEvent(event)
