# File: rcv/ui/chat_bar.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.1
# Status: stable
# Date: 2026-10-18
# Purpose: Barra inferior: entrada de mensaje, enviar, crear rama y selector de rama activa.
# Notes: Selectores de herramienta/modelo son cosméticos (no hay backend de IA).
from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from rcv.core.models import Branch

TOOL_CHOICES = ("Chat", "Search", "Code")
MODEL_CHOICES = ("GPT-4", "Claude", "Local")


class ChatBar(QWidget):
    send_requested = Signal(str)
    branch_requested = Signal()
    branch_switch_requested = Signal(str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._sync_lock = False
        self._build_ui()
        self.set_enabled_for_conversation(False)

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(6, 4, 6, 6)
        root.setSpacing(4)

        top = QHBoxLayout()
        top.addWidget(QLabel("Rama:", self))
        self._cmb_branch = QComboBox(self)
        self._cmb_branch.setMinimumWidth(220)
        self._cmb_branch.activated.connect(self._on_branch_activated)
        top.addWidget(self._cmb_branch)
        top.addStretch(1)

        self._cmb_tool = QComboBox(self)
        self._cmb_tool.addItems(list(TOOL_CHOICES))
        top.addWidget(self._cmb_tool)
        self._cmb_model = QComboBox(self)
        self._cmb_model.addItems(list(MODEL_CHOICES))
        top.addWidget(self._cmb_model)
        root.addLayout(top)

        row = QHBoxLayout()
        self._edit = QLineEdit(self)
        self._edit.setPlaceholderText("Escribí un mensaje…")
        self._edit.returnPressed.connect(self._emit_send)
        self._edit.textChanged.connect(self._sync_send_enabled)
        row.addWidget(self._edit, 1)

        self._btn_send = QPushButton("Enviar", self)
        self._btn_send.clicked.connect(self._emit_send)
        row.addWidget(self._btn_send)

        self._btn_branch = QPushButton("Rama", self)
        self._btn_branch.setToolTip("Crear rama desde el último mensaje de la rama activa (Ctrl+B)")
        self._btn_branch.clicked.connect(self.branch_requested)
        row.addWidget(self._btn_branch)
        root.addLayout(row)

    # ---------------------------
    # Public API
    # ---------------------------
    def set_enabled_for_conversation(self, on: bool) -> None:
        self._edit.setEnabled(bool(on))
        self._cmb_branch.setEnabled(bool(on))
        self._sync_send_enabled()

    def set_can_branch(self, on: bool) -> None:
        self._btn_branch.setEnabled(bool(on))

    def set_branches(self, by_level: dict[int, list[Branch]], active_id: str | None) -> None:
        """Combo agrupado por nivel: encabezado no seleccionable + ramas indentadas."""
        self._sync_lock = True
        try:
            self._cmb_branch.clear()
            model = self._cmb_branch.model()
            for level in sorted(by_level):
                self._cmb_branch.addItem(f"Nivel {level}")
                hdr = model.item(self._cmb_branch.count() - 1)
                if hdr is not None:
                    hdr.setFlags(hdr.flags() & ~Qt.ItemIsSelectable & ~Qt.ItemIsEnabled)
                for b in by_level[level]:
                    self._cmb_branch.addItem(f"   {b.name}", b.id)
                    if b.id == active_id:
                        self._cmb_branch.setCurrentIndex(self._cmb_branch.count() - 1)
        finally:
            self._sync_lock = False

    def clear_input(self) -> None:
        self._edit.clear()

    def focus_input(self) -> None:
        self._edit.setFocus(Qt.OtherFocusReason)

    # ---------------------------
    # Internos
    # ---------------------------
    def _sync_send_enabled(self, *_args) -> None:
        self._btn_send.setEnabled(self._edit.isEnabled() and bool(self._edit.text().strip()))

    def _emit_send(self) -> None:
        text = self._edit.text()
        if not text.strip():
            return
        self.send_requested.emit(text)

    def _on_branch_activated(self, index: int) -> None:
        if self._sync_lock:
            return
        bid = self._cmb_branch.itemData(index)
        if bid:
            self.branch_switch_requested.emit(str(bid))
