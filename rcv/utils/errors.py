# File: rcv/utils/errors.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-18
# Purpose: Errores tipados del proyecto.
# Notes: Las condiciones reportables del layout (DanglingParent, Unreachable) no son
#        excepciones: viven en rcv.geom.layout como issues.
from __future__ import annotations


class RcvError(Exception):
    """Error base del proyecto."""


class RcvValidationError(RcvError):
    """Error de validación (input/estructura del árbol/ids)."""


class LayoutError(RcvError):
    """Error fatal de una llamada al layout (no se devuelven posiciones parciales)."""


class NoRootError(LayoutError):
    """El árbol no tiene raíz o tiene más de una."""

    def __init__(self, root_ids: list[str] | tuple[str, ...] = ()) -> None:
        self.root_ids = tuple(root_ids)
        if not self.root_ids:
            msg = "Árbol sin raíz: todas las ramas tienen parent_branch_id"
        else:
            msg = "Árbol con {} raíces: {}".format(len(self.root_ids), ", ".join(self.root_ids))
        super().__init__(msg)
