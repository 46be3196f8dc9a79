# File: rcv/core/models.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.1
# Status: stable
# Date: 2026-10-18
# Purpose: Modelos de datos: Message, Branch, Conversation.
# Notes: Solo memoria (no se persisten conversaciones). `position` es dato derivado del layout.
from __future__ import annotations

import uuid

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal, Optional

from rcv.core.version import DEFAULT_CANVAS_CENTER, ROOT_BRANCH_ID
from rcv.geom.types import Point
from rcv.utils.errors import NoRootError, RcvValidationError

Role = Literal["user", "assistant"]

INHERITED_PREFIX = "inherited-"


@dataclass(frozen=True)
class Message:
    id: str
    content: str
    role: Role
    timestamp: datetime = field(default_factory=datetime.now)
    is_inherited: bool = False

    def origin_message_id(self) -> str:
        """Id del mensaje original (sin el prefijo de heredado)."""
        if self.id.startswith(INHERITED_PREFIX):
            return self.id[len(INHERITED_PREFIX):]
        return self.id

    def as_inherited(self) -> "Message":
        """Copia de solo lectura para sembrar una rama hija."""
        return replace(self, id=INHERITED_PREFIX + self.origin_message_id(), is_inherited=True)


@dataclass
class Branch:
    id: str
    name: str
    parent_branch_id: Optional[str] = None
    parent_message_id: Optional[str] = None
    messages: list[Message] = field(default_factory=list)
    summary: str = ""
    # Derivado: lo pisa el layout en cada cambio estructural.
    position: Point = field(default_factory=Point)
    # Profundidad desde la raíz. Se fija al crear la rama; nunca se recalcula.
    level: int = 0

    def __post_init__(self) -> None:
        if self.level < 0:
            raise RcvValidationError(f"Rama {self.id!r}: level inválido ({self.level})")

    @property
    def is_root(self) -> bool:
        return not self.parent_branch_id

    def inherited_messages(self) -> list[Message]:
        return [m for m in self.messages if m.is_inherited]

    def own_messages(self) -> list[Message]:
        return [m for m in self.messages if not m.is_inherited]

    def last_own_message(self) -> Optional[Message]:
        for m in reversed(self.messages):
            if not m.is_inherited:
                return m
        return None

    def has_message(self, message_id: str) -> bool:
        return any(m.id == message_id for m in self.messages)


@dataclass
class Conversation:
    id: str
    title: str
    last_message: str
    branches: dict[str, Branch]
    active_branch_id: str
    canvas_center: Point = field(default_factory=lambda: Point(*DEFAULT_CANVAS_CENTER))

    @classmethod
    def new(
        cls,
        conversation_id: str,
        *,
        title: str = "New Conversation",
        last_message: str = "Start a new conversation",
        canvas_center: Point | tuple[float, float] = DEFAULT_CANVAS_CENTER,
        root_messages: Optional[list[Message]] = None,
        root_summary: str = "New conversation",
    ) -> "Conversation":
        center = Point.of(canvas_center)
        root = Branch(
            id=ROOT_BRANCH_ID,
            name=ROOT_BRANCH_ID,
            messages=list(root_messages or []),
            summary=root_summary,
            position=center,
            level=0,
        )
        return cls(
            id=str(conversation_id),
            title=title,
            last_message=last_message,
            branches={root.id: root},
            active_branch_id=root.id,
            canvas_center=center,
        )

    @property
    def active_branch(self) -> Branch:
        return self.branches[self.active_branch_id]

    def root(self) -> Branch:
        roots = sorted(bid for bid, b in self.branches.items() if b.is_root)
        if len(roots) != 1:
            raise NoRootError(roots)
        return self.branches[roots[0]]

    def get_branch(self, branch_id: str) -> Branch:
        try:
            return self.branches[branch_id]
        except KeyError:
            raise RcvValidationError(f"Conversación {self.id!r}: no existe la rama {branch_id!r}") from None

    def add_branch(self, branch: Branch) -> None:
        if branch.id in self.branches:
            raise RcvValidationError(f"Ya existe una rama con id={branch.id!r}")
        if branch.parent_branch_id and branch.parent_branch_id not in self.branches:
            raise RcvValidationError(
                f"Rama {branch.id!r}: el padre {branch.parent_branch_id!r} no existe"
            )
        self.branches[branch.id] = branch

    def set_active_branch(self, branch_id: str) -> None:
        self.get_branch(branch_id)
        self.active_branch_id = branch_id

    def has_messages(self) -> bool:
        return any(b.messages for b in self.branches.values())

    def validate(self) -> None:
        """Chequea invariantes: rama activa existente, árbol (una raíz, sin colgantes ni ciclos)."""
        if self.active_branch_id not in self.branches:
            raise RcvValidationError(
                f"Conversación {self.id!r}: active_branch_id {self.active_branch_id!r} no existe"
            )
        root = self.root()
        for bid, b in self.branches.items():
            if b.is_root:
                continue
            if b.parent_branch_id not in self.branches:
                raise RcvValidationError(f"Rama {bid!r}: padre inexistente {b.parent_branch_id!r}")
            seen = {bid}
            cur = b.parent_branch_id
            while cur is not None and cur != root.id:
                if cur in seen:
                    raise RcvValidationError(f"Rama {bid!r}: ciclo en parent_branch_id")
                if cur not in self.branches:
                    raise RcvValidationError(f"Rama {bid!r}: ancestro inexistente {cur!r}")
                seen.add(cur)
                cur = self.branches[cur].parent_branch_id


# ----------------------------
# Helpers
# ----------------------------

def new_object_id(prefix: str = "msg") -> str:
    """Genera un id corto y único.

    Nota: se usa UUID truncado para evitar colisiones sin depender de estado global.
    """
    return f"{prefix}_{uuid.uuid4().hex[:8]}"
