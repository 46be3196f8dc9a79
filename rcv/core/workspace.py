# File: rcv/core/workspace.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.2
# Status: stable
# Date: 2026-10-18
# Purpose: Operaciones de la aplicación: conversaciones, mensajes, ramas, navegación y resaltado.
# Notes: Sin Qt. El timer que limpia el resaltado vive en la UI (HIGHLIGHT_CLEAR_MS).
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from rcv.core.models import Branch, Conversation, Message, new_object_id
from rcv.core.version import DEFAULT_CANVAS_CENTER
from rcv.geom.layout import LayoutResult, layout
from rcv.geom.layout_runtime_log import log_issues_once
from rcv.utils.errors import RcvValidationError

log = logging.getLogger(__name__)

SUMMARY_PREVIEW_CHARS = 50


def relayout(conversation: Conversation) -> LayoutResult:
    """Layout completo + write-back de `position` en cada rama.

    Las ramas que el layout no pudo ubicar conservan su última posición conocida.
    """
    result = layout(conversation.branches, conversation.canvas_center)
    for bid, pos in result.positions.items():
        conversation.branches[bid].position = pos
    if result.issues:
        log_issues_once(conversation.id, result.issues)
    return result


def placeholder_reply(content: str) -> str:
    return f'This is a response to: "{content}"'


@dataclass(frozen=True)
class ConversationSummary:
    id: str
    title: str
    last_message: str


class Workspace:
    """Conjunto de conversaciones en memoria + conversación activa + mensaje resaltado."""

    def __init__(
        self,
        conversations: Optional[Iterable[Conversation]] = None,
        *,
        active_conversation_id: Optional[str] = None,
    ) -> None:
        self.conversations: dict[str, Conversation] = {}
        for c in conversations or ():
            c.validate()
            self.conversations[c.id] = c
        if active_conversation_id is not None and active_conversation_id not in self.conversations:
            raise RcvValidationError(f"No existe la conversación {active_conversation_id!r}")
        self.active_conversation_id: Optional[str] = active_conversation_id or next(iter(self.conversations), None)
        self.highlighted_message_id: Optional[str] = None

        self._conversation_seq = itertools.count(len(self.conversations) + 1)
        self._branch_seq = itertools.count(1)

    @classmethod
    def with_samples(cls) -> "Workspace":
        """Workspace inicial con dos conversaciones de ejemplo."""
        blank = Conversation.new("1", title="New Conversation", last_message="Welcome to your workspace")
        ideas = Conversation.new(
            "2",
            title="Project Ideas",
            last_message="Let's brainstorm some concepts",
            root_messages=[
                Message(id="1", content="Let's brainstorm some project ideas", role="user"),
                Message(id="2", content="Here are some exciting project ideas we could explore...", role="assistant"),
            ],
            root_summary="Brainstorming project concepts",
        )
        return cls([blank, ideas], active_conversation_id="1")

    # ---------------------------
    # Consultas
    # ---------------------------
    @property
    def active_conversation(self) -> Optional[Conversation]:
        if self.active_conversation_id is None:
            return None
        return self.conversations.get(self.active_conversation_id)

    @property
    def active_branch(self) -> Optional[Branch]:
        conv = self.active_conversation
        return conv.active_branch if conv is not None else None

    def conversation_list(self) -> list[ConversationSummary]:
        return [ConversationSummary(c.id, c.title, c.last_message) for c in self.conversations.values()]

    def branches_by_level(self) -> dict[int, list[Branch]]:
        conv = self.active_conversation
        out: dict[int, list[Branch]] = {}
        if conv is None:
            return out
        for b in sorted(conv.branches.values(), key=lambda b: (b.level, b.id)):
            out.setdefault(b.level, []).append(b)
        return out

    def can_create_branch(self) -> bool:
        b = self.active_branch
        return b is not None and b.last_own_message() is not None

    # ---------------------------
    # Conversaciones
    # ---------------------------
    def new_conversation(self, title: str = "New Conversation") -> Conversation:
        cid = self._next_conversation_id()
        conv = Conversation.new(cid, title=title, canvas_center=DEFAULT_CANVAS_CENTER)
        self.conversations[cid] = conv
        self.active_conversation_id = cid
        self.highlighted_message_id = None
        log.info("Conversación nueva: %s", cid)
        return conv

    def select_conversation(self, conversation_id: str) -> Conversation:
        if conversation_id not in self.conversations:
            raise RcvValidationError(f"No existe la conversación {conversation_id!r}")
        self.active_conversation_id = conversation_id
        self.highlighted_message_id = None
        return self.conversations[conversation_id]

    # ---------------------------
    # Mensajes / ramas
    # ---------------------------
    def send_message(self, content: str) -> Optional[tuple[Message, Message]]:
        """Agrega mensaje del usuario + respuesta placeholder a la rama activa."""
        conv = self.active_conversation
        if conv is None or not content or not content.strip():
            return None
        branch = conv.active_branch

        user_msg = Message(id=new_object_id("msg"), content=content, role="user")
        reply = Message(id=new_object_id("msg"), content=placeholder_reply(content), role="assistant")

        if not branch.messages:
            branch.summary = f"Discussion about: {content[:SUMMARY_PREVIEW_CHARS]}..."
        branch.messages.extend((user_msg, reply))
        conv.last_message = content
        self.highlighted_message_id = None
        return user_msg, reply

    def create_branch(self) -> Optional[Branch]:
        """Nueva rama desde la activa, sembrada con su último mensaje propio. Relayout completo."""
        conv = self.active_conversation
        if conv is None:
            return None
        parent = conv.active_branch
        seed = parent.last_own_message()
        if seed is None:
            log.debug("create_branch: rama %s sin mensajes propios", parent.id)
            return None

        bid = self._next_branch_id(conv)
        branch = Branch(
            id=bid,
            name=bid,
            parent_branch_id=parent.id,
            parent_message_id=seed.id,
            messages=[seed.as_inherited()],
            summary=f"Branch from: {parent.summary}",
            level=parent.level + 1,
        )
        conv.add_branch(branch)
        conv.active_branch_id = bid
        relayout(conv)
        self.highlighted_message_id = None
        log.info("Rama nueva %s (nivel %d) desde %s en conversación %s", bid, branch.level, parent.id, conv.id)
        return branch

    def switch_branch(self, branch_id: str) -> Branch:
        """Solo bookkeeping: no toca la geometría."""
        conv = self._require_active()
        conv.set_active_branch(branch_id)
        target = conv.branches[branch_id]
        hl = self.highlighted_message_id
        if hl and not target.has_message(hl):
            self.highlighted_message_id = None
        return target

    def navigate_to_message(self, branch_id: str, message_id: str) -> Branch:
        """Activa la rama de origen y marca el mensaje para resaltado transitorio."""
        conv = self._require_active()
        conv.set_active_branch(branch_id)
        self.highlighted_message_id = message_id
        return conv.branches[branch_id]

    def clear_highlight(self) -> None:
        self.highlighted_message_id = None

    # ---------------------------
    # Internos
    # ---------------------------
    def _require_active(self) -> Conversation:
        conv = self.active_conversation
        if conv is None:
            raise RcvValidationError("No hay conversación activa")
        return conv

    def _next_conversation_id(self) -> str:
        while True:
            cid = str(next(self._conversation_seq))
            if cid not in self.conversations:
                return cid

    def _next_branch_id(self, conv: Conversation) -> str:
        # Zero-padded: el orden por id coincide con el orden de creación (hermanos en el layout).
        while True:
            bid = f"branch-{next(self._branch_seq):04d}"
            if bid not in conv.branches:
                return bid
