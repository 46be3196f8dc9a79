# File: rcv/geom/layout_runtime_log.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.0
# Purpose: Telemetría mínima ("una vez por rama") para issues del layout.

from __future__ import annotations

import logging
from typing import Iterable

from rcv.geom.layout import DanglingParent, LayoutIssue, Unreachable

log = logging.getLogger(__name__)


# El layout corre en cada rama nueva: sin esto el mismo issue se repetiría en rcv.log.
_SEEN: set[tuple[str, str, str]] = set()


def log_issues_once(scope: str, issues: Iterable[LayoutIssue], *, where: str = "layout") -> int:
    """Loggea 1 vez por (scope, rama, tipo) cada issue reportado por el layout.

    `scope` suele ser el id de la conversación. Devuelve cuántos issues nuevos se loggearon.
    """
    logged = 0
    for issue in issues:
        key = (str(scope), issue.branch_id, issue.kind)
        if key in _SEEN:
            continue
        _SEEN.add(key)
        logged += 1
        if isinstance(issue, DanglingParent):
            log.warning(
                "[%s] %s: rama %s apunta a padre inexistente %s (queda sin posicionar)",
                where,
                scope,
                issue.branch_id,
                issue.parent_branch_id,
            )
        elif isinstance(issue, Unreachable):
            log.warning("[%s] %s: rama %s no cuelga de la raíz (ciclo?)", where, scope, issue.branch_id)
        else:
            log.warning("[%s] %s: issue %r", where, scope, issue)
    return logged


def reset_seen() -> None:
    """Olvida lo ya loggeado (tests)."""
    _SEEN.clear()
