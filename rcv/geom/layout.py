# File: rcv/geom/layout.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.2
# Status: stable
# Date: 2026-10-18
# Purpose: Layout automático del árbol de ramas (posición por rama) + pasada de solapes.
# Notes: Función pura y determinista. Recalcula TODO el árbol en cada cambio estructural.
"""Branch-tree layout engine.

Algorithm
- Children index from ``parent_branch_id`` links. Siblings are ordered by
  branch id, so the result never depends on the mapping's iteration order.
- Root at ``canvas_center``.
- For a node with ``k`` children a vertical band of
  ``max(k * VERTICAL_SPACING, BLOCK_HEIGHT)`` is reserved, centred on the
  parent's y. The sibling column is centred inside the band, one
  ``VERTICAL_SPACING`` step per child.
- Each child goes ``HORIZONTAL_SPACING`` to the right or to the left of its
  parent. Side choice (load balancing): when a parent starts placing its
  children, every already-placed position is scanned and counted as
  right/left of the parent's x. Even sibling index goes right iff
  ``right <= left``; odd index goes right iff ``right > left``.
- Depth-first: the subtree of child ``i`` is placed before child ``i + 1``.
  The walk uses an explicit stack (no recursion).
- One O(n²) overlap sweep over the placed blocks, in placement order.
  Residual overlaps after that single sweep are accepted.

Malformed trees
- No root / several roots: :class:`rcv.utils.errors.NoRootError` (fatal).
- Dangling parent: reported as :class:`DanglingParent`; the branch and its
  subtree are left without a position.
- Anything else unreachable from the root (cycles): :class:`Unreachable`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Optional, Union

from rcv.geom.types import BLOCK_HEIGHT, BLOCK_WIDTH, Point
from rcv.utils.errors import NoRootError

log = logging.getLogger(__name__)

# Constantes de layout (px). Deben coincidir para compatibilidad visual.
HORIZONTAL_SPACING = 450.0
VERTICAL_SPACING = 150.0
MIN_SPACING = 50.0

OVERLAP_DX = BLOCK_WIDTH + MIN_SPACING
OVERLAP_DY = BLOCK_HEIGHT + MIN_SPACING


@dataclass(frozen=True)
class DanglingParent:
    """La rama apunta a un padre que no existe en el árbol."""

    kind: ClassVar[str] = "dangling_parent"

    branch_id: str
    parent_branch_id: str


@dataclass(frozen=True)
class Unreachable:
    """La rama no cuelga de la raíz (p.ej. ciclo de parent links)."""

    kind: ClassVar[str] = "unreachable"

    branch_id: str


LayoutIssue = Union[DanglingParent, Unreachable]


@dataclass
class LayoutResult:
    root_id: str
    # Posiciones finales, en orden de colocación.
    positions: dict[str, Point]
    # Posiciones antes de la pasada de solapes (mismo orden).
    initial_positions: dict[str, Point]
    issues: list[LayoutIssue] = field(default_factory=list)
    unplaced: list[str] = field(default_factory=list)

    @property
    def order(self) -> list[str]:
        return list(self.initial_positions)

    def dangling(self) -> list[DanglingParent]:
        return [i for i in self.issues if isinstance(i, DanglingParent)]

    def position_of(self, branch_id: str) -> Optional[Point]:
        return self.positions.get(branch_id)


@dataclass(frozen=True)
class TreeIndex:
    root_id: str
    children: dict[str, tuple[str, ...]]
    parents: dict[str, Optional[str]]
    dangling: tuple[DanglingParent, ...] = ()


def parent_links(branches: Mapping[str, Any]) -> dict[str, Optional[str]]:
    """id -> parent_branch_id. Acepta Branch, dicts o directamente el id del padre."""
    out: dict[str, Optional[str]] = {}
    for bid, b in branches.items():
        if b is None or isinstance(b, str):
            parent = b
        elif isinstance(b, Mapping):
            parent = b.get("parent_branch_id")
        else:
            parent = getattr(b, "parent_branch_id", None)
        out[str(bid)] = str(parent) if parent else None
    return out


def build_tree_index(branches: Mapping[str, Any]) -> TreeIndex:
    parents = parent_links(branches)

    roots = sorted(bid for bid, p in parents.items() if p is None)
    if len(roots) != 1:
        raise NoRootError(roots)

    children: dict[str, list[str]] = {}
    dangling: list[DanglingParent] = []
    for bid in sorted(parents):
        p = parents[bid]
        if p is None:
            continue
        if p not in parents:
            dangling.append(DanglingParent(branch_id=bid, parent_branch_id=p))
            continue
        children.setdefault(p, []).append(bid)

    return TreeIndex(
        root_id=roots[0],
        children={k: tuple(v) for k, v in children.items()},
        parents=parents,
        dangling=tuple(dangling),
    )


@dataclass
class _Frame:
    """Estado de colocación de los hijos de un nodo (reemplaza la recursión)."""

    parent_id: str
    anchor: Point
    children: tuple[str, ...]
    right_count: int
    left_count: int
    first_y: float
    next_index: int = 0

    @classmethod
    def open(cls, parent_id: str, children: tuple[str, ...], placed: Mapping[str, Point]) -> "_Frame":
        anchor = placed[parent_id]
        # Conteo global sobre TODO lo ya colocado (no es un contador incremental).
        right = sum(1 for p in placed.values() if p.x > anchor.x)
        left = sum(1 for p in placed.values() if p.x < anchor.x)

        k = len(children)
        band = max(k * VERTICAL_SPACING, BLOCK_HEIGHT)
        top = anchor.y - band / 2.0
        first_y = top + (band - (k - 1) * VERTICAL_SPACING) / 2.0
        return cls(parent_id, anchor, children, right, left, first_y)

    def goes_right(self, index: int) -> bool:
        if index % 2 == 0:
            return self.right_count <= self.left_count
        return self.right_count > self.left_count

    def child_position(self, index: int) -> Point:
        dx = HORIZONTAL_SPACING if self.goes_right(index) else -HORIZONTAL_SPACING
        return Point(self.anchor.x + dx, self.first_y + index * VERTICAL_SPACING)


def place_tree(index: TreeIndex, canvas_center: Point) -> dict[str, Point]:
    """Posiciones iniciales (sin resolver solapes), en orden de colocación."""
    placed: dict[str, Point] = {index.root_id: Point.of(canvas_center)}

    stack: list[_Frame] = []
    root_children = index.children.get(index.root_id, ())
    if root_children:
        stack.append(_Frame.open(index.root_id, root_children, placed))

    while stack:
        frame = stack[-1]
        if frame.next_index >= len(frame.children):
            stack.pop()
            continue
        i = frame.next_index
        frame.next_index += 1

        child = frame.children[i]
        if child in placed:
            # Solo posible con parent links corruptos; no se recoloca.
            continue
        placed[child] = frame.child_position(i)

        grandchildren = index.children.get(child, ())
        if grandchildren:
            stack.append(_Frame.open(child, grandchildren, placed))

    return placed


def blocks_overlap(a: Point, b: Point) -> bool:
    return abs(a.x - b.x) < OVERLAP_DX and abs(a.y - b.y) < OVERLAP_DY


def resolve_overlaps(positions: Mapping[str, Point]) -> dict[str, Point]:
    """Una sola pasada por pares (i < j): corre verticalmente el segundo bloque.

    No itera hasta punto fijo: con más de dos bloques casi coincidentes pueden
    quedar solapes residuales.
    """
    out = dict(positions)
    ids = list(out)
    for i, a_id in enumerate(ids):
        for b_id in ids[i + 1:]:
            a = out[a_id]
            b = out[b_id]
            if not blocks_overlap(a, b):
                continue
            shift = OVERLAP_DY if b.y >= a.y else -OVERLAP_DY
            out[b_id] = Point(b.x, b.y + shift)
    return out


def _classify_unplaced(index: TreeIndex, placed: Mapping[str, Point]) -> tuple[list[str], list[Unreachable]]:
    dangling_ids = {d.branch_id for d in index.dangling}
    unplaced = sorted(bid for bid in index.parents if bid not in placed)
    unreachable: list[Unreachable] = []
    for bid in unplaced:
        if bid in dangling_ids:
            continue
        # Si la cadena de padres llega a una rama colgante, ya está reportada.
        seen: set[str] = set()
        cur: Optional[str] = bid
        under_dangling = False
        while cur is not None and cur not in seen:
            if cur in dangling_ids:
                under_dangling = True
                break
            seen.add(cur)
            cur = index.parents.get(cur)
        if not under_dangling:
            unreachable.append(Unreachable(branch_id=bid))
    return unplaced, unreachable


def layout(branches: Mapping[str, Any], canvas_center: Point | tuple[float, float]) -> LayoutResult:
    """Calcula la posición de cada rama.

    Raises:
        NoRootError: cero o más de una rama sin padre.
    """
    index = build_tree_index(branches)
    initial = place_tree(index, Point.of(canvas_center))
    final = resolve_overlaps(initial)

    unplaced, unreachable = _classify_unplaced(index, initial)
    issues: list[LayoutIssue] = [*index.dangling, *unreachable]

    log.debug(
        "layout: root=%s placed=%d unplaced=%d issues=%d",
        index.root_id,
        len(final),
        len(unplaced),
        len(issues),
    )
    return LayoutResult(
        root_id=index.root_id,
        positions=final,
        initial_positions=initial,
        issues=issues,
        unplaced=unplaced,
    )


def placement_order(branches: Mapping[str, Any]) -> list[str]:
    """Orden en que el layout visita/coloca las ramas (útil para tests)."""
    index = build_tree_index(branches)
    return list(place_tree(index, Point()))
