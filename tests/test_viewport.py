import contextlib
import unittest

from rcv.core.viewport import (
    SCROLL_ROLE_MESSAGES,
    DragMode,
    PointerButton,
    ViewportController,
    is_within_scrollable,
)
from rcv.geom.types import Point


class Node:
    """Nodo falso con padre y rol de scroll opcional."""

    def __init__(self, parent=None, role=None):
        self.parent = parent
        self.role = role


def parent_of(n):
    return n.parent


def is_marked(n):
    return n.role is not None


class Recorder:
    def __init__(self):
        self.events = []

    def factory(self, name):
        @contextlib.contextmanager
        def scope():
            self.events.append(("enter", name))
            try:
                yield
            finally:
                self.events.append(("exit", name))

        return scope


class DragTests(unittest.TestCase):
    def test_drag_moves_offset_by_pointer_delta(self):
        ctl = ViewportController()
        self.assertTrue(ctl.press(PointerButton.PRIMARY, (100, 100)))
        self.assertEqual(ctl.mode, DragMode.DRAGGING)
        ctl.move((130, 85))
        self.assertEqual(ctl.canvas_offset, Point(30.0, -15.0))

        self.assertTrue(ctl.release(PointerButton.PRIMARY))
        self.assertEqual(ctl.mode, DragMode.IDLE)
        self.assertFalse(ctl.move((500, 500)))
        self.assertEqual(ctl.canvas_offset, Point(30.0, -15.0))

    def test_moves_accumulate(self):
        ctl = ViewportController()
        ctl.press(PointerButton.PRIMARY, (0, 0))
        ctl.move((10, 0))
        ctl.move((15, 5))
        ctl.move((5, 5))
        self.assertEqual(ctl.canvas_offset, Point(5.0, 5.0))
        self.assertEqual(ctl.last_pointer_pos, Point(5.0, 5.0))

    def test_non_primary_button_does_not_drag(self):
        ctl = ViewportController()
        self.assertFalse(ctl.press(PointerButton.SECONDARY, (0, 0)))
        self.assertFalse(ctl.is_dragging)

    def test_press_inside_scrollable_does_not_drag(self):
        ctl = ViewportController(is_internal_scrollable=lambda t: t == "list")
        self.assertFalse(ctl.press(PointerButton.PRIMARY, (0, 0), "list"))
        self.assertFalse(ctl.is_dragging)
        self.assertTrue(ctl.press(PointerButton.PRIMARY, (0, 0), "background"))

    def test_second_press_while_dragging_is_ignored(self):
        rec = Recorder()
        ctl = ViewportController(drag_scopes=[rec.factory("cursor")])
        ctl.press(PointerButton.PRIMARY, (0, 0))
        self.assertFalse(ctl.press(PointerButton.PRIMARY, (50, 50)))
        self.assertEqual(ctl.last_pointer_pos, Point(0.0, 0.0))
        self.assertEqual(rec.events, [("enter", "cursor")])

    def test_release_of_other_button_keeps_dragging(self):
        ctl = ViewportController()
        ctl.press(PointerButton.PRIMARY, (0, 0))
        self.assertFalse(ctl.release(PointerButton.MIDDLE))
        self.assertTrue(ctl.is_dragging)

    def test_callbacks(self):
        offsets, states = [], []
        ctl = ViewportController(on_offset_changed=offsets.append, on_dragging_changed=states.append)
        ctl.press(PointerButton.PRIMARY, (0, 0))
        ctl.move((3, 4))
        ctl.release(PointerButton.PRIMARY)
        self.assertEqual(offsets, [Point(3.0, 4.0)])
        self.assertEqual(states, [True, False])


class DragScopeTests(unittest.TestCase):
    def test_scopes_held_exactly_while_dragging(self):
        rec = Recorder()
        ctl = ViewportController(drag_scopes=[rec.factory("cursor"), rec.factory("listeners")])
        ctl.press(PointerButton.PRIMARY, (0, 0))
        self.assertEqual(rec.events, [("enter", "cursor"), ("enter", "listeners")])
        ctl.release(PointerButton.PRIMARY)
        self.assertEqual(rec.events[2:], [("exit", "listeners"), ("exit", "cursor")])

    def test_close_releases_scopes(self):
        rec = Recorder()
        ctl = ViewportController(drag_scopes=[rec.factory("cursor")])
        ctl.press(PointerButton.PRIMARY, (0, 0))
        ctl.close()
        self.assertFalse(ctl.is_dragging)
        self.assertEqual(rec.events, [("enter", "cursor"), ("exit", "cursor")])
        ctl.close()
        self.assertEqual(len(rec.events), 2)

    def test_failing_scope_releases_already_entered(self):
        rec = Recorder()

        @contextlib.contextmanager
        def broken():
            raise RuntimeError("boom")
            yield  # pragma: no cover

        ctl = ViewportController(drag_scopes=[rec.factory("cursor"), broken])
        with self.assertRaises(RuntimeError):
            ctl.press(PointerButton.PRIMARY, (0, 0))
        self.assertFalse(ctl.is_dragging)
        self.assertEqual(rec.events, [("enter", "cursor"), ("exit", "cursor")])

    def test_added_scope_applies_to_next_drag(self):
        rec = Recorder()
        ctl = ViewportController()
        ctl.add_drag_scope(rec.factory("late"))
        ctl.press(PointerButton.PRIMARY, (0, 0))
        ctl.release(PointerButton.PRIMARY)
        self.assertEqual(rec.events, [("enter", "late"), ("exit", "late")])


class WheelTests(unittest.TestCase):
    def test_wheel_pans_by_negated_delta(self):
        ctl = ViewportController()
        self.assertTrue(ctl.wheel((10, 40)))
        self.assertEqual(ctl.canvas_offset, Point(-10.0, -40.0))

    def test_sensitivity_scales_delta(self):
        ctl = ViewportController(wheel_sensitivity=2.0)
        ctl.wheel((0, 10))
        self.assertEqual(ctl.canvas_offset, Point(0.0, -20.0))

    def test_sensitivity_is_clamped(self):
        ctl = ViewportController()
        ctl.set_wheel_sensitivity(50)
        self.assertEqual(ctl.wheel_sensitivity, 5.0)
        ctl.set_wheel_sensitivity(0)
        self.assertEqual(ctl.wheel_sensitivity, 0.1)

    def test_zoom_modifier_passes_through(self):
        ctl = ViewportController()
        self.assertFalse(ctl.wheel((10, 40), zoom_modifier=True))
        self.assertEqual(ctl.canvas_offset, Point(0.0, 0.0))

    def test_scrollable_target_passes_through(self):
        lst = Node(role=SCROLL_ROLE_MESSAGES)
        item = Node(parent=Node(parent=lst))
        ctl = ViewportController(is_internal_scrollable=lambda t: is_within_scrollable(t, parent_of, is_marked))
        self.assertFalse(ctl.wheel((0, 40), target=item))
        self.assertEqual(ctl.canvas_offset, Point(0.0, 0.0))
        self.assertTrue(ctl.wheel((0, 40), target=Node()))

    def test_wheel_does_not_change_mode(self):
        ctl = ViewportController()
        ctl.wheel((1, 1))
        self.assertEqual(ctl.mode, DragMode.IDLE)


class ScrollableWalkTests(unittest.TestCase):
    def test_marked_ancestor_found(self):
        top = Node(role="scroll_viewport")
        leaf = Node(parent=Node(parent=top))
        self.assertTrue(is_within_scrollable(leaf, parent_of, is_marked))

    def test_unmarked_chain(self):
        leaf = Node(parent=Node(parent=Node()))
        self.assertFalse(is_within_scrollable(leaf, parent_of, is_marked))

    def test_none_target(self):
        self.assertFalse(is_within_scrollable(None, parent_of, is_marked))

    def test_cyclic_chain_terminates(self):
        a = Node()
        b = Node(parent=a)
        a.parent = b
        self.assertFalse(is_within_scrollable(a, parent_of, is_marked, max_depth=10))


class RecenterTests(unittest.TestCase):
    def test_recenter_puts_root_at_viewport_centre(self):
        ctl = ViewportController()
        off = ctl.recenter((800, 400), (1000, 600))
        self.assertEqual(off, Point(-300.0, -100.0))
        self.assertEqual(ctl.to_screen((800, 400)), Point(500.0, 300.0))

    def test_conversation_switch_recenters_once(self):
        ctl = ViewportController()
        self.assertTrue(ctl.on_conversation_changed("1", (800, 400), (1000, 600)))
        ctl.wheel((0, 100))
        self.assertFalse(ctl.on_conversation_changed("1", (800, 400), (1000, 600)))
        self.assertEqual(ctl.canvas_offset, Point(-300.0, -200.0))
        self.assertTrue(ctl.on_conversation_changed("2", (800, 400), (1000, 600)))
        self.assertEqual(ctl.canvas_offset, Point(-300.0, -100.0))

    def test_screen_canvas_round_trip(self):
        ctl = ViewportController()
        ctl.recenter((0, 0), (200, 100))
        self.assertEqual(ctl.to_canvas(ctl.to_screen((12, 34))), Point(12.0, 34.0))


if __name__ == "__main__":
    unittest.main()
