import unittest

from rcv.core.models import Branch, Conversation, Message
from rcv.core.workspace import Workspace, placeholder_reply, relayout
from rcv.geom.types import Point
from rcv.utils.errors import RcvValidationError


class SampleWorkspaceTests(unittest.TestCase):
    def setUp(self):
        self.ws = Workspace.with_samples()

    def test_samples(self):
        ids = [s.id for s in self.ws.conversation_list()]
        self.assertEqual(ids, ["1", "2"])
        self.assertEqual(self.ws.active_conversation_id, "1")
        self.assertFalse(self.ws.active_conversation.has_messages())
        self.assertFalse(self.ws.can_create_branch())

    def test_new_conversation_becomes_active(self):
        conv = self.ws.new_conversation()
        self.assertEqual(conv.id, "3")
        self.assertEqual(self.ws.active_conversation_id, "3")
        self.assertEqual(conv.root().position, Point(800.0, 400.0))
        self.assertEqual(self.ws.new_conversation().id, "4")

    def test_select_unknown_conversation(self):
        with self.assertRaises(RcvValidationError):
            self.ws.select_conversation("nope")


class SendMessageTests(unittest.TestCase):
    def setUp(self):
        self.ws = Workspace.with_samples()

    def test_first_message_sets_summary(self):
        user, reply = self.ws.send_message("hola mundo")
        branch = self.ws.active_branch
        self.assertEqual(branch.messages, [user, reply])
        self.assertEqual(branch.summary, "Discussion about: hola mundo...")
        self.assertEqual(reply.role, "assistant")
        self.assertEqual(reply.content, placeholder_reply("hola mundo"))
        self.assertEqual(self.ws.active_conversation.last_message, "hola mundo")

    def test_summary_only_from_first_message(self):
        self.ws.send_message("primero")
        self.ws.send_message("segundo")
        self.assertEqual(self.ws.active_branch.summary, "Discussion about: primero...")

    def test_summary_preview_is_truncated(self):
        self.ws.send_message("x" * 80)
        self.assertEqual(self.ws.active_branch.summary, "Discussion about: " + "x" * 50 + "...")

    def test_blank_message_ignored(self):
        self.assertIsNone(self.ws.send_message("   "))
        self.assertEqual(self.ws.active_branch.messages, [])


class BranchTests(unittest.TestCase):
    def setUp(self):
        self.ws = Workspace.with_samples()
        self.ws.select_conversation("2")

    def test_create_branch_seeds_last_own_message(self):
        branch = self.ws.create_branch()
        self.assertEqual(branch.id, "branch-0001")
        self.assertEqual(branch.level, 1)
        self.assertEqual(branch.parent_branch_id, "main")
        self.assertEqual(branch.parent_message_id, "2")
        self.assertEqual([m.id for m in branch.messages], ["inherited-2"])
        self.assertTrue(branch.messages[0].is_inherited)
        self.assertEqual(branch.summary, "Branch from: Brainstorming project concepts")
        self.assertEqual(self.ws.active_conversation.active_branch_id, "branch-0001")

    def test_create_branch_relayouts(self):
        branch = self.ws.create_branch()
        self.assertEqual(branch.position, Point(1250.0, 400.0))
        self.ws.switch_branch("main")
        second = self.ws.create_branch()
        conv = self.ws.active_conversation
        self.assertEqual(conv.branches["branch-0001"].position, Point(1250.0, 325.0))
        self.assertEqual(second.position, Point(350.0, 475.0))

    def test_branch_without_own_messages_cannot_branch(self):
        self.ws.create_branch()
        self.assertFalse(self.ws.can_create_branch())
        self.assertIsNone(self.ws.create_branch())

    def test_levels_grow_with_depth(self):
        self.ws.create_branch()
        self.ws.send_message("más")
        child = self.ws.create_branch()
        self.assertEqual(child.level, 2)
        self.assertEqual(child.parent_branch_id, "branch-0001")
        by_level = self.ws.branches_by_level()
        self.assertEqual(sorted(by_level), [0, 1, 2])

    def test_switch_branch_does_not_touch_positions(self):
        self.ws.create_branch()
        conv = self.ws.active_conversation
        before = {bid: b.position for bid, b in conv.branches.items()}
        self.ws.switch_branch("main")
        self.assertEqual({bid: b.position for bid, b in conv.branches.items()}, before)

    def test_switch_to_unknown_branch(self):
        with self.assertRaises(RcvValidationError):
            self.ws.switch_branch("ghost")


class HighlightTests(unittest.TestCase):
    def setUp(self):
        self.ws = Workspace.with_samples()
        self.ws.select_conversation("2")
        self.ws.create_branch()

    def test_navigate_activates_origin_and_highlights(self):
        branch = self.ws.navigate_to_message("main", "2")
        self.assertEqual(branch.id, "main")
        self.assertEqual(self.ws.active_conversation.active_branch_id, "main")
        self.assertEqual(self.ws.highlighted_message_id, "2")

    def test_switch_keeps_highlight_only_if_branch_has_it(self):
        self.ws.navigate_to_message("main", "1")
        self.ws.switch_branch("main")
        self.assertEqual(self.ws.highlighted_message_id, "1")
        self.ws.switch_branch("branch-0001")
        self.assertIsNone(self.ws.highlighted_message_id)

    def test_clear_highlight(self):
        self.ws.navigate_to_message("main", "2")
        self.ws.clear_highlight()
        self.assertIsNone(self.ws.highlighted_message_id)

    def test_select_conversation_clears_highlight(self):
        self.ws.navigate_to_message("main", "2")
        self.ws.select_conversation("1")
        self.assertIsNone(self.ws.highlighted_message_id)


class RelayoutTests(unittest.TestCase):
    def test_dangling_branch_keeps_last_position(self):
        conv = Conversation.new("x", root_messages=[Message(id="m", content="c", role="user")])
        conv.branches["a"] = Branch(
            id="a", name="a", parent_branch_id="ghost", position=Point(5.0, 6.0), level=1
        )
        res = relayout(conv)
        self.assertEqual(len(res.dangling()), 1)
        self.assertEqual(conv.branches["a"].position, Point(5.0, 6.0))
        self.assertEqual(conv.branches["main"].position, Point(800.0, 400.0))


if __name__ == "__main__":
    unittest.main()
