"""测试核心数据模型。"""

import unittest

from command_resolver.models import (
    LINK_ACTION,
    TURN_OFF,
    TURN_ON,
    Action,
    ColorChange,
    Group,
    Light,
    Scene,
    SceneChange,
    entity_kind,
    link_action,
)


class TestEntity(unittest.TestCase):
    """测试目录实体。"""

    def test_entity_kind(self):
        self.assertEqual(entity_kind(Group(1, "Kitchen")), "group")
        self.assertEqual(entity_kind(Light(10, "Lamp")), "light")
        self.assertEqual(entity_kind(Scene("5", "Reading", "1")), "scene")

    def test_frozen(self):
        group = Group(1, "Kitchen")
        with self.assertRaises(AttributeError):
            group.name = "Other"


class TestActionKind(unittest.TestCase):
    """测试动作类别。"""

    def test_group_kinds(self):
        kitchen = Group(1, "Kitchen")
        reading = Scene("5", "Reading", "1")
        self.assertEqual(Action(kitchen, TURN_ON).kind, "group_onoff")
        self.assertEqual(Action(kitchen, ColorChange("#ff0000")).kind, "group_color")
        self.assertEqual(Action(kitchen, SceneChange(reading)).kind, "group_scene")

    def test_light_kinds(self):
        lamp = Light(10, "Lamp")
        self.assertEqual(Action(lamp, TURN_OFF).kind, "light_onoff")
        self.assertEqual(Action(lamp, ColorChange("#00ff00")).kind, "light_color")

    def test_invalid(self):
        """没有具体颜色、灯的场景或空目标都不是合法动作。"""
        lamp = Light(10, "Lamp")
        self.assertEqual(Action(Group(1, "Kitchen"), ColorChange()).kind, "invalid")
        self.assertEqual(Action(lamp, SceneChange(Scene("5", "Reading", "1"))).kind, "invalid")
        self.assertEqual(Action().kind, "invalid")

    def test_special(self):
        action = link_action()
        self.assertEqual(action.kind, "special")
        self.assertEqual(action.special, LINK_ACTION)
        self.assertEqual(action.special.id, "link")


class TestStateUpdate(unittest.TestCase):
    """测试 bridge 状态负载。"""

    def test_onoff(self):
        self.assertEqual(Action(Group(1, "Kitchen"), TURN_ON).state_update(), {"on": True})
        self.assertEqual(Action(Group(1, "Kitchen"), TURN_OFF).state_update(), {"on": False})

    def test_scene(self):
        scene = Scene("5", "Reading", "1")
        self.assertEqual(
            Action(Group(1, "Kitchen"), SceneChange(scene)).state_update(),
            {"scene": "5"},
        )

    def test_color(self):
        update = Action(Light(10, "Lamp"), ColorChange("#ff0000")).state_update()
        self.assertTrue(update["on"])
        self.assertAlmostEqual(update["xy"][0], 0.64, places=3)
        self.assertAlmostEqual(update["xy"][1], 0.33, places=3)

    def test_black(self):
        self.assertEqual(
            Action(Light(10, "Lamp"), ColorChange("#000000")).state_update(),
            {"on": True},
        )

    def test_special(self):
        self.assertEqual(link_action().state_update(), {})


class TestActionStr(unittest.TestCase):
    """测试动作描述。"""

    def test_descriptions(self):
        kitchen = Group(1, "Kitchen")
        self.assertEqual(str(Action(kitchen, TURN_OFF)), "Room 'Kitchen': turn off")
        self.assertEqual(
            str(Action(Light(10, "Lamp"), ColorChange("#ff0000"))),
            "Light 'Lamp': turn #ff0000",
        )
        self.assertEqual(
            str(Action(kitchen, SceneChange(Scene("5", "Reading", "1")))),
            "Room 'Kitchen': activate 'Reading'",
        )

    def test_special(self):
        self.assertEqual(str(link_action()), "Link Hue Bridge")


if __name__ == "__main__":
    unittest.main()
