"""测试结果序列化与目录加载。"""

import json
import tempfile
import unittest
from pathlib import Path

from command_resolver.catalog import CatalogSnapshot
from command_resolver.models import (
    TURN_OFF,
    Action,
    ColorChange,
    Group,
    Light,
    Scene,
    SceneChange,
    ScoreSample,
    link_action,
)
from command_resolver.ranking import rank_actions
from command_resolver.serialization import (
    action_to_dict,
    actions_to_json,
    actions_to_payload,
    catalog_from_mapping,
    load_catalog,
)

FIXTURE_DIR = Path(__file__).resolve().parent.parent / "fixtures"
KITCHEN = Group(1, "Kitchen")


class TestActionToDict(unittest.TestCase):
    """测试动作序列化。"""

    def test_group_onoff(self):
        self.assertEqual(
            action_to_dict(Action(KITCHEN, TURN_OFF)),
            {
                "kind": "group_onoff",
                "group": {"id": 1, "name": "Kitchen"},
                "onoff": "off",
                "description": "Room 'Kitchen': turn off",
            },
        )

    def test_scene(self):
        data = action_to_dict(Action(KITCHEN, SceneChange(Scene("5", "Reading", "1"))))
        self.assertEqual(data["kind"], "group_scene")
        self.assertEqual(data["scene"], {"id": "5", "name": "Reading"})

    def test_light_color(self):
        data = action_to_dict(Action(Light(10, "Lamp"), ColorChange("#00ff00")))
        self.assertEqual(data["light"], {"id": 10, "name": "Lamp"})
        self.assertEqual(data["color"], "#00ff00")
        self.assertNotIn("group", data)

    def test_special(self):
        self.assertEqual(
            action_to_dict(link_action()),
            {
                "kind": "special",
                "special": {"id": "link", "data": {"message": "Link Hue Bridge"}},
            },
        )

    def test_debug(self):
        action = Action(KITCHEN, TURN_OFF, samples=[ScoreSample(0.0, 0.5)])
        rank_actions([action])
        data = action_to_dict(action, with_debug=True)
        self.assertEqual(data["debug"]["scores"], [-1.5, 0, -1.0, 2])
        self.assertEqual(data["debug"]["matchScores"], [[0.0, 0.5]])

    def test_debug_unscored(self):
        data = action_to_dict(Action(KITCHEN, TURN_OFF), with_debug=True)
        self.assertIsNone(data["debug"]["scores"])

    def test_json(self):
        actions = [Action(Group(1, "厨房"), TURN_OFF), link_action()]
        text = actions_to_json(actions)
        self.assertIn("厨房", text)
        self.assertEqual(json.loads(text), actions_to_payload(actions))


class TestCatalogLoading(unittest.TestCase):
    """测试目录加载。"""

    def test_from_mapping(self):
        snapshot = catalog_from_mapping(
            {
                "groups": [{"id": "1", "name": "Kitchen"}],
                "lights": [{"id": 10}],
                "scenes": [{"id": 5, "name": "Reading", "group": 1}],
            }
        )
        self.assertEqual(snapshot.groups, (KITCHEN,))
        self.assertEqual(snapshot.lights, (Light(10, ""),))
        self.assertEqual(snapshot.scenes, (Scene("5", "Reading", "1"),))

    def test_empty(self):
        self.assertEqual(catalog_from_mapping(None), CatalogSnapshot())

    def test_missing_id(self):
        with self.assertRaises(ValueError) as ctx:
            catalog_from_mapping({"groups": [{"name": "Kitchen"}]})
        self.assertIn("missing 'id'", str(ctx.exception))

    def test_not_a_mapping(self):
        with self.assertRaises(ValueError):
            catalog_from_mapping(["Kitchen"])

    def test_load_fixture(self):
        snapshot = load_catalog(FIXTURE_DIR / "catalog.yaml")
        self.assertEqual(len(snapshot.groups), 2)
        self.assertEqual(snapshot.scenes_for(KITCHEN), [Scene("5", "Reading", "1")])

    def test_load_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "catalog.yaml"
            path.write_text("lights:\n  - id: 3\n    name: Desk\n", encoding="utf-8")
            snapshot = load_catalog(path)
        self.assertEqual(snapshot.lights, (Light(3, "Desk"),))
        self.assertEqual(snapshot.groups, ())


if __name__ == "__main__":
    unittest.main()
