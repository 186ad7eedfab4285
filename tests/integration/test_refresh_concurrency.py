"""刷新与查询、链接并发时的一致性测试。"""

from __future__ import annotations

import threading
import time
import unittest

from command_resolver.bridge import InMemoryBridge, StaticConnectionProvider
from command_resolver.config import EngineConfig
from command_resolver.engine import IndexManager
from command_resolver.errors import SourceFetchFailed
from command_resolver.models import Group, Light, Scene, link_action

WAIT_TIMEOUT = 2.0

KITCHEN = Group(1, "Kitchen")
HALL = Group(3, "Hall")
KITCHEN_LIGHT = Light(11, "Kitchen")
READING = Scene("5", "Reading", "1")


def _wait_until(predicate, timeout=WAIT_TIMEOUT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _describe(actions):
    return tuple(str(action) for action in actions)


class RefreshConcurrencyTest(unittest.TestCase):
    """并发一致性。"""

    def setUp(self):
        self.manager = IndexManager(config=EngineConfig(refresh_interval=None))
        self.addCleanup(self.manager.close)

    def test_query_sees_old_snapshot_during_refresh(self):
        """刷新进行中，查询看到上一次发布的快照且不被阻塞。"""
        bridge = InMemoryBridge([KITCHEN])
        self.manager.set_source(bridge).result(WAIT_TIMEOUT)

        gate = threading.Event()
        self.addCleanup(gate.set)
        bridge.gate = gate
        bridge.set_catalog(groups=[HALL])
        future = self.manager.schedule_refresh()

        self.assertTrue(_wait_until(lambda: bridge.fetch_calls["groups"] == 2))
        self.assertEqual(self.manager.phase, "refreshing")

        started = time.monotonic()
        self.assertEqual(_describe(self.manager.query("kitchen off")), ("Room 'Kitchen': turn off",))
        self.assertEqual(self.manager.query("hall off"), [])
        self.assertLess(time.monotonic() - started, 0.5)

        gate.set()
        future.result(WAIT_TIMEOUT)

        self.assertEqual(self.manager.query("kitchen off"), [])
        self.assertEqual(_describe(self.manager.query("hall off")), ("Room 'Hall': turn off",))

    def test_results_come_from_one_snapshot(self):
        """并发查询的结果总是完全来自旧快照或完全来自新快照。"""
        bridge = InMemoryBridge([KITCHEN])
        self.manager.set_source(bridge).result(WAIT_TIMEOUT)

        old_result = ("Room 'Kitchen': turn off",)
        new_result = ("Room 'Kitchen': turn off", "Light 'Kitchen': turn off")
        seen: set[tuple[str, ...]] = set()
        errors: list[BaseException] = []
        stop = threading.Event()

        def worker():
            try:
                while not stop.is_set():
                    seen.add(_describe(self.manager.query("kitchen off")))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        try:
            for index in range(10):
                lights = [KITCHEN_LIGHT] if index % 2 == 0 else []
                bridge.set_catalog(groups=[KITCHEN], lights=lights)
                self.manager.refresh_now(WAIT_TIMEOUT)
        finally:
            stop.set()
            for thread in threads:
                thread.join(WAIT_TIMEOUT)

        self.assertEqual(errors, [])
        self.assertTrue(seen <= {old_result, new_result})
        self.assertIn(old_result, seen)

    def test_partial_fetch_failure_publishes_nothing(self):
        """场景拉取失败时，新拉取到的灯组和灯都不会被发布。"""
        bridge = InMemoryBridge([KITCHEN], scenes=[READING])
        self.manager.set_source(bridge).result(WAIT_TIMEOUT)

        bridge.set_catalog(groups=[HALL], lights=[KITCHEN_LIGHT])
        bridge.failures["scenes"] = RuntimeError("scenes endpoint down")

        with self.assertRaises(SourceFetchFailed):
            self.manager.refresh_now(WAIT_TIMEOUT)
        self.assertIsNone(self.manager.state.snapshot)
        with self.assertRaises(SourceFetchFailed):
            self.manager.query("hall off")

        bridge.failures.clear()
        snapshot = self.manager.refresh_now(WAIT_TIMEOUT)
        self.assertEqual(snapshot.groups, (HALL,))
        self.assertEqual(snapshot.lights, (KITCHEN_LIGHT,))
        self.assertEqual(snapshot.scenes, ())

    def test_source_switch_during_refresh(self):
        """旧 bridge 的刷新在途时切换 bridge，最终发布新 bridge 的目录。"""
        gate = threading.Event()
        self.addCleanup(gate.set)
        old_bridge = InMemoryBridge([KITCHEN], gate=gate)
        new_bridge = InMemoryBridge([HALL])

        first = self.manager.set_source(old_bridge)
        self.assertTrue(_wait_until(lambda: old_bridge.fetch_calls["groups"] == 1))
        second = self.manager.set_source(new_bridge)

        gate.set()
        first.result(WAIT_TIMEOUT)
        snapshot = second.result(WAIT_TIMEOUT)

        self.assertEqual(snapshot.groups, (HALL,))
        self.assertEqual(self.manager.state.snapshot, snapshot)

    def test_concurrent_link_connects_once(self):
        """并发的链接请求只建立一次连接。"""
        gate = threading.Event()
        self.addCleanup(gate.set)
        provider = StaticConnectionProvider(InMemoryBridge([KITCHEN]), gate=gate)
        manager = IndexManager(
            connection_provider=provider,
            config=EngineConfig(refresh_interval=None),
        )
        self.addCleanup(manager.close)

        errors: list[BaseException] = []

        def link():
            try:
                manager.do(link_action())
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=link) for _ in range(3)]
        for thread in threads:
            thread.start()

        self.assertTrue(_wait_until(lambda: provider.calls == 1))
        gate.set()
        for thread in threads:
            thread.join(WAIT_TIMEOUT)

        self.assertEqual(errors, [])
        self.assertEqual(provider.calls, 1)
        self.assertTrue(manager.linked)

        manager.refresh_now(WAIT_TIMEOUT)
        self.assertEqual(_describe(manager.query("kitchen off")), ("Room 'Kitchen': turn off",))


if __name__ == "__main__":
    unittest.main()
