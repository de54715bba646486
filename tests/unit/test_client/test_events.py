"""
test_events.py - EventEmitter 테스트
"""

from src.client.events import EventEmitter


class TestEventEmitter:
    """subscribe/emit 테스트."""

    def test_emit_to_listeners(self):
        emitter = EventEmitter()
        received = []
        emitter.subscribe(lambda event, payload: received.append((event, payload)))

        emitter.emit("changed", pending=True)

        assert received == [("changed", {"pending": True})]

    def test_unsubscribe(self):
        emitter = EventEmitter()
        received = []
        unsubscribe = emitter.subscribe(lambda event, payload: received.append(event))

        unsubscribe()
        unsubscribe()
        emitter.emit("changed")

        assert received == []

    def test_raising_listener_does_not_stop_others(self, caplog):
        emitter = EventEmitter()
        received = []

        def broken_listener(event, payload):
            raise RuntimeError("ui callback failed")

        emitter.subscribe(broken_listener)
        emitter.subscribe(lambda event, payload: received.append(event))

        emitter.emit("changed", pending=True)

        assert received == ["changed"]
        assert "Listener failed" in caplog.text
