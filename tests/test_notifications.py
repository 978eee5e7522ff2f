"""Tests for the notification channel."""

from boardsync.services import NotificationCenter, NotificationLevel


class TestNotificationCenter:
    """Tests for NotificationCenter."""

    def test_success_and_error_distinguishable(self):
        center = NotificationCenter()
        ok = center.success("Board created successfully")
        failed = center.error("Failed to create board")

        assert ok.level is NotificationLevel.SUCCESS
        assert not ok.is_error
        assert failed.is_error
        assert center.errors == [failed]
        assert center.last is failed

    def test_listeners_receive_notifications(self):
        center = NotificationCenter()
        received = []
        remove = center.add_listener(received.append)

        center.success("one")
        remove()
        center.success("two")

        assert [n.message for n in received] == ["one"]

    def test_failing_listener_does_not_block_others(self):
        center = NotificationCenter()
        received = []

        def broken(notification):
            raise RuntimeError("toast failed")

        center.add_listener(broken)
        center.add_listener(received.append)
        center.error("x")

        assert len(received) == 1

    def test_history_bounded(self):
        center = NotificationCenter(max_history=3)
        for i in range(5):
            center.success(str(i))
        assert [n.message for n in center.history] == ["2", "3", "4"]

    def test_clear(self):
        center = NotificationCenter()
        center.success("x")
        center.clear()
        assert center.last is None
