"""Tests for observable properties and subscriptions."""

from __future__ import annotations

from unittest.mock import MagicMock

from videostreamer.core.observable import ObservableProperty, SubscriptionSet


class TestObservableProperty:
    def test_notifies_old_and_new(self):
        prop = ObservableProperty("rate", 0.0)
        handler = MagicMock()
        prop.subscribe(handler)
        prop.set(1.0)
        handler.assert_called_once_with(0.0, 1.0)
        assert prop.value == 1.0

    def test_same_value_is_not_a_change(self):
        prop = ObservableProperty("rate", 1.0)
        handler = MagicMock()
        prop.subscribe(handler)
        prop.set(1.0)
        handler.assert_not_called()

    def test_cancelled_subscription_is_silent(self):
        prop = ObservableProperty("rate", 0.0)
        handler = MagicMock()
        sub = prop.subscribe(handler)
        sub.cancel()
        sub.cancel()
        prop.set(2.0)
        handler.assert_not_called()
        assert not sub.active
        assert prop.subscriber_count() == 0

    def test_subscription_as_context_manager(self):
        prop = ObservableProperty("status", "unknown")
        handler = MagicMock()
        with prop.subscribe(handler):
            prop.set("ready")
        prop.set("failed")
        handler.assert_called_once_with("unknown", "ready")

    def test_failing_handler_does_not_block_others(self):
        prop = ObservableProperty("rate", 0.0)
        prop.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        second = MagicMock()
        prop.subscribe(second)
        prop.set(1.0)
        second.assert_called_once_with(0.0, 1.0)

    def test_handler_may_cancel_itself(self):
        prop = ObservableProperty("rate", 0.0)
        seen = []

        def _once(old, new):
            seen.append(new)
            sub.cancel()

        sub = prop.subscribe(_once)
        prop.set(1.0)
        prop.set(2.0)
        assert seen == [1.0]


class TestSubscriptionSet:
    def test_cancel_all(self):
        rate = ObservableProperty("rate", 0.0)
        status = ObservableProperty("status", "unknown")
        subs = SubscriptionSet()
        subs.add(rate.subscribe(MagicMock()))
        subs.add(status.subscribe(MagicMock()))
        assert len(subs) == 2

        subs.cancel_all()
        assert len(subs) == 0
        assert rate.subscriber_count() == 0
        assert status.subscriber_count() == 0
