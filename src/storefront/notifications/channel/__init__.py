"""Channel adapter registry — where order notifications are dispatched.

Uses the in-memory fake adapter by default so the engine runs without an
external provider. A real adapter plugs in by implementing
``NotificationPort`` and registering it here.
"""

EMAIL = "email"

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str = EMAIL):
    """Return the configured channel adapter (singleton per channel type)."""
    if channel_type not in _channel_instances:
        if channel_type == EMAIL:
            from storefront.notifications.channel.fake_notifier import FakeNotificationAdapter

            _channel_instances[channel_type] = FakeNotificationAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
