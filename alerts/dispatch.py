"""Hand-off of new alert events to notification channels.

Delivery belongs to the channel handlers. The dispatcher only decides which
channels an event goes to and makes sure a failing handler can never undo
or block the alert that triggered it.
"""
import logging

from models.enums import Channel

logger = logging.getLogger("farmmonitor.alerts.dispatch")


def channels_for(event):
    """The channel set copied from the rule when the event fired."""
    return frozenset(event.channels)


class NotificationDispatcher:
    def __init__(self, handlers=None, executor=None):
        self.handlers = dict(handlers or {})
        self.executor = executor

    def register(self, channel, handler):
        self.handlers[Channel(channel)] = handler

    def dispatch(self, event):
        """Hand the event to each of its channels. Returns the channels handed off."""
        handed_off = set()
        for channel in sorted(channels_for(event), key=lambda c: c.value):
            handler = self.handlers.get(channel)
            if handler is None:
                logger.debug(f"No handler for {channel.value}; alert {event.id} not sent there")
                continue
            if self.executor is not None:
                future = self.executor.submit(self._send, channel, handler, event)
                future.add_done_callback(_log_unexpected)
            else:
                self._send(channel, handler, event)
            handed_off.add(channel)
        return frozenset(handed_off)

    @staticmethod
    def _send(channel, handler, event):
        try:
            handler.send(event)
        except Exception as e:
            logger.warning(f"{channel.value} dispatch failed for alert {event.id}: {e}")


def _log_unexpected(future):
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning(f"Dispatch task raised: {exc}")
