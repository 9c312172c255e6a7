"""
Hand-off between stream events (circuit layer threads) and a blocked caller.
"""

import enum
import logging
import queue


class Event(enum.Enum):
    CONNECTED = 'connected'
    DISCONNECTED = 'disconnected'
    FAILURE = 'failure'


class Channel:
    """Stream listener turning callbacks into two single-shot waits.

    The circuit layer calls connected/data_arrived/disconnected/failure from
    its own I/O threads; the request driver blocks on wait_connected() then
    wait_completed(). Only the first event of each kind is kept.

    Usage::

      >>> channel = Channel()
      >>> stream = circuit.open_directory_stream(channel)
      >>> if channel.wait_connected(timeout=1):
      ...     stream.send_http_get('/tor/rendezvous2/...', 'dirreq')
      >>> channel.wait_completed(timeout=1)
      <Event.DISCONNECTED: 'disconnected'>
    """

    def __init__(self):
        self.connection = queue.Queue(maxsize=1)
        self.completion = queue.Queue(maxsize=1)

    @staticmethod
    def _post(slot, event):
        try:
            slot.put_nowait(event)
        except queue.Full:
            pass # (first event wins)

    @staticmethod
    def _wait(slot, timeout):
        try:
            return slot.get(timeout=timeout)
        except queue.Empty:
            return None

    def connected(self, stream):
        self._post(self.connection, Event.CONNECTED)

    def data_arrived(self, stream):
        pass # (data stays buffered within the stream until read())

    def disconnected(self, stream):
        self._post(self.connection, Event.DISCONNECTED)
        self._post(self.completion, Event.DISCONNECTED)

    def failure(self, stream):
        logging.debug('Stream: Failure reported on {}.'.format(stream))
        self._post(self.connection, Event.FAILURE)
        self._post(self.completion, Event.FAILURE)

    def wait_connected(self, timeout):
        """Block until the stream is open.

        :returns: True if connected, False if it failed first, None on timeout
        """
        event = self._wait(self.connection, timeout)
        if event is None:
            return None
        return event is Event.CONNECTED

    def wait_completed(self, timeout):
        """Block until the remote side closed the stream or it failed.

        :returns: the terminal Event, or None on timeout
        """
        return self._wait(self.completion, timeout)
