"""Message passing between the UI context and the cache process."""

from queue import Queue, Empty
from typing import Any, Callable, Dict, List, Optional
import threading

GET_VERSION = "GET_VERSION"
SKIP_WAITING = "SKIP_WAITING"
THEME_CHANGE = "theme-change"


class MessagePort:
	"""One end of a MessageChannel. Messages posted here arrive at the peer."""

	def __init__(self):
		self._inbox: Queue = Queue()
		self._peer: Optional['MessagePort'] = None
		self._listeners: List[Callable[[Any], None]] = []
		self._lock = threading.Lock()

	def post_message(self, message: Any) -> None:
		"""Deliver a message to the other end of the channel."""
		peer = self._peer
		if peer is None:
			return
		peer._deliver(message)

	def _deliver(self, message: Any) -> None:
		with self._lock:
			listeners = list(self._listeners)
		if listeners:
			for listener in listeners:
				listener(message)
			return
		self._inbox.put(message)

	def add_listener(self, listener: Callable[[Any], None]) -> None:
		"""Receive messages through a callback instead of `receive`."""
		with self._lock:
			self._listeners.append(listener)

	def receive(self, timeout: Optional[float] = None) -> Optional[Any]:
		"""
		Wait for the next message.

		Args:
			timeout: Seconds to wait (None = wait indefinitely)

		Returns:
			The message, or None if nothing arrived in time
		"""
		try:
			return self._inbox.get(timeout=timeout)
		except Empty:
			return None


class MessageChannel:
	"""A pair of entangled ports: `port1` stays with the caller, `port2` is transferred."""

	def __init__(self):
		self.port1 = MessagePort()
		self.port2 = MessagePort()
		self.port1._peer = self.port2
		self.port2._peer = self.port1


def message_type(message: Any) -> Optional[str]:
	"""Return the `type` field of a dict message, or None."""
	if isinstance(message, dict):
		return message.get("type")
	return None


def theme_change_message(theme: str) -> Dict[str, str]:
	return {"type": THEME_CHANGE, "theme": theme}
