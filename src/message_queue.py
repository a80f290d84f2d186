from dataclasses import dataclass
from queue import Queue
from typing import Optional, Union

from models import Transaction

DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class QueuedTransaction:
    """A record plus its position in the input stream."""

    sequence: int
    transaction: Transaction


class _Terminate:
    def __repr__(self) -> str:
        return "TERMINATE"


TERMINATE = _Terminate()

Message = Union[QueuedTransaction, _Terminate]


class ClientQueue:
    """
    Ordered, bounded message queue feeding a single client's worker.
    All synchronization is internal - callers never need to lock.

    The publisher blocks while the queue is full; that is the backpressure
    mechanism, not an error.
    """

    def __init__(self, client_id: int, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"queue capacity must be at least 1, got {capacity}")
        self.client_id = client_id
        self._queue: Queue[Message] = Queue(maxsize=capacity)

    def publish_message(self, sequence: int, transaction: Transaction) -> None:
        """Append a record. Blocks while the queue is full."""
        self._queue.put(QueuedTransaction(sequence, transaction))

    def consume_message(self, timeout: Optional[float] = None) -> Message:
        """
        Take the next message, blocking until one is available.
        Raises queue.Empty if `timeout` expires first.
        """
        return self._queue.get(timeout=timeout)

    def terminate(self) -> None:
        """Signal that no more records will be published."""
        self._queue.put(TERMINATE)

    @staticmethod
    def is_terminate(message: Message) -> bool:
        return message is TERMINATE
