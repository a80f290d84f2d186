import logging
import threading
from typing import Optional

from account_registry import AccountRegistry
from errors import TransactionError
from message_queue import ClientQueue, QueuedTransaction
from models import ProcessingResult, ProcessingStats
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class ClientWorker:
    """
    Sequential processing unit for exactly one client.

    Drains the client's queue in order on its own thread and is the only
    writer of the client's account. In batch mode the first hard error is
    kept in `error`/`failed_sequence` and the shared abort event is set; from
    then on all workers discard what is left in their queues until they see
    the terminate message.
    """

    def __init__(
        self,
        client_id: int,
        queue: ClientQueue,
        registry: AccountRegistry,
        processor: TransactionProcessor,
        abort_event: threading.Event,
        stats: ProcessingStats,
        batch_mode: bool = False,
    ):
        self.client_id = client_id
        self._queue = queue
        self._registry = registry
        self._processor = processor
        self._abort_event = abort_event
        self._stats = stats
        self._batch_mode = batch_mode
        self._thread = threading.Thread(
            target=self._run, name=f"client-worker-{client_id}", daemon=True
        )
        self.error: Optional[Exception] = None
        self.failed_sequence: Optional[int] = None
        self.discarded = 0

    def start(self) -> None:
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        account = self._registry.get_or_create(self.client_id)

        while True:
            message = self._queue.consume_message()
            if ClientQueue.is_terminate(message):
                break

            if self._abort_event.is_set():
                self.discarded += 1
                continue

            self._apply(account, message)

        if self.discarded:
            logger.info(f"Worker for client {self.client_id} discarded {self.discarded} records after abort")

    def _apply(self, account, message: QueuedTransaction) -> None:
        try:
            result = self._processor.process_transaction(account, message.transaction)
        except Exception as e:
            self._fail(message, e)
            return

        if result == ProcessingResult.APPLIED:
            self._stats.record_applied()
        else:
            self._stats.record_ignored()

    def _fail(self, message: QueuedTransaction, error: Exception) -> None:
        """
        Hard errors and unexpected exceptions are handled alike, so the worker
        keeps draining its queue until it sees the terminate message.
        """
        self._stats.record_failure()
        context = {"client_id": self.client_id, "transaction_id": message.transaction.transaction_id}
        unexpected = not isinstance(error, TransactionError)
        if self._batch_mode:
            logger.error(f"Client {self.client_id}: {error}. Aborting batch", exc_info=unexpected, extra=context)
            self.error = error
            self.failed_sequence = message.sequence
            self._abort_event.set()
        else:
            logger.warning(f"Client {self.client_id}: {error}. Skipping", exc_info=unexpected, extra=context)
