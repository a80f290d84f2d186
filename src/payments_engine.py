import logging
import threading
from typing import Dict, Iterable, Optional

from account_registry import AccountRegistry
from config import EngineSettings
from csv_reader import read_transactions
from errors import BatchAbortedError, RecordParseError
from ledger import TransactionLedger
from message_queue import DEFAULT_CAPACITY, ClientQueue
from models import ClientAccount, ProcessingStats, Transaction
from transaction_processor import TransactionProcessor
from worker import ClientWorker

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Dispatches transactions to one worker thread per client.

    Records are read once, in order, and pushed onto the queue of the
    client they belong to, so each client's records are applied in input
    order by exactly one thread. Clients proceed independently of each other.

    An engine runs a single stream; create a new one for each run.
    """

    def __init__(self, batch_mode: bool = False, queue_capacity: int = DEFAULT_CAPACITY):
        self._batch_mode = batch_mode
        self._queue_capacity = queue_capacity
        self._registry = AccountRegistry()
        self._ledger = TransactionLedger()
        self._processor = TransactionProcessor(self._ledger)
        self._stats = ProcessingStats()
        self._abort_event = threading.Event()
        self._queues: Dict[int, ClientQueue] = {}
        self._workers: Dict[int, ClientWorker] = {}
        self._started = False

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "PaymentsEngine":
        return cls(batch_mode=settings.batch_mode, queue_capacity=settings.queue_capacity)

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    @property
    def batch_mode(self) -> bool:
        return self._batch_mode

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        records = read_transactions(
            filepath,
            strict=self._batch_mode,
            on_skip=lambda error: self._stats.record_skipped_row(),
        )
        return self.process_records(records)

    def process_records(self, records: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        """
        Apply every record and return final account states.

        In batch mode the first hard error stops the run: no further records
        are read, every worker discards its pending records, and
        BatchAbortedError is raised once all workers have exited.
        """
        if self._started:
            raise RuntimeError("PaymentsEngine instances process a single stream")
        self._started = True

        logger.info(f"Starting processing (batch_mode={self._batch_mode})")

        input_error: Optional[RecordParseError] = None
        try:
            for sequence, transaction in enumerate(records):
                if self._abort_event.is_set():
                    logger.info("Abort requested, stopping input")
                    break
                queue = self._queues.get(transaction.client_id)
                if queue is None:
                    queue = self._spawn_worker(transaction.client_id)
                queue.publish_message(sequence, transaction)
        except RecordParseError as e:
            self._abort_event.set()
            if not self._batch_mode:
                raise
            logger.error(f"{e}. Aborting batch")
            input_error = e
        except BaseException:
            self._abort_event.set()
            raise
        finally:
            self._shutdown_workers()

        logger.info(f"Processing complete for {len(self._workers)} clients. {self._stats}")

        self._raise_batch_failure(input_error)
        return self._registry.get_all_accounts()

    def _spawn_worker(self, client_id: int) -> ClientQueue:
        queue = ClientQueue(client_id, self._queue_capacity)
        worker = ClientWorker(
            client_id,
            queue,
            self._registry,
            self._processor,
            self._abort_event,
            self._stats,
            batch_mode=self._batch_mode,
        )
        self._queues[client_id] = queue
        self._workers[client_id] = worker
        worker.start()
        logger.debug(f"Spawned worker for client {client_id}")
        return queue

    def _shutdown_workers(self) -> None:
        """Send terminate to every worker, then wait for all of them."""
        for queue in self._queues.values():
            queue.terminate()
        for worker in self._workers.values():
            worker.join()

    def _raise_batch_failure(self, input_error: Optional[RecordParseError]) -> None:
        failed = [w for w in self._workers.values() if w.error is not None]
        if failed:
            first = min(failed, key=lambda w: w.failed_sequence)
            raise BatchAbortedError(first.client_id, first.error) from first.error
        if input_error is not None:
            raise BatchAbortedError(None, input_error) from input_error
