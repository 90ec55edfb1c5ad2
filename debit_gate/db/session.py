# Host transaction boundary. The gate itself keeps no compensation logic: a
# request either commits everything it touched here or nothing.

from contextlib import contextmanager
from typing import Optional
import logging
import threading
from debit_gate.core.ledger import InMemoryLedger
from debit_gate.db.memory import InMemoryPermissionStore, PermissionStore

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, store: Optional[PermissionStore] = None, ledger: Optional[InMemoryLedger] = None):
        self.store = store if store is not None else InMemoryPermissionStore()
        self.ledger = ledger if ledger is not None else InMemoryLedger()
        # Re-entrant so a hierarchy call nested in another atomic block shares it
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def atomic(self):
        """
        Serializes requests and rolls the store and the ledger back together if
        the block raises. Nested blocks join the outermost one.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            store_snapshot = self.store.snapshot()
            ledger_snapshot = self.ledger.snapshot()
            self._depth = 1
            try:
                yield self
            except Exception:
                self.store.restore(store_snapshot)
                self.ledger.restore(ledger_snapshot)
                logger.debug("Transaction rolled back")
                raise
            finally:
                self._depth = 0

    def reset(self):
        with self._lock:
            self.store.restore({})
            self.ledger.clear()

# Global database instance
db = Database()
