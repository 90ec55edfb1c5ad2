from abc import ABC, abstractmethod
from typing import Dict, Optional
from debit_gate.schemas.records import PermissionRecord

# Locator -> record. Records go in and come out as copies; callers mutate their
# copy and upsert it back.


class PermissionStore(ABC):
    @abstractmethod
    def get(self, locator: str) -> Optional[PermissionRecord]:
        pass

    @abstractmethod
    def upsert(self, locator: str, record: PermissionRecord):
        pass

    @abstractmethod
    def delete(self, locator: str) -> bool:
        pass

    @abstractmethod
    def snapshot(self) -> Dict[str, PermissionRecord]:
        pass

    @abstractmethod
    def restore(self, snapshot: Dict[str, PermissionRecord]):
        pass


class InMemoryPermissionStore(PermissionStore):
    def __init__(self):
        self._records: Dict[str, PermissionRecord] = {}

    def get(self, locator: str) -> Optional[PermissionRecord]:
        record = self._records.get(locator)
        return record.model_copy() if record is not None else None

    def upsert(self, locator: str, record: PermissionRecord):
        self._records[locator] = record.model_copy()

    def delete(self, locator: str) -> bool:
        return self._records.pop(locator, None) is not None

    def snapshot(self) -> Dict[str, PermissionRecord]:
        return {k: v.model_copy() for k, v in self._records.items()}

    def restore(self, snapshot: Dict[str, PermissionRecord]):
        self._records = snapshot

    def clear(self):
        self._records.clear()

    def __len__(self):
        return len(self._records)
