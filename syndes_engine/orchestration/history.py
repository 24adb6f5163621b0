"""Orchestration layer — Execution history.

Holds the ``ExecutionRecord`` read by ``if`` conditions and the processed
command counter polled by ``cycle next`` watchers.  Only the drain loop
writes the record; the counter is advanced by the drain loop as items are
dispatched.
"""

from __future__ import annotations

from syndes_engine.protocol.models import ExecutionRecord


class ExecutionHistory:
    def __init__(self) -> None:
        self._record = ExecutionRecord()
        self._processed = 0

    @property
    def record(self) -> ExecutionRecord:
        return self._record

    @property
    def last_command(self) -> str | None:
        return self._record.last_command

    @property
    def last_result(self) -> str | None:
        return self._record.last_result

    @property
    def processed_count(self) -> int:
        return self._processed

    def record_execution(self, command: str, result: str | None) -> None:
        self._record = ExecutionRecord(last_command=command, last_result=result)

    def advance(self, count: int = 1) -> int:
        # Single event loop: no await between read and write.
        self._processed += count
        return self._processed
