"""
Shared pytest setup.

Puts src/ on sys.path so tests import the package without installing it, and
provides collaborator doubles for the memory advisor:

- RecordingStore: in-memory store that records every write batch in order
- ImmediateScheduler: runs submitted tasks on the calling thread
"""

import sys
from concurrent.futures import Future
from pathlib import Path

import pytest

src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


class RecordingStore:
    """Returns canned query results and records everything written."""

    def __init__(self, results=None, query_error=None, write_error=None):
        self.results = list(results or [])
        self.query_error = query_error
        self.write_error = write_error
        self.queries: list[dict] = []
        self.batches: list[list] = []

    def query(self, conversation_id, query, top_k, filter_expression=None):
        self.queries.append({
            "conversation_id": conversation_id,
            "query": query,
            "top_k": top_k,
            "filter_expression": filter_expression,
        })
        if self.query_error:
            raise self.query_error
        return list(self.results)

    def write(self, documents):
        self.batches.append(list(documents))
        if self.write_error:
            raise self.write_error

    @property
    def written(self) -> list:
        """All written documents, flattened in write order."""
        return [doc for batch in self.batches for doc in batch]


class ImmediateScheduler:
    """Executor-like scheduler that runs tasks synchronously."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def scheduler():
    return ImmediateScheduler()


@pytest.fixture
def make_store():
    return RecordingStore


class QueueingScheduler:
    """Executor-like scheduler that holds tasks until run_pending() is called."""

    def __init__(self):
        self.pending: list = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self):
        pending, self.pending = self.pending, []
        for future, fn, args, kwargs in pending:
            future.set_result(fn(*args, **kwargs))


@pytest.fixture
def queueing_scheduler():
    return QueueingScheduler()
