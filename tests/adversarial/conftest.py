"""
Shared fixtures for adversarial tests.

Provides helpers to release many registration attempts at the same instant.
"""

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import pytest

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def run_concurrently() -> Callable[[list[Callable[[], object]]], list[object]]:
    """
    Run callables on separate threads, released together by a barrier.

    Each result is either the callable's return value or the exception it
    raised, in submission order.
    """

    def _run(calls: list[Callable[[], object]]) -> list[object]:
        barrier = threading.Barrier(len(calls))

        def attempt(call: Callable[[], object]) -> object:
            barrier.wait()
            try:
                return call()
            except Exception as e:
                return e

        with ThreadPoolExecutor(max_workers=len(calls)) as executor:
            futures = [executor.submit(attempt, call) for call in calls]
            return [f.result() for f in futures]

    return _run
