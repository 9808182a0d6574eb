"""Shared fixtures for the planner tests."""
import pytest

from planner_server.models import EventCategory, make_event
from planner_server.store import DomainStore


@pytest.fixture
def store() -> DomainStore:
    """An in-memory store."""
    return DomainStore()


@pytest.fixture
def populated_store(store: DomainStore) -> DomainStore:
    """Two subjects with a few events each."""
    calc = store.add_subject("Calc I")
    hist = store.add_subject("History")
    store.append_events(calc.id, [
        make_event(calc, "Midterm", "2024-10-15", EventCategory.EXAM),
        make_event(calc, "Problem set 3", "2024-10-08", EventCategory.ASSIGNMENT),
    ])
    store.append_events(hist.id, [
        make_event(hist, "Chapter 4", "2024-10-10", EventCategory.READING),
    ])
    return store
