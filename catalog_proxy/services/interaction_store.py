"""Interaction history storage.

The service depends on the InteractionStore protocol only; the in-memory
implementation is what the app wires at startup. A durable backend only has
to provide the same three methods.
"""
from collections import Counter
from typing import List, Optional, Protocol

from catalog_proxy.schemas.interaction_schema import InteractionMetrics, InteractionRead


class InteractionStore(Protocol):
    def add(self, interaction: InteractionRead) -> None:
        ...

    def list(self, user_id: Optional[str] = None) -> List[InteractionRead]:
        ...

    def metrics(self) -> InteractionMetrics:
        ...


class InMemoryInteractionStore:
    """Process-lifetime list of interactions, oldest first."""

    def __init__(self):
        self._items: List[InteractionRead] = []

    def add(self, interaction: InteractionRead) -> None:
        self._items.append(interaction)

    def list(self, user_id: Optional[str] = None) -> List[InteractionRead]:
        return [i for i in self._items if user_id is None or i.user_id == user_id]

    def metrics(self) -> InteractionMetrics:
        counts = Counter(i.status or "pendiente" for i in self._items)
        return InteractionMetrics(counts=dict(counts), total=len(self._items))
