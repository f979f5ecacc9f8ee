"""Message scheduling policies for loopy belief propagation.

All schedulers share the same message update core of `BeliefPropagationEngine` and only differ in the order in
which messages are updated. Run to convergence, they reach the same fixed point.
"""

import heapq
import itertools
import logging
from collections import deque
from typing import TYPE_CHECKING

import numpy as np

from alphapi.constants.keys import SchedulingType
from alphapi.workflow.settings import BeliefPropagationSettings

if TYPE_CHECKING:
    from alphapi.inference.engine import BeliefPropagationEngine, Edge

logger = logging.getLogger()


class MessageScheduler:
    def __init__(
        self,
        dampening_lambda: float = 1e-3,
        convergence_threshold: float = 1e-5,
        max_nr_iterations: int = 1 << 32,
    ) -> None:
        """Base class for message schedulers.

        Parameters
        ----------
        dampening_lambda : float
            Weight of the old message in the dampened update `(1 - lambda) * new + lambda * old`.

        convergence_threshold : float
            A message is converged if the L1 distance between its candidate and its current value is at most this value.

        max_nr_iterations : int
            Maximum number of message updates before stopping without convergence.
        """
        self.dampening_lambda = dampening_lambda
        self.convergence_threshold = convergence_threshold
        self.max_nr_iterations = max_nr_iterations

    def run(self, engine: "BeliefPropagationEngine") -> tuple[int, bool]:
        """Update messages until convergence or until the iteration cap is reached.

        Returns
        -------
        tuple[int, bool]
            Number of message updates and whether all messages converged.
        """
        raise NotImplementedError()

    def _reactivated_edges(
        self, engine: "BeliefPropagationEngine", edge: "Edge"
    ) -> list["Edge"]:
        """Edges whose candidate may have changed after `edge` was sent."""
        edges = engine.dependent_edges(edge)
        # a dampened message lags behind its candidate
        if self.dampening_lambda > 0:
            edges.append(edge)
        return edges


class PriorityScheduler(MessageScheduler):
    """Residual belief propagation: always send the message that changes most.

    Candidates are kept in a max-heap keyed by their L1 distance to the current message. Heap entries are invalidated
    lazily: an entry is skipped if its priority no longer matches the latest priority of its edge.
    Every edge starts with infinite priority, so each message is sent at least once unless a neighbouring update
    shows it to be converged first.
    """

    def run(self, engine: "BeliefPropagationEngine") -> tuple[int, bool]:
        heap = []
        priorities = {}
        candidates = {}
        counter = itertools.count()

        def push(edge, priority):
            priorities[edge] = priority
            heapq.heappush(heap, (-priority, next(counter), edge))

        for edge in engine.edges:
            push(edge, float("inf"))

        iterations = 0
        while heap:
            negative_priority, _, edge = heapq.heappop(heap)
            if priorities.get(edge) != -negative_priority:
                continue

            if iterations >= self.max_nr_iterations:
                return iterations, False

            del priorities[edge]
            candidate = candidates.pop(edge, None)
            if candidate is None:
                candidate = engine.compute_message(edge)
            engine.send(edge, candidate, self.dampening_lambda)
            iterations += 1

            for reactivated in self._reactivated_edges(engine, edge):
                candidate = engine.compute_message(reactivated)
                residual = candidate.distance(engine.messages[reactivated])
                if residual > self.convergence_threshold:
                    candidates[reactivated] = candidate
                    push(reactivated, residual)
                else:
                    priorities.pop(reactivated, None)
                    candidates.pop(reactivated, None)

        return iterations, True


class FifoScheduler(MessageScheduler):
    """Send messages in first in, first out order of their activation."""

    def run(self, engine: "BeliefPropagationEngine") -> tuple[int, bool]:
        queue = deque(engine.edges)
        active = set(engine.edges)

        iterations = 0
        while queue:
            if iterations >= self.max_nr_iterations:
                return iterations, False

            edge = queue.popleft()
            active.discard(edge)
            candidate = engine.compute_message(edge)
            iterations += 1

            if candidate.distance(engine.messages[edge]) <= self.convergence_threshold:
                continue

            engine.send(edge, candidate, self.dampening_lambda)
            for reactivated in self._reactivated_edges(engine, edge):
                if reactivated not in active:
                    active.add(reactivated)
                    queue.append(reactivated)

        return iterations, True


class RandomSpanningTreeScheduler(MessageScheduler):
    def __init__(self, *args, random_state: int | None = None, **kwargs) -> None:
        """Pass messages along a random spanning tree in each sweep.

        Each sweep picks a random root, builds a breadth-first spanning tree with randomly ordered neighbours, sends
        messages from the leaves to the root and back, and finally updates all edges outside of the tree.
        Converged once no message of a sweep changed by more than the convergence threshold.

        Parameters
        ----------
        random_state : int, optional
            Seed of the random number generator.
        """
        super().__init__(*args, **kwargs)
        self.random_state = random_state

    def _random_tree_order(
        self, engine: "BeliefPropagationEngine", rng: np.random.Generator
    ) -> list["Edge"]:
        nodes = list(engine.graph.nodes)
        root = nodes[rng.integers(len(nodes))]

        order = [root]
        parent = {root: None}
        queue = deque([root])
        while queue:
            node = queue.popleft()
            neighbors = list(engine.graph.neighbors(node))
            rng.shuffle(neighbors)
            for neighbor in neighbors:
                if neighbor not in parent:
                    parent[neighbor] = node
                    order.append(neighbor)
                    queue.append(neighbor)

        inward = [(child, parent[child]) for child in reversed(order[1:])]
        outward = [(parent[child], child) for child in order[1:]]
        tree = set(inward) | set(outward)
        return inward + outward + [edge for edge in engine.edges if edge not in tree]

    def run(self, engine: "BeliefPropagationEngine") -> tuple[int, bool]:
        if len(engine.edges) == 0:
            return 0, True

        rng = np.random.default_rng(self.random_state)

        iterations = 0
        while True:
            max_residual = 0.0
            for edge in self._random_tree_order(engine, rng):
                if iterations >= self.max_nr_iterations:
                    return iterations, False

                candidate = engine.compute_message(edge)
                residual = candidate.distance(engine.messages[edge])
                iterations += 1

                if residual > self.convergence_threshold:
                    engine.send(edge, candidate, self.dampening_lambda)
                    max_residual = max(max_residual, residual)

            if max_residual <= self.convergence_threshold:
                return iterations, True


def create_scheduler(settings: BeliefPropagationSettings) -> MessageScheduler:
    """Create the scheduler configured by `settings.scheduling_type`."""
    kwargs = {
        "dampening_lambda": settings.dampening_lambda,
        "convergence_threshold": settings.convergence_threshold,
        "max_nr_iterations": settings.max_nr_iterations,
    }

    if settings.scheduling_type == SchedulingType.PRIORITY:
        return PriorityScheduler(**kwargs)
    if settings.scheduling_type == SchedulingType.FIFO:
        return FifoScheduler(**kwargs)
    if settings.scheduling_type == SchedulingType.RANDOM_SPANNING_TREE:
        return RandomSpanningTreeScheduler(
            **kwargs, random_state=settings.random_state
        )

    raise ValueError(f"Unknown scheduling type {settings.scheduling_type}")
