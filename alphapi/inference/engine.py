"""Sum-product loopy belief propagation on a compiled factor graph."""

import logging
from dataclasses import dataclass

import networkx as nx

from alphapi.inference.factor_graph import FactorGraph
from alphapi.inference.pmf import PMF
from alphapi.inference.scheduler import MessageScheduler

logger = logging.getLogger()

VARIABLE = "v"
FACTOR = "f"

# a node of the bipartite graph is (VARIABLE, variable_id) or (FACTOR, factor_idx)
Node = tuple[str, int]
Edge = tuple[Node, Node]


@dataclass
class BeliefPropagationResult:
    iterations: int
    converged: bool


class BeliefPropagationEngine:
    def __init__(self, scheduler: MessageScheduler, factor_graph: FactorGraph) -> None:
        """Loopy belief propagation on the bipartite variable/factor graph of `factor_graph`.

        Messages are PMFs over the full domain `0..max_value` of the variable of their edge and are initialised
        uniformly. The scheduler decides which message is updated next.

        Parameters
        ----------
        scheduler : MessageScheduler
            Message scheduling policy.

        factor_graph : FactorGraph
            Compiled factor graph of one connected component.
        """
        self.scheduler = scheduler
        self.factor_graph = factor_graph
        self.result: BeliefPropagationResult | None = None

        self.graph = nx.Graph()
        for variable in factor_graph.domains:
            self.graph.add_node((VARIABLE, variable))

        self.edges: list[Edge] = []
        for factor_idx, factor in enumerate(factor_graph.factors):
            factor_node = (FACTOR, factor_idx)
            self.graph.add_node(factor_node)
            for variable in factor.variables:
                variable_node = (VARIABLE, variable)
                self.graph.add_edge(factor_node, variable_node)
                self.edges.append((factor_node, variable_node))
                self.edges.append((variable_node, factor_node))

        self.messages: dict[Edge, PMF] = {
            edge: self._uniform(self._variable_of(edge)) for edge in self.edges
        }

    @staticmethod
    def _variable_of(edge: Edge) -> int:
        source, target = edge
        return source[1] if source[0] == VARIABLE else target[1]

    def _uniform(self, variable: int) -> PMF:
        return PMF.uniform(0, self.factor_graph.domains[variable])

    def compute_message(self, edge: Edge) -> PMF:
        """Compute the candidate message along `edge` from the current incoming messages of its source.

        Raises
        ------
        InvariantViolationError
            If the message contains non-finite values.
        """
        source, target = edge

        if source[0] == VARIABLE:
            message = self._uniform(source[1])
            for neighbor in self.graph.neighbors(source):
                if neighbor != target:
                    message = (message * self.messages[(neighbor, source)]).normalized()
            return message

        factor = self.factor_graph.factors[source[1]]
        variable = target[1]
        incoming = {
            other: self.messages[((VARIABLE, other), source)]
            for other in factor.variables
            if other != variable
        }
        message = factor.message_to(variable, incoming)
        return PMF(
            0, message.values_over(0, self.factor_graph.domains[variable])
        ).normalized()

    def dependent_edges(self, edge: Edge) -> list[Edge]:
        """Outgoing edges of the target of `edge`, except the reverse edge."""
        source, target = edge
        return [
            (target, neighbor)
            for neighbor in self.graph.neighbors(target)
            if neighbor != source
        ]

    def send(self, edge: Edge, candidate: PMF, dampening_lambda: float) -> PMF:
        """Replace the message along `edge` by the dampened candidate."""
        message = candidate.dampened(self.messages[edge], dampening_lambda).normalized()
        self.messages[edge] = message
        return message

    def run(self) -> BeliefPropagationResult:
        iterations, converged = self.scheduler.run(self)
        self.result = BeliefPropagationResult(iterations, converged)

        if not converged:
            logger.warning(
                f"Belief propagation did not converge within {iterations:,} message updates"
            )
        else:
            logger.debug(f"Belief propagation converged after {iterations:,} updates")
        return self.result

    def estimate_posteriors(self, targets: list[int] | None = None) -> list[tuple[int, PMF]]:
        """Marginal distributions of `targets`, running belief propagation first if necessary.

        Parameters
        ----------
        targets : list[int], optional
            Variable ids, defaults to the posterior targets of the factor graph.

        Returns
        -------
        list[tuple[int, PMF]]
            Normalized marginal per target, in the order of `targets`.
        """
        if self.result is None:
            self.run()

        if targets is None:
            targets = self.factor_graph.posterior_targets

        posteriors = []
        for variable in targets:
            variable_node = (VARIABLE, variable)
            belief = self._uniform(variable)
            for neighbor in self.graph.neighbors(variable_node):
                belief = (belief * self.messages[(neighbor, variable_node)]).normalized()
            posteriors.append((variable, belief))
        return posteriors


def posterior_probability(pmf: PMF) -> float:
    """Probability of presence, the entry at value 1, 0 if 1 lies outside of the support."""
    return pmf.probability(1)
