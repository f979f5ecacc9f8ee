"""Compilation of evidence graph components into factor graphs."""

import logging
from dataclasses import dataclass, field

from alphapi.graph.evidence_graph import EvidenceGraph, NodeType
from alphapi.inference.factors import Factor, MessagePasserFactory
from alphapi.workflow.settings import ModelParameters

logger = logging.getLogger()


@dataclass
class FactorGraph:
    """Factors over integer variables, with the variables whose posteriors are requested.

    Attributes
    ----------
    domains : dict[int, int]
        Largest value of each variable, values range from 0 to this value.
        Variable ids are the indices of the corresponding evidence graph nodes.
    factors : list[Factor]
        Factors in insertion order.
    posterior_targets : list[int]
        Variables for which posteriors are estimated.
    """

    domains: dict[int, int] = field(default_factory=dict)
    factors: list[Factor] = field(default_factory=list)
    posterior_targets: list[int] = field(default_factory=list)

    def factors_of_kind(self, kind: str) -> list[Factor]:
        return [factor for factor in self.factors if factor.kind == kind]

    def __len__(self) -> int:
        return len(self.factors)


def compile_component(
    graph: EvidenceGraph, component: list[int], model_parameters: ModelParameters
) -> FactorGraph:
    """Translate one connected component into a factor graph.

    Nodes are visited in order of their type rank, then index, so the inputs of every node are compiled before the
    node itself. Only neighbours with a strictly lower rank are inputs.

    - protein: binary variable with a prior factor, registered as posterior target
    - protein group, peptide group, peptide, run, charge: count variable, probabilistic adder over its inputs
    - PSM: binary variable with a sum evidence factor over its input count and a peptide evidence factor

    Parameters
    ----------
    graph : EvidenceGraph
        The (clustered) evidence graph.

    component : list[int]
        Node indices of the component.

    model_parameters : ModelParameters
        Parameter triple of the generative model.

    Returns
    -------
    FactorGraph
        Empty if the component has less than two nodes.
    """
    factor_graph = FactorGraph()

    if len(component) < 2:
        logger.debug(f"Skipping component with {len(component)} node(s)")
        return factor_graph

    factory = MessagePasserFactory(model_parameters)
    ordered = sorted(component, key=lambda n: (graph.nodes[n].type, n))

    for node_idx in ordered:
        node = graph.nodes[node_idx]
        inputs = [n for n in graph.upstream(node_idx) if n in factor_graph.domains]

        if node.type == NodeType.PROTEIN:
            factor_graph.domains[node_idx] = 1
            factor_graph.factors.append(factory.create_protein_factor(node_idx))
            factor_graph.posterior_targets.append(node_idx)

        elif node.type == NodeType.PSM:
            if len(inputs) != 1:
                logger.warning(
                    f"Skipping PSM {node.label} with {len(inputs)} inputs, expected exactly one"
                )
                continue
            parent = inputs[0]
            factor_graph.domains[node_idx] = 1
            factor_graph.factors.append(
                factory.create_sum_evidence_factor(
                    factor_graph.domains[parent], parent, node_idx
                )
            )
            factor_graph.factors.append(
                factory.create_peptide_evidence_factor(node_idx, node.score)
            )

        else:
            if len(inputs) == 0:
                logger.warning(
                    f"Skipping {node.type.name} node {node.label} without inputs"
                )
                continue
            input_max = [factor_graph.domains[n] for n in inputs]
            factor_graph.domains[node_idx] = sum(input_max)
            factor_graph.factors.append(
                factory.create_probabilistic_adder_factor(inputs, input_max, node_idx)
            )

    return factor_graph
