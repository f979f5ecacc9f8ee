"""Writing posterior probabilities back to graph nodes and identification records."""

import logging

from alphapi.constants.keys import POSTERIOR_SCORE_TYPE
from alphapi.graph.evidence_graph import POSTERIOR_NODE_TYPES, EvidenceGraph, NodeType
from alphapi.identification import IdentificationStore, ProteinGroup
from alphapi.inference.engine import posterior_probability
from alphapi.inference.pmf import PMF

logger = logging.getLogger()


def write_posteriors(posteriors: list[tuple[int, PMF]], graph: EvidenceGraph) -> int:
    """Set the posterior of every node that accepts one.

    Only protein and protein group nodes accept posteriors, all other variants ignore the value.

    Returns
    -------
    int
        Number of nodes that were updated.
    """
    n_written = 0
    for node_idx, pmf in posteriors:
        node = graph.nodes[node_idx]
        if node.type not in POSTERIOR_NODE_TYPES:
            continue
        node.posterior = posterior_probability(pmf)
        n_written += 1
    return n_written


def commit_posteriors(graph: EvidenceGraph, store: IdentificationStore) -> None:
    """Copy protein posteriors into the scores of the protein records of `store`."""
    for node in graph.nodes:
        if node.type == NodeType.PROTEIN:
            store.proteins[node.record].score = node.posterior

    store.score_type = POSTERIOR_SCORE_TYPE
    store.higher_score_better = True


def annotate_indistinguishable_groups(
    graph: EvidenceGraph, store: IdentificationStore
) -> None:
    """Create one group record per protein group node.

    The probability of a group is the score of its last member protein, not a proper group posterior.
    Member proteins of a group share the same peptides and usually end up with very similar scores.
    """
    groups = []
    for node_idx, node in enumerate(graph.nodes):
        if node.type != NodeType.PROTEIN_GROUP:
            continue

        group = ProteinGroup(accessions=[])
        for member in graph.upstream(node_idx):
            protein = store.proteins[graph.nodes[member].record]
            group.accessions.append(protein.accession)
            group.probability = protein.score
        groups.append(group)

    store.indistinguishable_groups = groups
    logger.info(f"Annotated {len(groups):,} indistinguishable protein groups")
