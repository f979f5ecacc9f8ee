"""Typed, undirected evidence graph over identification entities."""

import logging
from dataclasses import dataclass
from enum import IntEnum

import networkx as nx

from alphapi.identification import IdentificationStore, PeptideHit

logger = logging.getLogger()


class NodeType(IntEnum):
    """Discriminant of a `GraphNode`.

    The integer value is the rank in the generative order protein -> groups -> peptide -> PSM.
    Neighbours with a lower rank are the inputs of a node in the factor graph.
    """

    PROTEIN = 0
    PROTEIN_GROUP = 1
    PEPTIDE_GROUP = 2
    PEPTIDE = 3
    RUN_INDEX = 4
    CHARGE = 5
    PSM = 6


# variants that receive posterior probabilities
POSTERIOR_NODE_TYPES = (NodeType.PROTEIN, NodeType.PROTEIN_GROUP)


@dataclass
class GraphNode:
    """A node of the evidence graph.

    Attributes
    ----------
    type : NodeType
        Variant of the node.
    record : int | tuple[int, int] | None
        Arena index into the identification store. Protein index for proteins, `(spectrum_idx, hit_idx)` for PSMs,
        None for nodes created by the graph itself.
    label : str
        Human readable identifier (accession, sequence, ...).
    posterior : float
        Posterior probability, -1 if unset.
    """

    type: NodeType
    record: int | tuple[int, int] | None = None
    label: str = ""
    posterior: float = -1.0
    score: float = 0.0
    sequence: str = ""
    run: str = ""
    charge: int = 0


class EvidenceGraph:
    def __init__(self) -> None:
        """Evidence graph over proteins, groups, peptides and PSMs.

        Nodes are identified by their integer index into `nodes`, which is assigned on insertion and never reused.
        Adjacency is held by a `networkx.Graph`, which keeps neighbours in insertion order.
        """
        self.nodes: list[GraphNode] = []
        self.graph = nx.Graph()
        self.components: list[list[int]] = []
        self.component_of: dict[int, int] = {}

        self.n_skipped_hits = 0
        self.n_skipped_evidences = 0

    def add_node(self, node: GraphNode) -> int:
        node_idx = len(self.nodes)
        self.nodes.append(node)
        self.graph.add_node(node_idx)
        return node_idx

    def add_edge(self, u: int, v: int) -> None:
        self.graph.add_edge(u, v)

    def remove_edge(self, u: int, v: int) -> None:
        self.graph.remove_edge(u, v)

    def neighbors(self, node_idx: int) -> list[int]:
        return list(self.graph.neighbors(node_idx))

    def upstream(self, node_idx: int) -> list[int]:
        """Neighbours with a strictly lower type rank."""
        rank = self.nodes[node_idx].type
        return [n for n in self.graph.neighbors(node_idx) if self.nodes[n].type < rank]

    def downstream(self, node_idx: int) -> list[int]:
        """Neighbours with a strictly higher type rank."""
        rank = self.nodes[node_idx].type
        return [n for n in self.graph.neighbors(node_idx) if self.nodes[n].type > rank]

    def __len__(self) -> int:
        return len(self.nodes)

    @classmethod
    def build(cls, store: IdentificationStore, top_psms: int = 1) -> "EvidenceGraph":
        """Build the evidence graph from identification records.

        One protein node is created per protein record, one PSM node per retained hit and one peptide node per
        distinct sequence. PSMs are connected to their peptide, peptides to their proteins.

        Parameters
        ----------
        store : IdentificationStore
            The identification records. Not modified.

        top_psms : int, default 1
            Number of best scoring hits retained per spectrum, 0 retains all.

        Returns
        -------
        EvidenceGraph
        """
        if top_psms < 0:
            raise ValueError("top_psms must be >= 0")

        graph = cls()

        accession_to_node = {}
        for protein_idx, protein in enumerate(store.proteins):
            if protein.accession in accession_to_node:
                logger.warning(
                    f"Duplicate protein accession {protein.accession}, keeping first occurrence"
                )
                continue
            accession_to_node[protein.accession] = graph.add_node(
                GraphNode(NodeType.PROTEIN, record=protein_idx, label=protein.accession)
            )

        sequence_to_node = {}
        for spectrum_idx, peptide_id in enumerate(store.peptide_ids):
            top_hits = _top_hits(
                peptide_id.hits, top_psms, peptide_id.higher_score_better
            )
            for hit_idx, hit in top_hits:
                score = hit.score if peptide_id.higher_score_better else 1.0 - hit.score
                if not 0.0 <= score <= 1.0:
                    logger.warning(
                        f"Skipping PSM {hit.sequence} of spectrum {spectrum_idx}: score {hit.score} is not a probability"
                    )
                    graph.n_skipped_hits += 1
                    continue

                protein_nodes = []
                for accession in hit.protein_accessions:
                    if accession not in accession_to_node:
                        graph.n_skipped_evidences += 1
                        logger.warning(
                            f"Peptide {hit.sequence} references unknown protein {accession}, evidence skipped"
                        )
                        continue
                    if accession_to_node[accession] not in protein_nodes:
                        protein_nodes.append(accession_to_node[accession])

                if len(protein_nodes) == 0:
                    logger.warning(
                        f"Skipping PSM {hit.sequence} of spectrum {spectrum_idx}: no protein evidence"
                    )
                    graph.n_skipped_hits += 1
                    continue

                psm_node = graph.add_node(
                    GraphNode(
                        NodeType.PSM,
                        record=(spectrum_idx, hit_idx),
                        label=hit.sequence,
                        score=score,
                        sequence=hit.sequence,
                        run=peptide_id.run,
                        charge=hit.charge,
                    )
                )

                if hit.sequence not in sequence_to_node:
                    sequence_to_node[hit.sequence] = graph.add_node(
                        GraphNode(
                            NodeType.PEPTIDE, label=hit.sequence, sequence=hit.sequence
                        )
                    )
                peptide_node = sequence_to_node[hit.sequence]

                graph.add_edge(peptide_node, psm_node)
                for protein_node in protein_nodes:
                    graph.add_edge(protein_node, peptide_node)

        n_psms = sum(1 for node in graph.nodes if node.type == NodeType.PSM)
        logger.info(
            f"Built evidence graph with {len(accession_to_node):,} proteins, {len(sequence_to_node):,} peptides "
            f"and {n_psms:,} PSMs, skipped {graph.n_skipped_hits:,} PSMs and {graph.n_skipped_evidences:,} evidences"
        )
        return graph

    def compute_connected_components(self) -> list[list[int]]:
        """Assign every node to a connected component.

        Components are sorted lists of node indices, ordered by their smallest member.

        Returns
        -------
        list[list[int]]
            The connected components, also stored in `components`.
        """
        self.components = sorted(
            (sorted(component) for component in nx.connected_components(self.graph)),
            key=lambda component: component[0],
        )
        self.component_of = {
            node_idx: component_idx
            for component_idx, component in enumerate(self.components)
            for node_idx in component
        }
        logger.info(f"Found {len(self.components):,} connected components")
        return self.components

    def is_degenerate(self, component_idx: int) -> bool:
        """True if the component holds nodes of only one variant and therefore carries no evidence."""
        types = {self.nodes[n].type for n in self.components[component_idx]}
        return len(types) < 2

    def reset_posteriors(self) -> None:
        for node in self.nodes:
            node.posterior = -1.0


def _top_hits(
    hits: list[PeptideHit], top_psms: int, higher_score_better: bool = True
) -> list[tuple[int, PeptideHit]]:
    """Return the best `top_psms` hits together with their index, 0 returns all.

    The sort is stable, so hits with equal scores keep the order in which they were encountered.
    """
    indexed_hits = list(enumerate(hits))
    if top_psms == 0:
        return indexed_hits

    indexed_hits = sorted(
        indexed_hits,
        key=lambda x: -x[1].score if higher_score_better else x[1].score,
    )
    return indexed_hits[:top_psms]
