"""Grouping of indistinguishable proteins and peptides within connected components."""

import logging

from alphapi.graph.evidence_graph import EvidenceGraph, GraphNode, NodeType

logger = logging.getLogger()


def _explained_peptides(graph: EvidenceGraph, protein_idx: int) -> frozenset[int]:
    """Peptides a protein provides evidence for, looking through peptide groups."""
    peptides = set()
    for neighbor in graph.downstream(protein_idx):
        neighbor_type = graph.nodes[neighbor].type
        if neighbor_type == NodeType.PEPTIDE:
            peptides.add(neighbor)
        elif neighbor_type == NodeType.PEPTIDE_GROUP:
            peptides.update(graph.downstream(neighbor))
    return frozenset(peptides)


def _has_neighbor_of_type(
    graph: EvidenceGraph, node_idx: int, node_type: NodeType
) -> bool:
    return any(graph.nodes[n].type == node_type for n in graph.neighbors(node_idx))


def _group_by_key(node_keys: list[tuple[int, frozenset[int]]]) -> list[list[int]]:
    """Group nodes with equal keys, in order of first appearance of the key."""
    groups = {}
    for node_idx, key in node_keys:
        if len(key) == 0:
            continue
        groups.setdefault(key, []).append(node_idx)
    return [members for members in groups.values() if len(members) > 1]


def _ordered_union(lists: list[list[int]]) -> list[int]:
    seen = {}
    for items in lists:
        for item in items:
            seen.setdefault(item, None)
    return list(seen)


def cluster_indistinguishable(graph: EvidenceGraph, component_idx: int) -> list[int]:
    """Merge indistinguishable proteins and peptides of one component into group nodes.

    Proteins that explain the same set of peptides are connected to a new protein group node which takes over their
    peptide edges. The proteins themselves stay in the graph, attached only to their group.
    Peptides with the same set of parents are then connected to their parents via a new peptide group node.
    Nodes that already belong to a group are not considered again, which makes the pass idempotent.

    Parameters
    ----------
    graph : EvidenceGraph
        Graph with computed connected components, modified in place.

    component_idx : int
        Index of the component to cluster.

    Returns
    -------
    list[int]
        Indices of the newly created group nodes, also appended to the component.
    """
    component = graph.components[component_idx]
    new_nodes = []

    proteins = [
        n
        for n in component
        if graph.nodes[n].type == NodeType.PROTEIN
        and not _has_neighbor_of_type(graph, n, NodeType.PROTEIN_GROUP)
    ]
    protein_keys = [(p, _explained_peptides(graph, p)) for p in proteins]
    for members in _group_by_key(protein_keys):
        group_idx = graph.add_node(
            GraphNode(
                NodeType.PROTEIN_GROUP,
                label=";".join(graph.nodes[m].label for m in members),
            )
        )
        downstream = _ordered_union([graph.downstream(m) for m in members])
        for member in members:
            for neighbor in graph.downstream(member):
                graph.remove_edge(member, neighbor)
            graph.add_edge(member, group_idx)
        for neighbor in downstream:
            graph.add_edge(group_idx, neighbor)
        new_nodes.append(group_idx)

    peptides = [
        n
        for n in component
        if graph.nodes[n].type == NodeType.PEPTIDE
        and not _has_neighbor_of_type(graph, n, NodeType.PEPTIDE_GROUP)
    ]
    peptide_keys = [(p, frozenset(graph.upstream(p))) for p in peptides]
    for members in _group_by_key(peptide_keys):
        group_idx = graph.add_node(
            GraphNode(
                NodeType.PEPTIDE_GROUP,
                label=";".join(graph.nodes[m].label for m in members),
            )
        )
        parents = graph.upstream(members[0])
        for member in members:
            for parent in parents:
                graph.remove_edge(parent, member)
            graph.add_edge(group_idx, member)
        for parent in parents:
            graph.add_edge(parent, group_idx)
        new_nodes.append(group_idx)

    _register(graph, component_idx, new_nodes)
    return new_nodes


def extend_by_run_and_charge(graph: EvidenceGraph, component_idx: int) -> list[int]:
    """Explode peptide evidence per acquisition run and charge state.

    Every peptide-PSM edge is replaced by the chain peptide -> run -> charge -> PSM, with one run node per
    (peptide, run) and one charge node per (peptide, run, charge). PSMs of the same peptide acquired in the same run
    with the same charge share their charge node.

    Returns
    -------
    list[int]
        Indices of the newly created nodes, also appended to the component.
    """
    component = graph.components[component_idx]
    new_nodes = []

    peptides = [n for n in component if graph.nodes[n].type == NodeType.PEPTIDE]
    for peptide_idx in peptides:
        peptide = graph.nodes[peptide_idx]
        run_nodes = {}
        charge_nodes = {}
        psms = [
            n
            for n in graph.downstream(peptide_idx)
            if graph.nodes[n].type == NodeType.PSM
        ]
        for psm_idx in psms:
            psm = graph.nodes[psm_idx]

            if psm.run not in run_nodes:
                run_nodes[psm.run] = graph.add_node(
                    GraphNode(
                        NodeType.RUN_INDEX,
                        label=f"{peptide.sequence}|{psm.run}",
                        sequence=peptide.sequence,
                        run=psm.run,
                    )
                )
                graph.add_edge(peptide_idx, run_nodes[psm.run])
                new_nodes.append(run_nodes[psm.run])

            charge_key = (psm.run, psm.charge)
            if charge_key not in charge_nodes:
                charge_nodes[charge_key] = graph.add_node(
                    GraphNode(
                        NodeType.CHARGE,
                        label=f"{peptide.sequence}|{psm.run}|{psm.charge}",
                        sequence=peptide.sequence,
                        run=psm.run,
                        charge=psm.charge,
                    )
                )
                graph.add_edge(run_nodes[psm.run], charge_nodes[charge_key])
                new_nodes.append(charge_nodes[charge_key])

            graph.remove_edge(peptide_idx, psm_idx)
            graph.add_edge(charge_nodes[charge_key], psm_idx)

    _register(graph, component_idx, new_nodes)
    return new_nodes


def cluster_all(graph: EvidenceGraph, extended: bool = False) -> None:
    """Cluster every connected component, optionally extending it by run and charge nodes."""
    n_groups = 0
    n_extended = 0
    for component_idx, component in enumerate(graph.components):
        if len(component) < 2:
            continue
        n_groups += len(cluster_indistinguishable(graph, component_idx))
        if extended:
            n_extended += len(extend_by_run_and_charge(graph, component_idx))

    logger.info(
        f"Created {n_groups:,} indistinguishable group nodes and {n_extended:,} run/charge nodes"
    )


def _register(graph: EvidenceGraph, component_idx: int, new_nodes: list[int]) -> None:
    graph.components[component_idx].extend(new_nodes)
    for node_idx in new_nodes:
        graph.component_of[node_idx] = component_idx
