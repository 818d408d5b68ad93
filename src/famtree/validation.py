"""Graph validation for family tree data."""

import networkx as nx

from famtree.graph import TreeGraph, build_graph, parent_child_graph

MIN_PARENT_AGE = 12


def validate_graph(tree_graph: TreeGraph) -> list[str]:
    """
    Validate one tree for:
    - Cycles in parent-child relationships
    - Relationships or marriages naming persons that are not in the tree
    - Impossible ages (child born before parent, very young parents)
    - Death before birth
    - Self marriages and persons with several marriages

    Returns a list of warning messages.
    """
    warnings: list[str] = []
    G = build_graph(tree_graph)
    known = {p.person_id for p in tree_graph.persons}

    # Check for cycles
    try:
        cycle = nx.find_cycle(parent_child_graph(G), orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass

    for r in tree_graph.relationships:
        missing = [pid for pid in (r.parent_id, r.child_id) if pid not in known]
        if missing:
            warnings.append(f"Relationship {r.parent_id} -> {r.child_id} names unknown person(s) {missing}")

    # Check for impossible ages (child born before parent)
    for parent, child, data in G.edges(data=True):
        if data.get("relationship_type") != "PARENT_OF":
            continue

        parent_data = G.nodes[parent]
        child_data = G.nodes[child]
        parent_birth = parent_data.get("date_of_birth")
        child_birth = child_data.get("date_of_birth")
        if not (parent_birth and child_birth):
            continue

        if child_birth < parent_birth:
            warnings.append(
                f"Impossible: {child_data.get('person_name')} born before parent "
                f"{parent_data.get('person_name')}"
            )
        elif child_birth.year - parent_birth.year < MIN_PARENT_AGE:
            warnings.append(
                f"Suspicious: {parent_data.get('person_name')} was less than {MIN_PARENT_AGE} years "
                f"old when {child_data.get('person_name')} was born"
            )

    # Check death before birth
    for _, data in G.nodes(data=True):
        birth = data.get("date_of_birth")
        death = data.get("date_of_death")
        if birth and death and death < birth:
            warnings.append(f"Impossible: {data.get('person_name')} died before being born")

    marriage_count: dict[int, int] = {}
    for m in tree_graph.marriages:
        if m.spouse1_id == m.spouse2_id:
            warnings.append(f"Person {m.spouse1_id} is married to themselves")
            continue
        missing = [pid for pid in (m.spouse1_id, m.spouse2_id) if pid not in known]
        if missing:
            warnings.append(f"Marriage {m.spouse1_id} - {m.spouse2_id} names unknown person(s) {missing}")
        for pid in (m.spouse1_id, m.spouse2_id):
            marriage_count[pid] = marriage_count.get(pid, 0) + 1

    for pid, count in marriage_count.items():
        if count > 1:
            warnings.append(
                f"Person {pid} has {count} marriages; only the first is drawn in the tree"
            )

    return warnings
