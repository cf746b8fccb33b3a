"""Foreign-key dependency ordering for tables."""

import logging
from collections import deque

from .errors import CyclicDependencyError
from .schemas import TableInfo

logger = logging.getLogger(__name__)


def build_dependency_edges(tables: list[TableInfo], schema: str) -> dict[str, set[str]]:
    """
    Build parent -> children edges between the tables being seeded.

    Only references into the same schema and to another table in the seed
    set count; self references never constrain order.
    """
    names = {table.name for table in tables}
    edges: dict[str, set[str]] = {}

    for table in tables:
        for fk in table.fks:
            if fk.ref_schema != schema:
                continue
            if fk.ref_table not in names or fk.ref_table == table.name:
                continue
            edges.setdefault(fk.ref_table, set()).add(table.name)

    return edges


def topological_sort(nodes: list[str], edges: dict[str, set[str]]) -> list[str]:
    """
    Order nodes so every parent precedes its children (Kahn's algorithm).

    Args:
        nodes: Table names, in the order ties should be broken
        edges: Mapping of parent name to the names that depend on it

    Returns:
        Every node exactly once, parents first

    Raises:
        CyclicDependencyError: If some nodes cannot be placed; the error
            names exactly those nodes
    """
    in_degree = {node: 0 for node in nodes}
    for parent, children in edges.items():
        if parent not in in_degree:
            continue
        for child in children:
            if child in in_degree:
                in_degree[child] += 1

    queue = deque(node for node in nodes if in_degree[node] == 0)
    result: list[str] = []

    while queue:
        node = queue.popleft()
        result.append(node)
        # Sorted so the order does not depend on set iteration
        for child in sorted(edges.get(node, ())):
            if child not in in_degree:
                continue
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(result) != len(nodes):
        placed = set(result)
        raise CyclicDependencyError([node for node in nodes if node not in placed])

    logger.debug("Dependency order: %s", result)
    return result


def order_tables(tables: list[TableInfo], schema: str) -> list[TableInfo]:
    """Return the tables of one schema in insertion order."""
    by_name = {table.name: table for table in tables}
    edges = build_dependency_edges(tables, schema)
    ordered = topological_sort(list(by_name), edges)
    return [by_name[name] for name in ordered]
