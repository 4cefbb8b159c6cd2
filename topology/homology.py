"""
Homology generators of a closed triangle mesh by tree-cotree decomposition.

A BFS spanning tree T of the vertex graph is grown first, then a BFS spanning
tree C of the dual graph (faces joined across edges) that never crosses an
edge of T. Every edge in neither tree closes exactly one dual loop through C,
and these loops generate the first homology group: there are
E - (V - 1) - (F - 1) = 2 - chi = 2g of them on a closed orientable surface.

A generator is an ordered list of half-edges h_0 .. h_{k-1} such that the
face across h_i (the face of its twin) is the face of h_{i+1}, cyclically.
"""

import logging
from dataclasses import dataclass
from typing import List

import networkx as nx

from data_types import HalfEdgeMesh

logger = logging.getLogger(__name__)


@dataclass
class TreeCotree:
    primal_tree: nx.Graph  # spanning tree over vertices, edges carry "eid"
    dual_tree: nx.Graph  # spanning tree over faces, edges carry "eid"
    generators: List[List[int]]


def build_vertex_graph(mesh: HalfEdgeMesh) -> nx.Graph:
    graph = nx.Graph()
    graph.add_nodes_from(range(mesh.n_verts))
    graph.add_edges_from(
        (int(i), int(j), {"eid": eid}) for eid, (i, j) in enumerate(mesh.edges)
    )
    return graph


def build_dual_graph(mesh: HalfEdgeMesh, excluded_edges=()) -> nx.Graph:
    """Face adjacency graph, skipping the edge ids in excluded_edges."""
    excluded_edges = set(excluded_edges)
    graph = nx.Graph()
    graph.add_nodes_from(range(mesh.n_faces))
    for eid, h in enumerate(mesh.edge_halfedge):
        if eid in excluded_edges:
            continue
        f = int(mesh.he_face[h])
        g = int(mesh.he_face[mesh.he_twin[h]])
        graph.add_edge(f, g, eid=eid)
    return graph


def _bfs_tree(graph: nx.Graph, root: int) -> nx.Graph:
    tree = nx.Graph()
    tree.add_nodes_from(graph.nodes)
    for u, v in nx.bfs_edges(graph, root):
        tree.add_edge(u, v, eid=graph[u][v]["eid"])
    return tree


def build_primal_tree(mesh: HalfEdgeMesh, root: int = 0) -> nx.Graph:
    tree = _bfs_tree(build_vertex_graph(mesh), root)
    if tree.number_of_edges() != mesh.n_verts - 1:
        raise ValueError(
            f"Mesh is not connected: spanning tree reaches {tree.number_of_edges() + 1} "
            f"of {mesh.n_verts} vertices"
        )
    return tree


def build_dual_cotree(mesh: HalfEdgeMesh, primal_tree: nx.Graph, root: int = 0) -> nx.Graph:
    """Spanning tree of the dual graph that never crosses a primal tree edge."""
    tree_edges = {eid for _, _, eid in primal_tree.edges(data="eid")}
    tree = _bfs_tree(build_dual_graph(mesh, excluded_edges=tree_edges), root)
    if tree.number_of_edges() != mesh.n_faces - 1:
        raise ValueError(
            f"Dual spanning tree reaches {tree.number_of_edges() + 1} of {mesh.n_faces} faces"
        )
    return tree


def _halfedge_in_face(mesh: HalfEdgeMesh, eid: int, face: int) -> int:
    h = int(mesh.edge_halfedge[eid])
    return h if mesh.he_face[h] == face else int(mesh.he_twin[h])


def _dual_loop(mesh: HalfEdgeMesh, dual_tree: nx.Graph, eid: int) -> List[int]:
    """Cross edge eid, then return to the starting face through the dual tree."""
    h = int(mesh.edge_halfedge[eid])
    start = int(mesh.he_face[h])
    across = int(mesh.he_face[mesh.he_twin[h]])

    loop = [h]
    # Tree paths are unique, so this walks through the lowest common ancestor
    path = nx.shortest_path(dual_tree, across, start)
    for f, g in zip(path[:-1], path[1:]):
        loop.append(_halfedge_in_face(mesh, dual_tree[f][g]["eid"], f))
    return loop


def tree_cotree(mesh: HalfEdgeMesh, root_vertex: int = 0, root_face: int = 0) -> TreeCotree:
    primal_tree = build_primal_tree(mesh, root_vertex)
    dual_tree = build_dual_cotree(mesh, primal_tree, root_face)

    used = {eid for _, _, eid in primal_tree.edges(data="eid")}
    used.update(eid for _, _, eid in dual_tree.edges(data="eid"))
    leftover = [eid for eid in range(mesh.n_edges) if eid not in used]

    generators = [_dual_loop(mesh, dual_tree, eid) for eid in leftover]

    expected = 2 - mesh.euler_characteristic
    if len(generators) != expected:
        logger.warning("Found %d homology generators, expected 2 - chi = %d", len(generators), expected)
    logger.debug(
        "Tree-cotree: %d generators, loop lengths %s",
        len(generators), [len(g) for g in generators]
    )
    return TreeCotree(primal_tree, dual_tree, generators)


def build_generators(mesh: HalfEdgeMesh) -> List[List[int]]:
    """
    Build a set of independent non-contractible dual loops.

    Returns:
        list of generators, each an ordered list of half-edge ids.
        Empty for a topological sphere, 2g loops for a closed genus-g surface.
    """
    return tree_cotree(mesh).generators


def is_closed_dual_loop(mesh: HalfEdgeMesh, loop: List[int]) -> bool:
    """True if each half-edge leads into the face of the next one, cyclically."""
    if len(loop) == 0:
        return False
    for h, h_next in zip(loop, loop[1:] + loop[:1]):
        if mesh.he_face[mesh.he_twin[h]] != mesh.he_face[h_next]:
            return False
    return True
