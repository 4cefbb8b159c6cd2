from .homology import (
    TreeCotree,
    build_vertex_graph,
    build_dual_graph,
    build_primal_tree,
    build_dual_cotree,
    tree_cotree,
    build_generators,
    is_closed_dual_loop,
)
