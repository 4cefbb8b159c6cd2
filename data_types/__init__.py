from .halfedge_mesh import HalfEdgeMesh
