"""
Half-edge connectivity and embedding for closed triangle meshes.

Half-edge ``h = 3 * f + k`` runs from corner ``k`` to corner ``k + 1`` of face
``f``. Edge ``e`` is the sorted vertex pair ``edges[e]``; its canonical
half-edge is the one pointing from the smaller to the larger vertex id, and
``edge_sign(h)`` is +1 on that half-edge and -1 on its twin.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import trimesh
from numpy.typing import NDArray

from settings.constants import EPS_DEGENERATE, TWO_PI

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class HalfEdgeMesh:
    vertices: NDArray[np.float64]  # V x 3 array of vertex coordinates
    faces: NDArray[np.int64]  # F x 3 array of vertex *indices*, counter-clockwise about the outward normal

    # Connectivity, one entry per half-edge
    he_origin: NDArray[np.int64] = field(init=False, repr=False)
    he_dest: NDArray[np.int64] = field(init=False, repr=False)
    he_face: NDArray[np.int64] = field(init=False, repr=False)
    he_next: NDArray[np.int64] = field(init=False, repr=False)
    he_twin: NDArray[np.int64] = field(init=False, repr=False)
    he_edge: NDArray[np.int64] = field(init=False, repr=False)
    edge_signs: NDArray[np.float64] = field(init=False, repr=False)

    # E x 2 sorted vertex pairs and the canonical half-edge of each edge
    edges: NDArray[np.int64] = field(init=False, repr=False)
    edge_halfedge: NDArray[np.int64] = field(init=False, repr=False)

    def __post_init__(self):
        self.vertices = np.asarray(self.vertices, dtype=np.float64)
        self.faces = np.asarray(self.faces, dtype=np.int64)

        if self.vertices.ndim != 2 or self.vertices.shape[1] != 3:
            raise ValueError(f"vertices must be a (V, 3) array, got shape {self.vertices.shape}")
        if self.faces.ndim != 2 or self.faces.shape[1] != 3:
            raise ValueError(f"faces must be a (F, 3) array of triangles, got shape {self.faces.shape}")
        if len(self.faces) == 0:
            raise ValueError("Mesh has no faces")
        if self.faces.min() < 0 or self.faces.max() >= len(self.vertices):
            raise ValueError("Face indices out of range of the vertex array")

        self._build_connectivity()
        self._build_geometry()

        logger.debug(
            "Built half-edge mesh: V=%d, E=%d, F=%d, chi=%d",
            self.n_verts, self.n_edges, self.n_faces, self.euler_characteristic
        )

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh) -> "HalfEdgeMesh":
        """Build from a trimesh mesh, welding duplicate vertices first."""
        mesh = mesh.copy()
        mesh.merge_vertices()
        mesh.remove_unreferenced_vertices()
        return cls(np.array(mesh.vertices), np.array(mesh.faces))

    def to_trimesh(self) -> trimesh.Trimesh:
        return trimesh.Trimesh(self.vertices, self.faces, process=False, validate=False)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _build_connectivity(self):
        faces = self.faces
        n_faces = len(faces)
        corner = np.tile(np.arange(3), n_faces)

        self.he_origin = faces.reshape(-1)
        self.he_dest = faces[:, [1, 2, 0]].reshape(-1)
        self.he_face = np.repeat(np.arange(n_faces), 3)
        self.he_next = 3 * self.he_face + (corner + 1) % 3

        if np.any(self.he_origin == self.he_dest):
            raise ValueError("Mesh has faces with repeated vertices")

        sorted_pairs = np.sort(np.stack([self.he_origin, self.he_dest], axis=1), axis=1)
        edges, he_edge, counts = np.unique(
            sorted_pairs, axis=0, return_inverse=True, return_counts=True
        )
        self.edges = edges
        self.he_edge = np.asarray(he_edge).reshape(-1)

        if np.any(counts != 2):
            n_boundary = int(np.sum(counts == 1))
            n_nonmanifold = int(np.sum(counts > 2))
            raise ValueError(
                f"Mesh must be a closed 2-manifold: {n_boundary} boundary edges, "
                f"{n_nonmanifold} non-manifold edges"
            )

        # The two half-edges of each edge are adjacent after a stable sort by edge id
        order = np.argsort(self.he_edge, kind="stable").reshape(-1, 2)
        h_a, h_b = order[:, 0], order[:, 1]
        if np.any(self.he_origin[h_a] != self.he_dest[h_b]):
            raise ValueError("Mesh faces are not consistently oriented")

        self.he_twin = np.empty_like(self.he_origin)
        self.he_twin[h_a] = h_b
        self.he_twin[h_b] = h_a

        canonical = self.he_origin < self.he_dest
        self.edge_signs = np.where(canonical, 1.0, -1.0)
        self.edge_halfedge = np.empty(len(edges), dtype=np.int64)
        self.edge_halfedge[self.he_edge[canonical]] = np.nonzero(canonical)[0]

        # Outgoing half-edges per vertex, stored CSR style
        self._vertex_he_order = np.argsort(self.he_origin, kind="stable")
        degree = np.bincount(self.he_origin, minlength=self.n_verts)
        if np.any(degree == 0):
            raise ValueError(f"Mesh has {int(np.sum(degree == 0))} unreferenced vertices")
        self._vertex_he_start = np.concatenate([[0], np.cumsum(degree)])

    def _build_geometry(self):
        V = self.vertices
        faces = self.faces

        self.he_vectors = V[self.he_dest] - V[self.he_origin]

        p0, p1, p2 = V[faces[:, 0]], V[faces[:, 1]], V[faces[:, 2]]
        cross = np.cross(p1 - p0, p2 - p0)
        doubled_area = np.linalg.norm(cross, axis=1)
        if np.any(doubled_area < EPS_DEGENERATE):
            raise ValueError(f"Mesh has {int(np.sum(doubled_area < EPS_DEGENERATE))} degenerate faces")
        self.face_areas = 0.5 * doubled_area
        self.face_normals = cross / doubled_area[:, None]

        # Cotangent of the angle opposite each half-edge, at the apex of its face
        apex = V[self.he_dest[self.he_next]]
        u = V[self.he_origin] - apex
        w = V[self.he_dest] - apex
        self.cotans = np.einsum("ij,ij->i", u, w) / np.linalg.norm(np.cross(u, w), axis=1)

        # Orthonormal tangent basis per face: e1 along the first half-edge, e2 = n x e1
        first = self.he_vectors[0::3]
        e1 = first / np.linalg.norm(first, axis=1)[:, None]
        e2 = np.cross(self.face_normals, e1)
        self.face_bases = np.stack([e1, e2], axis=1)

        # Interior angle at the origin of each half-edge
        prev_vectors = self.he_vectors[self.he_next[self.he_next]]
        a = self.he_vectors
        b = -prev_vectors
        corner_angles = np.arctan2(
            np.linalg.norm(np.cross(a, b), axis=1),
            np.einsum("ij,ij->i", a, b)
        )
        angle_sums = np.bincount(self.he_origin, weights=corner_angles, minlength=self.n_verts)
        self.angle_defects = TWO_PI - angle_sums

        # One third of the area of every incident face
        self.barycentric_dual_areas = np.bincount(
            self.faces.reshape(-1),
            weights=np.repeat(self.face_areas / 3.0, 3),
            minlength=self.n_verts
        )

        self.edge_cotan_weights = 0.5 * np.bincount(
            self.he_edge, weights=self.cotans, minlength=self.n_edges
        )

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    @property
    def n_verts(self) -> int:
        return len(self.vertices)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def n_halfedges(self) -> int:
        return 3 * len(self.faces)

    @property
    def euler_characteristic(self) -> int:
        return self.n_verts - self.n_edges + self.n_faces

    @property
    def genus(self) -> int:
        return (2 - self.euler_characteristic) // 2

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def twin(self, h: int) -> int:
        return int(self.he_twin[h])

    def next(self, h: int) -> int:
        return int(self.he_next[h])

    def vertex_halfedges(self, v: int) -> NDArray[np.int64]:
        """Half-edges leaving vertex v."""
        start, stop = self._vertex_he_start[v], self._vertex_he_start[v + 1]
        return self._vertex_he_order[start:stop]

    def face_halfedges(self, f: int) -> NDArray[np.int64]:
        return np.arange(3 * f, 3 * f + 3)

    def edge_sign(self, h: int) -> float:
        """+1 if h points along its edge's canonical direction, -1 otherwise."""
        return float(self.edge_signs[h])

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def vector(self, h: int) -> NDArray[np.float64]:
        return self.he_vectors[h]

    def cotan(self, h: int) -> float:
        return float(self.cotans[h])

    def orthonormal_basis(self, f: int):
        e1, e2 = self.face_bases[f]
        return e1, e2

    def angle_defect(self, v: int) -> float:
        return float(self.angle_defects[v])

    def barycentric_dual_area(self, v: int) -> float:
        return float(self.barycentric_dual_areas[v])

    def total_area(self) -> float:
        return float(np.sum(self.face_areas))

    def mean_edge_length(self) -> float:
        lengths = np.linalg.norm(self.vertices[self.edges[:, 1]] - self.vertices[self.edges[:, 0]], axis=1)
        return float(np.mean(lengths))

    def face_centroids(self) -> NDArray[np.float64]:
        return self.vertices[self.faces].mean(axis=1)
