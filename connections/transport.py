"""
Parallel transport between neighboring faces and face-field reconstruction.

Angles are measured in each face's orthonormal basis (e1, e2), counter-clockwise
about the outward normal. Crossing half-edge h from its face into the face of
its twin rotates a direction by

    T(h) = -atan2(u . e2, u . e1) + atan2(u . f2, u . f1),    u = vector(h)

which keeps the angle to the shared edge fixed (discrete Levi-Civita
transport). Around a vertex the rotations add up to its angle defect, modulo
2 pi.
"""

import logging
from collections import deque
from typing import Tuple

import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from data_types import HalfEdgeMesh
from settings.constants import TWO_PI

logger = logging.getLogger(__name__)


class UnreachedFacesError(RuntimeError):
    """Face traversal from the root did not reach every face."""

    def __init__(self, face_ids):
        self.face_ids = np.asarray(face_ids, dtype=np.int64)
        super().__init__(
            f"{len(self.face_ids)} faces were not reached from the root face "
            f"(first: {self.face_ids[:10].tolist()}); the mesh is not connected"
        )


def wrap_angle(theta):
    """Wrap angles into [-pi, pi)."""
    return np.mod(np.asarray(theta) + np.pi, TWO_PI) - np.pi


def transport_no_rotation(mesh: HalfEdgeMesh, h: int, alpha: float = 0.0) -> float:
    """Express angle alpha, given in the basis of h's face, in the basis of the face across h."""
    u = mesh.vector(h)
    e1, e2 = mesh.orthonormal_basis(mesh.he_face[h])
    f1, f2 = mesh.orthonormal_basis(mesh.he_face[mesh.he_twin[h]])
    theta_ij = np.arctan2(np.dot(u, e2), np.dot(u, e1))
    theta_ji = np.arctan2(np.dot(u, f2), np.dot(u, f1))
    return float(alpha - theta_ij + theta_ji)


def transport_angles(mesh: HalfEdgeMesh) -> NDArray[np.float64]:
    """T(h) for every half-edge at once."""
    u = mesh.he_vectors
    near = mesh.face_bases[mesh.he_face]
    far = mesh.face_bases[mesh.he_face[mesh.he_twin]]
    theta_ij = np.arctan2(np.einsum("ij,ij->i", u, near[:, 1]), np.einsum("ij,ij->i", u, near[:, 0]))
    theta_ji = np.arctan2(np.einsum("ij,ij->i", u, far[:, 1]), np.einsum("ij,ij->i", u, far[:, 0]))
    return theta_ji - theta_ij


def integrate_face_angles(
    mesh: HalfEdgeMesh,
    connection,
    root: int = 0,
    verbose: bool = False,
) -> Tuple[NDArray[np.float64], NDArray[np.int64]]:
    """
    Integrate a connection into one angle per face by BFS over the faces.

    The root face gets angle 0. A face first reached across half-edge h of
    an already visited face gets

        angle[g] = angle[f] + T(h) + edge_sign(h) * connection[edge(h)]

    Args:
        mesh: Input mesh
        connection: 1-form of extra rotation per edge
        root: Face to start from
        verbose: Show a progress bar

    Returns:
        angles: (F,) angle per face in its own basis (0 for unreached faces)
        unreached: ids of faces the traversal never reached
    """
    connection = np.asarray(connection, dtype=np.float64)
    if connection.shape != (mesh.n_edges,):
        raise ValueError(f"Expected a 1-form of shape ({mesh.n_edges},), got {connection.shape}")

    rotation = transport_angles(mesh) + mesh.edge_signs * connection[mesh.he_edge]

    angles = np.zeros(mesh.n_faces)
    visited = np.zeros(mesh.n_faces, dtype=bool)
    visited[root] = True
    queue = deque([root])

    pbar = tqdm(total=mesh.n_faces - 1, desc="Integrating face field", disable=not verbose)
    while queue:
        f = queue.popleft()
        for h in mesh.face_halfedges(f):
            g = mesh.he_face[mesh.he_twin[h]]
            if not visited[g]:
                angles[g] = angles[f] + rotation[h]
                visited[g] = True
                queue.append(g)
                pbar.update(1)
    pbar.close()

    unreached = np.nonzero(~visited)[0]
    if len(unreached):
        logger.debug("Face traversal left %d faces unreached", len(unreached))
    return angles, unreached


def face_vectors_from_angles(mesh: HalfEdgeMesh, angles) -> NDArray[np.float64]:
    """Unit tangent vector cos(a) e1 + sin(a) e2 per face."""
    angles = np.asarray(angles, dtype=np.float64)
    e1 = mesh.face_bases[:, 0]
    e2 = mesh.face_bases[:, 1]
    return np.cos(angles)[:, None] * e1 + np.sin(angles)[:, None] * e2


def face_vectors_from_connection(
    mesh: HalfEdgeMesh,
    connection,
    root: int = 0,
    verbose: bool = False,
) -> NDArray[np.float64]:
    """
    Reconstruct the face vector field of a connection.

    Raises:
        UnreachedFacesError: if the faces are not all connected to the root
    """
    angles, unreached = integrate_face_angles(mesh, connection, root=root, verbose=verbose)
    if len(unreached):
        raise UnreachedFacesError(unreached)
    return face_vectors_from_angles(mesh, angles)


def vertex_singularity_indices(mesh: HalfEdgeMesh, angles) -> NDArray[np.float64]:
    """
    Index of a face field around every vertex.

    Walking the faces around v, each crossing contributes the wrapped
    mismatch between the field and its parallel transport; together with the
    angle defect these sum to 2 pi times the index.

    Returns:
        (V,) indices; integers up to round-off
    """
    angles = np.asarray(angles, dtype=np.float64)
    rotation = transport_angles(mesh)

    # Half-edge h leaves v; the walk crosses its twin into h's face
    twin = mesh.he_twin
    mismatch = wrap_angle(angles[mesh.he_face] - angles[mesh.he_face[twin]] - rotation[twin])
    total = np.bincount(mesh.he_origin, weights=mismatch, minlength=mesh.n_verts)
    return (mesh.angle_defects + total) / TWO_PI
