"""
Utilities for building and visualizing 1-forms.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from numpy.typing import NDArray

from data_types import HalfEdgeMesh
from topology import build_generators
from .hodge import HodgeDecomposition


@dataclass
class OneFormSample:
    omega: NDArray[np.float64]  # E, the sum of the three parts
    exact: NDArray[np.float64]  # E, d0 of a random vertex potential
    coexact: NDArray[np.float64]  # E, h1^-1 d1^T of a random face potential
    harmonic: NDArray[np.float64]  # E, random combination of harmonic bases


def random_one_form(
    mesh: HalfEdgeMesh,
    seed: Optional[int] = None,
    hodge: Optional[HodgeDecomposition] = None,
    harmonic_bases: Optional[List[NDArray[np.float64]]] = None,
    include_harmonic: bool = True,
) -> OneFormSample:
    """
    Random 1-form assembled from known exact, coexact and harmonic parts.

    Args:
        mesh: Input mesh
        seed: Seed for numpy's default_rng
        hodge: Optional prebuilt HodgeDecomposition for the mesh
        harmonic_bases: Optional precomputed harmonic bases; built from the
            mesh's homology generators when omitted
        include_harmonic: Whether to add a harmonic part at all

    Returns:
        OneFormSample with the 1-form and the parts it was built from
    """
    rng = np.random.default_rng(seed)
    if hodge is None:
        hodge = HodgeDecomposition(mesh)

    vertex_potential = rng.standard_normal(mesh.n_verts)
    face_potential = rng.standard_normal(mesh.n_faces)

    exact = hodge.d0 @ vertex_potential
    coexact = hodge.h1_inv @ (hodge.d1t @ face_potential)

    harmonic = np.zeros(mesh.n_edges)
    if include_harmonic:
        if harmonic_bases is None:
            harmonic_bases = [hodge.compute_harmonic_basis(g) for g in build_generators(mesh)]
        for basis in harmonic_bases:
            harmonic += rng.standard_normal() * basis

    return OneFormSample(exact + coexact + harmonic, exact, coexact, harmonic)


def barycentric_gradients(mesh: HalfEdgeMesh) -> NDArray[np.float64]:
    """
    Gradient of the hat function of each corner within its face.

    Entry h is the gradient of the barycentric coordinate of the origin of
    half-edge h: n x (opposite edge, counter-clockwise) / (2 * area).
    """
    face = mesh.he_face
    opposite = mesh.he_vectors[mesh.he_next]
    return np.cross(mesh.face_normals[face], opposite) / (2.0 * mesh.face_areas[face])[:, None]


def interpolate_whitney(mesh: HalfEdgeMesh, omega) -> NDArray[np.float64]:
    """
    Tangent vector per face from a 1-form by Whitney interpolation.

    Evaluated at the barycenter, the Whitney form of half-edge (a -> b) is
    (grad l_b - grad l_a) / 3. For an exact form d0 f the result is the
    gradient of the piecewise-linear interpolant of f.

    Returns:
        (F, 3) array of face vectors
    """
    omega = np.asarray(omega, dtype=np.float64)
    if omega.shape != (mesh.n_edges,):
        raise ValueError(f"Expected a 1-form of shape ({mesh.n_edges},), got {omega.shape}")

    grads = barycentric_gradients(mesh)
    values = mesh.edge_signs * omega[mesh.he_edge]
    contributions = values[:, None] * (grads[mesh.he_next] - grads) / 3.0
    return contributions.reshape(mesh.n_faces, 3, 3).sum(axis=1)
