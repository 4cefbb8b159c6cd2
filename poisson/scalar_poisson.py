"""
Scalar Poisson problem on the vertices of a closed mesh.
"""

import logging

import numpy as np
from numpy.typing import NDArray

from data_types import HalfEdgeMesh
from operators import build_laplacian, build_mass
from solvers import cholesky

logger = logging.getLogger(__name__)


def solve_scalar_poisson(mesh: HalfEdgeMesh, vertex_ids) -> NDArray[np.float64]:
    """
    Potential of unit point charges at the given vertices.

    The density rho is 1 at each listed vertex and 0 elsewhere. On a closed
    surface only its deviation from the mean can be a source, so the system is

        L x = -M (rho - rho_bar),    rho_bar = sum(M rho) / total area

    with L the cotangent Laplacian and M the lumped mass matrix.

    Args:
        mesh: Input mesh
        vertex_ids: Vertices carrying a unit charge

    Returns:
        (V,) vertex potential
    """
    vertex_ids = np.asarray(vertex_ids, dtype=np.int64).reshape(-1)
    if len(vertex_ids) == 0:
        raise ValueError("At least one source vertex is required")
    if vertex_ids.min() < 0 or vertex_ids.max() >= mesh.n_verts:
        raise ValueError(f"Source vertex ids must lie in [0, {mesh.n_verts})")

    rho = np.zeros(mesh.n_verts)
    rho[vertex_ids] = 1.0

    M = build_mass(mesh)
    rho_bar = (M @ rho).sum() / mesh.total_area()
    rhs = -(M @ (rho - rho_bar))

    logger.debug("Poisson solve with %d sources, mean density %.6f", len(vertex_ids), rho_bar)
    return cholesky(build_laplacian(mesh), rhs)
