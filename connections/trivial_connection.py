"""
Trivial connections with prescribed singularities.

A connection is an extra rotation phi per edge added to discrete Levi-Civita
transport. It is trivial when transport around every closed dual loop is the
identity, so a face field can be integrated from it without ambiguity. The
rotation around each vertex must cancel the angle defect up to the prescribed
index, and the rotation around each homology generator must vanish.

    vertex v:      sum_e H[e, v] phi[e] = -defect(v) + 2 pi s(v)
    generator g:   sum_e H[e, g] phi[e] = wrapped transport angle around g

The smallest such phi is H x with (H^T H) x = rhs. Whatever rotation the
regularized solve leaves around the generators is removed with a combination
of harmonic 1-forms.
"""

import logging
from typing import List

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray
from tqdm import tqdm

from data_types import HalfEdgeMesh
from decomposition import HodgeDecomposition
from settings.constants import GAUSS_BONNET_TOLERANCE, REGULARIZATION, TWO_PI
from solvers import CholeskySolver, LUSolver
from topology import build_generators
from .transport import face_vectors_from_connection, transport_angles, wrap_angle

logger = logging.getLogger(__name__)


class GaussBonnetError(ValueError):
    """Singularity indices do not sum to the Euler characteristic."""

    def __init__(self, total: float, euler_characteristic: int):
        self.total = total
        self.euler_characteristic = euler_characteristic
        super().__init__(
            f"Singularity indices sum to {total:g}, but the Euler characteristic "
            f"of the mesh is {euler_characteristic}"
        )


def build_cycle_matrix(mesh: HalfEdgeMesh, generators: List[List[int]]) -> sp.csr_matrix:
    """
    Edge by (vertex + generator) matrix of signed dual-loop incidences.

    Column v holds -edge_sign(h) for each half-edge h leaving v, which is
    the v-th column of d0. Column V + i does the same for the half-edges
    of generator i.
    """
    rows = [mesh.he_edge]
    cols = [mesh.he_origin]
    vals = [-mesh.edge_signs]

    for i, generator in enumerate(generators):
        generator = np.asarray(generator, dtype=np.int64)
        rows.append(mesh.he_edge[generator])
        cols.append(np.full(len(generator), mesh.n_verts + i))
        vals.append(-mesh.edge_signs[generator])

    shape = (mesh.n_edges, mesh.n_verts + len(generators))
    return sp.csr_matrix(
        (np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))), shape=shape
    )


class TrivialConnection:
    """
    Solver for trivial connections on one closed mesh.

    Generators, the cycle matrix, harmonic bases, the period matrix and all
    factorizations are built once here; compute_connections can then be
    called for any number of singularity assignments.
    """

    def __init__(self, mesh: HalfEdgeMesh, verbose: bool = False, regularization: float = REGULARIZATION):
        self.mesh = mesh
        self.verbose = verbose

        self.generators = build_generators(mesh)
        self.transport = transport_angles(mesh)

        self.H = self.build_cycle_matrix()
        self.Ht = self.H.T.tocsr()
        n_cols = self.H.shape[1]
        self.normal_matrix = (self.Ht @ self.H + regularization * sp.identity(n_cols)).tocsc()
        self._solve_normal = CholeskySolver(self.normal_matrix)

        self.hodge = HodgeDecomposition(mesh, regularization)
        self.bases = [
            self.hodge.compute_harmonic_basis(g)
            for g in tqdm(self.generators, desc="Harmonic bases", disable=not verbose)
        ]

        self.period_matrix = self.build_period_matrix()
        self._solve_period = LUSolver(self.period_matrix) if self.generators else None

        logger.debug(
            "Trivial connection ready: %d vertices, %d generators, cycle matrix %s",
            mesh.n_verts, len(self.generators), self.H.shape
        )

    def build_cycle_matrix(self) -> sp.csr_matrix:
        return build_cycle_matrix(self.mesh, self.generators)

    def build_period_matrix(self) -> NDArray[np.float64]:
        """P[i, j]: integral of harmonic basis j along generator i."""
        n = len(self.generators)
        P = np.zeros((n, n))
        for i, generator in enumerate(self.generators):
            generator = np.asarray(generator, dtype=np.int64)
            weights = -self.mesh.edge_signs[generator]
            edges = self.mesh.he_edge[generator]
            for j, basis in enumerate(self.bases):
                P[i, j] = np.dot(weights, basis[edges])
        return P

    def _check_singularities(self, singularities) -> NDArray[np.float64]:
        singularities = np.asarray(singularities, dtype=np.float64)
        if singularities.shape != (self.mesh.n_verts,):
            raise ValueError(
                f"Expected one singularity index per vertex ({self.mesh.n_verts}), "
                f"got shape {singularities.shape}"
            )
        return singularities

    def satisfies_gauss_bonnet(self, singularities) -> bool:
        singularities = self._check_singularities(singularities)
        return abs(self.mesh.euler_characteristic - singularities.sum()) < GAUSS_BONNET_TOLERANCE

    def transport_around_generator(self, generator: List[int]) -> float:
        """Total Levi-Civita rotation along a dual loop."""
        return float(np.sum(self.transport[np.asarray(generator, dtype=np.int64)]))

    def angle_defect_around_generator(self, generator: List[int]) -> float:
        return float(-wrap_angle(self.transport_around_generator(generator)))

    def compute_coexact_component(self, singularities) -> NDArray[np.float64]:
        """Smallest 1-form meeting every vertex and generator holonomy constraint."""
        singularities = self._check_singularities(singularities)

        rhs = np.empty(self.H.shape[1])
        rhs[:self.mesh.n_verts] = -self.mesh.angle_defects + TWO_PI * singularities
        for i, generator in enumerate(self.generators):
            rhs[self.mesh.n_verts + i] = -self.angle_defect_around_generator(generator)

        x = self._solve_normal.solve(rhs)
        return self.H @ x

    def generator_holonomies(self, connection) -> NDArray[np.float64]:
        """Wrapped rotation of transport plus connection around each generator."""
        connection = np.asarray(connection, dtype=np.float64)
        transported = np.array([self.transport_around_generator(g) for g in self.generators])
        return wrap_angle(transported - self.Ht[self.mesh.n_verts:] @ connection)

    def compute_harmonic_component(self, delta_beta) -> NDArray[np.float64]:
        """
        Harmonic 1-form that cancels the remaining rotation around each generator.

        The coefficients solve P z = residual, where residual is the wrapped
        holonomy of delta_beta around each generator. After an accurate
        coexact solve the residuals, and so the correction, are tiny.
        """
        gamma = np.zeros(self.mesh.n_edges)
        if not self.generators:
            return gamma

        residual = self.generator_holonomies(delta_beta)
        z = self._solve_period.solve(residual)
        for coefficient, basis in zip(z, self.bases):
            gamma += coefficient * basis

        logger.debug("Generator residuals before harmonic correction: %s", residual)
        return gamma

    def compute_connections(self, singularities) -> NDArray[np.float64]:
        """
        Connection 1-form realizing the given singularity indices.

        Args:
            singularities: (V,) index per vertex, summing to the Euler
                characteristic

        Returns:
            (E,) rotation angle per edge

        Raises:
            GaussBonnetError: if the indices do not sum to chi
        """
        singularities = self._check_singularities(singularities)
        if not self.satisfies_gauss_bonnet(singularities):
            raise GaussBonnetError(float(singularities.sum()), self.mesh.euler_characteristic)

        delta_beta = self.compute_coexact_component(singularities)
        gamma = self.compute_harmonic_component(delta_beta)
        return delta_beta + gamma

    def get_face_vectors(self, connection, root: int = 0) -> NDArray[np.float64]:
        """Unit vector per face obtained by transporting along the connection."""
        return face_vectors_from_connection(self.mesh, connection, root=root, verbose=self.verbose)
