"""
Discrete Hodge decomposition of 1-forms.

Every 1-form w splits as

    w = d0 a + h1^-1 d1^T b + g

with d0 a exact (curl-free), h1^-1 d1^T b coexact (divergence-free) and g
harmonic (both). The potentials solve

    A a = d0^T h1 w,    A = d0^T h1 d0 + eps I     (vertices, Cholesky)
    B b = d1 w,         B = d1 h1^-1 d1^T + eps I  (faces, LU)

B is only assembled for coexact solves, since h1^-1 does not exist on meshes
with a zero cotangent weight (right triangles meeting at an edge).

B is regularized as well because constants on faces lie in its kernel on a
closed mesh; d1 w is always orthogonal to them.
"""

import logging
from typing import List, Tuple

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from data_types import HalfEdgeMesh
from operators import build_d0, build_d1, build_hodge_star1
from settings.constants import REGULARIZATION
from solvers import CholeskySolver, LUSolver

logger = logging.getLogger(__name__)


class HodgeDecomposition:
    """
    Operators and factorizations for one mesh topology.

    A and its Cholesky factorization are built in the constructor; B and its
    LU factorization on the first coexact solve. Nothing is modified after
    that; build a new instance if the mesh changes.
    """

    def __init__(self, mesh: HalfEdgeMesh, regularization: float = REGULARIZATION):
        self.mesh = mesh
        self.regularization = regularization

        self.d0 = build_d0(mesh)
        self.d1 = build_d1(mesh)
        self.h1 = build_hodge_star1(mesh)
        self.d0t = self.d0.T.tocsr()
        self.d1t = self.d1.T.tocsr()

        n_verts = self.d0t.shape[0]
        self.A = (self.d0t @ self.h1 @ self.d0 + regularization * sp.identity(n_verts)).tocsc()
        self._solve_A = CholeskySolver(self.A)

        # B needs h1^-1, which is undefined on edges with zero cotangent
        # weight; it is only assembled once a coexact part is requested
        self._h1_inv = None
        self._B = None
        self._solve_B = None

        logger.debug("Hodge decomposition ready: A %s", self.A.shape)

    @property
    def h1_inv(self) -> sp.csr_matrix:
        if self._h1_inv is None:
            self._h1_inv = sp.diags(1.0 / self.h1.diagonal(), format="csr")
        return self._h1_inv

    @property
    def B(self) -> sp.csc_matrix:
        if self._B is None:
            n_faces = self.d1.shape[0]
            self._B = (
                self.d1 @ self.h1_inv @ self.d1t + self.regularization * sp.identity(n_faces)
            ).tocsc()
        return self._B

    def _coexact_solver(self) -> LUSolver:
        if self._solve_B is None:
            self._solve_B = LUSolver(self.B)
            logger.debug("Factorized B %s", self.B.shape)
        return self._solve_B

    def _check_one_form(self, omega) -> NDArray[np.float64]:
        omega = np.asarray(omega, dtype=np.float64)
        if omega.shape != (self.mesh.n_edges,):
            raise ValueError(f"Expected a 1-form of shape ({self.mesh.n_edges},), got {omega.shape}")
        return omega

    def compute_exact(self, omega) -> NDArray[np.float64]:
        """Curl-free component d0 a."""
        omega = self._check_one_form(omega)
        alpha = self._solve_A.solve(self.d0t @ (self.h1 @ omega))
        return self.d0 @ alpha

    def compute_coexact(self, omega) -> NDArray[np.float64]:
        """Divergence-free component h1^-1 d1^T b."""
        omega = self._check_one_form(omega)
        beta = self._coexact_solver().solve(self.d1 @ omega)
        return self.h1_inv @ (self.d1t @ beta)

    def compute_harmonic(self, omega, exact, coexact) -> NDArray[np.float64]:
        return self._check_one_form(omega) - exact - coexact

    def decompose(self, omega) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
        """Return (exact, coexact, harmonic)."""
        exact = self.compute_exact(omega)
        coexact = self.compute_coexact(omega)
        return exact, coexact, self.compute_harmonic(omega, exact, coexact)

    def generator_one_form(self, generator: List[int]) -> NDArray[np.float64]:
        """Closed 1-form that is +-1 on the edges a dual loop crosses, zero elsewhere."""
        omega = np.zeros(self.mesh.n_edges)
        generator = np.asarray(generator, dtype=np.int64)
        omega[self.mesh.he_edge[generator]] = self.mesh.edge_signs[generator]
        return omega

    def compute_harmonic_basis(self, generator: List[int]) -> NDArray[np.float64]:
        """
        Harmonic 1-form dual to a homology generator.

        The generator's indicator 1-form is closed, so removing its exact part
        leaves a form that is both closed and co-closed.
        """
        omega = self.generator_one_form(generator)
        return omega - self.compute_exact(omega)
