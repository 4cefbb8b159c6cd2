from .transport import (
    UnreachedFacesError,
    wrap_angle,
    transport_no_rotation,
    transport_angles,
    integrate_face_angles,
    face_vectors_from_angles,
    face_vectors_from_connection,
    vertex_singularity_indices,
)
from .trivial_connection import GaussBonnetError, TrivialConnection, build_cycle_matrix
