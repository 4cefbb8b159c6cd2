from .exterior import (
    build_d0,
    build_d1,
    build_hodge_star0,
    build_hodge_star1,
    build_hodge_star2,
    build_mass,
    build_inverse_mass,
    build_laplacian,
    build_operators,
)
