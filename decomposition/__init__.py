from .hodge import HodgeDecomposition
from .one_forms import (
    OneFormSample,
    random_one_form,
    barycentric_gradients,
    interpolate_whitney,
)
