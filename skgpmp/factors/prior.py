import numpy as np

from skgpmp.factor_graph import NoiseModelFactor
from skgpmp.geometry import copy_value
from skgpmp.geometry import dimension
from skgpmp.geometry import local_coordinates


class PriorFactor(NoiseModelFactor):
    """Unary prior pulling a state towards ``target``.

    ``e = x - target`` in local coordinates. With a near-zero sigma this
    realizes the fixed start and end conditions of a trajectory.

    Parameters
    ----------
    key : tuple
        state key.
    target : numpy.ndarray or Pose2Vector
        prior mean.
    noise_model : skgpmp.factor_graph.NoiseModel
        prior noise.
    """

    def __init__(self, key, target, noise_model):
        self.target = copy_value(target)
        if dimension(self.target) != noise_model.dim:
            raise ValueError(
                'target dim {} does not match noise model dim {}'.format(
                    dimension(self.target), noise_model.dim))
        super(PriorFactor, self).__init__((key,), noise_model)

    def evaluate_error(self, state, with_jacobians=False):
        error = local_coordinates(self.target, state)
        if not with_jacobians:
            return error
        return error, [np.eye(len(error))]
