# flake8: noqa

from skgpmp.sdf.signed_distance_function import BoxSDF
from skgpmp.sdf.signed_distance_function import GridSDF
from skgpmp.sdf.signed_distance_function import PlanarSDF
from skgpmp.sdf.signed_distance_function import SignedDistanceField
from skgpmp.sdf.signed_distance_function import SignedDistanceFunction
from skgpmp.sdf.signed_distance_function import SphereSDF
from skgpmp.sdf.signed_distance_function import UnionSDF
