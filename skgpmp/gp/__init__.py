# flake8: noqa

from skgpmp.gp.gp_utils import calc_lambda
from skgpmp.gp.gp_utils import calc_phi
from skgpmp.gp.gp_utils import calc_psi
from skgpmp.gp.gp_utils import calc_q
from skgpmp.gp.gp_utils import calc_q_inv
from skgpmp.gp.gp_utils import qc_matrix
from skgpmp.gp.interpolator import GaussianProcessInterpolator
from skgpmp.gp.prior import GaussianProcessPriorFactor
