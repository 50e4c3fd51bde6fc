# flake8: noqa

from skgpmp.factors.limits import JointLimitFactor
from skgpmp.factors.limits import VelocityLimitFactor
from skgpmp.factors.obstacle import GPInterpolatedObstacleCostFactor
from skgpmp.factors.obstacle import hinge_loss_obstacle_cost
from skgpmp.factors.obstacle import ObstacleCostFactor
from skgpmp.factors.prior import PriorFactor
