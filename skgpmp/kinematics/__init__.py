# flake8: noqa

from skgpmp.kinematics.arm import Arm
from skgpmp.kinematics.pose2_mobile_arm import Pose2MobileArm
from skgpmp.kinematics.robot_model import ArmModel
from skgpmp.kinematics.robot_model import BodySphere
from skgpmp.kinematics.robot_model import Pose2MobileArmModel
from skgpmp.kinematics.robot_model import RobotModel
