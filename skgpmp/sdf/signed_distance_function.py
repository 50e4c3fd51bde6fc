from logging import getLogger

import numpy as np
from scipy.interpolate import RegularGridInterpolator
from scipy.ndimage import distance_transform_edt


logger = getLogger(__name__)

# grid entries beyond this magnitude (including +-inf) are clipped so that
# multilinear interpolation stays finite
_LARGE_DISTANCE = 1e10


class SignedDistanceFunction(object):
    """A base class for signed distance functions (SDFs).

    An SDF returns, for a point in the world frame, the signed distance to
    the nearest obstacle surface: positive in free space and negative
    inside obstacles. Every SDF has a dimension ``dim`` (2 for planar maps,
    3 for volumetric maps); only the first ``dim`` coordinates of a query
    point are read, so 3D body sphere centers can be checked against a
    planar map directly.

    Subclasses implement ``_signed_distance_and_gradient``.
    """

    def __init__(self, dim):
        if dim not in (2, 3):
            raise ValueError('dim must be 2 or 3, but got {}'.format(dim))
        self.dim = dim

    def __call__(self, points_world):
        """Compute signed distances of input points.

        Parameters
        ----------
        points_world : numpy.ndarray[float](n_point, >=dim)
            2 dim point array w.r.t. world frame.

        Returns
        -------
        signed_distances : numpy.ndarray[float]
            1 dim (n_point,) array of signed distance.
        """
        return self.signed_distance_and_gradient(points_world)[0]

    def signed_distance(self, points_world):
        return self.__call__(points_world)

    def signed_distance_and_gradient(self, points_world):
        """Compute signed distances and their spatial gradients.

        Parameters
        ----------
        points_world : numpy.ndarray[float](n_point, >=dim)
            query points. A single point may be given as a 1 dim array.

        Returns
        -------
        signed_distances : numpy.ndarray[float](n_point,)
            signed distances.
        gradients : numpy.ndarray[float](n_point, dim)
            gradients of the signed distance w.r.t. the point.
        """
        points = np.atleast_2d(np.asarray(points_world, dtype=np.float64))
        if points.shape[1] < self.dim:
            raise ValueError(
                'points must have at least {} coordinates, but got {}'.format(
                    self.dim, points.shape[1]))
        return self._signed_distance_and_gradient(points[:, :self.dim])

    def _signed_distance_and_gradient(self, points):
        raise NotImplementedError


class UnionSDF(SignedDistanceFunction):
    """One can concat multiple SDFs `sdf_list` by using this class.

    The union of no SDF is the empty map: infinite distance everywhere.

    Parameters
    ----------
    sdf_list : list[SignedDistanceFunction]
        SDFs of the same dimension.
    dim : int or None
        dimension. Required if ``sdf_list`` is empty.
    """

    def __init__(self, sdf_list, dim=None):
        if dim is None:
            if len(sdf_list) == 0:
                raise ValueError('dim is required for an empty sdf_list')
            dim = sdf_list[0].dim
        super(UnionSDF, self).__init__(dim)
        dims = [sdf.dim for sdf in sdf_list]
        assert all(d == dim for d in dims), \
            "dim for each sdf must be consistent"
        self.sdf_list = list(sdf_list)

    def _signed_distance_and_gradient(self, points):
        n_pts = len(points)
        if len(self.sdf_list) == 0:
            return np.full(n_pts, np.inf), np.zeros((n_pts, self.dim))
        results = [sdf.signed_distance_and_gradient(points)
                   for sdf in self.sdf_list]
        sd_vals_list = np.array([r[0] for r in results])
        grads_list = np.array([r[1] for r in results])
        idx = np.argmin(sd_vals_list, axis=0)
        arange = np.arange(n_pts)
        return sd_vals_list[idx, arange], grads_list[idx, arange]


class SphereSDF(SignedDistanceFunction):
    """SDF for a sphere (a circle in 2D) specified by `center` and `radius`.
    """

    def __init__(self, center, radius):
        center = np.asarray(center, dtype=np.float64)
        super(SphereSDF, self).__init__(len(center))
        self._center = center
        self._radius = float(radius)

    def _signed_distance_and_gradient(self, points):
        diff = points - self._center[None, :]
        dists_from_center = np.sqrt(np.sum(diff ** 2, axis=1))
        sd_vals = dists_from_center - self._radius
        grads = np.zeros_like(diff)
        nonzero = dists_from_center > 0.0
        grads[nonzero] = diff[nonzero] / dists_from_center[nonzero, None]
        return sd_vals, grads


class BoxSDF(SignedDistanceFunction):
    """SDF for an axis-aligned box specified by `center` and `width`."""

    def __init__(self, center, width):
        center = np.asarray(center, dtype=np.float64)
        super(BoxSDF, self).__init__(len(center))
        self._center = center
        self._width = np.asarray(width, dtype=np.float64)

    def _signed_distance_and_gradient(self, points):
        pts = points - self._center[None, :]
        sign = np.where(pts >= 0.0, 1.0, -1.0)
        half_extent = self._width * 0.5
        sd_vals_each_axis = np.abs(pts) - half_extent[None, :]

        positive_dists_each_axis = np.maximum(sd_vals_each_axis, 0.0)
        positive_dists = np.sqrt(np.sum(positive_dists_each_axis**2, axis=1))

        negative_dists_each_axis = np.max(sd_vals_each_axis, axis=1)
        negative_dists = np.minimum(negative_dists_each_axis, 0.0)

        sd_vals = positive_dists + negative_dists

        grads = np.zeros_like(pts)
        outside = positive_dists > 0.0
        grads[outside] = sign[outside] * positive_dists_each_axis[outside] \
            / positive_dists[outside, None]
        inside = ~outside
        axis = np.argmax(sd_vals_each_axis[inside], axis=1)
        inside_idx = np.nonzero(inside)[0]
        grads[inside_idx, axis] = sign[inside_idx, axis]
        return sd_vals, grads


class GridSDF(SignedDistanceFunction):
    """SDF using precomputed signed distances for gridded points.

    Signed distances are interpolated multi-linearly between grid points
    and gradients are the interpolated central-difference field.
    Queries outside of the grid never fail: they are clamped onto the
    nearest in-bound point, which gives its distance and a zero gradient.

    Parameters
    ----------
    sdf_data : numpy.ndarray
        signed distances indexed by ``sdf_data[ix, iy]`` (2D) or
        ``sdf_data[ix, iy, iz]`` (3D).
    origin : numpy.ndarray
        world coordinate of the grid point of index 0.
    resolution : float
        cell size of the grid.
    """

    def __init__(self, sdf_data, origin, resolution):
        sdf_data = np.asarray(sdf_data, dtype=np.float64)
        super(GridSDF, self).__init__(sdf_data.ndim)
        origin = np.asarray(origin, dtype=np.float64)
        if origin.shape != (self.dim,):
            raise ValueError(
                'origin must have shape ({},), but got {}'.format(
                    self.dim, origin.shape))
        if resolution <= 0:
            raise ValueError('resolution must be positive, but got {}'.format(
                resolution))
        if np.any(np.array(sdf_data.shape) < 2):
            raise ValueError('each grid axis needs at least 2 points')

        self._data = np.clip(sdf_data, -_LARGE_DISTANCE, _LARGE_DISTANCE)
        self._dims = np.array(self._data.shape)
        self._resolution = float(resolution)
        self.origin = origin

        # create regular grid interpolator
        axes = tuple(
            origin[i] + np.arange(d) * self._resolution
            for i, d in enumerate(self._dims))
        self._lower = np.array([ax[0] for ax in axes])
        self._upper = np.array([ax[-1] for ax in axes])
        self.itp = RegularGridInterpolator(
            axes, self._data, method='linear')
        gradient_fields = np.gradient(self._data, self._resolution)
        self.grad_itps = [
            RegularGridInterpolator(axes, field, method='linear')
            for field in gradient_fields]

    @property
    def resolution(self):
        return self._resolution

    @property
    def data(self):
        return self._data

    def is_out_of_bounds(self, points_world):
        """check if the the input points is out of bounds

        Parameters
        ----------
        points_world : numpy.ndarray[float](n_points, >=dim)
            points w.r.t. world to be checked.

        Returns
        -------
        is_out_arr : numpy.ndarray[bool](n_points,)
            If points is out of the grid boundary,
            the corresponding element of is_out_arr is True
        """
        points = np.atleast_2d(
            np.asarray(points_world, dtype=np.float64))[:, :self.dim]
        return np.logical_or(
            (points < self._lower[None, :]).any(axis=1),
            (points > self._upper[None, :]).any(axis=1))

    def _signed_distance_and_gradient(self, points):
        is_out = self.is_out_of_bounds(points)
        if np.any(is_out):
            logger.debug(
                '{} of {} sdf queries are out of bounds, '
                'clamped onto the grid boundary'.format(
                    np.count_nonzero(is_out), len(points)))
            points = np.clip(points, self._lower, self._upper)
        sd_vals = self.itp(points)
        grads = np.stack([itp(points) for itp in self.grad_itps], axis=1)
        grads[is_out] = 0.0
        return sd_vals, grads

    @classmethod
    def from_occupancy_grid(cls, occupancy, origin, resolution):
        """Build a GridSDF from a binary occupancy grid.

        Parameters
        ----------
        occupancy : numpy.ndarray
            occupancy grid indexed like ``sdf_data``; non-zero is occupied.
        origin : numpy.ndarray
            world coordinate of the cell of index 0.
        resolution : float
            cell size.

        Returns
        -------
        sdf : GridSDF
            signed distance field of the occupancy grid.
        """
        occupied = np.asarray(occupancy) > 0
        if not occupied.any():
            field = np.full(occupied.shape, np.inf)
        elif occupied.all():
            field = np.full(occupied.shape, -np.inf)
        else:
            # distance to the nearest occupied cell minus the distance
            # to the nearest free cell
            field = (distance_transform_edt(~occupied)
                     - distance_transform_edt(occupied)) * resolution
        return cls(field, origin, resolution)


class PlanarSDF(GridSDF):
    """2D grid signed distance field."""

    def __init__(self, sdf_data, origin, resolution):
        if np.ndim(sdf_data) != 2:
            raise ValueError('PlanarSDF requires 2 dim sdf_data')
        super(PlanarSDF, self).__init__(sdf_data, origin, resolution)


class SignedDistanceField(GridSDF):
    """3D grid signed distance field."""

    def __init__(self, sdf_data, origin, resolution):
        if np.ndim(sdf_data) != 3:
            raise ValueError('SignedDistanceField requires 3 dim sdf_data')
        super(SignedDistanceField, self).__init__(
            sdf_data, origin, resolution)
