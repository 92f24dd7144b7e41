import itertools
import math

import numpy as np

from .interp_sampler import get_neighbor
from .tensor_view import TensorView


def _half_pixel(output_coord, scale):
    return (output_coord + 0.5) / scale - 0.5


def _asymmetric(output_coord, scale):
    return output_coord / scale


COORDINATE_TRANSFORMS = {
    'half_pixel': _half_pixel,
    'asymmetric': _asymmetric,
}


def get_coordinate_transform(coordinate_transformation_mode):
    try:
        return COORDINATE_TRANSFORMS[coordinate_transformation_mode]
    except KeyError:
        raise ValueError(
            f"Unsupported coordinate_transformation_mode {coordinate_transformation_mode!r}, "
            f"expected one of {tuple(COORDINATE_TRANSFORMS)}"
        ) from None


def interpolate_1d(data, scale, output_coord, mode, coordinate_transformation_mode='half_pixel',
                   exclude_outside=False):
    x_ori = get_coordinate_transform(coordinate_transformation_mode)(output_coord, scale)
    x_ori_int = math.floor(x_ori)
    # ratio 取 (0, 1]：整点时记为 1，窗口向左对齐一格
    ratio = x_ori - x_ori_int
    if ratio == 0:
        ratio = 1
    coeffs = mode.weights(ratio)
    # 窗口中心用原始实数坐标，不受 ratio 修正影响
    _, points = get_neighbor(x_ori, mode.window_size, data, exclude_outside)
    return float(np.dot(coeffs, points))


def interpolate_nd(view: TensorView, scales, output_coords, mode, coordinate_transformation_mode='half_pixel',
                   exclude_outside=False):
    """
    可分离插值：先对剩余各维递归插值，再沿第 0 维做一维插值。

    对第 0 维的每个下标都完整求出剩余维度的结果（而不只是窗口内的几个），
    递归深度等于 view 的实际 rank。
    """
    if view.rank == 1:
        return interpolate_1d(view.values(), scales[0], output_coords[0], mode,
                              coordinate_transformation_mode, exclude_outside)

    width = view.extent(0)
    reduced = np.empty(width, dtype=np.float64)
    for i in range(width):
        reduced[i] = interpolate_nd(view.sub_view(i), scales[1:], output_coords[1:], mode,
                                    coordinate_transformation_mode, exclude_outside)
    return interpolate_1d(reduced, scales[0], output_coords[0], mode,
                          coordinate_transformation_mode, exclude_outside)


def output_coordinates(shape):
    """输出张量全部坐标（行优先笛卡尔积）"""
    return list(itertools.product(*[range(d) for d in shape]))
