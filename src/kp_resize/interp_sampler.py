import math

import numpy as np


def get_neighbor_indices(x, n):
    """
    返回 x 附近 n 个连续整数下标（未做边界处理）。

    先把坐标轴在低端虚拟补 ceil(n/2) 个位置，在补齐后的坐标里确定中心和窗口，
    再平移回原坐标。ratio <= 0.5 时窗口偏左，否则偏右，与权重顺序对齐：
        get_neighbor_indices(4, 2)   == [3, 4]
        get_neighbor_indices(4.3, 2) == [4, 5]
        get_neighbor_indices(4.7, 2) == [4, 5]
        get_neighbor_indices(4, 4)   == [2, 3, 4, 5]
        get_neighbor_indices(4.5, 3) == [3, 4, 5]
        get_neighbor_indices(4.6, 3) == [4, 5, 6]
    """
    pad = math.ceil(n / 2)
    x = x + pad
    x_floor = math.floor(x)
    frac = x - x_floor
    center = x_floor + 1 if frac > 0.5 else x_floor

    if (n - 1) % 2 == 0:
        start = center - (n - 1) // 2
    elif frac == 0 or frac > 0.5:
        start = center - n // 2
    else:
        start = center - n // 2 + 1
    start -= pad
    return np.arange(start, start + n)


def get_neighbor(x, n, data, exclude_outside=False):
    """取 x 附近 n 个样本；越界样本按 exclude_outside 取 0 或边缘值"""
    idxes = get_neighbor_indices(x, n)
    limit = len(data)
    points = np.empty(n, dtype=np.float64)
    for i, idx in enumerate(idxes):
        if idx < 0 or idx >= limit:
            if exclude_outside:
                points[i] = 0.0
            else:
                points[i] = data[0] if idx < 0 else data[limit - 1]
        else:
            points[i] = data[idx]
    return idxes, points
