import numpy as np

NEAREST_MODES = ('round_prefer_floor', 'round_prefer_ceil', 'floor', 'ceil')


def linear_coeffs(ratio):
    return np.array([1 - ratio, ratio], dtype=np.float64)


def nearest_coeffs(ratio, mode='round_prefer_floor'):
    # ratio == 1 是修正后的整点采样，精确样本落在第 1 个槽位；floor 在此处也取槽位 1（与 ONNX 一致）
    if ratio == 1:
        return np.array([0.0, 1.0])
    if mode == 'round_prefer_floor':
        return np.array([ratio <= 0.5, ratio > 0.5], dtype=np.float64)
    if mode == 'round_prefer_ceil':
        return np.array([ratio < 0.5, ratio >= 0.5], dtype=np.float64)
    if mode == 'floor':
        return np.array([1.0, 0.0])
    if mode == 'ceil':
        return np.array([0.0, 1.0])
    raise ValueError(f"Unsupported nearest_mode {mode!r}, expected one of {NEAREST_MODES}")


def cubic_coeffs(ratio, A=-0.75):
    return np.array([
        ((A * (ratio + 1) - 5 * A) * (ratio + 1) + 8 * A) * (ratio + 1) - 4 * A,
        ((A + 2) * ratio - (A + 3)) * ratio * ratio + 1,
        ((A + 2) * (1 - ratio) - (A + 3)) * (1 - ratio) * (1 - ratio) + 1,
        ((A * ((1 - ratio) + 1) - 5 * A) * ((1 - ratio) + 1) + 8 * A) * ((1 - ratio) + 1) - 4 * A,
    ], dtype=np.float64)


class InterpolationMode:
    """插值模式描述：权重函数 + 窗口大小（+ nearest 的取整方式）"""

    def __init__(self, name, weights, window_size, nearest_mode=None):
        self.name = name
        self.weights = weights
        self.window_size = window_size
        self.nearest_mode = nearest_mode

    def __repr__(self):
        if self.nearest_mode is not None:
            return f"InterpolationMode({self.name!r}, window_size={self.window_size}, nearest_mode={self.nearest_mode!r})"
        return f"InterpolationMode({self.name!r}, window_size={self.window_size})"


def get_interpolation_mode(mode, nearest_mode='round_prefer_floor', cubic_coeff_a=-0.75):
    if mode == 'nearest':
        if nearest_mode not in NEAREST_MODES:
            raise ValueError(f"Unsupported nearest_mode {nearest_mode!r}, expected one of {NEAREST_MODES}")
        return InterpolationMode('nearest', lambda ratio: nearest_coeffs(ratio, nearest_mode), 2, nearest_mode)
    if mode == 'linear':
        return InterpolationMode('linear', linear_coeffs, 2)
    if isinstance(mode, str) and mode.startswith('cubic'):
        a = float(cubic_coeff_a)
        return InterpolationMode('cubic', lambda ratio: cubic_coeffs(ratio, a), 4)
    raise ValueError(f"Unsupported interpolation mode {mode!r}, expected 'nearest', 'linear' or 'cubic'")
