import numpy as np
from loguru import logger

from .interp_kernels import get_interpolation_mode
from .interp_nd import get_coordinate_transform, interpolate_nd, output_coordinates
from .tensor_view import TensorView

KEEP_ASPECT_RATIO_POLICIES = ('stretch', 'not_larger', 'not_smaller')


def check_element_type(dtype, name='input'):
    if not np.issubdtype(np.dtype(dtype), np.floating):
        raise TypeError(f"Resize only supports floating point tensors, got {name} dtype {np.dtype(dtype)}")


def resolve_attributes(mode='nearest', nearest_mode='round_prefer_floor', coordinate_transformation_mode='half_pixel',
                       cubic_coeff_a=-0.75, keep_aspect_ratio_policy='stretch'):
    """校验属性并返回插值模式描述；不支持的配置直接报错"""
    get_coordinate_transform(coordinate_transformation_mode)
    if keep_aspect_ratio_policy not in KEEP_ASPECT_RATIO_POLICIES:
        raise ValueError(f"Unsupported keep_aspect_ratio_policy {keep_aspect_ratio_policy!r}, "
                         f"expected one of {KEEP_ASPECT_RATIO_POLICIES}")
    return get_interpolation_mode(mode, nearest_mode, cubic_coeff_a)


def derive_output_shape(input_shape, scales):
    return tuple(int(round(s * d)) for s, d in zip(scales, input_shape))


def derive_scales(input_shape, output_shape):
    return tuple(float(o) / d for o, d in zip(output_shape, input_shape))


def normalize_axes(axes, ndim):
    if axes is None:
        return list(range(ndim))
    normalized = []
    for a in axes:
        a = int(a)
        if not -ndim <= a < ndim:
            raise ValueError(f"Axis {a} out of range for rank {ndim}")
        normalized.append(a if a >= 0 else ndim + a)
    if len(set(normalized)) != len(normalized):
        raise ValueError(f"Duplicate axes in {list(axes)}")
    return normalized


def _is_empty(values):
    return values is None or len(values) == 0


def compute_output_shape(input_shape, scales=None, sizes=None, axes=None, keep_aspect_ratio_policy='stretch'):
    """
    由 scales 或 sizes（二选一）推出另一半，返回 (scales, output_shape)。

    axes 未覆盖的维度保持 scale 1 和原尺寸；keep_aspect_ratio_policy 仅对 sizes 生效。
    """
    input_shape = [int(d) for d in input_shape]
    ndim = len(input_shape)
    if ndim == 0:
        raise ValueError("Resize needs an input of rank >= 1")
    if any(d <= 0 for d in input_shape):
        raise ValueError(f"Input extents must be positive, got {input_shape}")
    axes = normalize_axes(axes, ndim)

    if _is_empty(scales) == _is_empty(sizes):
        raise ValueError("Exactly one of scales or sizes must be provided")

    in_extents = [input_shape[ax] for ax in axes]
    if not _is_empty(sizes):
        sizes = [int(s) for s in sizes]
        if len(sizes) != len(axes):
            raise ValueError(f"sizes has {len(sizes)} entries, expected {len(axes)}")
        if any(s < 0 for s in sizes):
            raise ValueError(f"sizes must be non negative, got {sizes}")
        target_scales = list(derive_scales(in_extents, sizes))
        target_sizes = sizes

        if keep_aspect_ratio_policy != 'stretch':
            if keep_aspect_ratio_policy == 'not_larger':
                uniform_scale = min(target_scales)
            elif keep_aspect_ratio_policy == 'not_smaller':
                uniform_scale = max(target_scales)
            else:
                raise ValueError(f"Unsupported keep_aspect_ratio_policy {keep_aspect_ratio_policy!r}")
            target_scales = [uniform_scale] * len(axes)
            target_sizes = list(derive_output_shape(in_extents, target_scales))
    else:
        target_scales = [float(s) for s in scales]
        if len(target_scales) != len(axes):
            raise ValueError(f"scales has {len(target_scales)} entries, expected {len(axes)}")
        if any(s <= 0 for s in target_scales):
            raise ValueError(f"scales must be positive, got {target_scales}")
        target_sizes = list(derive_output_shape(in_extents, target_scales))

    out_scales = [1.0] * ndim
    out_shape = list(input_shape)
    for ax, s, size in zip(axes, target_scales, target_sizes):
        out_scales[ax] = s
        out_shape[ax] = size
    # scales 和 sizes 两条路径对空输出的处理一致：都拒绝
    if any(d == 0 for d in out_shape):
        raise ValueError(f"Resize does not support empty output, got shape {tuple(out_shape)}")
    return tuple(out_scales), tuple(out_shape)


def resize(output, input, mode='nearest', scales=None, sizes=None, coordinate_transformation_mode='half_pixel',
           cubic_coeff_a=-0.75, exclude_outside=0, extrapolation_value=0.0, nearest_mode='round_prefer_floor',
           axes=None, keep_aspect_ratio_policy='stretch'):
    """
    把 input 插值后写入预先分配好的 output，返回 output。

    所有校验都在写 output 之前完成；结果先算到临时数组，最后一次性写回。
    extrapolation_value 只在 tf_crop_and_resize 下有意义，这里不使用。
    """
    interp_mode = resolve_attributes(mode, nearest_mode, coordinate_transformation_mode, cubic_coeff_a,
                                     keep_aspect_ratio_policy)

    in_view = input if isinstance(input, TensorView) else TensorView.from_array(np.asarray(input))
    out_array = output.to_numpy() if isinstance(output, TensorView) else output
    if not isinstance(out_array, np.ndarray):
        raise TypeError(f"output must be a numpy array or TensorView, got {type(output).__name__}")
    check_element_type(in_view.element_type(), 'input')
    check_element_type(out_array.dtype, 'output')

    full_scales, out_shape = compute_output_shape(in_view.shape, scales, sizes, axes, keep_aspect_ratio_policy)
    if tuple(out_array.shape) != out_shape:
        raise ValueError(f"Output shape {tuple(out_array.shape)} does not match resize result {out_shape}")
    logger.debug(f"Resize {in_view.shape} -> {out_shape}, scales={full_scales}, mode={interp_mode}, "
                 f"coordinate_transformation_mode={coordinate_transformation_mode}")

    exclude_outside = bool(exclude_outside)
    coords = output_coordinates(out_shape)
    result = np.empty(len(coords), dtype=np.float64)
    for i, coord in enumerate(coords):
        result[i] = interpolate_nd(in_view, full_scales, coord, interp_mode, coordinate_transformation_mode,
                                   exclude_outside)

    out_array[...] = result.reshape(out_shape)
    return output


def resize_by_scales(output, input, scales, coordinate_transformation_mode='half_pixel', cubic_coeff_a=-0.75,
                     exclude_outside=0, extrapolation_value=0.0, mode='nearest', nearest_mode='round_prefer_floor',
                     axes=None):
    return resize(output, input, mode=mode, scales=scales,
                  coordinate_transformation_mode=coordinate_transformation_mode, cubic_coeff_a=cubic_coeff_a,
                  exclude_outside=exclude_outside, extrapolation_value=extrapolation_value,
                  nearest_mode=nearest_mode, axes=axes)


def resize_by_size(output, input, sizes, coordinate_transformation_mode='half_pixel', cubic_coeff_a=-0.75,
                   exclude_outside=0, extrapolation_value=0.0, mode='nearest', nearest_mode='round_prefer_floor',
                   axes=None, keep_aspect_ratio_policy='stretch'):
    return resize(output, input, mode=mode, sizes=sizes,
                  coordinate_transformation_mode=coordinate_transformation_mode, cubic_coeff_a=cubic_coeff_a,
                  exclude_outside=exclude_outside, extrapolation_value=extrapolation_value,
                  nearest_mode=nearest_mode, axes=axes, keep_aspect_ratio_policy=keep_aspect_ratio_policy)
