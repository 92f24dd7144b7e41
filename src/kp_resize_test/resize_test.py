import sys

import numpy as np
import pytest

from kp_resize.resize import compute_output_shape, resize, resize_by_scales, resize_by_size
from kp_resize.tensor_view import TensorView


def test_identity_resize_linear_asymmetric():
    rng = np.random.default_rng(0)
    x = rng.random((2, 3, 4)).astype(np.float32)
    out = np.zeros_like(x)
    resize_by_scales(out, x, [1.0, 1.0, 1.0], coordinate_transformation_mode='asymmetric', mode='linear')
    np.testing.assert_array_equal(out, x)


def test_boundary_clamp_and_exclude_outside():
    x = np.array([1.0, 2.0, 3.0], dtype=np.float32)

    out = np.zeros(6, dtype=np.float32)
    resize_by_scales(out, x, [2.0], mode='linear', exclude_outside=0)
    np.testing.assert_allclose(out, [1.0, 1.25, 1.75, 2.25, 2.75, 3.0])

    out = np.zeros(6, dtype=np.float32)
    resize_by_scales(out, x, [2.0], mode='linear', exclude_outside=1)
    np.testing.assert_allclose(out, [0.75, 1.25, 1.75, 2.25, 2.75, 2.25])


def test_cubic_reproduces_input_at_scale_one():
    x = np.array([0.5, -1.0, 2.0, 7.0, 3.0], dtype=np.float64)
    out = np.zeros_like(x)
    resize_by_scales(out, x, [1.0], mode='cubic')
    np.testing.assert_array_equal(out, x)


def test_nearest_floor_end_to_end():
    x = np.array([[[[1.0, 2.0], [3.0, 4.0]]]], dtype=np.float32)
    out = np.zeros((1, 1, 4, 4), dtype=np.float32)
    resize_by_scales(out, x, [1, 1, 2, 2], mode='nearest', nearest_mode='floor')
    expected = np.array([[[[1, 1, 1, 2],
                           [1, 1, 1, 2],
                           [1, 1, 1, 2],
                           [3, 3, 3, 4]]]], dtype=np.float32)
    np.testing.assert_array_equal(out, expected)


def test_nearest_round_prefer_floor_replicates_blocks():
    x = np.array([[[[1.0, 2.0], [3.0, 4.0]]]], dtype=np.float32)
    out = np.zeros((1, 1, 4, 4), dtype=np.float32)
    resize_by_scales(out, x, [1, 1, 2, 2], mode='nearest', nearest_mode='round_prefer_floor')
    np.testing.assert_array_equal(out, np.repeat(np.repeat(x, 2, axis=2), 2, axis=3))


@pytest.mark.parametrize("mode", ["nearest", "linear", "cubic"])
@pytest.mark.parametrize("coordinate_transformation_mode", ["half_pixel", "asymmetric"])
def test_scales_and_sizes_agree(mode, coordinate_transformation_mode):
    rng = np.random.default_rng(1)
    x = rng.random((2, 3, 4))
    scales = [1.0, 2.0, 0.5]
    sizes = [int(round(s * d)) for s, d in zip(scales, x.shape)]

    out_scales = np.zeros(sizes)
    out_sizes = np.zeros(sizes)
    resize_by_scales(out_scales, x, scales, coordinate_transformation_mode=coordinate_transformation_mode,
                     mode=mode)
    resize_by_size(out_sizes, x, sizes, coordinate_transformation_mode=coordinate_transformation_mode, mode=mode)
    np.testing.assert_array_equal(out_scales, out_sizes)


def test_non_exact_scale_keeps_caller_scale():
    # 与 ONNX 一致：scales 路径按给定 scale 计算坐标，sizes 路径用 out / in
    x = np.arange(3, dtype=np.float64)
    assert compute_output_shape(x.shape, scales=[0.7]) == ((0.7,), (2,))
    assert compute_output_shape(x.shape, sizes=[2]) == ((2 / 3,), (2,))

    out_scales = np.zeros(2)
    resize_by_scales(out_scales, x, [0.7], mode='linear')
    np.testing.assert_allclose(out_scales, [0.5 / 0.7 - 0.5, 1.5 / 0.7 - 0.5])

    out_sizes = np.zeros(2)
    resize_by_size(out_sizes, x, [2], mode='linear')
    np.testing.assert_allclose(out_sizes, [0.25, 1.75])


def test_empty_output_rejected_on_both_paths():
    x = np.ones(2)
    out = np.zeros(0)
    with pytest.raises(ValueError, match="empty output"):
        resize_by_scales(out, x, [0.1])
    with pytest.raises(ValueError, match="empty output"):
        resize_by_size(out, x, [0])
    with pytest.raises(ValueError, match="empty output"):
        compute_output_shape((2, 3), sizes=[0, 3])


def test_downscale_linear_half_pixel():
    x = np.arange(16, dtype=np.float32).reshape(4, 4)
    out = np.zeros((2, 2), dtype=np.float32)
    resize_by_size(out, x, [2, 2], mode='linear')
    # (o + 0.5) * 2 - 0.5 落在 0.5 和 2.5，取相邻两行两列的均值
    np.testing.assert_allclose(out, [[2.5, 4.5], [10.5, 12.5]])


def test_exclude_outside_reaches_every_axis():
    x = np.ones((2, 2), dtype=np.float64)
    out = np.zeros((4, 4))
    resize_by_scales(out, x, [2.0, 2.0], mode='linear', exclude_outside=1)
    assert out[0, 0] == pytest.approx(0.75 * 0.75)
    assert out[1, 1] == pytest.approx(1.0)
    assert out[3, 3] == pytest.approx(0.75 * 0.75)


def test_output_tensor_view_is_filled_in_place():
    x = np.array([1.0, 2.0], dtype=np.float32)
    out = np.zeros(4, dtype=np.float32)
    ret = resize_by_scales(TensorView.from_array(out), x, [2.0], mode='nearest')
    assert isinstance(ret, TensorView)
    np.testing.assert_array_equal(out, [1, 1, 2, 2])


def test_input_tensor_view_is_accepted():
    buf = np.arange(8, dtype=np.float32)
    view = TensorView(buf, (2, 2), offset=4)
    out = np.zeros((4, 4), dtype=np.float32)
    resize_by_scales(out, view, [2.0, 2.0], mode='nearest')
    np.testing.assert_array_equal(out, np.repeat(np.repeat([[4, 5], [6, 7]], 2, axis=0), 2, axis=1))


def test_axes_subset():
    rng = np.random.default_rng(2)
    x = rng.random((1, 1, 2, 3))
    out_axes = np.zeros((1, 1, 4, 6))
    out_full = np.zeros((1, 1, 4, 6))
    resize_by_size(out_axes, x, [4, 6], mode='linear', axes=[2, 3])
    resize_by_size(out_full, x, [1, 1, 4, 6], mode='linear')
    np.testing.assert_array_equal(out_axes, out_full)

    out = np.zeros((2, 6))
    resize_by_scales(out, np.ones((2, 3)), [2.0], axes=[-1])
    np.testing.assert_array_equal(out, np.ones((2, 6)))


def test_compute_output_shape():
    assert compute_output_shape((2, 4), scales=[1.5, 0.5]) == ((1.5, 0.5), (3, 2))
    assert compute_output_shape((2, 4), sizes=[4, 2]) == ((2.0, 0.5), (4, 2))
    assert compute_output_shape((2, 4), sizes=[4, 4], keep_aspect_ratio_policy='not_larger') == \
        ((1.0, 1.0), (2, 4))
    assert compute_output_shape((2, 4), sizes=[4, 4], keep_aspect_ratio_policy='not_smaller') == \
        ((2.0, 2.0), (4, 8))
    assert compute_output_shape((1, 3, 2, 2), sizes=[4, 4], axes=[2, 3]) == ((1.0, 1.0, 2.0, 2.0), (1, 3, 4, 4))
    assert compute_output_shape((2, 4), scales=np.array([]), sizes=np.array([4, 8])) == ((2.0, 2.0), (4, 8))


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(scales=[2.0]),
        dict(scales=[2.0, 2.0], sizes=[4, 4]),
        dict(),
        dict(scales=[2.0, 0.0]),
        dict(scales=[2.0, -1.0]),
        dict(sizes=[4, 4, 4]),
        dict(sizes=[4, 4], keep_aspect_ratio_policy='fit'),
        dict(scales=[2.0], axes=[2]),
        dict(scales=[2.0, 2.0], axes=[1, -1]),
    ],
)
def test_invalid_shapes(kwargs):
    with pytest.raises(ValueError):
        compute_output_shape((2, 2), **kwargs)


def test_rank_zero_input():
    with pytest.raises(ValueError):
        compute_output_shape((), scales=[])


@pytest.mark.parametrize(
    "kwargs, error",
    [
        (dict(mode='bilinear'), ValueError),
        (dict(mode='nearest', nearest_mode='round'), ValueError),
        (dict(coordinate_transformation_mode='align_corners'), ValueError),
        (dict(coordinate_transformation_mode='tf_crop_and_resize'), ValueError),
    ],
)
def test_unsupported_configuration_leaves_output_untouched(kwargs, error):
    x = np.ones((2, 2), dtype=np.float32)
    out = np.full((4, 4), -7.0, dtype=np.float32)
    with pytest.raises(error):
        resize(out, x, scales=[2.0, 2.0], **kwargs)
    assert (out == -7.0).all()


def test_output_shape_mismatch_leaves_output_untouched():
    x = np.ones((2, 2), dtype=np.float32)
    out = np.full((3, 4), -7.0, dtype=np.float32)
    with pytest.raises(ValueError):
        resize_by_scales(out, x, [2.0, 2.0])
    assert (out == -7.0).all()


def test_non_floating_types_rejected():
    with pytest.raises(TypeError):
        resize_by_scales(np.zeros(4, dtype=np.float32), np.array([1, 2], dtype=np.int32), [2.0])
    with pytest.raises(TypeError):
        resize_by_scales(np.zeros(4, dtype=np.int64), np.array([1.0, 2.0]), [2.0])


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-q"]))
