import numpy as np
import kp
from loguru import logger

from .resize import compute_output_shape, resolve_attributes
from .shader_utils import compile_source


class ResizeOp:
    def __init__(self, manager: kp.Manager,
                 axes=None,
                 coordinate_transformation_mode='half_pixel',  # 坐标对齐方式，支持 "half_pixel" 和 "asymmetric"
                 cubic_coeff_a=-0.75,  # 三次插值的系数 a，通常为 -0.75
                 exclude_outside=0,  # 为 1 时越界样本按 0 参与计算，否则取边缘值
                 extrapolation_value=0.0,  # 仅 tf_crop_and_resize 使用，这里保留以兼容 ONNX 属性
                 keep_aspect_ratio_policy='stretch',
                 # 当使用sizes输入时，如何保持宽高比，有三种选择: "stretch"（拉伸）、"not_larger"（不放大）和 "not_smaller"（不缩小）
                 mode='nearest',  # 插值模式，有三种选择: "nearest"（最近邻插值）、"linear"（线性插值）和"cubic"（三次插值）
                 nearest_mode='round_prefer_floor'  # 仅当mode为"nearest"时有效，指定如何选取最近像素， 有：
                 # "round_prefer_floor"、"round_prefer_ceil"、"floor" 和 "ceil"
                 ):
        self.manager = manager
        self.axes = None
        self.coordinate_transformation_mode = 'half_pixel'
        self.cubic_coeff_a = -0.75
        self.exclude_outside = 0
        self.extrapolation_value = 0.0
        self.keep_aspect_ratio_policy = 'stretch'
        self.mode = 'nearest'
        self.nearest_mode = 'round_prefer_floor'

        self.set_attributes(
            axes=axes,
            coordinate_transformation_mode=coordinate_transformation_mode,
            cubic_coeff_a=cubic_coeff_a,
            exclude_outside=exclude_outside,
            extrapolation_value=extrapolation_value,
            keep_aspect_ratio_policy=keep_aspect_ratio_policy,
            mode=mode,
            nearest_mode=nearest_mode
        )

    def set_attributes(self, axes=None, coordinate_transformation_mode=None, cubic_coeff_a=None,
                       exclude_outside=None, extrapolation_value=None, keep_aspect_ratio_policy=None,
                       mode=None, nearest_mode=None):
        """
        修改属性，影响 shader 的属性变化时重新编译

        示例:
            op.set_attributes(mode='linear')
            op.set_attributes(coordinate_transformation_mode='asymmetric', exclude_outside=1)
        """
        new_values = {
            'coordinate_transformation_mode': coordinate_transformation_mode,
            'cubic_coeff_a': cubic_coeff_a,
            'exclude_outside': exclude_outside,
            'keep_aspect_ratio_policy': keep_aspect_ratio_policy,
            'mode': mode,
            'nearest_mode': nearest_mode,
        }
        merged = {k: getattr(self, k) if v is None else v for k, v in new_values.items()}
        # 先校验，失败时不修改任何属性
        self.interp_mode = resolve_attributes(merged['mode'], merged['nearest_mode'],
                                              merged['coordinate_transformation_mode'], merged['cubic_coeff_a'],
                                              merged['keep_aspect_ratio_policy'])

        need_recompile = any(
            getattr(self, k) != merged[k]
            for k in ('coordinate_transformation_mode', 'cubic_coeff_a', 'exclude_outside', 'mode', 'nearest_mode')
        )
        for k, v in merged.items():
            setattr(self, k, v)

        if axes is not None:
            self.axes = axes
        if extrapolation_value is not None:
            self.extrapolation_value = extrapolation_value

        if need_recompile or not hasattr(self, 'compiled_shader'):
            logger.debug(f"Compiling resize shader: mode={self.mode}, nearest_mode={self.nearest_mode}, "
                         f"coordinate_transformation_mode={self.coordinate_transformation_mode}, "
                         f"exclude_outside={self.exclude_outside}")
            self.compiled_shader = compile_source(self._generate_axis_shader())

    def _generate_coord_calc(self, coord_var, scale_var):
        """根据 coordinate_transformation_mode 生成坐标计算代码"""
        if self.coordinate_transformation_mode == 'half_pixel':
            return f"({coord_var} + 0.5) / {scale_var} - 0.5"
        return f"{coord_var} / {scale_var}"

    def _generate_weights_fn(self):
        """生成权重函数 get_weights(ratio, w)，ratio 取值 (0, 1]"""
        n = self.interp_mode.window_size
        if self.interp_mode.name == 'nearest':
            cond = {
                'round_prefer_floor': "ratio <= 0.5",
                'round_prefer_ceil': "ratio < 0.5",
                'floor': "true",
                'ceil': "false",
            }[self.nearest_mode]
            body = f"""
    bool left = {cond};
    if (ratio == 1.0) left = false;
    w[0] = left ? 1.0 : 0.0;
    w[1] = left ? 0.0 : 1.0;"""
        elif self.interp_mode.name == 'linear':
            body = """
    w[0] = 1.0 - ratio;
    w[1] = ratio;"""
        else:
            body = f"""
    float A = {float(self.cubic_coeff_a)!r};
    float r1 = ratio + 1.0;
    float q = 1.0 - ratio;
    float q1 = q + 1.0;
    w[0] = ((A * r1 - 5.0 * A) * r1 + 8.0 * A) * r1 - 4.0 * A;
    w[1] = ((A + 2.0) * ratio - (A + 3.0)) * ratio * ratio + 1.0;
    w[2] = ((A + 2.0) * q - (A + 3.0)) * q * q + 1.0;
    w[3] = ((A * q1 - 5.0 * A) * q1 + 8.0 * A) * q1 - 4.0 * A;"""
        return f"""
void get_weights(float ratio, out float w[{n}]) {{{body}
}}"""

    def _generate_window_start(self):
        """窗口起点：n 为偶数时按小数部分决定多出的样本放在哪一侧"""
        n = self.interp_mode.window_size
        if (n - 1) % 2 == 0:
            return f"center - {(n - 1) // 2}"
        return f"(frac == 0.0 || frac > 0.5) ? center - {n // 2} : center - {n // 2 - 1}"

    def _generate_sample_code(self):
        if self.exclude_outside:
            return """
        float v = 0.0;
        if (idx >= 0 && idx < in_size) v = in_buf[base + uint(idx) * inner];"""
        return """
        float v = in_buf[base + uint(clamp(idx, 0, in_size - 1)) * inner];"""

    def _generate_axis_shader(self):
        """生成沿单个维度做一维插值的 shader，全部维度依次调度即为可分离插值"""
        n = self.interp_mode.window_size
        pad = (n + 1) // 2
        coord_calc = self._generate_coord_calc("float(out_x)", "scale")

        return f"""#version 450
layout (local_size_x = 1, local_size_y = 1, local_size_z = 1) in;

layout (binding = 0) readonly  buffer buf_in  {{ float in_buf[];  }};
layout (binding = 1) writeonly buffer buf_out {{ float out_buf[]; }};

layout (constant_id = 0) const float in_size_f = 1.0;
layout (constant_id = 1) const float out_size_f = 1.0;
layout (constant_id = 2) const float inner_f = 1.0;
layout (constant_id = 3) const float scale_f = 1.0;
{self._generate_weights_fn()}

void main() {{
    uint outer_idx = gl_GlobalInvocationID.x;
    uint out_x = gl_GlobalInvocationID.y;
    uint inner_idx = gl_GlobalInvocationID.z;

    int in_size = int(in_size_f);
    uint out_size = uint(out_size_f);
    uint inner = uint(inner_f);
    float scale = scale_f;

    float x = {coord_calc};
    float ratio = x - floor(x);
    if (ratio == 0.0) ratio = 1.0;
    float w[{n}];
    get_weights(ratio, w);

    float xp = x + {float(pad)!r};
    float xp_floor = floor(xp);
    float frac = xp - xp_floor;
    int center = frac > 0.5 ? int(xp_floor) + 1 : int(xp_floor);
    int start = ({self._generate_window_start()}) - {pad};

    uint base = outer_idx * uint(in_size) * inner + inner_idx;
    float result = 0.0;
    for (int i = 0; i < {n}; ++i) {{
        int idx = start + i;{self._generate_sample_code()}
        result += w[i] * v;
    }}
    out_buf[(outer_idx * out_size + out_x) * inner + inner_idx] = result;
}}"""

    def __repr__(self):
        return f"ResizeOp({self.manager.get_device_properties()['device_name']})"

    def __str__(self):
        return self.__repr__()

    def run(self, *inputs):
        input_tensors = []
        for inp in inputs:
            if inp is None or np.size(inp) == 0:
                input_tensors.append((None, []))
            else:
                inp = np.asarray(inp)
                numpy_in = inp.reshape(-1).astype(np.float32)
                tensor = self.manager.tensor(numpy_in)
                input_tensors.append((tensor, list(inp.shape)))

        updated_algorithms, updated_tensors = [], []
        output_tensor_and_shape = self.fuse(input_tensors, updated_algorithms, updated_tensors)
        tensor_out, shape_out = output_tensor_and_shape[0]

        seq = self.manager.sequence()
        seq.record(kp.OpTensorSyncDevice([input_tensors[0][0]] + updated_tensors))
        for alg in updated_algorithms:
            seq.record(kp.OpAlgoDispatch(alg))
        seq.record(kp.OpTensorSyncLocal([tensor_out]))
        seq.eval()

        output = tensor_out.data().reshape(shape_out)
        return [output]

    def fuse(self, input_tensors: list[tuple[kp.Tensor, list[int]]], updated_algorithms: list[kp.Algorithm],
             updated_tensors: list[kp.Tensor]) -> list[tuple[kp.Tensor, list[int]]]:
        tensor_in, shape_in = input_tensors[0]
        if tensor_in is None:
            raise ValueError("ResizeOp needs a non empty input tensor")

        # 输入顺序与 ONNX 一致：X, roi, scales, sizes
        if len(input_tensors) > 1 and input_tensors[1][0] is not None:
            raise ValueError("ResizeOp does not support roi")
        scales_data = input_tensors[2][0].data() if len(input_tensors) > 2 and input_tensors[2][0] is not None else None
        sizes_data = input_tensors[3][0].data().astype(int) if len(input_tensors) > 3 and input_tensors[3][
            0] is not None else None

        scales, shape_out = compute_output_shape(shape_in, scales_data, sizes_data, self.axes,
                                                 self.keep_aspect_ratio_policy)

        # 从最后一维往前逐维插值，与递归求值的顺序一致
        tensor_out = tensor_in
        shape_cur = list(shape_in)
        for ax in reversed(range(len(shape_in))):
            if shape_cur[ax] == shape_out[ax] and scales[ax] == 1.0:
                continue
            outer = int(np.prod(shape_cur[:ax])) if ax > 0 else 1
            inner = int(np.prod(shape_cur[ax + 1:])) if ax < len(shape_cur) - 1 else 1
            in_size, out_size = shape_cur[ax], shape_out[ax]

            tensor_prev = tensor_out
            tensor_out = self.manager.tensor(np.zeros(outer * out_size * inner, dtype=np.float32))
            updated_tensors.append(tensor_out)
            updated_algorithms.append(self.manager.algorithm(
                [tensor_prev, tensor_out],
                self.compiled_shader,
                (outer, out_size, inner),
                [in_size, out_size, inner, scales[ax]],
                []
            ))
            shape_cur[ax] = out_size

        return [(tensor_out, list(shape_out))]
