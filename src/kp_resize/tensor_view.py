import numpy as np


class TensorView:
    """
    扁平 buffer 上的张量视图：shape + offset，不拷贝数据。

    递归插值时用 sub_view 固定第 0 维，得到同一 buffer 上降一维的视图。
    """

    def __init__(self, buffer: np.ndarray, shape, offset=0):
        if buffer.ndim != 1:
            raise ValueError(f"TensorView expects a flat buffer, got ndim={buffer.ndim}")
        self.buffer = buffer
        self.shape = tuple(int(d) for d in shape)
        self.offset = int(offset)
        if any(d < 0 for d in self.shape):
            raise ValueError(f"Negative extent in shape {self.shape}")
        size = int(np.prod(self.shape)) if self.shape else 1
        if self.offset < 0 or self.offset + size > buffer.shape[0]:
            raise ValueError(
                f"View out of bounds: offset={self.offset}, shape={self.shape}, buffer length={buffer.shape[0]}"
            )

    @classmethod
    def from_array(cls, array: np.ndarray):
        array = np.asarray(array)
        # reshape(-1) 对连续数组返回视图，写入会落到原数组上
        return cls(array.reshape(-1), array.shape)

    def __repr__(self):
        return f"TensorView(shape={self.shape}, offset={self.offset}, dtype={self.buffer.dtype})"

    @property
    def rank(self):
        return len(self.shape)

    def extent(self, axis):
        return self.shape[axis]

    def data(self):
        return self.buffer

    def element_type(self):
        return self.buffer.dtype

    def size(self):
        return int(np.prod(self.shape)) if self.shape else 1

    def create_view(self, buffer, shape, offset=0):
        return TensorView(buffer, shape, offset)

    def sub_view(self, index):
        """固定第 0 维为 index，返回 rank - 1 的视图"""
        if self.rank == 0:
            raise ValueError("Cannot take a sub view of a rank 0 view")
        if not 0 <= index < self.shape[0]:
            raise IndexError(f"Index {index} out of range for extent {self.shape[0]}")
        inner = int(np.prod(self.shape[1:])) if self.rank > 1 else 1
        return self.create_view(self.buffer, self.shape[1:], self.offset + index * inner)

    def values(self):
        """rank 1 视图对应的一维样本（buffer 切片）"""
        if self.rank != 1:
            raise ValueError(f"values() needs a rank 1 view, got rank {self.rank}")
        return self.buffer[self.offset:self.offset + self.shape[0]]

    def to_numpy(self):
        return self.buffer[self.offset:self.offset + self.size()].reshape(self.shape)
