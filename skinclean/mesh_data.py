# skinclean/mesh_data.py
"""
蒙皮网格的数据结构

所有逐顶点缓冲区都是 numpy 数组，第 0 维是顶点维。
可选缓冲区用 None 表示“不存在”，从不补默认值。
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .errors import InputIntegrityError
from .events import emit, SETUP, WARNING

UV_CHANNELS = 8
UINT16_LIMIT = 65535


@dataclass
class BoneWeights:
    indices: np.ndarray  # (N,4) 骨骼索引
    weights: np.ndarray  # (N,4) 权重，>0 才算有效槽位

    def __len__(self):
        return self.indices.shape[0]

    def take(self, keep):
        return BoneWeights(np.take(self.indices, keep, axis=0),
                           np.take(self.weights, keep, axis=0))

    @classmethod
    def from_slots(cls, slots):
        """slots: 每个顶点 4 个 (bone_index, weight)"""
        slots = list(slots)
        indices = np.array([[b for b, _ in s] for s in slots], dtype=np.int64).reshape(-1, 4)
        weights = np.array([[w for _, w in s] for s in slots], dtype=np.float32).reshape(-1, 4)
        return cls(indices, weights)


@dataclass
class VertexAttributes:
    positions: np.ndarray                     # (N,3)
    bone_weights: BoneWeights
    normals: Optional[np.ndarray] = None      # (N,3)
    tangents: Optional[np.ndarray] = None     # (N,4)
    colors: Optional[np.ndarray] = None       # (N,4)
    uvs: Tuple[Optional[np.ndarray], ...] = (None,) * UV_CHANNELS

    def __post_init__(self):
        uvs = tuple(self.uvs)
        if len(uvs) > UV_CHANNELS:
            raise InputIntegrityError(f"最多支持 {UV_CHANNELS} 个 UV 通道，收到 {len(uvs)} 个")
        self.uvs = uvs + (None,) * (UV_CHANNELS - len(uvs))

    @property
    def vertex_count(self):
        return self.positions.shape[0]

    def present_buffers(self):
        """按固定顺序列出存在的数组缓冲区 (name, array)，骨骼权重单独处理"""
        out = [("positions", self.positions)]
        for name in ("normals", "tangents", "colors"):
            buf = getattr(self, name)
            if buf is not None:
                out.append((name, buf))
        for ch, buf in enumerate(self.uvs):
            if buf is not None:
                out.append((f"uv{ch}", buf))
        return out


@dataclass
class Submesh:
    triangles: np.ndarray  # (T,3)
    material: Any = None

    @property
    def triangle_count(self):
        return self.triangles.shape[0]


@dataclass
class BlendShapeFrame:
    weight: float
    delta_positions: np.ndarray               # (N,3)
    delta_normals: Optional[np.ndarray] = None
    delta_tangents: Optional[np.ndarray] = None

    def present_deltas(self):
        out = [("delta_positions", self.delta_positions)]
        if self.delta_normals is not None:
            out.append(("delta_normals", self.delta_normals))
        if self.delta_tangents is not None:
            out.append(("delta_tangents", self.delta_tangents))
        return out


@dataclass
class BlendShape:
    name: str
    frames: List[BlendShapeFrame] = field(default_factory=list)


@dataclass
class Bounds:
    min: np.ndarray  # (3,)
    max: np.ndarray  # (3,)

    @property
    def center(self):
        return (self.min + self.max) * 0.5

    @property
    def extents(self):
        return (self.max - self.min) * 0.5

    @classmethod
    def from_positions(cls, positions):
        if positions.shape[0] == 0:
            zero = np.zeros(3, dtype=np.float32)
            return cls(zero, zero.copy())
        return cls(positions.min(axis=0), positions.max(axis=0))


@dataclass
class SkinnedMesh:
    name: str
    attributes: VertexAttributes
    submeshes: List[Submesh] = field(default_factory=list)
    blend_shapes: List[BlendShape] = field(default_factory=list)
    bind_poses: Any = None  # 原样透传
    bounds: Optional[Bounds] = None

    @property
    def vertex_count(self):
        return self.attributes.vertex_count

    @property
    def triangle_count(self):
        return sum(s.triangle_count for s in self.submeshes)

    @property
    def materials(self):
        return [s.material for s in self.submeshes]

    @property
    def index_format(self):
        return "uint32" if self.vertex_count > UINT16_LIMIT else "uint16"

    def all_triangles(self):
        """所有子网格的三角形拼在一起 (T,3)"""
        if not self.submeshes:
            return np.zeros((0, 3), dtype=np.int64)
        return np.concatenate([np.asarray(s.triangles).reshape(-1, 3).astype(np.int64, copy=False)
                               for s in self.submeshes], axis=0)


def index_dtype_for(vertex_count):
    return np.uint32 if vertex_count > UINT16_LIMIT else np.uint16


def pair_submeshes(triangle_lists, materials, observer=None):
    """
    子网格与材质按位置一一配对

    材质比子网格少时，缺的位置配 None；多出来的材质被丢弃并给出警告。
    """
    materials = list(materials) if materials is not None else []
    if len(materials) > len(triangle_lists):
        emit(observer, SETUP, f"材质数 {len(materials)} 多于子网格数 {len(triangle_lists)}，多余材质被忽略",
             level=WARNING, surplus=materials[len(triangle_lists):])
    submeshes = []
    for i, tris in enumerate(triangle_lists):
        mat = materials[i] if i < len(materials) else None
        submeshes.append(Submesh(np.asarray(tris).reshape(-1, 3), mat))
    return submeshes


def check_integrity(mesh):
    """
    在构造任何输出之前检查输入网格的一致性

    Raises:
    -------
    InputIntegrityError
        缓冲区长度 != 顶点数、三角形不是 3 个一组、索引越界、权重槽位不是 4 个、索引不是整数类型
    """
    attrs = mesh.attributes
    positions = np.asarray(attrs.positions)
    if positions.ndim != 2:
        raise InputIntegrityError(f"positions 应为二维数组，实际形状 {positions.shape}")
    n = positions.shape[0]

    for name, buf in attrs.present_buffers():
        if np.asarray(buf).shape[0] != n:
            raise InputIntegrityError(f"{name} 长度 {np.asarray(buf).shape[0]} 与顶点数 {n} 不一致")

    bw = attrs.bone_weights
    for name, buf in (("bone indices", bw.indices), ("bone weights", bw.weights)):
        shape = np.asarray(buf).shape
        if len(shape) != 2 or shape[1] != 4:
            raise InputIntegrityError(f"{name} 应为 (N,4)，实际形状 {shape}")
        if shape[0] != n:
            raise InputIntegrityError(f"{name} 长度 {shape[0]} 与顶点数 {n} 不一致")
    indices_dtype = np.asarray(bw.indices).dtype
    if not np.issubdtype(indices_dtype, np.integer):
        raise InputIntegrityError(f"bone indices 必须是整数类型，实际为 {indices_dtype}")
    weights_dtype = np.asarray(bw.weights).dtype
    if not np.issubdtype(weights_dtype, np.number) or np.issubdtype(weights_dtype, np.complexfloating):
        raise InputIntegrityError(f"bone weights 必须是实数类型，实际为 {weights_dtype}")

    for i, sub in enumerate(mesh.submeshes):
        tris = np.asarray(sub.triangles)
        if tris.size % 3 != 0 or (tris.ndim == 2 and tris.shape[1] != 3) or tris.ndim > 2:
            raise InputIntegrityError(f"子网格 {i} 的索引数 {tris.size} 不是 3 的倍数")
        # 空数组（如 np.array([])）默认是 float，允许通过
        if tris.size and not np.issubdtype(tris.dtype, np.integer):
            raise InputIntegrityError(f"子网格 {i} 的三角形索引必须是整数类型，实际为 {tris.dtype}")
        if tris.size and (tris.min() < 0 or tris.max() >= n):
            bad = tris.max() if tris.max() >= n else tris.min()
            raise InputIntegrityError(f"子网格 {i} 的三角形索引 {int(bad)} 超出顶点范围 [0, {n})")

    for shape in mesh.blend_shapes:
        for j, frame in enumerate(shape.frames):
            for name, buf in frame.present_deltas():
                if np.asarray(buf).shape[0] != n:
                    raise InputIntegrityError(
                        f"BlendShape '{shape.name}' 第 {j} 帧 {name} 长度 "
                        f"{np.asarray(buf).shape[0]} 与顶点数 {n} 不一致")
    return n
