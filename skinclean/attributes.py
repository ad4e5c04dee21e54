# skinclean/attributes.py
import numpy as np

from .mesh_data import VertexAttributes


def take_rows(buf, keep):
    """new[i] = old[keep[i]]，纯选择，不做插值"""
    if buf is None:
        return None
    return np.take(np.asarray(buf), keep, axis=0)


def compact_attributes(attributes, keep):
    """
    按 keep 过滤所有逐顶点缓冲区

    不存在的缓冲区（包括任意一个 UV 通道）在输出中依然不存在。
    """
    keep = np.asarray(keep, dtype=np.int64)
    return VertexAttributes(
        positions=take_rows(attributes.positions, keep),
        bone_weights=attributes.bone_weights.take(keep),
        normals=take_rows(attributes.normals, keep),
        tangents=take_rows(attributes.tangents, keep),
        colors=take_rows(attributes.colors, keep),
        uvs=tuple(take_rows(uv, keep) for uv in attributes.uvs),
    )
