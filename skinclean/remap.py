# skinclean/remap.py
import numpy as np

UNMAPPED = -1


def build_remap(keep, vertex_count):
    """
    旧索引 -> 新索引

    remap[keep[i]] = i；不在 keep 里的索引映射为 UNMAPPED，不会复用任何有效值。
    keep 必须严格升序，这样映射在 keep 上是严格递增的双射。
    """
    keep = np.asarray(keep, dtype=np.int64)
    if keep.size and (keep[0] < 0 or keep[-1] >= vertex_count):
        raise ValueError(f"keep 索引超出范围 [0, {vertex_count})")
    if keep.size > 1 and not (np.diff(keep) > 0).all():
        raise ValueError("keep 必须严格升序且无重复")

    remap = np.full(vertex_count, UNMAPPED, dtype=np.int64)
    remap[keep] = np.arange(keep.shape[0], dtype=np.int64)
    return remap


def translate(indices, remap):
    """用 remap 翻译一组索引；遇到未映射的索引直接报错"""
    out = remap[np.asarray(indices)]
    if (out == UNMAPPED).any():
        raise ValueError("存在指向已删除顶点的索引")
    return out
