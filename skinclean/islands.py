# skinclean/islands.py
import numpy as np
from dataclasses import dataclass

from .events import emit, GROWTH
from .weights import VertexPartition


@dataclass
class GrowthResult:
    partition: VertexPartition
    rounds: int      # 真正发生变化的轮数
    absorbed: int    # 被额外拉入删除集合的顶点数


def mixed_triangles(keep_mask, triangles):
    """三角形里既有保留顶点又有删除顶点时为 True，(T,)"""
    kept = keep_mask[triangles]          # (T,3)
    n_kept = kept.sum(axis=1)
    return (n_kept > 0) & (n_kept < 3), kept


def grow_islands(partition, triangles, observer=None):
    """
    孤岛扩张：把跨越切割边界的三角形上剩余的保留顶点也删掉

    每一轮找出所有“混合”三角形（至少一个顶点已删除、至少一个仍保留），
    把它们的保留顶点全部移入删除集合；直到某一轮没有变化或保留集合为空。
    保留集合单调缩小，所以最多 N 轮。

    Parameters:
    -----------
    partition : VertexPartition
        WeightValidator 的输出
    triangles : np.ndarray (T,3)
        所有子网格拼接后的三角形

    Returns:
    --------
    GrowthResult
    """
    keep_mask = partition.keep_mask()
    triangles = np.asarray(triangles).reshape(-1, 3)
    start = int(keep_mask.sum())
    rounds = 0

    if triangles.shape[0] > 0:
        while keep_mask.any():
            mixed, kept = mixed_triangles(keep_mask, triangles)
            if not mixed.any():
                break
            pulled = np.unique(triangles[mixed][kept[mixed]])
            keep_mask[pulled] = False
            rounds += 1
            emit(observer, GROWTH, f"第 {rounds} 轮: {int(mixed.sum())} 个混合三角形，"
                 f"拉入 {pulled.shape[0]} 个顶点，剩余 {int(keep_mask.sum())}",
                 round=rounds, mixed=int(mixed.sum()), pulled=int(pulled.shape[0]),
                 remaining=int(keep_mask.sum()))

    grown = VertexPartition.from_keep_mask(keep_mask)
    absorbed = start - int(grown.keep.shape[0])
    emit(observer, GROWTH, f"孤岛扩张结束: {rounds} 轮，额外删除 {absorbed} 个顶点",
         rounds=rounds, absorbed=absorbed)
    return GrowthResult(partition=grown, rounds=rounds, absorbed=absorbed)
