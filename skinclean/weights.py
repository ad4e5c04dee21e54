# skinclean/weights.py
import numpy as np
from dataclasses import dataclass, field
from typing import List

from .skeleton import BoneTable

MAX_REPORTED_OFFENDERS = 20

OUT_OF_RANGE = "out_of_range"
MISSING_BONE = "missing_bone"


@dataclass
class VertexPartition:
    """keep / remove 两个升序索引序列，互不相交，并集为 0..N-1"""
    keep: np.ndarray
    remove: np.ndarray
    vertex_count: int

    @classmethod
    def from_keep_mask(cls, keep_mask):
        keep_mask = np.asarray(keep_mask, dtype=bool)
        return cls(keep=np.flatnonzero(keep_mask),
                   remove=np.flatnonzero(~keep_mask),
                   vertex_count=keep_mask.shape[0])

    def keep_mask(self):
        mask = np.zeros(self.vertex_count, dtype=bool)
        mask[self.keep] = True
        return mask

    @property
    def is_noop(self):
        return self.keep.shape[0] == self.vertex_count

    @property
    def is_empty(self):
        return self.keep.shape[0] == 0


@dataclass
class Offender:
    vertex: int
    slot: int
    bone_index: int
    reason: str  # OUT_OF_RANGE 或 MISSING_BONE


@dataclass
class WeightClassification:
    partition: VertexPartition
    offenders: List[Offender] = field(default_factory=list)
    bone_count: int = 0

    @property
    def orphaned_count(self):
        return int(self.partition.remove.shape[0])


def _present_mask(bones):
    if isinstance(bones, BoneTable):
        return bones.present_mask()
    return np.asarray(bones, dtype=bool).reshape(-1)


def orphaned_slots(indices, weights, present):
    """
    逐槽位判定 (N,4) bool：槽位有效（weight>0）且骨骼越界或缺失

    NaN 和负权重在 >0 比较中为 False，按无效槽位处理。
    返回 (bad, out_of_range)
    """
    indices = np.asarray(indices)
    weights = np.asarray(weights)
    nb = present.shape[0]

    active = weights > 0
    out_of_range = (indices < 0) | (indices >= nb)
    if nb > 0:
        safe = np.clip(indices, 0, nb - 1)
        missing = ~present[safe] & ~out_of_range
    else:
        missing = np.zeros(indices.shape, dtype=bool)
    bad = active & (out_of_range | missing)
    return bad, out_of_range


def classify_vertices(bone_weights, bones, max_reported=MAX_REPORTED_OFFENDERS):
    """
    按骨骼权重把顶点分为保留 / 删除两组

    Parameters:
    -----------
    bone_weights : BoneWeights
        每个顶点 4 个 (骨骼索引, 权重) 槽位
    bones : BoneTable 或 (B,) bool
        骨骼存在性
    max_reported : int
        最多记录多少个问题顶点的详细原因

    Returns:
    --------
    WeightClassification
        没有任何有效槽位的顶点总是保留；骨骼表为空时所有带权重的顶点都会被删除。
    """
    present = _present_mask(bones)
    indices = np.asarray(bone_weights.indices)
    bad, out_of_range = orphaned_slots(indices, bone_weights.weights, present)
    orphaned = bad.any(axis=1)
    partition = VertexPartition.from_keep_mask(~orphaned)

    offenders = []
    if max_reported > 0 and partition.remove.shape[0] > 0:
        rows = partition.remove[:max_reported]
        slots = bad[rows].argmax(axis=1)  # 第一个出问题的槽位
        for v, s in zip(rows, slots):
            offenders.append(Offender(
                vertex=int(v),
                slot=int(s),
                bone_index=int(indices[v, s]),
                reason=OUT_OF_RANGE if out_of_range[v, s] else MISSING_BONE,
            ))

    return WeightClassification(partition=partition, offenders=offenders, bone_count=int(present.shape[0]))
