# skinclean/skeleton.py
import numpy as np
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Bone:
    name: str
    parent: int = -1  # -1 表根


class BoneTable:
    """
    蒙皮渲染器上的骨骼列表

    每一项要么是 Bone，要么是 None（骨骼已被删除）。
    清理流程只关心 present_mask()，不会解引用具体骨骼。
    """

    def __init__(self, bones=None):
        self.bones: List[Optional[Bone]] = list(bones) if bones is not None else []
        self.n = len(self.bones)

    @classmethod
    def from_names(cls, names):
        """从名字列表构建；None 表示该槽位的骨骼已缺失"""
        return cls([Bone(name) if name is not None else None for name in names])

    def add_bone(self, bone):
        self.bones.append(bone)
        self.n = len(self.bones)

    def present_mask(self):
        return np.array([b is not None for b in self.bones], dtype=bool)  # (B,)

    def names(self):
        return [b.name if b is not None else None for b in self.bones]

    def missing_indices(self):
        return [i for i, b in enumerate(self.bones) if b is None]

    def __len__(self):
        return self.n
