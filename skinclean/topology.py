# skinclean/topology.py
import numpy as np
from dataclasses import dataclass, field
from typing import List

from .events import emit, TRIANGLES, WARNING
from .mesh_data import Submesh
from .remap import translate


@dataclass
class TopologyResult:
    submeshes: List[Submesh]
    triangles_kept: int = 0
    triangles_removed: int = 0
    dropped_submeshes: List[int] = field(default_factory=list)  # 原子网格序号


def rebuild_topology(submeshes, keep_mask, remap, index_dtype=np.uint32, observer=None):
    """
    逐子网格重建三角形

    三个顶点都保留的三角形才留下，并通过 remap 翻译成新索引；
    三角形从不部分保留。过滤后为空的子网格连同它的材质一起丢弃，
    因此剩余子网格和剩余材质仍然按位置一一对应。
    """
    out = []
    kept_total = 0
    removed_total = 0
    dropped = []
    count = len(submeshes)

    for i, sub in enumerate(submeshes):
        tris = np.asarray(sub.triangles).reshape(-1, 3)
        if tris.shape[0]:
            survive = keep_mask[tris].all(axis=1)
            new_tris = translate(tris[survive], remap).astype(index_dtype)
        else:
            new_tris = np.zeros((0, 3), dtype=index_dtype)

        n_keep = int(new_tris.shape[0])
        kept_total += n_keep
        removed_total += int(tris.shape[0]) - n_keep

        if n_keep > 0:
            out.append(Submesh(new_tris, sub.material))
            emit(observer, TRIANGLES, f"子网格 {i}/{count - 1} 保留 {n_keep}/{tris.shape[0]} 个三角形，"
                 f"材质 '{sub.material if sub.material is not None else 'NULL'}'",
                 submesh=i, kept=n_keep, total=int(tris.shape[0]))
        else:
            dropped.append(i)
            emit(observer, TRIANGLES, f"子网格 {i}/{count - 1} 已无有效三角形，连同材质一起丢弃",
                 level=WARNING, submesh=i, material=sub.material)

    return TopologyResult(submeshes=out, triangles_kept=kept_total,
                          triangles_removed=removed_total, dropped_submeshes=dropped)
