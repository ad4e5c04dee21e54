# skinclean/pipeline.py
"""
孤立骨骼权重清理流程

原始缓冲区 -> 权重校验 -> (孤岛扩张) -> 索引重映射
          -> {属性压缩, 拓扑重建, BlendShape 重映射} -> 新网格 + 统计

先检查、后提交：所有检查都在构造任何输出缓冲区之前完成，
新网格只在全部构造完毕后才交给调用方。
"""

import numpy as np
from dataclasses import dataclass, field, asdict
from typing import List, Optional

from . import events
from .attributes import compact_attributes
from .blendshapes import remap_blend_shapes
from .config import CleanupConfig
from .errors import CleanupError, DegenerateResultError
from .events import emit, WARNING, ERROR
from .islands import grow_islands
from .mesh_data import SkinnedMesh, Bounds, check_integrity, index_dtype_for
from .remap import build_remap
from .topology import rebuild_topology
from .weights import classify_vertices, Offender, OUT_OF_RANGE

CLEANED = "cleaned"
NO_CHANGES = "no_changes"
FAILED = "failed"


@dataclass
class CleanupSummary:
    original_vertex_count: int = 0
    vertex_count: int = 0
    vertices_removed: int = 0
    orphaned_vertices: int = 0   # 权重直接失效的顶点
    island_vertices: int = 0     # 孤岛扩张额外删除的顶点
    growth_rounds: int = 0
    triangles_kept: int = 0
    triangles_removed: int = 0
    submeshes_removed: int = 0
    blend_shapes: int = 0

    def to_dict(self):
        return asdict(self)


@dataclass
class SampleCheck:
    new_index: int
    old_index: int
    matches: dict = field(default_factory=dict)

    @property
    def ok(self):
        return all(self.matches.values())


@dataclass
class CleanupResult:
    status: str
    mesh: Optional[SkinnedMesh] = None
    summary: CleanupSummary = field(default_factory=CleanupSummary)
    reason: Optional[str] = None
    error: Optional[CleanupError] = None
    offenders: List[Offender] = field(default_factory=list)
    samples: List[SampleCheck] = field(default_factory=list)

    @property
    def ok(self):
        return self.status != FAILED

    def to_dict(self):
        return {
            "status": self.status,
            "reason": self.reason,
            "mesh_name": self.mesh.name if self.mesh is not None else None,
            "summary": self.summary.to_dict(),
            "offenders": [asdict(o) for o in self.offenders],
            "samples": [{"new_index": s.new_index, "old_index": s.old_index, "ok": s.ok}
                        for s in self.samples],
        }


def sample_indices(n):
    """抽查的新索引：首、1/4、1/2、3/4、尾"""
    if n <= 0:
        return []
    picks = [0, n // 4, n // 2, (n // 4) * 3, n - 1]
    return sorted(set(i for i in picks if 0 <= i < n))


def _same_bits(a, b):
    return np.asarray(a).tobytes() == np.asarray(b).tobytes()


def spot_check(source, cleaned, keep, observer=None):
    """
    抽查若干新顶点，确认它们与源顶点逐位相同

    比较位置、法线、骨骼权重，以及每个 BlendShape 帧中非零的位置 delta。
    """
    src, dst = source.attributes, cleaned.attributes
    checks = []
    for new_idx in sample_indices(keep.shape[0]):
        old_idx = int(keep[new_idx])
        matches = {"position": _same_bits(src.positions[old_idx], dst.positions[new_idx])}
        if src.normals is not None:
            matches["normal"] = _same_bits(src.normals[old_idx], dst.normals[new_idx])
        matches["bone_weight"] = (
            _same_bits(src.bone_weights.indices[old_idx], dst.bone_weights.indices[new_idx])
            and _same_bits(src.bone_weights.weights[old_idx], dst.bone_weights.weights[new_idx]))
        for shape_src, shape_dst in zip(source.blend_shapes, cleaned.blend_shapes):
            for j, (f_src, f_dst) in enumerate(zip(shape_src.frames, shape_dst.frames)):
                delta = np.asarray(f_src.delta_positions[old_idx])
                if np.any(delta != 0):
                    matches[f"{shape_src.name}[{j}]"] = _same_bits(delta, f_dst.delta_positions[new_idx])

        check = SampleCheck(new_index=new_idx, old_index=old_idx, matches=matches)
        checks.append(check)
        emit(observer, events.SANITY,
             f"新索引 {new_idx} (旧索引 {old_idx}) | Match={check.ok}",
             level=events.INFO if check.ok else WARNING,
             new_index=new_idx, old_index=old_idx, matches=dict(matches))
    return checks


def _report_offenders(classification, observer):
    for o in classification.offenders:
        why = (f"超出骨骼数量 {classification.bone_count}" if o.reason == OUT_OF_RANGE
               else "对应骨骼已缺失")
        emit(observer, events.ANALYSIS,
             f"顶点 {o.vertex} 权重孤立: boneIndex{o.slot} ({o.bone_index}) {why}",
             level=WARNING, vertex=o.vertex, slot=o.slot, bone_index=o.bone_index, reason=o.reason)


def run_cleanup(mesh, bones, config=None, observer=None):
    """
    执行完整清理流程

    Parameters:
    -----------
    mesh : SkinnedMesh
        只读输入，不会被修改
    bones : BoneTable 或 (B,) bool
        渲染器上的骨骼表
    config : CleanupConfig, optional
    observer : callable, optional
        接收 ProgressEvent

    Returns:
    --------
    CleanupResult
        status 为 CLEANED 或 NO_CHANGES

    Raises:
    -------
    InputIntegrityError
        输入缓冲区不一致
    DegenerateResultError
        没有任何顶点可保留（包括孤岛扩张删光所有顶点的情况）
    """
    config = config or CleanupConfig()

    emit(observer, events.SETUP,
         f"原网格 '{mesh.name}' | 顶点: {mesh.vertex_count}, 子网格: {len(mesh.submeshes)}, "
         f"BlendShape: {len(mesh.blend_shapes)}, 骨骼: {len(bones)}",
         vertices=mesh.vertex_count, submeshes=len(mesh.submeshes),
         blend_shapes=len(mesh.blend_shapes), bones=len(bones))

    n = check_integrity(mesh)

    classification = classify_vertices(mesh.attributes.bone_weights, bones,
                                       max_reported=config.max_reported_offenders)
    _report_offenders(classification, observer)
    partition = classification.partition
    emit(observer, events.ANALYSIS,
         f"权重分析完成: 保留 {partition.keep.shape[0]}，删除 {partition.remove.shape[0]}",
         keep=int(partition.keep.shape[0]), remove=int(partition.remove.shape[0]))

    rounds = 0
    absorbed = 0
    if config.auto_grow_islands and partition.remove.shape[0] > 0:
        growth = grow_islands(partition, mesh.all_triangles(), observer=observer)
        partition, rounds, absorbed = growth.partition, growth.rounds, growth.absorbed

    summary = CleanupSummary(
        original_vertex_count=n,
        orphaned_vertices=classification.orphaned_count,
        island_vertices=absorbed,
        growth_rounds=rounds,
        blend_shapes=len(mesh.blend_shapes),
    )

    if partition.is_noop:
        summary.vertex_count = n
        summary.triangles_kept = mesh.triangle_count
        emit(observer, events.ANALYSIS, "没有发现孤立骨骼权重，无需修改")
        return CleanupResult(status=NO_CHANGES, summary=summary, reason="no orphaned bone weights")

    if partition.is_empty:
        raise DegenerateResultError(
            "没有任何顶点权重指向有效骨骼，无法生成新网格" if absorbed == 0
            else f"孤岛扩张 {rounds} 轮后删除了全部顶点，无法生成新网格")

    keep = partition.keep
    remap = build_remap(keep, n)
    keep_mask = remap >= 0
    emit(observer, events.MAPPING, f"索引映射完成: {n} -> {keep.shape[0]}",
         old_count=n, new_count=int(keep.shape[0]))

    attributes = compact_attributes(mesh.attributes, keep)
    topology = rebuild_topology(mesh.submeshes, keep_mask, remap,
                                index_dtype=index_dtype_for(keep.shape[0]), observer=observer)
    shapes = remap_blend_shapes(mesh.blend_shapes, keep, observer=observer)

    cleaned = SkinnedMesh(
        name=mesh.name + config.name_suffix,
        attributes=attributes,
        submeshes=topology.submeshes,
        blend_shapes=shapes,
        bind_poses=mesh.bind_poses,
        bounds=Bounds.from_positions(attributes.positions),
    )

    samples = spot_check(mesh, cleaned, keep, observer=observer) if config.verify_samples else []

    summary.vertex_count = cleaned.vertex_count
    summary.vertices_removed = n - cleaned.vertex_count
    summary.triangles_kept = topology.triangles_kept
    summary.triangles_removed = topology.triangles_removed
    summary.submeshes_removed = len(topology.dropped_submeshes)

    emit(observer, events.FINALIZE,
         f"新网格 '{cleaned.name}' | 删除 {summary.vertices_removed} 个顶点，"
         f"{summary.triangles_removed} 个三角形，索引格式 {cleaned.index_format}",
         **summary.to_dict())
    return CleanupResult(status=CLEANED, mesh=cleaned, summary=summary,
                         offenders=classification.offenders, samples=samples)


def clean_orphaned_weights(mesh, bones, config=None, observer=None):
    """run_cleanup 的包装：本包的失败不抛出，而是以 FAILED 结果返回"""
    try:
        return run_cleanup(mesh, bones, config=config, observer=observer)
    except CleanupError as e:
        emit(observer, events.FINALIZE, f"失败: {e}", level=ERROR, error=type(e).__name__)
        return CleanupResult(status=FAILED, reason=str(e), error=e)
