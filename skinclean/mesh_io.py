# skinclean/mesh_io.py
"""
蒙皮网格的读写

格式为 .npz：逐顶点缓冲区、子网格、绑定姿态、BlendShape 各自一个数组，
骨骼名、材质名、BlendShape 结构等放在 JSON 字符串 meta 里。
缺失的骨骼在 meta["bones"] 中记为 null。
"""

import json
from pathlib import Path

import numpy as np
import trimesh

from .errors import MeshFormatError
from .mesh_data import (BoneWeights, VertexAttributes, BlendShape, BlendShapeFrame,
                        SkinnedMesh, Bounds, UV_CHANNELS, pair_submeshes)
from .skeleton import BoneTable

FORMAT_VERSION = 1
OPTIONAL_BUFFERS = ("normals", "tangents", "colors")


def _frame_key(shape_idx, frame_idx, kind):
    return f"bs{shape_idx}_f{frame_idx}_{kind}"


def save_skinned_mesh(mesh, bones, path):
    """把网格和骨骼表写入 .npz 文件"""
    attrs = mesh.attributes
    arrays = {
        "positions": np.asarray(attrs.positions),
        "bone_indices": np.asarray(attrs.bone_weights.indices),
        "bone_weights": np.asarray(attrs.bone_weights.weights),
    }
    for name in OPTIONAL_BUFFERS:
        buf = getattr(attrs, name)
        if buf is not None:
            arrays[name] = np.asarray(buf)
    for ch, uv in enumerate(attrs.uvs):
        if uv is not None:
            arrays[f"uv{ch}"] = np.asarray(uv)
    for i, sub in enumerate(mesh.submeshes):
        arrays[f"submesh_{i}"] = np.asarray(sub.triangles)
    if mesh.bind_poses is not None:
        arrays["bind_poses"] = np.asarray(mesh.bind_poses)

    shapes_meta = []
    for si, shape in enumerate(mesh.blend_shapes):
        frames_meta = []
        for fi, frame in enumerate(shape.frames):
            arrays[_frame_key(si, fi, "positions")] = np.asarray(frame.delta_positions)
            if frame.delta_normals is not None:
                arrays[_frame_key(si, fi, "normals")] = np.asarray(frame.delta_normals)
            if frame.delta_tangents is not None:
                arrays[_frame_key(si, fi, "tangents")] = np.asarray(frame.delta_tangents)
            frames_meta.append({
                "weight": float(frame.weight),
                "normals": frame.delta_normals is not None,
                "tangents": frame.delta_tangents is not None,
            })
        shapes_meta.append({"name": shape.name, "frames": frames_meta})

    meta = {
        "version": FORMAT_VERSION,
        "name": mesh.name,
        "bones": bones.names(),
        "materials": [None if m is None else str(m) for m in mesh.materials],
        "submesh_count": len(mesh.submeshes),
        "blend_shapes": shapes_meta,
    }
    arrays["meta"] = np.array(json.dumps(meta, ensure_ascii=False))

    path = Path(path)
    with open(path, 'wb') as f:
        np.savez_compressed(f, **arrays)
    return path


def _parse_meta(raw, path):
    try:
        meta = json.loads(str(raw))
    except ValueError as e:
        raise MeshFormatError(f"{path} 的 meta 不是合法 JSON: {e}") from e
    if not isinstance(meta, dict):
        raise MeshFormatError(f"{path} 的 meta 应为 JSON 对象，实际为 {type(meta).__name__}")
    return meta


def load_skinned_mesh(path, observer=None):
    """
    从 .npz 文件读取网格

    Returns:
    --------
    mesh : SkinnedMesh
    bones : BoneTable

    Raises:
    -------
    MeshFormatError
        文件无法读取、缺少必需数组，或 meta 结构不对
    """
    try:
        data = np.load(path, allow_pickle=False)
    except (OSError, ValueError) as e:
        raise MeshFormatError(f"无法读取网格文件 {path}: {e}") from e

    with data:
        if "meta" not in data.files:
            raise MeshFormatError(f"{path} 缺少 meta 字段")
        meta = _parse_meta(data["meta"], path)
        for key in ("positions", "bone_indices", "bone_weights"):
            if key not in data.files:
                raise MeshFormatError(f"{path} 缺少必需数组 '{key}'")
        try:
            mesh, bones = _build_mesh(data, meta, path, observer)
        except MeshFormatError:
            raise
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise MeshFormatError(f"{path} 的 meta 内容无效: {e!r}") from e
    return mesh, bones


def _build_mesh(data, meta, path, observer):
    def opt(key):
        return data[key] if key in data.files else None

    attributes = VertexAttributes(
        positions=data["positions"],
        bone_weights=BoneWeights(data["bone_indices"], data["bone_weights"]),
        normals=opt("normals"),
        tangents=opt("tangents"),
        colors=opt("colors"),
        uvs=tuple(opt(f"uv{ch}") for ch in range(UV_CHANNELS)),
    )

    triangle_lists = []
    for i in range(int(meta.get("submesh_count", 0))):
        key = f"submesh_{i}"
        if key not in data.files:
            raise MeshFormatError(f"{path} 缺少子网格数组 '{key}'")
        triangle_lists.append(data[key])
    submeshes = pair_submeshes(triangle_lists, meta.get("materials", []), observer=observer)

    shapes = []
    for si, shape_meta in enumerate(meta.get("blend_shapes", [])):
        frames = []
        for fi, frame_meta in enumerate(shape_meta.get("frames", [])):
            key = _frame_key(si, fi, "positions")
            if key not in data.files:
                raise MeshFormatError(f"{path} 缺少 BlendShape 数组 '{key}'")
            frames.append(BlendShapeFrame(
                weight=float(frame_meta["weight"]),
                delta_positions=data[key],
                delta_normals=opt(_frame_key(si, fi, "normals")) if frame_meta.get("normals") else None,
                delta_tangents=opt(_frame_key(si, fi, "tangents")) if frame_meta.get("tangents") else None,
            ))
        shapes.append(BlendShape(name=shape_meta["name"], frames=frames))

    mesh = SkinnedMesh(
        name=meta.get("name") or Path(path).stem,
        attributes=attributes,
        submeshes=submeshes,
        blend_shapes=shapes,
        bind_poses=opt("bind_poses"),
        bounds=Bounds.from_positions(attributes.positions),
    )
    return mesh, BoneTable.from_names(meta.get("bones", []))


def to_trimesh(mesh):
    """所有子网格合成一个静态 trimesh，用于预览或导出 OBJ/GLB"""
    kwargs = {}
    if mesh.attributes.normals is not None:
        kwargs["vertex_normals"] = mesh.attributes.normals
    return trimesh.Trimesh(vertices=mesh.attributes.positions,
                           faces=mesh.all_triangles().astype(np.int64),
                           process=False, **kwargs)


def export_preview(mesh, path):
    """导出静态预览网格，格式由扩展名决定"""
    to_trimesh(mesh).export(str(path))
    return Path(path)


def derive_output_path(source_path, mesh_name, ext=".npz"):
    """
    新网格的保存位置：与源文件同目录，以新网格名命名

    source_path 为 None 时存到当前目录。
    """
    stem = Path(mesh_name).stem if Path(mesh_name).suffix == ext else mesh_name
    folder = Path(source_path).parent if source_path is not None else Path(".")
    return folder / f"{stem}{ext}"


def unique_path(path):
    """路径已被占用时依次尝试 'name 1.ext'、'name 2.ext' ..."""
    path = Path(path)
    if not path.exists():
        return path
    i = 1
    while True:
        candidate = path.with_name(f"{path.stem} {i}{path.suffix}")
        if not candidate.exists():
            return candidate
        i += 1


def write_report(path, result, **extra):
    """清理结果写成 JSON 报告"""
    payload = result.to_dict()
    payload.update({k: (str(v) if isinstance(v, Path) else v) for k, v in extra.items()})
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    return Path(path)
