# skinclean/blendshapes.py
from .attributes import take_rows
from .events import emit, BLENDSHAPES
from .mesh_data import BlendShape, BlendShapeFrame


def remap_frame(frame, keep):
    return BlendShapeFrame(
        weight=frame.weight,
        delta_positions=take_rows(frame.delta_positions, keep),
        delta_normals=take_rows(frame.delta_normals, keep),
        delta_tangents=take_rows(frame.delta_tangents, keep),
    )


def remap_blend_shapes(shapes, keep, observer=None):
    """
    按原始顶点编号过滤每一帧的 delta 缓冲区

    形状数量、名字、帧顺序和帧权重保持不变。
    没有帧的形状按空形状保留，不会被省略。
    """
    out = []
    total = len(shapes)
    for idx, shape in enumerate(shapes):
        emit(observer, BLENDSHAPES, f"处理 '{shape.name}' ({idx + 1}/{total})，共 {len(shape.frames)} 帧",
             shape=shape.name, frames=len(shape.frames))
        out.append(BlendShape(name=shape.name, frames=[remap_frame(f, keep) for f in shape.frames]))
    if not shapes:
        emit(observer, BLENDSHAPES, "原网格没有 BlendShape")
    return out
