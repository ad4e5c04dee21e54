# skinclean/errors.py
"""清理流程的异常类型。全部继承 ValueError，与 rigging 加载器的报错方式一致。"""


class CleanupError(ValueError):
    """清理流程中所有可预期失败的基类"""


class InputIntegrityError(CleanupError):
    """输入缓冲区长度与顶点数不符，或三角形索引越界"""


class DegenerateResultError(CleanupError):
    """校验（及孤岛扩张）之后没有任何顶点可保留"""


class MeshFormatError(CleanupError):
    """网格文件缺少必需字段或格式无法识别"""
