# skinclean/events.py
"""
进度事件

核心流程不直接打印，而是把每个阶段的进度发给调用方注入的 observer。
observer 只是一个可调用对象：observer(event)。传 None 表示静默。
"""

from dataclasses import dataclass, field

# 阶段标签，与原编辑器工具的日志分段一致
SETUP = "SETUP"
ANALYSIS = "ANALYSIS"
GROWTH = "GROWTH"
MAPPING = "MAPPING"
SANITY = "SANITY"
TRIANGLES = "TRIANGLES"
BLENDSHAPES = "BLENDSHAPES"
FINALIZE = "FINALIZE"

INFO = "info"
WARNING = "warning"
ERROR = "error"


@dataclass
class ProgressEvent:
    stage: str
    message: str
    level: str = INFO
    data: dict = field(default_factory=dict)


def emit(observer, stage, message, level=INFO, **data):
    """构造事件并交给 observer；observer 为 None 时什么也不做"""
    if observer is None:
        return None
    event = ProgressEvent(stage=stage, message=message, level=level, data=data)
    observer(event)
    return event


class EventRecorder:
    """把收到的事件按顺序存下来（测试和报告用）"""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def by_stage(self, stage):
        return [e for e in self.events if e.stage == stage]

    def warnings(self):
        return [e for e in self.events if e.level in (WARNING, ERROR)]


class ConsoleReporter:
    """
    终端输出

    Parameters:
    -----------
    verbose : bool
        为 False 时只打印警告和错误
    """

    _prefix = {INFO: "", WARNING: "⚠️  ", ERROR: "❌ "}

    def __init__(self, verbose=True, stream=None):
        self.verbose = verbose
        self.stream = stream

    def __call__(self, event):
        if event.level == INFO and not self.verbose:
            return
        line = f"[{event.stage}] {self._prefix.get(event.level, '')}{event.message}"
        print(line, file=self.stream)
