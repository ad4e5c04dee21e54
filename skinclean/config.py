# skinclean/config.py
import json
from dataclasses import dataclass, fields, asdict

from .weights import MAX_REPORTED_OFFENDERS


@dataclass
class CleanupConfig:
    auto_grow_islands: bool = False
    max_reported_offenders: int = MAX_REPORTED_OFFENDERS
    verify_samples: bool = True
    name_suffix: str = "_cleaned"

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"未知的配置项: {', '.join(sorted(unknown))}")
        return cls(**data)

    def to_dict(self):
        return asdict(self)

    def merged(self, **overrides):
        """返回覆盖了部分字段的新配置，值为 None 的项忽略"""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return CleanupConfig.from_dict(data)


def load_config(path):
    """从 JSON 文件读取配置"""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"配置文件 {path} 顶层必须是对象")
    return CleanupConfig.from_dict(data)
