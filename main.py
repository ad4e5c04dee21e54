#!/usr/bin/env python3
"""
孤立骨骼权重清理 - 主程序
功能：删除权重指向已不存在骨骼的顶点，重建顶点缓冲、子网格三角形和 BlendShape

运行环境要求：
- Python 3.8+
- NumPy
- trimesh

使用方法：
    python main.py body.npz --grow-islands -v
    python main.py --help
"""

import sys
import os

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def check_dependencies():
    """检查依赖项"""
    missing_deps = []

    try:
        import numpy
    except ImportError:
        missing_deps.append("numpy")

    try:
        import trimesh
    except ImportError:
        missing_deps.append("trimesh")

    if missing_deps:
        print("❌ 缺少依赖项:")
        for dep in missing_deps:
            print(f"   - {dep}")
        print("\n请使用以下命令安装缺失的依赖项:")
        print(f"   pip install {' '.join(missing_deps)}")
        return False

    return True


def main():
    """主函数 - 解析参数并执行清理"""
    if not check_dependencies():
        return 1

    from skinclean.cli import main as run_cli
    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
