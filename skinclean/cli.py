# skinclean/cli.py
"""
命令行入口

    skinclean body.npz --grow-islands --report report.json -v
"""

import argparse
import sys

from .config import CleanupConfig, load_config
from .errors import MeshFormatError
from .events import ConsoleReporter
from .mesh_io import (load_skinned_mesh, save_skinned_mesh, derive_output_path,
                      unique_path, export_preview, write_report)
from .pipeline import clean_orphaned_weights, FAILED, NO_CHANGES

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BAD_INPUT = 2


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="skinclean",
        description="删除骨骼权重指向不存在骨骼的顶点，并重建一致的网格")
    parser.add_argument("input", help="输入 .npz 蒙皮网格")
    parser.add_argument("-o", "--output", help="输出路径（默认: 同目录下 <name>_cleaned.npz）")
    parser.add_argument("--grow-islands", action="store_true", default=None,
                        help="同时删除切割边界上残留的孤岛顶点")
    parser.add_argument("--config", help="JSON 配置文件")
    parser.add_argument("--report", help="把统计信息写入 JSON 文件")
    parser.add_argument("--preview", help="额外导出静态预览网格（.obj/.glb/.ply）")
    parser.add_argument("--no-verify", action="store_true", help="跳过抽样校验")
    parser.add_argument("--dry-run", action="store_true", help="只分析，不写文件")
    parser.add_argument("-v", "--verbose", action="store_true", help="打印每个阶段的详细信息")
    return parser.parse_args(argv)


def build_config(args):
    config = load_config(args.config) if args.config else CleanupConfig()
    return config.merged(
        auto_grow_islands=args.grow_islands,
        verify_samples=False if args.no_verify else None,
    )


def main(argv=None):
    args = parse_args(argv)
    reporter = ConsoleReporter(verbose=args.verbose)

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        print(f"[ERROR] 配置无效: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    try:
        mesh, bones = load_skinned_mesh(args.input, observer=reporter)
    except MeshFormatError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    result = clean_orphaned_weights(mesh, bones, config=config, observer=reporter)

    if result.status == FAILED:
        print(f"[ERROR] 清理失败: {result.reason}", file=sys.stderr)
        if args.report:
            write_report(args.report, result, source=args.input)
        return EXIT_FAILED

    if result.status == NO_CHANGES:
        print("[INFO] 所有顶点都绑定在存在的骨骼上，未做任何修改")
        if args.report:
            write_report(args.report, result, source=args.input)
        return EXIT_OK

    output = args.output or unique_path(derive_output_path(args.input, result.mesh.name))
    if args.dry_run:
        print(f"[DRY-RUN] 将删除 {result.summary.vertices_removed} 个顶点，输出到 {output}")
    else:
        try:
            save_skinned_mesh(result.mesh, bones, output)
            if args.preview:
                export_preview(result.mesh, args.preview)
        except OSError as e:
            print(f"[ERROR] 保存失败: {e}", file=sys.stderr)
            return EXIT_FAILED
        print(f"[INFO] ✅ 成功删除 {result.summary.vertices_removed} 个顶点、"
              f"{result.summary.triangles_removed} 个三角形，新网格保存到: {output}")

    if args.report:
        write_report(args.report, result, source=args.input,
                     output=None if args.dry_run else output)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
