# tools/preview_obj.py
import sys
from skinclean.mesh_io import load_skinned_mesh, to_trimesh


if __name__ == '__main__':
    path = sys.argv[1]
    mesh, bones = load_skinned_mesh(path)
    print(mesh.name, mesh.attributes.positions.shape, mesh.all_triangles().shape, f"bones={len(bones)}")
    tm = to_trimesh(mesh)
    if len(sys.argv) > 2:
        tm.export(sys.argv[2])  # 导出 obj/glb/ply
    else:
        tm.show()  # trimesh 自带快速预览
