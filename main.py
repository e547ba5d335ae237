"""
Arbormesh - Procedural Tree Mesh Demo

Generates one of the preset trees, then:
1. logs generation statistics
2. writes branches and leaves to a Wavefront OBJ file
3. saves a matplotlib preview image

Identical seeds always produce identical files.
"""

import argparse
import logging
from pathlib import Path

from arbormesh import GenerationStats, IndexWidth, TreeSettings, grow_tree, make_draw_source
from arbormesh.export import write_obj
from arbormesh.preview import save_tree_mesh

PRESETS = {
    "deciduous": TreeSettings.deciduous,
    "evergreen": TreeSettings.evergreen,
    "bare": TreeSettings.bare_trunk,
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a procedural tree mesh")
    parser.add_argument("--preset", choices=sorted(PRESETS), default="deciduous")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--out", type=Path, default=Path("output"))
    parser.add_argument(
        "--u32", action="store_true", help="Use 32-bit indices instead of 16-bit"
    )
    parser.add_argument("--no-preview", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = PRESETS[args.preset]()
    index_width = IndexWidth.U32 if args.u32 else IndexWidth.U16
    stats = GenerationStats()
    mesh = grow_tree(settings, make_draw_source(args.seed), index_width, stats)

    print("\n" + "=" * 60)
    print(f"  ARBORMESH: {args.preset} tree, seed {args.seed}")
    print("=" * 60)
    print(f"  Branches:        {stats.branches}")
    print(f"  Trunk pieces:    {stats.continuations + 1}")
    print(f"  Max depth:       {stats.max_depth}")
    print(f"  Branch vertices: {mesh.branches.vertex_count}")
    print(f"  Branch tris:     {mesh.branches.triangle_count}")
    print(f"  Leaf clusters:   {stats.leaf_clusters}")
    print(f"  Leaf quads:      {stats.leaf_quads}")

    args.out.mkdir(parents=True, exist_ok=True)
    stem = f"{args.preset}_{args.seed}"
    obj_path = args.out / f"{stem}.obj"
    write_obj(obj_path, mesh)
    print(f"\nSaved to {obj_path}")

    if not args.no_preview:
        png_path = args.out / f"{stem}.png"
        save_tree_mesh(png_path, mesh)
        print(f"Saved to {png_path}")


if __name__ == "__main__":
    main()
