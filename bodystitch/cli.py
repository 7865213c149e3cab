"""
Command-line whole-body stitching.

Usage:
    bodystitch -i torso.nii.gz pelvis.nii.gz legs.nii.gz -o body.nii.gz
    bodystitch -i "torso.nii.gz pelvis.nii.gz" legs.nii.gz -o body.nii.gz -m 5 -a

Inputs are stitched in the order given; with first-contributor-wins (the
default) earlier volumes take precedence in overlaps.
"""

import logging
import os
import sys
import timeit
from argparse import ArgumentParser

from .config import DEFAULT_AVERAGE_OVERLAP, DEFAULT_MARGIN
from .errors import StitchingError
from .preview import save_preview
from .stitcher import VolumeStitcher
from .volume_ops import describe, load_volume, save_volume


def build_parser():
    parser = ArgumentParser(
        prog="bodystitch",
        description="Stitch overlapping volumes into one continuous volume along z",
    )
    parser.add_argument(
        "-i", "--images",
        nargs="+",
        default=[],
        help="filenames of images, in stitching order",
    )
    parser.add_argument(
        "-o", "--output",
        help="filename of output image",
    )
    parser.add_argument(
        "-m", "--margin",
        type=int,
        default=DEFAULT_MARGIN,
        help="image margin (in slices) that is ignored when stitching",
    )
    parser.add_argument(
        "-a", "--averaging",
        action="store_true",
        default=DEFAULT_AVERAGE_OVERLAP,
        help="enable averaging in overlap areas",
    )
    parser.add_argument(
        "--preview",
        default=None,
        help="also save a PNG with coronal and sagittal MIPs of the result",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="log every stitching step",
    )
    return parser


def split_paths(tokens):
    """Each token may hold several whitespace-separated paths"""
    paths = []
    for token in tokens:
        paths.extend(token.split())
    return paths


def main(argv=None):
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)
    if not args.output:
        parser.error("--output is required")
    if args.margin < 0:
        parser.error("--margin must be non-negative")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout,
    )

    files = split_paths(args.images)

    print("=" * 70)
    print("WHOLE-BODY STITCHING")
    print("=" * 70)
    print(f"  Images:    {len(files)}")
    print(f"  Output:    {args.output}")
    print(f"  Margin:    {args.margin} slices")
    print(f"  Overlaps:  {'averaged' if args.averaging else 'first contributor wins'}")
    print()

    try:
        start = timeit.default_timer()

        volumes = []
        for path in files:
            img = load_volume(path)
            volumes.append(img)
            print(f"    {os.path.basename(os.path.normpath(path))}: {describe(img)}")

        print("stitching image...")
        stitcher = VolumeStitcher(margin=args.margin, average_overlap=args.averaging)
        result = stitcher.stitch(volumes)
        save_volume(result, args.output)

        stop = timeit.default_timer()
        print(f"done. took {int(round((stop - start) * 1000))} ms")

        if args.preview:
            save_preview(result, args.preview, ranges=stitcher.ranges,
                         title=os.path.basename(args.output))
            print(f"  ✓ Preview: {args.preview}")

    except StitchingError as e:
        print(f"\n  ❌ Error: {e}")
        return 1

    print(f"\n  ✓ Saved: {args.output}")
    print(f"  ✓ Final size: {result.GetSize()} ({result.GetSize()[2]} slices)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
