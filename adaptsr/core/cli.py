#!/usr/bin/env python3
"""
ADAPTSR Unified CLI

Provides commands for:
- methods: List registered reference resamplers
- generate: Build training pairs (X / offset / Y / weight) from HR images
- validate: Check a generated dataset against its metadata
- downsample: Cubic HR -> LR downscale of images
- rebuild: Upsample LR images with reference resamplers
- compare: PSNR / SSIM / MSE between an HR reference and rebuilt images
- synthetic: Write a small synthetic HR corpus
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from tqdm import tqdm

from .config import ResampleConfig, GeneratorConfig, KernelKind, LumaStandard, OffsetConvention, ContrastMode
from .errors import ValidationError, MalformedInputError
from .generator import generate_dataset
from .validation import validate_dataset
from .imageio import IMAGE_EXTENSIONS, list_images, load_image, save_image, to_float, align, downscale
from .compare import compare_files, format_report
from .synthetic import generate_test_suite
from .upsampling import list_upsamplings, get_upsampling, get_all_methods_info, run_upsampling


def _image_inputs(path: Path):
    """A single image file, or every image in a directory."""
    if path.is_dir():
        return list_images(path, IMAGE_EXTENSIONS)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    return [path]


def _resample_config(args) -> ResampleConfig:
    return ResampleConfig(
        scale=args.scale,
        kernel=args.kernel,
        shape_param=args.shape_param,
        window_radius=args.window_radius,
        luma=args.luma,
        convention=args.convention,
        contrast=args.contrast,
        clamp_negative_weights=args.clamp_negative
    )


def cmd_methods(args):
    """List reference resamplers."""
    print("ADAPTSR Reference Resamplers")
    print("=" * 40)
    for name, info in get_all_methods_info().items():
        print(f"{name:<18} [{info['category']}] {info['description']}")
        if args.verbose:
            print(f"    default params: {info['default_params']}")
            if info['param_ranges']:
                print(f"    param ranges:   {info['param_ranges']}")
            print(f"    preserves:  {info['preserves']}")
            print(f"    introduces: {info['introduces']}")
    return 0


def cmd_generate(args):
    """Generate training pairs."""
    try:
        config = _resample_config(args)
        scale = config.integer_scale
        gen_config = GeneratorConfig(
            hr_dir=Path(args.input),
            output_dir=Path(args.output),
            patch_size=args.patch_size,
            batch_size=args.batch_size,
            mode=args.mode,
            adaptive=not args.no_adaptive,
            skip_existing=args.skip_existing
        )
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if not gen_config.hr_dir.is_dir():
        print(f"Error: Input directory not found: {gen_config.hr_dir}")
        return 1

    stats = generate_dataset(gen_config, config, verbose=not args.quiet)
    if stats['total'] and not stats['completed'] and not stats['skipped']:
        print(f"Error: no image could be processed (x{scale})")
        return 1
    return 0


def cmd_validate(args):
    """Validate a generated dataset."""
    try:
        validate_dataset(
            Path(args.data_dir),
            metadata_name=args.metadata,
            sample_ids=args.ids,
            tolerance=args.tolerance,
            reconstruct=args.reconstruct,
            verbose=not args.quiet
        )
    except (ValidationError, MalformedInputError) as e:
        print(f"Validation failed: {e}")
        return 1
    except (FileNotFoundError, KeyError) as e:
        print(f"Error: {e}")
        return 1
    print("Validation passed")
    return 0


def cmd_downsample(args):
    """Downscale HR images to LR."""
    try:
        images = _image_inputs(Path(args.input))
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1

    out_dir = Path(args.output)
    failed = 0
    for path in tqdm(images, desc="Downsampling"):
        try:
            hr = to_float(align(load_image(path), args.scale))
            save_image(out_dir / f"{path.stem}.png", downscale(hr, args.scale))
        except Exception as e:
            failed += 1
            tqdm.write(f"Failed: {path.name}: {e}")

    print(f"Downsampled {len(images) - failed}/{len(images)} image(s) to {out_dir}")
    return 1 if failed else 0


def cmd_rebuild(args):
    """Upsample LR images with reference resamplers."""
    methods = args.methods or list_upsamplings()
    try:
        for name in methods:
            get_upsampling(name)
        images = _image_inputs(Path(args.input))
    except (KeyError, FileNotFoundError) as e:
        print(f"Error: {e.args[0] if e.args else e}")
        return 1

    out_dir = Path(args.output)
    print(f"{'='*60}")
    print(f"ADAPTSR Rebuild")
    print(f"{'='*60}")
    print(f"Images: {len(images):,}  Methods: {', '.join(methods)}  Scale: x{args.scale}")
    print(f"Started: {datetime.now().isoformat()}")

    failed = 0
    pbar = tqdm([(p, m) for p in images for m in methods], desc="Rebuilding")
    for path, name in pbar:
        pbar.set_postfix(image=path.stem, method=name)
        try:
            hr = run_upsampling(name, load_image(path), args.scale)
            save_image(out_dir / path.stem / f"{name}.png", hr)
        except Exception as e:
            failed += 1
            tqdm.write(f"Failed: {path.name} / {name}: {e}")

    print(f"Finished: {datetime.now().isoformat()} ({failed} failed)")
    return 1 if failed else 0


def cmd_compare(args):
    """Compare rebuilt images with an HR reference."""
    reference = Path(args.reference)
    diff_dir = Path(args.diff_dir) if args.diff_dir else None

    results = {}
    try:
        for candidate in args.candidates:
            candidate = Path(candidate)
            label = f"{candidate.parent.name}/{candidate.name}"
            diff_path = None
            if diff_dir is not None:
                diff_path = diff_dir / f"diff_{reference.stem}_{candidate.parent.name}_{candidate.stem}.png"
            results[label] = compare_files(reference, candidate, diff_path)
    except (MalformedInputError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Reference: {reference}")
    print(format_report(results))
    if diff_dir is not None:
        print(f"Difference images: {diff_dir}")
    return 0


def cmd_synthetic(args):
    """Write synthetic HR images."""
    generate_test_suite(shape=(args.size, args.size), output_dir=args.output, seed=args.seed)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='ADAPTSR - Adaptive kernel-weight training data for super-resolution',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  adaptsr synthetic -o ./hr
  adaptsr generate ./hr -o ./dataset --scale 4
  adaptsr validate ./dataset --reconstruct
  adaptsr downsample ./hr -o ./lr --scale 4
  adaptsr rebuild ./lr -o ./rebuilt --scale 4 -m bicubic adaptive_bicubic
  adaptsr compare ./hr/mixed.png ./rebuilt/mixed/bicubic.png --diff-dir ./diff
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # methods command
    p_methods = subparsers.add_parser('methods', help='List reference resamplers')
    p_methods.add_argument('-v', '--verbose', action='store_true',
                           help='Show parameters and characteristics')

    # generate command
    p_gen = subparsers.add_parser('generate', help='Generate training pairs')
    p_gen.add_argument('input', type=str, help='Directory of HR images')
    p_gen.add_argument('-o', '--output', type=str, required=True,
                       help='Dataset output directory')
    p_gen.add_argument('--scale', type=float, default=4.0,
                       help='HR / LR scale (integral)')
    p_gen.add_argument('--kernel', type=str, default=KernelKind.CUBIC.value,
                       choices=[k.value for k in KernelKind], help='Base kernel')
    p_gen.add_argument('--shape-param', type=float, default=-0.5,
                       help='Cubic convolution parameter a')
    p_gen.add_argument('--window-radius', type=int, default=3,
                       help='Lanczos window a')
    p_gen.add_argument('--luma', type=str, default=LumaStandard.BT709.value,
                       choices=[s.value for s in LumaStandard], help='Luma weighting')
    p_gen.add_argument('--convention', type=str, default=OffsetConvention.CENTER.value,
                       choices=[c.value for c in OffsetConvention], help='Offset convention')
    p_gen.add_argument('--contrast', type=str, default=ContrastMode.RANGE.value,
                       choices=[m.value for m in ContrastMode], help='Contrast statistic')
    p_gen.add_argument('--clamp-negative', action='store_true',
                       help='Clamp negative kernel lobes to zero')
    p_gen.add_argument('--mode', type=str, default='fields', choices=['fields', 'patches'],
                       help='Output layout')
    p_gen.add_argument('--patch-size', type=int, default=4,
                       help='Minimum LR size in cells')
    p_gen.add_argument('--batch-size', type=int, default=10_000,
                       help='Records per batch in patch mode')
    p_gen.add_argument('--no-adaptive', action='store_true',
                       help='Do not write adaptive weights')
    p_gen.add_argument('--skip-existing', action='store_true',
                       help='Skip samples already in the metadata')
    p_gen.add_argument('-q', '--quiet', action='store_true', help='No console output')

    # validate command
    p_val = subparsers.add_parser('validate', help='Validate a generated dataset')
    p_val.add_argument('data_dir', type=str, help='Dataset directory')
    p_val.add_argument('--metadata', type=str, default='metadata.json',
                       help='Metadata file name')
    p_val.add_argument('--ids', type=str, nargs='+', default=None,
                       help='Only these sample ids')
    p_val.add_argument('--tolerance', type=float, default=1e-5,
                       help='Weight-sum tolerance')
    p_val.add_argument('--reconstruct', action='store_true',
                       help='Also check Y against a direct resample of X')
    p_val.add_argument('-q', '--quiet', action='store_true', help='No summary output')

    # downsample command
    p_down = subparsers.add_parser('downsample', help='Cubic HR -> LR downscale')
    p_down.add_argument('input', type=str, help='Image file or directory')
    p_down.add_argument('-o', '--output', type=str, required=True, help='Output directory')
    p_down.add_argument('--scale', type=int, default=4, help='Integer reduction factor')

    # rebuild command
    p_reb = subparsers.add_parser('rebuild', help='Upsample with reference resamplers')
    p_reb.add_argument('input', type=str, help='LR image file or directory')
    p_reb.add_argument('-o', '--output', type=str, required=True, help='Output directory')
    p_reb.add_argument('--scale', type=float, default=4.0, help='Upscale factor')
    p_reb.add_argument('-m', '--methods', type=str, nargs='+', default=None,
                       help='Methods to run (default: all)')

    # compare command
    p_cmp = subparsers.add_parser('compare', help='Compare images with a reference')
    p_cmp.add_argument('reference', type=str, help='HR reference image')
    p_cmp.add_argument('candidates', type=str, nargs='+', help='Rebuilt image(s)')
    p_cmp.add_argument('--diff-dir', type=str, default=None,
                       help='Write difference images here')

    # synthetic command
    p_syn = subparsers.add_parser('synthetic', help='Write synthetic HR images')
    p_syn.add_argument('-o', '--output', type=str, default='./synthetic_hr',
                       help='Output directory')
    p_syn.add_argument('--size', type=int, default=128, help='Image size (square)')
    p_syn.add_argument('--seed', type=int, default=42, help='Random seed')

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    # Dispatch to command handlers
    commands = {
        'methods': cmd_methods,
        'generate': cmd_generate,
        'validate': cmd_validate,
        'downsample': cmd_downsample,
        'rebuild': cmd_rebuild,
        'compare': cmd_compare,
        'synthetic': cmd_synthetic,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
