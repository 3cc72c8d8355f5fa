#!/usr/bin/env python3
"""
Сборка загрузочного образа Linux для CORE-V-Wally: GPT-разметка, запись
device tree, OpenSBI и ядра по секторам, создание файловой системы.
Пример: python3 cli.py -b ~/buildroot /dev/sdc
        python3 cli.py -o wally.img
"""
import argparse
import sys
from pathlib import Path

from adapters.command_adapter import needs_sudo
from core.config import MOUNT_DIR, POLL_ATTEMPTS, POLL_INTERVAL, REMOTE_CACHE, ImageConfig, default_buildroot
from core.errors import ImageError, MissingInput
from core.layout import FS_MIN_BLOCKS
from core.payloads import DEFAULT_DEVICE_TREE
from make_image import create_img

PROMPT = "Warning: Doing this will replace all data on {target}. Continue? y/n: "


def ask_confirmation(target) -> bool:
    reply = input(PROMPT.format(target=target))
    return reply.strip()[:1] in ("y", "Y")


def build_parser():
    parser = argparse.ArgumentParser(description="Create a bootable Wally Linux SD card or disk image")
    parser.add_argument("device", nargs="?", type=Path, help="Target block device, e.g. /dev/sdc")
    parser.add_argument("-z", "--wipe", action="store_true", help="Wipe the card with zeros first")
    parser.add_argument("-b", "--buildroot", type=Path, default=None,
                        help="Buildroot directory (default $RISCV/buildroot)")
    parser.add_argument("-d", "--device-tree", default=DEFAULT_DEVICE_TREE, help="Device tree to use")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Create a disk image file instead of writing to a device")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    parser.add_argument("--images-url", default=None, help="Fetch images from an HTTP directory listing")
    parser.add_argument("--cache-dir", type=Path, default=REMOTE_CACHE,
                        help="Where images fetched with --images-url are stored")
    parser.add_argument("--dt-generate-dir", type=Path, default=None,
                        help="Run 'make generate' here when the device tree is missing")
    parser.add_argument("--mount-dir", type=Path, default=MOUNT_DIR, help="Scratch mount point")
    parser.add_argument("--min-fs-blocks", type=int, default=FS_MIN_BLOCKS,
                        help="Minimum filesystem size in 512B blocks for image files")
    parser.add_argument("--poll-attempts", type=int, default=POLL_ATTEMPTS)
    parser.add_argument("--poll-interval", type=float, default=POLL_INTERVAL)
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def config_from_args(args) -> ImageConfig:
    if args.device is None and args.output is None:
        raise MissingInput("Specify a target device or an output file with -o")
    return ImageConfig(
        buildroot=args.buildroot or default_buildroot(),
        device_tree=args.device_tree,
        device=args.device,
        output_file=args.output,
        wipe=args.wipe,
        assume_yes=args.yes,
        mount_dir=args.mount_dir,
        min_fs_blocks=args.min_fs_blocks,
        poll_attempts=args.poll_attempts,
        poll_interval=args.poll_interval,
        images_url=args.images_url,
        cache_dir=args.cache_dir,
        dt_generate_dir=args.dt_generate_dir,
        use_sudo=needs_sudo(),
        log_file=args.log_file,
        verbose=args.verbose,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
        table = create_img(
            config,
            confirm=lambda plan: config.assume_yes or ask_confirmation(config.target_path),
        )
    except (ImageError, ValueError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("ERROR: interrupted", file=sys.stderr)
        return 130

    print()
    print(f"GPT Information for {config.target_path} ===================================")
    print(table)
    return 0


if __name__ == "__main__":
    sys.exit(main())
