from pathlib import Path
from typing import Callable, Optional

from adapters.command_adapter import SubprocessRunner
from adapters.disk_adapter import DiskAdapter
from adapters.file_adapter import FileAdapter
from adapters.logging_adapter import LoggingAdapter
from adapters.remote_images import RemoteImageSource
from core.config import ImageConfig
from core.errors import UserAborted
from core.image_builder import ImageBuilder
from core.interfaces import DiskToolsPort, FileSystemPort, LoggerPort
from core.layout import LayoutPlan
from core.payloads import FIRMWARE_NAME, KERNEL_NAME, ImageSet, locate_images


def describe_plan(plan: LayoutPlan) -> list[str]:
    lines = []
    for part in plan:
        length = "до конца" if part.length_sectors is None else str(part.length_sectors)
        lines.append(f"{part.index} {part.name:<10} start={part.start_sector:<10} length={length}")
    return lines


def resolve_images(config: ImageConfig, fs: FileSystemPort, logger: LoggerPort) -> ImageSet:
    images_dir = config.images_dir
    if config.images_url:
        source = RemoteImageSource(config.images_url, config.cache_dir)
        images_dir = source.fetch([FIRMWARE_NAME, KERNEL_NAME, Path(config.device_tree).name])

    generate = None
    if config.dt_generate_dir is not None:
        make = SubprocessRunner(logger, use_sudo=False)

        def generate():
            make.run(["make", "-C", config.dt_generate_dir, "generate", f"BUILDROOT={config.buildroot}"])

    return locate_images(images_dir, config.device_tree, fs, logger, generate)


def create_img(
    config: ImageConfig,
    confirm: Callable[[LayoutPlan], bool],
    logger: Optional[LoggerPort] = None,
    fs: Optional[FileSystemPort] = None,
    disk: Optional[DiskToolsPort] = None,
) -> str:
    """
    Собирает образ по конфигурации и возвращает вывод sgdisk -p.

    confirm вызывается после всех проверок и до первой разрушающей операции.
    """
    logger = logger or LoggingAdapter(config.log_file, config.verbose)
    fs = fs or FileAdapter()
    disk = disk or DiskAdapter(SubprocessRunner(logger, config.use_sudo), logger)
    builder = ImageBuilder(config, fs, disk, logger)

    images = resolve_images(config, fs, logger)
    plan = builder.plan(images)
    builder.check_target()
    for line in describe_plan(plan):
        logger.info(line)

    if not confirm(plan):
        raise UserAborted("Отменено пользователем")

    target = builder.build(images, plan)
    return builder.report(target)
