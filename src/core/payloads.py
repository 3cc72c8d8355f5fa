"""Поиск и проверка бинарных образов, которые записываются в разделы."""
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from core.errors import InvalidSize, MissingInput
from core.interfaces import FileSystemPort, LoggerPort
from core.layout import Payload

FIRMWARE_NAME = "fw_jump.bin"
KERNEL_NAME = "Image"
DEFAULT_DEVICE_TREE = "wally-vcu108.dtb"


@dataclass(frozen=True)
class ImageSet:
    device_tree: Path
    firmware: Path
    kernel: Path

    def items(self) -> list[tuple[str, Path]]:
        # Порядок записи: device tree, OpenSBI, ядро
        return [
            ("device_tree", self.device_tree),
            ("firmware", self.firmware),
            ("kernel", self.kernel),
        ]


def images_dir_for(buildroot: Path) -> Path:
    return Path(buildroot) / "output" / "images"


def _find_device_tree(name: str, images_dir: Path, fs: FileSystemPort) -> Optional[Path]:
    candidate = Path(name)
    if fs.exists(candidate):
        return candidate
    in_images = images_dir / candidate.name
    if fs.exists(in_images):
        return in_images
    return None


def locate_images(
    images_dir: Path,
    device_tree: str,
    fs: FileSystemPort,
    logger: LoggerPort,
    generate_device_trees: Optional[Callable[[], None]] = None,
) -> ImageSet:
    """
    Находит fw_jump.bin, Image и device tree и проверяет, что их можно прочитать.

    Args:
        images_dir: Директория output/images buildroot.
        device_tree: Путь или имя файла device tree.
        fs: Адаптер файловой системы.
        logger: Логгер.
        generate_device_trees: Вызывается один раз, если device tree не найден.

    Raises:
        MissingInput: если директории или какого-либо файла нет.
    """
    images_dir = Path(images_dir)
    if not fs.exists(images_dir):
        raise MissingInput(
            f"Директория с образами buildroot не существует: {images_dir}. "
            "Соберите образы перед запуском."
        )

    firmware = images_dir / FIRMWARE_NAME
    kernel = images_dir / KERNEL_NAME
    if not fs.exists(firmware) or not fs.exists(kernel):
        raise MissingInput(
            f"В {images_dir} нет {FIRMWARE_NAME} или {KERNEL_NAME}. Соберите образы перед запуском."
        )

    dtb = _find_device_tree(device_tree, images_dir, fs)
    if dtb is None and generate_device_trees is not None:
        logger.warning(f"Device tree {device_tree} не найден, генерируем device tree файлы")
        generate_device_trees()
        dtb = _find_device_tree(device_tree, images_dir, fs)
    if dtb is None:
        raise MissingInput(f"Не найден файл device tree: {device_tree}")

    images = ImageSet(device_tree=dtb, firmware=firmware, kernel=kernel)
    for name, path in images.items():
        if not fs.is_readable(path):
            raise MissingInput(f"Файл {path} ({name}) недоступен для чтения")
    return images


def measure_payloads(images: ImageSet, fs: FileSystemPort) -> tuple[Payload, ...]:
    """Размеры образов в блоках по 512 байт. Пустой файл считается ошибкой."""
    payloads = []
    for name, path in images.items():
        blocks = fs.size_in_blocks(path)
        if blocks == 0:
            raise InvalidSize(f"Файл {path} ({name}) пустой, записывать нечего")
        payloads.append(Payload(name, blocks))
    return tuple(payloads)
