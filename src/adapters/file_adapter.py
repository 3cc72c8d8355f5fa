from pathlib import Path
import logging
import os
import shutil

from core.interfaces import FileSystemPort
from core.layout import blocks_for

logger = logging.getLogger(__name__)

COPY_CHUNK = 1024 * 1024


class FileAdapter(FileSystemPort):
    """Адаптер для работы с файлами образов."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_readable(self, path: Path) -> bool:
        path = Path(path)
        return path.is_file() and os.access(path, os.R_OK)

    def size_in_blocks(self, path: Path) -> int:
        """Размер файла в блоках по 512 байт с округлением вверх."""
        return blocks_for(Path(path).stat().st_size)

    def create_sparse(self, path: Path, size_bytes: int):
        """Создаёт разреженный файл заданного размера (аналог truncate -s).

        Args:
            path: Путь к файлу образа.
            size_bytes: Размер в байтах.
        """
        path = Path(path)
        with open(path, "wb") as f:
            f.truncate(size_bytes)
        logger.debug(f"Создан разреженный файл {path}: {size_bytes} байт")

    def write_at_offset(self, image: Path, offset: int, payload: Path):
        """Записывает содержимое payload в image начиная с байта offset.

        Файл образа не обрезается, после записи данные сбрасываются на диск.

        Args:
            image: Путь к файлу образа.
            offset: Смещение начала раздела в байтах.
            payload: Путь к записываемому файлу.
        """
        with open(payload, "rb") as src, open(image, "r+b") as dst:
            dst.seek(offset)
            shutil.copyfileobj(src, dst, COPY_CHUNK)
            dst.flush()
            os.fsync(dst.fileno())
        logger.debug(f"{payload} записан в {image} со смещением {offset}")
