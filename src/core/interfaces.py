from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from core.layout import LayoutPlan


class LoggerPort(ABC):
    @abstractmethod
    def info(self, message: str):
        pass

    @abstractmethod
    def warning(self, message: str):
        pass

    @abstractmethod
    def error(self, message: str):
        pass

    def debug(self, message: str):
        pass


class CommandPort(ABC):
    @abstractmethod
    def run(self, cmd: Sequence, *, check: bool = True, capture: bool = False, cwd: Optional[Path] = None):
        """Выполняет команду, возвращает subprocess.CompletedProcess."""


class FileSystemPort(ABC):
    @abstractmethod
    def exists(self, path: Path) -> bool:
        pass

    @abstractmethod
    def is_readable(self, path: Path) -> bool:
        pass

    @abstractmethod
    def size_in_blocks(self, path: Path) -> int:
        pass

    @abstractmethod
    def create_sparse(self, path: Path, size_bytes: int):
        pass

    @abstractmethod
    def write_at_offset(self, image: Path, offset: int, payload: Path):
        pass


class DiskToolsPort(ABC):
    @abstractmethod
    def attach_loop(self, image: Path) -> Path:
        pass

    @abstractmethod
    def detach_loop(self, loop: Path):
        pass

    @abstractmethod
    def reread_partitions(self, device: Path, strict: bool = True):
        """strict=False: ошибка только логируется."""

    @abstractmethod
    def map_partitions(self, device: Path):
        pass

    @abstractmethod
    def unmap_partitions(self, device: Path):
        pass

    @abstractmethod
    def node_exists(self, node: Path) -> bool:
        pass

    @abstractmethod
    def mountpoints(self, node: Path) -> list[str]:
        pass

    @abstractmethod
    def zero_fill(self, device: Path):
        pass

    @abstractmethod
    def clear_partition_table(self, device: Path):
        pass

    @abstractmethod
    def write_partition_table(self, device: Path, plan: LayoutPlan):
        pass

    @abstractmethod
    def copy_raw(self, payload: Path, node: Path):
        pass

    @abstractmethod
    def sync(self):
        pass

    @abstractmethod
    def make_filesystem(self, node: Path):
        pass

    @abstractmethod
    def check_filesystem(self, node: Path):
        pass

    @abstractmethod
    def make_directory(self, path: Path):
        pass

    @abstractmethod
    def remove_directory(self, path: Path):
        pass

    @abstractmethod
    def mount(self, node: Path, mount_point: Path):
        pass

    @abstractmethod
    def unmount(self, mount_point: Path):
        pass

    @abstractmethod
    def print_partition_table(self, path: Path) -> str:
        pass
