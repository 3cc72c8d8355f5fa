"""Цели записи: физическое устройство или файл-образ, подключённый через loop."""
from dataclasses import dataclass
from pathlib import Path
from typing import Union

MAPPER_DIR = Path("/dev/mapper")


@dataclass(frozen=True)
class Device:
    path: Path

    @property
    def block_path(self) -> Path:
        return self.path

    @property
    def table_path(self) -> Path:
        return self.path

    @property
    def partition_prefix(self) -> str:
        # SCSI-диски (/dev/sdX) нумеруют разделы без "p", mmcblk и nvme - с ним
        if self.path.name.startswith("sd"):
            return ""
        return "p"

    def partition_node(self, index: int) -> Path:
        return self.path.with_name(f"{self.path.name}{self.partition_prefix}{index}")


@dataclass(frozen=True)
class LoopBackedFile:
    file_path: Path
    loop_path: Path

    @property
    def block_path(self) -> Path:
        return self.loop_path

    @property
    def table_path(self) -> Path:
        return self.file_path

    def partition_node(self, index: int) -> Path:
        """Раздел, созданный kpartx: /dev/mapper/loopNpX."""
        return MAPPER_DIR / f"{self.loop_path.name}p{index}"


Target = Union[Device, LoopBackedFile]
