"""
Расчёт GPT-разметки образа.

Разделы идут подряд без зазоров, начиная с первого свободного сектора
после заголовка GPT и таблицы разделов (сектора 0-33):

    1 fdt         34                 dtb
    2 opensbi     34 + dtb           fw
    3 kernel      + fw               kernel
    4 filesystem  + kernel           до конца устройства
"""
from dataclasses import dataclass
from typing import Optional

from core.errors import InvalidSize

BLOCK_SIZE = 512
FIRST_USABLE_SECTOR = 34
# ~200MB под файловую систему в файле-образе
FS_MIN_BLOCKS = 409600

PARTITION_NAMES = ("fdt", "opensbi", "kernel", "filesystem")
PAYLOAD_NAMES = ("device_tree", "firmware", "kernel")

# Тип раздела OpenSBI, по нему его находит загрузчик
OPENSBI_TYPECODE = "2E54B353-1271-4842-806F-E436D6AF6985"


@dataclass(frozen=True)
class Payload:
    name: str
    size_in_blocks: int


@dataclass(frozen=True)
class PartitionSpec:
    index: int
    name: str
    start_sector: int
    # None - до конца устройства
    length_sectors: Optional[int]

    @property
    def end_sector(self) -> Optional[int]:
        if self.length_sectors is None:
            return None
        return self.start_sector + self.length_sectors

    @property
    def offset_bytes(self) -> int:
        return self.start_sector * BLOCK_SIZE


@dataclass(frozen=True)
class LayoutPlan:
    partitions: tuple[PartitionSpec, ...]

    def __iter__(self):
        return iter(self.partitions)

    def __len__(self) -> int:
        return len(self.partitions)

    def __getitem__(self, index: int) -> PartitionSpec:
        return self.partitions[index]

    @property
    def payload_partitions(self) -> tuple[PartitionSpec, ...]:
        """Разделы под бинарные образы (fdt, opensbi, kernel) в порядке записи."""
        return self.partitions[:3]

    @property
    def filesystem(self) -> PartitionSpec:
        return self.partitions[3]

    @property
    def filesystem_start(self) -> int:
        return self.filesystem.start_sector


def blocks_for(size_bytes: int) -> int:
    """Размер в байтах, округлённый вверх до целых блоков по 512 байт."""
    if isinstance(size_bytes, bool) or not isinstance(size_bytes, int) or size_bytes < 0:
        raise InvalidSize(f"Некорректный размер файла: {size_bytes!r}")
    return -(-size_bytes // BLOCK_SIZE)


def _check_blocks(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSize(f"Размер {name} должен быть целым числом блоков, получено {value!r}")
    if value < 0:
        raise InvalidSize(f"Отрицательный размер {name}: {value}")
    return value


def compute_layout(dtb_blocks: int, fw_blocks: int, kernel_blocks: int) -> LayoutPlan:
    """
    Вычисляет план разметки по размерам трёх образов в блоках.

    Args:
        dtb_blocks: Размер device tree в блоках по 512 байт.
        fw_blocks: Размер прошивки OpenSBI в блоках.
        kernel_blocks: Размер ядра в блоках.

    Returns:
        LayoutPlan из четырёх разделов.

    Raises:
        InvalidSize: если какой-либо размер отрицательный или не целый.
    """
    sizes = [
        _check_blocks(name, value)
        for name, value in zip(PAYLOAD_NAMES, (dtb_blocks, fw_blocks, kernel_blocks))
    ]

    partitions = []
    start = FIRST_USABLE_SECTOR
    for index, (name, length) in enumerate(zip(PARTITION_NAMES, sizes), start=1):
        partitions.append(PartitionSpec(index, name, start, length))
        start += length
    partitions.append(PartitionSpec(4, PARTITION_NAMES[3], start, None))
    return LayoutPlan(tuple(partitions))


def image_size_blocks(plan: LayoutPlan, min_fs_blocks: int = FS_MIN_BLOCKS) -> int:
    """Размер файла-образа в блоках: всё до файловой системы плюс её минимум."""
    _check_blocks("файловой системы", min_fs_blocks)
    return plan.filesystem_start + min_fs_blocks
