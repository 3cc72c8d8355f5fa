import time
from contextlib import ExitStack
from pathlib import Path
from typing import Callable

from core.config import ImageConfig
from core.errors import DeviceEnumerationTimeout, ImageError, MissingInput
from core.interfaces import DiskToolsPort, FileSystemPort, LoggerPort
from core.layout import BLOCK_SIZE, LayoutPlan, compute_layout, image_size_blocks
from core.payloads import ImageSet, measure_payloads
from core.target import Device, LoopBackedFile, Target

# Пауза после затирания старой таблицы разделов
SETTLE_DELAY = 1.0


class ImageBuilder:
    """
    Выполняет последовательность разрушающих операций над целью:
    разметка, запись образов по секторам, создание и проверка файловой системы.

    Все подключённые ресурсы (loop, kpartx, точка монтирования) регистрируются
    в одном ExitStack и освобождаются в обратном порядке на любом пути выхода.
    """

    def __init__(
        self,
        config: ImageConfig,
        fs: FileSystemPort,
        disk: DiskToolsPort,
        logger: LoggerPort,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.fs = fs
        self.disk = disk
        self.logger = logger
        self.sleep = sleep

    def plan(self, images: ImageSet) -> LayoutPlan:
        payloads = measure_payloads(images, self.fs)
        for payload in payloads:
            self.logger.info(f"Размер {payload.name}: {payload.size_in_blocks} блоков")
        return compute_layout(*(payload.size_in_blocks for payload in payloads))

    def check_target(self):
        """Проверки цели, которые делаются до подтверждения пользователем."""
        if self.config.target_path is None:
            raise MissingInput("Не указано устройство или файл образа (-o)")
        if self.config.is_image_file:
            parent = self.config.output_file.parent
            if not self.fs.exists(parent):
                raise MissingInput(f"Директория для файла образа не существует: {parent}")
        elif not self.fs.exists(self.config.device):
            raise MissingInput(f"Устройство {self.config.device} не существует")

    def build(self, images: ImageSet, plan: LayoutPlan) -> Target:
        with ExitStack() as stack:
            target = self._acquire_target(plan, stack)
            self._partition(target, plan)
            self._enumerate_partitions(target, stack)
            self._copy_payloads(target, plan, images)
            self._make_filesystem(target, stack)
        self.logger.info(f"Образ записан: {target.table_path}")
        return target

    def report(self, target: Target) -> str:
        return self.disk.print_partition_table(target.table_path)

    def _release(self, action, *args):
        try:
            action(*args)
        except ImageError as e:
            self.logger.error(f"Не удалось освободить ресурс: {e}")

    def _acquire_target(self, plan: LayoutPlan, stack: ExitStack) -> Target:
        if self.config.is_image_file:
            path = Path(self.config.output_file)
            blocks = image_size_blocks(plan, self.config.min_fs_blocks)
            self.logger.info(f"Создаём файл образа {path} ({blocks} блоков)")
            self.fs.create_sparse(path, blocks * BLOCK_SIZE)

            loop = self.disk.attach_loop(path)
            stack.callback(self._release, self.disk.detach_loop, loop)
            self.disk.reread_partitions(loop, strict=False)
            return LoopBackedFile(file_path=path, loop_path=loop)

        device = Path(self.config.device)
        if not self.fs.exists(device):
            raise MissingInput(f"Устройство {device} не существует")
        target = Device(device)
        for part in plan:
            for mount_point in self.disk.mountpoints(target.partition_node(part.index)):
                self.logger.info(f"Размонтируем {mount_point}")
                self.disk.unmount(Path(mount_point))
        if self.config.wipe:
            self.logger.info(f"Затираем {device} нулями, это может занять время")
            self.disk.zero_fill(device)
            self.disk.sync()
        return target

    def _partition(self, target: Target, plan: LayoutPlan):
        self.disk.clear_partition_table(target.block_path)
        self.sleep(SETTLE_DELAY)
        self.logger.info("Создаём таблицу разделов GPT")
        self.disk.write_partition_table(target.block_path, plan)

    def _enumerate_partitions(self, target: Target, stack: ExitStack):
        self.logger.info("Перечитываем таблицу разделов")
        self.disk.reread_partitions(target.block_path, strict=isinstance(target, Device))
        if isinstance(target, LoopBackedFile):
            self.disk.map_partitions(target.loop_path)
            stack.callback(self._release, self.disk.unmap_partitions, target.loop_path)
        self.wait_for_node(target.partition_node(4))

    def wait_for_node(self, node: Path):
        attempts = self.config.poll_attempts
        for attempt in range(1, attempts + 1):
            if self.disk.node_exists(node):
                return
            self.logger.info(f"Ожидаем появления раздела {node} ({attempt}/{attempts})")
            self.sleep(self.config.poll_interval)
        if not self.disk.node_exists(node):
            raise DeviceEnumerationTimeout(f"Раздел {node} так и не появился. Прерываем.")

    def _copy_payloads(self, target: Target, plan: LayoutPlan, images: ImageSet):
        self.logger.info("Копируем образы в разделы")
        for part, (name, path) in zip(plan.payload_partitions, images.items()):
            if isinstance(target, LoopBackedFile):
                # В файл пишем напрямую по смещению раздела, минуя разделы device-mapper
                self.logger.info(f"Копируем {name} в {target.file_path}, сектор {part.start_sector}")
                self.fs.write_at_offset(target.file_path, part.offset_bytes, path)
            else:
                node = target.partition_node(part.index)
                self.logger.info(f"Копируем {name} в {node}")
                self.disk.copy_raw(path, node)
            self.disk.sync()

    def _make_filesystem(self, target: Target, stack: ExitStack):
        node = target.partition_node(4)
        mount_dir = Path(self.config.mount_dir)
        self.logger.info(f"Создаём файловую систему ext4 на {node}")
        self.disk.make_filesystem(node)
        self.disk.check_filesystem(node)

        self.disk.make_directory(mount_dir)
        stack.callback(self._release, self.disk.remove_directory, mount_dir)
        self.disk.mount(node, mount_dir)
        stack.callback(self._release, self.disk.unmount, mount_dir)
