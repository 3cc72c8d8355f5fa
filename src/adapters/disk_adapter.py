"""Обёртки над sgdisk, losetup, kpartx, dd, mkfs.ext4 и прочими утилитами."""
from pathlib import Path

from core.errors import CommandFailed
from core.interfaces import CommandPort, DiskToolsPort, LoggerPort
from core.layout import OPENSBI_TYPECODE, LayoutPlan

DD_FLAGS = ["bs=4k", "iflag=direct,fullblock", "oflag=dsync", "conv=fsync", "status=progress"]
MKFS_OPTIONS = "lazy_itable_init=0,lazy_journal_init=0"
# fsck: 0 - ошибок нет, 1 - ошибки исправлены
FSCK_OK = (0, 1)
# sgdisk -z: 0 - таблица затёрта, 3 - на диске была не GPT-разметка
ZAP_OK = (0, 3)


def sgdisk_partition_args(plan: LayoutPlan) -> list[str]:
    """Аргументы sgdisk для создания разделов по плану."""
    args = ["-g", "--clear", "--set-alignment=1"]
    for part in plan:
        if part.length_sectors is None:
            args.append(f"--new={part.index}:{part.start_sector}:0")
        else:
            args.append(f"--new={part.index}:{part.start_sector}:+{part.length_sectors}")
        args.append(f"--change-name={part.index}:{part.name}")
        if part.name == "opensbi":
            args.append(f"--typecode={part.index}:{OPENSBI_TYPECODE}")
    return args


class DiskAdapter(DiskToolsPort):
    def __init__(self, runner: CommandPort, logger: LoggerPort):
        self.runner = runner
        self.logger = logger

    def attach_loop(self, image: Path) -> Path:
        result = self.runner.run(["losetup", "-f", "--show", image], capture=True)
        loop = result.stdout.strip()
        if not loop:
            raise CommandFailed(["losetup", "-f", "--show", image], result.returncode,
                                "losetup не вернул имя loop-устройства")
        self.logger.info(f"Подключён {image} как {loop}")
        return Path(loop)

    def detach_loop(self, loop: Path):
        self.logger.info(f"Отключаем loop-устройство {loop}")
        self.runner.run(["losetup", "-d", loop])

    def reread_partitions(self, device: Path, strict: bool = True):
        result = self.runner.run(["partprobe", device], check=strict, capture=not strict)
        if result.returncode != 0:
            # loop без -P: ядро отказывает в BLKPG, разделы создаст kpartx
            self.logger.warning(
                f"partprobe {device} завершился с кодом {result.returncode}: {(result.stderr or '').strip()}"
            )

    def map_partitions(self, device: Path):
        self.runner.run(["kpartx", "-a", device])

    def unmap_partitions(self, device: Path):
        self.runner.run(["kpartx", "-d", device])

    def node_exists(self, node: Path) -> bool:
        return Path(node).exists()

    def mountpoints(self, node: Path) -> list[str]:
        if not self.node_exists(node):
            return []
        result = self.runner.run(
            ["findmnt", "-n", "-o", "TARGET", "--source", node], check=False, capture=True
        )
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def device_size(self, device: Path) -> int:
        result = self.runner.run(["blockdev", "--getsize64", device], capture=True)
        return int(result.stdout.strip())

    def zero_fill(self, device: Path):
        # Пишем ровно размер устройства, чтобы dd не упирался в его конец
        size = self.device_size(device)
        self.runner.run([
            "dd", "if=/dev/zero", f"of={device}", "bs=64k",
            f"count={size}", "iflag=count_bytes", "status=progress",
        ])

    def clear_partition_table(self, device: Path):
        cmd = ["sgdisk", "-z", device]
        result = self.runner.run(cmd, check=False)
        if result.returncode not in ZAP_OK:
            raise CommandFailed(cmd, result.returncode)

    def write_partition_table(self, device: Path, plan: LayoutPlan):
        self.runner.run(["sgdisk"] + sgdisk_partition_args(plan) + [device])

    def copy_raw(self, payload: Path, node: Path):
        self.runner.run(["dd", f"if={payload}", f"of={node}"] + DD_FLAGS)

    def sync(self):
        self.runner.run(["sync"])

    def make_filesystem(self, node: Path):
        self.runner.run(["mkfs.ext4", "-F", "-E", MKFS_OPTIONS, node])

    def check_filesystem(self, node: Path):
        cmd = ["fsck", "-fv", "-y", node]
        result = self.runner.run(cmd, check=False)
        if result.returncode not in FSCK_OK:
            raise CommandFailed(cmd, result.returncode)

    def make_directory(self, path: Path):
        self.runner.run(["mkdir", "-p", path])

    def remove_directory(self, path: Path):
        self.runner.run(["rmdir", path])

    def mount(self, node: Path, mount_point: Path):
        self.runner.run(["mount", "-o", "init_itable=0", "-v", node, mount_point])

    def unmount(self, mount_point: Path):
        self.runner.run(["umount", "-v", mount_point])

    def print_partition_table(self, path: Path) -> str:
        result = self.runner.run(["sgdisk", "-p", path], capture=True)
        return result.stdout
