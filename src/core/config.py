import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core.layout import FS_MIN_BLOCKS
from core.payloads import DEFAULT_DEVICE_TREE, images_dir_for

PROJECT_ROOT = Path(__file__).parent.parent.parent
TEMP_PATH = PROJECT_ROOT / "temp"
REMOTE_CACHE = TEMP_PATH / "images"
MOUNT_DIR = Path("/mnt/wallyimg")
POLL_ATTEMPTS = 10
POLL_INTERVAL = 1.0


def default_buildroot() -> Path:
    return Path(os.environ.get("RISCV", "")) / "buildroot"


@dataclass(frozen=True)
class ImageConfig:
    """Параметры одного запуска. Собирается из аргументов CLI и не меняется."""
    buildroot: Path
    device_tree: str = DEFAULT_DEVICE_TREE
    device: Optional[Path] = None
    output_file: Optional[Path] = None
    wipe: bool = False
    assume_yes: bool = False
    mount_dir: Path = MOUNT_DIR
    min_fs_blocks: int = FS_MIN_BLOCKS
    poll_attempts: int = POLL_ATTEMPTS
    poll_interval: float = POLL_INTERVAL
    images_url: Optional[str] = None
    cache_dir: Path = REMOTE_CACHE
    dt_generate_dir: Optional[Path] = None
    use_sudo: bool = True
    log_file: Optional[Path] = None
    verbose: bool = False

    def __post_init__(self):
        if self.poll_attempts < 1:
            raise ValueError(f"poll_attempts должен быть >= 1, получено {self.poll_attempts}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval не может быть отрицательным: {self.poll_interval}")

    @property
    def images_dir(self) -> Path:
        return images_dir_for(self.buildroot)

    @property
    def is_image_file(self) -> bool:
        # -o имеет приоритет над устройством
        return self.output_file is not None

    @property
    def target_path(self) -> Optional[Path]:
        return self.output_file if self.is_image_file else self.device
