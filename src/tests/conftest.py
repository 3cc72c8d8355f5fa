import subprocess
from pathlib import Path

import pytest

from core.errors import CommandFailed
from core.interfaces import CommandPort, DiskToolsPort, LoggerPort


class RecordingLogger(LoggerPort):
    def __init__(self):
        self.messages = []

    def info(self, message: str):
        self.messages.append(("info", message))

    def warning(self, message: str):
        self.messages.append(("warning", message))

    def error(self, message: str):
        self.messages.append(("error", message))

    def debug(self, message: str):
        self.messages.append(("debug", message))

    def errors(self):
        return [m for level, m in self.messages if level == "error"]


class FakeDisk(DiskToolsPort):
    """Записывает вызовы вместо запуска утилит."""

    def __init__(self, loop="/dev/loop7", nodes_appear_after=0, fail_on=()):
        self.calls = []
        self.loop = Path(loop)
        self.nodes_appear_after = nodes_appear_after
        self.fail_on = set(fail_on)
        self.mounted = {}
        self._polls = 0

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise CommandFailed([name], 1, "boom")

    def names(self):
        return [call[0] for call in self.calls]

    def attach_loop(self, image):
        self._record("attach_loop", image)
        return self.loop

    def detach_loop(self, loop):
        self._record("detach_loop", loop)

    def reread_partitions(self, device, strict=True):
        self._record("reread_partitions", device, strict)

    def map_partitions(self, device):
        self._record("map_partitions", device)

    def unmap_partitions(self, device):
        self._record("unmap_partitions", device)

    def node_exists(self, node):
        if self.nodes_appear_after is None:
            return False
        self._polls += 1
        return self._polls > self.nodes_appear_after

    def mountpoints(self, node):
        return self.mounted.get(Path(node), [])

    def zero_fill(self, device):
        self._record("zero_fill", device)

    def clear_partition_table(self, device):
        self._record("clear_partition_table", device)

    def write_partition_table(self, device, plan):
        self._record("write_partition_table", device, plan)

    def copy_raw(self, payload, node):
        self._record("copy_raw", payload, node)

    def sync(self):
        self._record("sync")

    def make_filesystem(self, node):
        self._record("make_filesystem", node)

    def check_filesystem(self, node):
        self._record("check_filesystem", node)

    def make_directory(self, path):
        self._record("make_directory", path)

    def remove_directory(self, path):
        self._record("remove_directory", path)

    def mount(self, node, mount_point):
        self._record("mount", node, mount_point)

    def unmount(self, mount_point):
        self._record("unmount", mount_point)

    def print_partition_table(self, path):
        self._record("print_partition_table", path)
        return f"Disk {path}: 4 partitions"


class FakeRunner(CommandPort):
    def __init__(self, results=None):
        self.commands = []
        self.captured = []
        # имя утилиты -> (returncode, stdout, stderr)
        self.results = results or {}

    def run(self, cmd, *, check=True, capture=False, cwd=None):
        args = [str(x) for x in cmd]
        self.commands.append(args)
        self.captured.append(capture)
        returncode, stdout, stderr = self.results.get(args[0], (0, "", ""))
        if check and returncode != 0:
            raise CommandFailed(args, returncode, stderr)
        return subprocess.CompletedProcess(args, returncode, stdout, stderr)


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def buildroot(tmp_path):
    """Дерево buildroot с тремя образами: 2, 100 и 8000 блоков."""
    root = tmp_path / "buildroot"
    images = root / "output" / "images"
    images.mkdir(parents=True)
    (images / "wally-vcu108.dtb").write_bytes(b"\xd0\x0d\xfe\xed" + b"d" * 1000)
    (images / "fw_jump.bin").write_bytes(b"f" * (100 * 512))
    (images / "Image").write_bytes(b"k" * (8000 * 512 - 7))
    return root
