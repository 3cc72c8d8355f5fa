import pytest

from adapters.file_adapter import FileAdapter
from core.errors import InvalidSize, MissingInput
from core.payloads import ImageSet, images_dir_for, locate_images, measure_payloads


def test_locate_images_in_buildroot(buildroot, logger):
    images_dir = images_dir_for(buildroot)
    images = locate_images(images_dir, "wally-vcu108.dtb", FileAdapter(), logger)
    assert images.device_tree == images_dir / "wally-vcu108.dtb"
    assert images.firmware == images_dir / "fw_jump.bin"
    assert images.kernel == images_dir / "Image"
    assert [name for name, _ in images.items()] == ["device_tree", "firmware", "kernel"]


def test_device_tree_path_used_as_given(buildroot, tmp_path, logger):
    dtb = tmp_path / "custom.dtb"
    dtb.write_bytes(b"x" * 10)
    images = locate_images(images_dir_for(buildroot), str(dtb), FileAdapter(), logger)
    assert images.device_tree == dtb


def test_missing_images_dir(tmp_path, logger):
    with pytest.raises(MissingInput, match="Соберите образы"):
        locate_images(tmp_path / "nope", "wally-vcu108.dtb", FileAdapter(), logger)


def test_missing_kernel(buildroot, logger):
    (images_dir_for(buildroot) / "Image").unlink()
    with pytest.raises(MissingInput):
        locate_images(images_dir_for(buildroot), "wally-vcu108.dtb", FileAdapter(), logger)


def test_missing_device_tree(buildroot, logger):
    with pytest.raises(MissingInput, match="device tree"):
        locate_images(images_dir_for(buildroot), "other.dtb", FileAdapter(), logger)


def test_device_tree_generated_on_demand(buildroot, logger):
    images_dir = images_dir_for(buildroot)
    calls = []

    def generate():
        calls.append(1)
        (images_dir / "other.dtb").write_bytes(b"dtb")

    images = locate_images(images_dir, "other.dtb", FileAdapter(), logger, generate)
    assert calls == [1]
    assert images.device_tree == images_dir / "other.dtb"
    assert any(level == "warning" for level, _ in logger.messages)


def test_measure_payloads(buildroot):
    images_dir = images_dir_for(buildroot)
    images = ImageSet(images_dir / "wally-vcu108.dtb", images_dir / "fw_jump.bin", images_dir / "Image")
    payloads = measure_payloads(images, FileAdapter())
    assert [(p.name, p.size_in_blocks) for p in payloads] == [
        ("device_tree", 2),
        ("firmware", 100),
        ("kernel", 8000),
    ]


def test_empty_payload_rejected(buildroot):
    images_dir = images_dir_for(buildroot)
    (images_dir / "fw_jump.bin").write_bytes(b"")
    images = ImageSet(images_dir / "wally-vcu108.dtb", images_dir / "fw_jump.bin", images_dir / "Image")
    with pytest.raises(InvalidSize):
        measure_payloads(images, FileAdapter())
