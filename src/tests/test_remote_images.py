import pytest
import requests

from adapters import remote_images
from adapters.remote_images import RemoteImageSource
from core.errors import MissingInput

LISTING = """
<html><body><h1>Index of /images</h1>
<a href="?C=N;O=D">Name</a>
<a href="../">Parent Directory</a>
<a href="fw_jump.bin">fw_jump.bin</a>
<a href="Image">Image</a>
<a href="/images/wally-vcu108.dtb">wally-vcu108.dtb</a>
<a href="rootfs/">rootfs/</a>
</body></html>
"""


class FakeResponse:
    def __init__(self, text="", content=b"", status=200):
        self.text = text
        self.content = content
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def server(monkeypatch):
    files = {
        "http://ci/images/": FakeResponse(text=LISTING),
        "http://ci/images/fw_jump.bin": FakeResponse(content=b"f" * 3000),
        "http://ci/images/Image": FakeResponse(content=b"k" * 5000),
        "http://ci/images/wally-vcu108.dtb": FakeResponse(content=b"d" * 10),
    }
    requested = []

    def get(url, **kwargs):
        requested.append(url)
        if url not in files:
            return FakeResponse(status=404)
        return files[url]

    monkeypatch.setattr(remote_images.requests, "get", get)
    return requested


def test_list_files(server, tmp_path):
    source = RemoteImageSource("http://ci/images", tmp_path)
    assert source.list_files() == ["fw_jump.bin", "Image", "wally-vcu108.dtb"]
    assert server == ["http://ci/images/"]


def test_fetch_downloads_into_cache(server, tmp_path):
    cache = tmp_path / "cache"
    source = RemoteImageSource("http://ci/images/", cache)
    assert source.fetch(["fw_jump.bin", "Image", "wally-vcu108.dtb"]) == cache
    assert (cache / "fw_jump.bin").read_bytes() == b"f" * 3000
    assert (cache / "Image").stat().st_size == 5000
    assert not list(cache.glob("*.part"))


def test_fetch_missing_file(server, tmp_path):
    source = RemoteImageSource("http://ci/images/", tmp_path)
    with pytest.raises(MissingInput, match="other.dtb"):
        source.fetch(["fw_jump.bin", "other.dtb"])


def test_listing_unavailable(monkeypatch, tmp_path):
    def get(url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(remote_images.requests, "get", get)
    with pytest.raises(MissingInput):
        RemoteImageSource("http://ci/images/", tmp_path).list_files()


def test_download_error_leaves_no_partial_file(server, tmp_path):
    source = RemoteImageSource("http://ci/images/", tmp_path)
    with pytest.raises(MissingInput):
        source.download("absent.bin")
    assert list(tmp_path.iterdir()) == []
