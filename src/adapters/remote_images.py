import logging
from pathlib import Path
from urllib.parse import quote, unquote, urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from core.errors import MissingInput

REQUEST_TIMEOUT = 30
CHUNK_SIZE = 1024 * 1024


class RemoteImageSource:
    """
    Загружает образы buildroot из HTTP-листинга директории (например, артефакты CI).
    """
    base_url: str
    cache_dir: Path

    def __init__(self, base_url: str, cache_dir: Path):
        # Без завершающего "/" urljoin отбросит последний компонент пути
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.cache_dir = Path(cache_dir)

    def list_files(self) -> list[str]:
        """Имена файлов из листинга директории."""
        try:
            response = requests.get(self.base_url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            logging.error(f"Ошибка при подключении к {self.base_url}: {e}")
            raise MissingInput(f"Не удалось получить список образов с {self.base_url}: {e}") from e

        soup = BeautifulSoup(response.text, 'html.parser')
        names = []
        for link in soup.find_all('a', href=True):
            href = link['href']
            # Сортировка колонок, родительская директория и поддиректории
            if href.startswith(('?', '#')) or href.endswith('/'):
                continue
            name = unquote(urlparse(href).path.rsplit('/', 1)[-1])
            if name and name not in names:
                names.append(name)
        return names

    def download(self, name: str) -> Path:
        url = urljoin(self.base_url, quote(name))
        dest = self.cache_dir / name
        partial = dest.with_name(dest.name + ".part")
        logging.info(f"Скачиваем {url}...")
        try:
            with requests.get(url, stream=True, timeout=REQUEST_TIMEOUT) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
        except requests.RequestException as e:
            logging.error(f"Ошибка при загрузке {url}: {e}")
            partial.unlink(missing_ok=True)
            raise MissingInput(f"Не удалось скачать {url}: {e}") from e
        partial.replace(dest)
        logging.info(f"Загружен {dest}")
        return dest

    def fetch(self, names: list[str]) -> Path:
        """Скачивает указанные файлы в cache_dir и возвращает эту директорию.

        Raises:
            MissingInput: если какого-то файла нет в листинге или загрузка не удалась.
        """
        available = set(self.list_files())
        missing = [name for name in names if name not in available]
        if missing:
            raise MissingInput(
                f"На {self.base_url} нет файлов: {', '.join(missing)}. Соберите образы перед запуском."
            )
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        for name in names:
            self.download(name)
        return self.cache_dir
