class ImageError(Exception):
    """Базовая ошибка сборки образа."""


class MissingInput(ImageError):
    """Нет файлов образов или целевого устройства."""


class UserAborted(ImageError):
    pass


class DeviceEnumerationTimeout(ImageError):
    """Разделы так и не появились после перечитывания таблицы."""


class InvalidSize(ImageError):
    pass


class CommandFailed(ImageError):
    def __init__(self, cmd, returncode: int, stderr: str = ""):
        self.cmd = [str(x) for x in cmd]
        self.returncode = returncode
        self.stderr = stderr or ""
        message = f"Команда {' '.join(self.cmd)} завершилась с кодом {returncode}"
        if self.stderr.strip():
            message += f": {self.stderr.strip()}"
        super().__init__(message)
