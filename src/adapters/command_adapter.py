import os
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from core.errors import CommandFailed, MissingInput
from core.interfaces import CommandPort, LoggerPort


def needs_sudo() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() != 0


class SubprocessRunner(CommandPort):
    """Запуск внешних утилит. Каждая команда логируется, ненулевой код - CommandFailed."""

    def __init__(self, logger: LoggerPort, use_sudo: bool = True):
        self.logger = logger
        self.use_sudo = use_sudo

    def _prepare(self, cmd: Sequence) -> list[str]:
        args = [str(x) for x in cmd]
        if self.use_sudo:
            args = ["sudo"] + args
        return args

    def run(self, cmd: Sequence, *, check: bool = True, capture: bool = False, cwd: Optional[Path] = None):
        args = self._prepare(cmd)
        self.logger.info(f"$ {' '.join(args)}")
        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                capture_output=capture,
                text=True,
            )
        except FileNotFoundError as e:
            raise MissingInput(f"Утилита {args[0]} не найдена. Установите её и повторите.") from e

        if capture and result.stderr:
            self.logger.debug(f"stderr: {result.stderr.strip()}")
        if check and result.returncode != 0:
            raise CommandFailed(args, result.returncode, result.stderr if capture else "")
        return result
