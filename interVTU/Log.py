"""Configure the shared logger for interVTU.

interVTU emits through loguru. Records from the package are disabled on
import, as loguru recommends for libraries; instantiating :class:`Log` once
installs the sinks and enables them. Calling ``Log(...)`` again with
arguments reconfigures the sinks.
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from loguru import logger as _logger

if TYPE_CHECKING:
    from loguru import Logger

_PACKAGE = "interVTU"


class Log:
    """Single configured logger shared by the reader, the codec and the operators."""

    _instance: Optional["Log"] = None

    def __new__(cls: type["Log"], *args: Any, **kwargs: Any) -> "Log":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._configure(*args, **kwargs)
        elif args or kwargs:
            cls._instance._configure(*args, **kwargs)
        return cls._instance

    def _configure(
        self,
        log_file: str | Path | None = None,
        level: str = "WARNING",
        rotation: str = "10 MB",
        retention: str = "10 days",
        debug_mode: bool = False,
    ) -> None:
        """Install a stderr sink and, optionally, a rotating file sink.

        The file sink only keeps records emitted from inside the package.
        """
        _logger.remove()
        _logger.enable(_PACKAGE)
        sink_level = "DEBUG" if debug_mode else level

        _logger.add(
            sys.stderr,
            level=sink_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
            "<level>{message}</level>",
            enqueue=False,
        )

        if log_file is not None:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            _logger.add(
                path,
                level=sink_level,
                rotation=rotation,
                retention=retention,
                format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
                "{name}:{function}:{line} - {message}",
                enqueue=False,
                filter=_PACKAGE,
                mode="a",
            )

    @staticmethod
    def silence() -> None:
        """Drop every record emitted from inside the package."""
        _logger.disable(_PACKAGE)

    @staticmethod
    def unsilence() -> None:
        _logger.enable(_PACKAGE)

    @property
    def logger(self) -> "Logger":
        """Return the configured loguru logger for emission."""
        return _logger
