"""Framework-level configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from glacier import log
from glacier.flags import FlagContext
from glacier.infra import settings

SHUTDOWN_TIMEOUT_OPTION = "shutdown-timeout"
DEFAULT_SHUTDOWN_TIMEOUT = timedelta(seconds=15)


@dataclass
class Config:
    """Settings that govern the framework itself."""

    shutdown_timeout: timedelta = field(default=DEFAULT_SHUTDOWN_TIMEOUT)

    def __str__(self) -> str:
        return f"[shutdown_timeout: {self.shutdown_timeout}]"


def config_loader(flags: FlagContext) -> Config:
    """Build the framework configuration from command-line options."""
    timeout = flags.duration(SHUTDOWN_TIMEOUT_OPTION)
    config = Config(shutdown_timeout=timeout if timeout else DEFAULT_SHUTDOWN_TIMEOUT)
    if settings.debug:
        log.debug("[glacier] framework config loaded: %s", config)
    return config


_GITHUB_PREFIXES = (
    "github.com.mylxsw.glacier",
    "github.com.mylxsw.graceful",
)

_SHORT_PREFIXES = (
    "g.c.m.glacier",
    "g.c.m.graceful",
    "g.c.m.g.event",
    "g.c.m.g.scheduler",
    "g.c.m.g.web",
)


def is_glacier_module_log(module: str) -> bool:
    """Tell whether a log module name belongs to the framework itself."""
    if module == "glacier":
        return True
    if module.startswith("github.com.mylxsw"):
        return module.startswith(_GITHUB_PREFIXES)
    if module.startswith("g.c.m"):
        return module.startswith(_SHORT_PREFIXES)
    return False