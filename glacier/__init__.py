"""Building blocks for applications: container, providers, services, runners, cron and graceful shutdown."""

__version__ = "1.0.0"

__all__ = [
    "base",
    "config",
    "container",
    "cronspec",
    "flags",
    "graceful",
    "graph",
    "infra",
    "listener",
    "log",
    "providers",
    "runner",
    "services",
]