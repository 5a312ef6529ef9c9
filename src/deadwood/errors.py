from __future__ import annotations


class DeadwoodError(Exception):
    pass


class ParseError(DeadwoodError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class PluginError(DeadwoodError):
    """Raised while plugins are being registered, before any indexing."""


class ConfigError(DeadwoodError):
    pass
