from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_PREFIX = "QCHESS_"


@dataclass
class Settings:
    """Runtime settings for the adapters around the core.

    Attributes:
        seed (Optional[int]): Seed for measurement randomness; ``None`` draws
            from system entropy.
        log_level (str): Root logging level.
        host (str): Bind address of the HTTP service.
        port (int): Port of the HTTP service.
    """

    seed: Optional[int] = None
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"invalid log level: {self.log_level!r}")
        if not (0 < int(self.port) < 65536):
            raise ValueError(f"invalid port: {self.port!r}")

    @classmethod
    def load(
        cls, path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
    ) -> "Settings":
        """Build settings from an optional TOML file, then the environment.

        The file's ``[qchess]`` table is read when ``path`` exists. Variables
        ``QCHESS_SEED``, ``QCHESS_LOG_LEVEL``, ``QCHESS_HOST`` and
        ``QCHESS_PORT`` override it.

        Raises:
            ValueError: If a value cannot be converted or is out of range.
        """
        values: Dict[str, Any] = {}
        if path and os.path.exists(path):
            with open(path, "rb") as f:
                data = tomllib.load(f)
            values.update(data.get("qchess", {}))

        env = os.environ if environ is None else environ
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is not None and raw != "":
                values[f.name] = raw

        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"unknown settings: {sorted(unknown)}")
        try:
            if values.get("seed") is not None:
                values["seed"] = int(values["seed"])
            if "port" in values:
                values["port"] = int(values["port"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid numeric setting: {e}") from e
        return cls(**values)

    def configure_logging(self) -> None:
        logging.basicConfig(level=getattr(logging, self.log_level))
