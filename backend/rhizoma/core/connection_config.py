"""Connection Config Resolver: maps a Role to concrete endpoint parameters.

Invariants:
    - Unsplit: every role resolves to the general (read-write) endpoint
    - Split: READ/WRITE use db_read/db_write, READ_WRITE still uses the general endpoint
    - A list of endpoints is sampled uniformly at random on every call (not memoized;
      LinkManager memoizes the resulting link instead)
    - Missing required fields raise ConfigError naming the field, never its value
    - Unknown role names raise ConfigError (field "role")

Design Decisions:
    - host/user not required for SQLite drivers: the database field is a file path
    - random.choice injected as `choose`: deterministic tests without monkeypatching
"""

import random
from typing import Callable, Sequence

from rhizoma.config import Endpoint, Settings
from rhizoma.core.domain_types import ConnectionConfig, Role
from rhizoma.core.errors import ConfigError, ErrorContext


def parse_role(role: Role | str) -> Role:
    """Coerce a role name to Role. Unknown names raise ConfigError."""
    try:
        return Role(role)
    except ValueError as e:
        raise ConfigError(f"Unknown database role '{role}'", "role") from e


class ConnectionConfigResolver:
    """Resolves per-role connection parameters from Settings."""

    def __init__(
        self,
        settings: Settings,
        choose: Callable[[Sequence[Endpoint]], Endpoint] = random.choice,
    ):
        self._settings = settings
        self._choose = choose

    @property
    def is_split(self) -> bool:
        return self._settings.db_split

    def resolve(self, role: Role | str) -> ConnectionConfig:
        role = parse_role(role)
        if role is Role.READ_WRITE or not self.is_split:
            config = self._general_config()
        else:
            config = self._particular_config(role)
        self._validate(config, role)
        return config

    def _general_config(self) -> ConnectionConfig:
        s = self._settings
        return ConnectionConfig(
            driver=s.db_driver,
            host=s.db_host,
            port=s.db_port,
            user=s.db_user,
            password=s.db_pass,
            database=s.db_name or "",
        )

    def _particular_config(self, role: Role) -> ConnectionConfig:
        configured = (
            self._settings.db_read if role is Role.READ else self._settings.db_write
        )
        if configured is None:
            raise ConfigError(
                f"Split databases enabled but no {role.value} endpoint configured",
                f"db_{role.value}", ErrorContext(role=role.value),
            )
        if isinstance(configured, list):
            if not configured:
                raise ConfigError(
                    f"Endpoint list for {role.value} is empty",
                    f"db_{role.value}", ErrorContext(role=role.value),
                )
            endpoint = self._choose(configured)
        else:
            endpoint = configured
        return ConnectionConfig(
            driver=self._settings.db_driver,
            host=endpoint.host,
            port=endpoint.port,
            user=endpoint.user,
            password=endpoint.password,
            database=endpoint.database or "",
        )

    def _validate(self, config: ConnectionConfig, role: Role) -> None:
        required = ["database"]
        if not config.driver.startswith("sqlite"):
            required += ["host", "user"]
        for name in required:
            if not getattr(config, name):
                raise ConfigError(
                    f"Missing database setting '{name}' for {role.value} connection",
                    name, ErrorContext(role=role.value),
                )
