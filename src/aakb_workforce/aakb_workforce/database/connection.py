from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import mysql.connector
from mysql.connector import errors, pooling

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = 5

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "aakb_workforce")),
            pool_size=int(db_config.get("pool_size", 5)),
        )

    def connect_args(self) -> dict:
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            "autocommit": False,
        }


class DatabaseConnection:
    """Pooled connection factory, one per database config.

    Each repository call borrows a connection for a single transaction and
    returns it on close(). The pool is opened on first use.
    """

    _instances: Dict[DBConfig, "DatabaseConnection"] = {}
    _instances_lock = threading.Lock()

    def __init__(self, config: DBConfig):
        self._config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._pool_lock = threading.Lock()

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._instances_lock:
            if config not in cls._instances:
                cls._instances[config] = DatabaseConnection(config)
            return cls._instances[config]

    @property
    def config(self) -> DBConfig:
        return self._config

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                self._pool = pooling.MySQLConnectionPool(
                    pool_name=f"aakb_{self._config.database}"[:64],
                    pool_size=max(1, self._config.pool_size),
                    pool_reset_session=True,
                    **self._config.connect_args(),
                )
                logger.info("MySQL pool opened (size=%d)", self._config.pool_size)
            return self._pool

    def connect(self):
        try:
            return self._get_pool().get_connection()
        except errors.PoolError:
            # Long-polling requests can hold every pooled connection.
            logger.warning("MySQL pool exhausted; opening a direct connection")
            return mysql.connector.connect(**self._config.connect_args())
