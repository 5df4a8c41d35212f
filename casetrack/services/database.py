"""
Database service for the Case & Report Tracker.

This module provides PostgreSQL connection pooling used by the remote
persistence backend, the prosecutor reference store and the user directory.
Features include:
- ThreadedConnectionPool for efficient connection management
- Connection retry with back-off
- Proper connection cleanup with context managers
"""

import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional, Union

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from casetrack.utils.logging_config import get_logger


class ConnectionPoolManager:
    """
    Manages a ThreadedConnectionPool with retry logic.
    """

    def __init__(
        self,
        connection_params: Dict[str, Any],
        min_connections: int = 1,
        max_connections: int = 10,
        connection_timeout: int = 10,
        retry_attempts: int = 3,
        retry_delay: float = 0.5,
    ):
        """
        Initialize the connection pool manager.

        Args:
            connection_params: Database connection parameters
            min_connections: Minimum number of connections to maintain
            max_connections: Maximum number of connections in pool
            connection_timeout: Connection timeout in seconds
            retry_attempts: Number of attempts before giving up on a connection
            retry_delay: Base delay between attempts in seconds
        """
        self.connection_params = connection_params.copy()
        self.connection_params["connect_timeout"] = connection_timeout
        self.min_connections = min_connections
        self.max_connections = max_connections
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._pool = None
        self._pool_lock = threading.Lock()
        self._failed_connections = 0
        self._total_connections = 0
        self.logger = get_logger("database.pool")

    def _initialize_pool(self):
        """Create the pool lazily; the caller holds the lock."""
        if self._pool is not None:
            self._pool.closeall()

        self._pool = pool.ThreadedConnectionPool(
            minconn=self.min_connections, maxconn=self.max_connections, **self.connection_params
        )
        self.logger.info(
            "Connection pool initialized successfully",
            extra={
                "event": "pool_initialized",
                "min_connections": self.min_connections,
                "max_connections": self.max_connections,
            },
        )

    def get_connection(self):
        """
        Get a connection from the pool with retry logic.

        Returns:
            Database connection or None if all attempts fail
        """
        for attempt in range(self.retry_attempts):
            try:
                with self._pool_lock:
                    if self._pool is None:
                        self._initialize_pool()

                    conn = self._pool.getconn()
                    if conn:
                        self._total_connections += 1
                        return conn

            except Exception as e:
                self._failed_connections += 1
                self.logger.warning(
                    "Connection attempt failed",
                    extra={
                        "event": "connection_attempt_failed",
                        "attempt": attempt + 1,
                        "max_attempts": self.retry_attempts,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )

                if attempt < self.retry_attempts - 1:
                    time.sleep(self.retry_delay * (attempt + 1))

        self.logger.error(
            "All connection attempts failed",
            extra={
                "event": "all_connection_attempts_failed",
                "attempts": self.retry_attempts,
                "failed_connections": self._failed_connections,
            },
        )
        return None

    def return_connection(self, conn):
        """Return a connection to the pool."""
        try:
            with self._pool_lock:
                if self._pool and conn:
                    self._pool.putconn(conn)
        except Exception as e:
            self.logger.error(
                "Failed to return connection to pool",
                extra={"event": "connection_return_failed", "error": str(e), "error_type": type(e).__name__},
            )

    def close_all_connections(self):
        """Close all connections in the pool."""
        with self._pool_lock:
            if self._pool:
                self._pool.closeall()
                self._pool = None
                self.logger.info("All connections closed", extra={"event": "all_connections_closed"})

    def get_pool_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        return {
            "min_connections": self.min_connections,
            "max_connections": self.max_connections,
            "total_connections_created": self._total_connections,
            "failed_connections": self._failed_connections,
            "pool_initialized": self._pool is not None,
        }


class DatabaseConnection:
    """
    Database access with connection pooling.
    """

    def __init__(
        self,
        host="localhost",
        port=5432,
        database="case_tracker",
        user="postgres",
        password="postgres",
        min_connections=1,
        max_connections=10,
        connection_timeout=10,
    ):
        self.connection_params = {"host": host, "port": port, "database": database, "user": user, "password": password}

        self.pool_manager = ConnectionPoolManager(
            connection_params=self.connection_params,
            min_connections=min_connections,
            max_connections=max_connections,
            connection_timeout=connection_timeout,
        )

        self.logger = get_logger("database.connection")
        self.logger.info(
            "DatabaseConnection initialized",
            extra={"event": "db_connection_init", "database": database, "host": host, "port": port},
        )

    @contextmanager
    def get_connection(self):
        """
        Context manager for getting and properly cleaning up database connections.

        Yields:
            Database connection with automatic cleanup
        """
        conn = self.pool_manager.get_connection()
        if conn is None:
            raise psycopg2.OperationalError("Failed to get connection from pool")
        try:
            yield conn
        except Exception:
            try:
                conn.rollback()
            except psycopg2.Error:
                pass
            raise
        finally:
            self.pool_manager.return_connection(conn)

    def execute_query(
        self,
        query: str,
        params: Optional[Union[tuple, dict]] = None,
        fetch_one: bool = False,
        fetch_all: bool = True,
    ) -> Any:
        """
        Execute a query and commit.

        Args:
            query: SQL query to execute
            params: Query parameters
            fetch_one: Return single row
            fetch_all: Return all rows

        Returns:
            Query results based on fetch parameters
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(query, params)

                    if fetch_one:
                        result = cursor.fetchone()
                    elif fetch_all:
                        result = cursor.fetchall()
                    else:
                        result = None

                    conn.commit()
                    return result

            except psycopg2.Error as e:
                conn.rollback()
                self.logger.error(
                    "Database query error",
                    extra={
                        "event": "query_error",
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "query": query[:200] + "..." if len(query) > 200 else query,
                    },
                )
                raise

    def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            result = self.execute_query("SELECT 1 AS ok", fetch_one=True)
            return result is not None
        except Exception as e:
            self.logger.error(
                "Connection test failed",
                extra={"event": "connection_test_failed", "error": str(e), "error_type": type(e).__name__},
            )
            return False

    def get_connection_stats(self) -> Dict[str, Any]:
        return self.pool_manager.get_pool_stats()

    def close_all_connections(self):
        self.pool_manager.close_all_connections()
