"""
Database Module for the fomo Application

This module handles database connections and operations for the optional
SQL Server session store. It provides functions for connecting to the
database, executing queries, and reading and writing key/value session rows.
"""

import pyodbc
from typing import Optional, List, Dict

from config import settings
from utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseConnection:
    """Database connection manager for the fomo session store."""

    def __init__(self, connection_string: Optional[str] = None, table: Optional[str] = None):
        """
        Initialize the database connection manager.

        Args:
            connection_string: ODBC connection string; defaults to settings.DB_CONNECTION_STRING.
            table: Session table name; defaults to settings.DB_SESSION_TABLE.
        """
        self.conn = None
        self.connection_string = connection_string or settings.DB_CONNECTION_STRING
        self.table = table or settings.DB_SESSION_TABLE
        pyodbc.pooling = False

    def connect(self) -> bool:
        """
        Establish a connection to the database.

        Returns:
            bool: True if connection was successful, False otherwise.
        """
        try:
            self.conn = pyodbc.connect(self.connection_string)
            self.conn.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            logger.info("Successfully connected to database")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            self.conn = None
            return False

    def close(self) -> None:
        """Close the database connection."""
        try:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.info("Database connection closed")
        except Exception as e:
            logger.error(f"Error closing database connection: {e}")

    def execute_query(self, query: str, params: Optional[tuple] = None) -> Optional[List[Dict]]:
        """
        Execute a SQL query and return the results.

        Args:
            query: The SQL query to execute.
            params: Query parameters (optional).

        Returns:
            Optional[List[Dict]]: Query results as a list of dictionaries, or None if an error occurred.
        """
        if not self.conn and not self.connect():
            return None

        try:
            cursor = self.conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)

            # Check if this is a SELECT query with results
            if cursor.description:
                columns = [column[0] for column in cursor.description]
                results = [dict(zip(columns, row)) for row in cursor.fetchall()]
                return results
            else:
                self.conn.commit()
                return []

        except Exception as e:
            logger.error(f"Error executing query: {e}")
            try:
                self.conn.rollback()
            except Exception:
                pass
            return None

    def get_session_value(self, key: str) -> Optional[List[Dict]]:
        """
        Read the session row for a key.

        Args:
            key: The storage key.

        Returns:
            Optional[List[Dict]]: Zero or one rows with a Storage_Value column,
            or None if an error occurred.
        """
        query = f"""
        SELECT [Storage_Value]
        FROM {self.table}
        WHERE [Storage_Key] = ?
        """
        return self.execute_query(query, (key,))

    def set_session_value(self, key: str, value: str) -> bool:
        """
        Insert or replace the session row for a key.

        Args:
            key: The storage key.
            value: The serialized value.

        Returns:
            bool: True if the write was committed, False otherwise.
        """
        query = f"""
        MERGE {self.table} WITH (HOLDLOCK) AS target
        USING (SELECT ? AS [Storage_Key], ? AS [Storage_Value]) AS source
        ON target.[Storage_Key] = source.[Storage_Key]
        WHEN MATCHED THEN
            UPDATE SET [Storage_Value] = source.[Storage_Value], [Updated_At] = SYSUTCDATETIME()
        WHEN NOT MATCHED THEN
            INSERT ([Storage_Key], [Storage_Value], [Updated_At])
            VALUES (source.[Storage_Key], source.[Storage_Value], SYSUTCDATETIME());
        """
        result = self.execute_query(query, (key, value))
        if result is None:
            return False
        logger.debug(f"Stored session value for key: {key}")
        return True

    def delete_session_value(self, key: str) -> bool:
        """
        Delete the session row for a key.

        Args:
            key: The storage key.

        Returns:
            bool: True if the delete was committed, False otherwise.
        """
        query = f"DELETE FROM {self.table} WHERE [Storage_Key] = ?"
        return self.execute_query(query, (key,)) is not None
