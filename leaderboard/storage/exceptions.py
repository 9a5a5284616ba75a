"""
Custom exceptions for the storage layer.

These exceptions provide clear error categories for store operations:
- StoreError: Base exception for all store errors
- ConnectionError: Connection failures
- ConfigurationError: Missing or invalid configuration
- SchemaError: Schema initialization/migration issues
- QueryError: Query execution failures
- NotFoundError: The addressed team does not exist
"""


class StoreError(Exception):
    """Base exception for all store errors."""
    pass


class ConnectionError(StoreError):
    """Failed to connect to the store."""
    pass


class ConfigurationError(StoreError):
    """Missing or invalid store configuration."""
    pass


class SchemaError(StoreError):
    """Error initializing or migrating schema."""
    pass


class QueryError(StoreError):
    """Error executing a query."""
    pass


class NotFoundError(StoreError):
    """No team with the given id."""

    def __init__(self, team_id: str):
        super().__init__(f"Team not found: {team_id}")
        self.team_id = team_id
