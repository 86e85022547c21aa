"""UserHub: users CRUD service with REST and GraphQL surfaces."""

__version__ = "1.0.0"
