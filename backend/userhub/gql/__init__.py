"""GraphQL schema and router."""
