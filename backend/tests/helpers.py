"""Shared test helpers."""

from userhub.services.user_service import UserService


def user_payload(service: UserService, name: str, email: str, age: int = 25) -> dict:
    payload = {"name": name, "email": email}
    if "age" in service.fields:
        payload["age"] = age
    return payload


def seed(service: UserService, people):
    """Create users from (name, email, age) tuples; returns the created rows."""
    return [service.create_user(user_payload(service, *person)) for person in people]
