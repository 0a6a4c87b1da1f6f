"""Users: registration, login and QA user management."""
