"""Accounts: users, roles, registration, login and bearer tokens."""
