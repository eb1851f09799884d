"""Clinic Task Manager package.

Feature modules (tasks, attendance, notifications, ...) each carry a model,
a repository interface with its MySQL implementation, a service holding the
business rules and a thin Flask controller exposing JSON endpoints.
"""
